"""
Single-snippet viewer state machine.

A Viewer resolves the snippet resource of its effective host through a
FetchCoordinator, looks up its snippet key and moves between the Idle,
Resolving, Ready and Failed states, emitting a render instruction on each
transition.

Every resolution captures the viewer's generation number when it starts. A
configuration change or a detach bumps the generation, so a slower resolution
that settles after a newer one started is discarded instead of overwriting it.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Callable, Dict, Optional

from .cache import FetchCoordinator, get_default_coordinator
from .config.ambient import AmbientConfig, get_ambient_config
from .config.sources import (
    SNIPPET,
    SNIPPET_HOST,
    SNIPPET_THEME,
    BuiltinSource,
    ConfigChain,
    MappingSource,
)
from .exceptions import MissingConfigurationError, SnippetNotFoundError, SnippetViewerError
from .languages import resolve_snippet_key
from .models import (
    ConfigurationChanged,
    Failed,
    Idle,
    Ready,
    RenderInstruction,
    Resolving,
    ViewerState,
)

if TYPE_CHECKING:
    from .provider import Provider
    from .render import Renderer

logger = logging.getLogger(__name__)

MISSING_CONFIGURATION_MESSAGE = "Missing snippet or snippet-host"


class Viewer:
    """
    Displays one snippet from a shared snippet resource.

    Args:
        snippet: Snippet key, e.g. ``counter@counter.ts``
        snippet_host: Explicit resource host for this viewer
        coordinator: Coordinator to resolve through (process-wide by default)
        renderer: Collaborator receiving render instructions
        ambient: Shared defaults (process-wide by default)
        theme: Explicit visual theme for this viewer
    """

    observed_attributes = (SNIPPET, SNIPPET_HOST)

    def __init__(
        self,
        snippet: Optional[str] = None,
        snippet_host: Optional[str] = None,
        *,
        coordinator: Optional[FetchCoordinator] = None,
        renderer: Optional["Renderer"] = None,
        ambient: Optional[AmbientConfig] = None,
        theme: Optional[str] = None,
    ) -> None:
        self._attributes: Dict[str, str] = {}
        for name, value in ((SNIPPET, snippet), (SNIPPET_HOST, snippet_host), (SNIPPET_THEME, theme)):
            if value is not None:
                self._attributes[name] = value
        self._inherited: Dict[str, str] = {}
        # Failure of the provider prefetch that supplied the inherited host
        self._provider_error: Optional[str] = None

        self._coordinator = coordinator
        self._ambient = ambient if ambient is not None else get_ambient_config()
        self.config_chain = ConfigChain(
            [
                MappingSource("attribute", self._attributes),
                MappingSource("provider", self._inherited),
                self._ambient,
                BuiltinSource(),
            ]
        )

        self.renderer = renderer
        self.provider: Optional["Provider"] = None
        self.state: ViewerState = Idle()
        self.current_code = ""

        self._attached = False
        self._generation = 0
        self._task: Optional[asyncio.Task[ViewerState]] = None

    def __repr__(self) -> str:
        return f"Viewer(snippet={self.snippet!r}, state={self.state.status.value})"

    @property
    def coordinator(self) -> FetchCoordinator:
        if self._coordinator is None:
            self._coordinator = get_default_coordinator()
        return self._coordinator

    @property
    def snippet(self) -> str:
        return self._attributes.get(SNIPPET) or ""

    @property
    def snippet_host(self) -> str:
        return self.config_chain.lookup(SNIPPET_HOST) or ""

    @property
    def theme(self) -> Optional[str]:
        return self.config_chain.lookup(SNIPPET_THEME)

    @property
    def attached(self) -> bool:
        return self._attached

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def task(self) -> Optional[asyncio.Task[ViewerState]]:
        """The most recently started resolution, if any."""
        return self._task

    # Attributes

    def get_attribute(self, name: str) -> Optional[str]:
        return self._attributes.get(name)

    def has_attribute(self, name: str) -> bool:
        return name in self._attributes

    def set_attribute(self, name: str, value: str) -> Optional[asyncio.Task[ViewerState]]:
        """
        Set an attribute explicitly on this viewer.

        Returns:
            The resolution task started by the change, if any
        """
        return self._change(name, lambda: self._attributes.__setitem__(name, value))

    def remove_attribute(self, name: str) -> Optional[asyncio.Task[ViewerState]]:
        return self._change(name, lambda: self._attributes.pop(name, None))

    def inherit_host(self, host: Optional[str]) -> Optional[asyncio.Task[ViewerState]]:
        """Receive the host propagated by an enclosing provider."""
        def apply() -> None:
            if host:
                self._inherited[SNIPPET_HOST] = host
            else:
                self._inherited.pop(SNIPPET_HOST, None)
            self._provider_error = None

        return self._change(SNIPPET_HOST, apply)

    def provider_settled(
        self, host: Optional[str], error: Optional[str] = None
    ) -> Optional[asyncio.Task[ViewerState]]:
        """
        Receive the outcome of an enclosing provider's prefetch.

        The provider's host is inherited and, once attached, the viewer always
        resolves again, even if its effective host is unchanged. After a
        failed prefetch the viewer fails with the provider's error instead of
        fetching the resource a second time.
        """
        if host:
            self._inherited[SNIPPET_HOST] = host
        else:
            self._inherited.pop(SNIPPET_HOST, None)
        self._provider_error = error
        if not self._attached:
            return None
        logger.debug(f"Provider settled for {self.snippet!r} with host {host!r}")
        return self._start()

    def _effective(self, name: str) -> Optional[str]:
        if name == SNIPPET:
            return self.snippet or None
        return self.config_chain.lookup(name)

    def _change(
        self, name: str, mutate: Callable[[], None]
    ) -> Optional[asyncio.Task[ViewerState]]:
        old_value = self._effective(name)
        mutate()
        new_value = self._effective(name)
        if not self._attached or name not in self.observed_attributes or old_value == new_value:
            return None
        return self.configuration_changed(ConfigurationChanged(name, old_value, new_value))

    def configuration_changed(self, event: ConfigurationChanged) -> Optional[asyncio.Task[ViewerState]]:
        """
        React to a change of an effective configuration value.

        Only delivered after attach; starts a new resolution.
        """
        if not self._attached:
            return None
        logger.debug(f"{event.name} changed from {event.old_value!r} to {event.new_value!r}")
        return self._start()

    # Lifecycle

    def attach(self) -> asyncio.Task[ViewerState]:
        """
        Attach the viewer and start resolving its snippet.

        Must be called while an event loop is running.
        """
        if self._attached and self._task is not None:
            return self._task
        self._attached = True
        return self._start()

    def detach(self) -> None:
        """Detach the viewer; in-flight results are discarded."""
        self._attached = False
        self._generation += 1
        self.state = Idle()

    async def refresh(self) -> ViewerState:
        """Start a new resolution and wait for it."""
        self._provider_error = None
        self._attached = True
        return await self._start()

    async def wait(self) -> ViewerState:
        """Wait until the most recent resolution has settled."""
        while self._task is not None and not self._task.done():
            await self._task
        return self.state

    def _start(self) -> asyncio.Task[ViewerState]:
        self._generation += 1
        task = asyncio.get_running_loop().create_task(self._load(self._generation))
        self._task = task
        return task

    async def _load(self, generation: int) -> ViewerState:
        snippet, host = self.snippet, self.snippet_host

        if not snippet or not host:
            error = MissingConfigurationError(MISSING_CONFIGURATION_MESSAGE)
            self._transition(generation, Failed(error.message))
            return self.state

        _, source = self.config_chain.lookup_with_source(SNIPPET_HOST)
        if self._provider_error is not None and source == "provider":
            self._transition(generation, Failed(f"Failed to load snippet: {self._provider_error}"))
            return self.state

        self._transition(generation, Resolving(host=host, snippet=snippet))

        try:
            mapping = await self.coordinator.resolve(host)
        except SnippetViewerError as e:
            self._transition(generation, Failed(f"Failed to load snippet: {e.message}"))
            return self.state

        code = mapping.get(snippet)
        if code is None:
            self._transition(generation, Failed(SnippetNotFoundError(snippet).message))
            return self.state

        info = resolve_snippet_key(snippet)
        self._transition(
            generation, Ready(code=code, language=info.language, display_name=info.display_name)
        )
        return self.state

    def _transition(self, generation: int, state: ViewerState) -> bool:
        if generation != self._generation:
            logger.debug(f"Discarding stale {state.status.value} result for {self.snippet!r}")
            return False

        self.state = state
        if isinstance(state, Ready):
            self.current_code = state.code
        self._emit(state)
        return True

    def _emit(self, state: ViewerState) -> None:
        if self.renderer is None:
            return
        theme = self.theme
        match state:
            case Resolving():
                instruction = RenderInstruction.loading(theme)
            case Ready(code=code, language=language, display_name=name):
                instruction = RenderInstruction.code(name, code, language, theme)
            case Failed(message=message):
                instruction = RenderInstruction.error(message, theme)
            case _:
                return
        self.renderer.render(instruction)
