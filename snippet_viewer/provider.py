"""
Snippet provider: prefetches a resource once for a group of viewers.

A Provider resolves its host through the shared FetchCoordinator. When the
prefetch settles it updates its ProviderState and broadcasts exactly once:
external listeners receive a SnippetsLoaded notification, and every viewer in
the group without an explicit host of its own inherits the provider's host,
re-resolving against the now populated cache. After a failed prefetch those
viewers fail with the provider's error instead of fetching again.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Iterable, List, Optional, Set

from .cache import FetchCoordinator, get_default_coordinator
from .config.sources import SNIPPET_HOST
from .exceptions import SnippetViewerError
from .models import ProviderState, SnippetMapping, SnippetsLoaded
from .viewer import Viewer

logger = logging.getLogger(__name__)

MISSING_PROVIDER_HOST_MESSAGE = "Missing snippet-host attribute on provider"

Listener = Callable[[SnippetsLoaded], None]


class Provider:
    """
    Aggregates viewers that share one snippet resource.

    Args:
        snippet_host: Resource host to prefetch
        coordinator: Coordinator to resolve through (process-wide by default)
        viewers: Initial viewers of the group
    """

    observed_attributes = (SNIPPET_HOST,)

    def __init__(
        self,
        snippet_host: Optional[str] = None,
        *,
        coordinator: Optional[FetchCoordinator] = None,
        viewers: Iterable[Viewer] = (),
    ) -> None:
        self._host = snippet_host or None
        self._coordinator = coordinator
        self.state = ProviderState(host=self._host)
        self._viewers: List[Viewer] = []
        self._listeners: List[Listener] = []
        self._viewer_tasks: Set[asyncio.Task] = set()

        self._attached = False
        self._generation = 0
        self._task: Optional[asyncio.Task[ProviderState]] = None

        for viewer in viewers:
            self.add_viewer(viewer)

    def __repr__(self) -> str:
        return f"Provider(host={self._host!r}, viewers={len(self._viewers)})"

    @property
    def coordinator(self) -> FetchCoordinator:
        if self._coordinator is None:
            self._coordinator = get_default_coordinator()
        return self._coordinator

    @property
    def snippet_host(self) -> str:
        return self._host or ""

    @property
    def snippets(self) -> Optional[SnippetMapping]:
        return self.state.snippets

    @property
    def loading(self) -> bool:
        return self.state.loading

    @property
    def error(self) -> Optional[str]:
        return self.state.error

    @property
    def viewers(self) -> List[Viewer]:
        return list(self._viewers)

    # Group membership

    def add_viewer(self, viewer: Viewer) -> Viewer:
        """
        Add a viewer to the group.

        A viewer joining after a completed prefetch receives its outcome right
        away.
        """
        if viewer.provider is not None and viewer.provider is not self:
            viewer.provider.remove_viewer(viewer)
        if viewer not in self._viewers:
            self._viewers.append(viewer)
        viewer.provider = self

        if not self.state.loading and self.state.host and not viewer.has_attribute(SNIPPET_HOST):
            self._track(viewer.provider_settled(self.state.host, self.state.error))
        return viewer

    def remove_viewer(self, viewer: Viewer) -> None:
        if viewer in self._viewers:
            self._viewers.remove(viewer)
        if viewer.provider is self:
            viewer.provider = None
            self._track(viewer.inherit_host(None))

    # Notifications

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # Attributes

    def set_attribute(self, name: str, value: Optional[str]) -> Optional[asyncio.Task[ProviderState]]:
        """Set the provider host; a change after attach starts a new prefetch."""
        if name != SNIPPET_HOST:
            return None
        old_value, self._host = self._host, value or None
        if not self._attached or old_value == self._host:
            return None
        logger.debug(f"Provider host changed from {old_value!r} to {self._host!r}")
        return self._start()

    # Lifecycle

    def attach(self) -> asyncio.Task[ProviderState]:
        """Attach the provider and start its prefetch cycle."""
        if self._attached and self._task is not None:
            return self._task
        self._attached = True
        return self._start()

    def detach(self) -> None:
        """Detach the provider; a pending prefetch will not broadcast."""
        self._attached = False
        self._generation += 1

    async def prefetch(self) -> ProviderState:
        """Run a prefetch cycle now and wait for it."""
        self._attached = True
        return await self._start()

    async def wait(self) -> ProviderState:
        """Wait for the prefetch and for the viewers it re-configured."""
        while self._task is not None and not self._task.done():
            await self._task
        pending = [task for task in self._viewer_tasks if not task.done()]
        while pending:
            await asyncio.gather(*pending)
            pending = [task for task in self._viewer_tasks if not task.done()]
        for viewer in self._viewers:
            await viewer.wait()
        return self.state

    def _start(self) -> asyncio.Task[ProviderState]:
        self._generation += 1
        task = asyncio.get_running_loop().create_task(self._prefetch(self._generation))
        self._task = task
        return task

    async def _prefetch(self, generation: int) -> ProviderState:
        host = self._host
        if not host:
            logger.warning(MISSING_PROVIDER_HOST_MESSAGE)
            self.state = ProviderState(
                host=None, loading=False, error=MISSING_PROVIDER_HOST_MESSAGE
            )
            return self.state

        self.state = ProviderState(host=host, snippets=self.state.snippets, loading=True)

        try:
            mapping = await self.coordinator.resolve(host)
        except SnippetViewerError as e:
            outcome = SnippetsLoaded(host=host, error=e.message)
        else:
            outcome = SnippetsLoaded(host=host, snippets=mapping)

        if generation != self._generation:
            logger.debug(f"Discarding stale prefetch of {host}")
            return self.state

        self.state = ProviderState(
            host=host, snippets=outcome.snippets, loading=False, error=outcome.error
        )
        self._broadcast(outcome)
        return self.state

    def _broadcast(self, outcome: SnippetsLoaded) -> None:
        # Work on snapshots in case listeners change the group
        for listener in list(self._listeners):
            try:
                listener(outcome)
            except Exception as e:
                logger.error(f"Error in snippets-loaded listener: {e}")

        for viewer in list(self._viewers):
            if not viewer.has_attribute(SNIPPET_HOST):
                self._track(viewer.provider_settled(outcome.host, outcome.error))

    def _track(self, task: Optional[asyncio.Task]) -> None:
        if task is not None:
            self._viewer_tasks.add(task)
            task.add_done_callback(self._viewer_tasks.discard)
