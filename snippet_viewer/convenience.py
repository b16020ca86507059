"""
Convenience functions for one-off snippet lookups.

These helpers wrap viewers and providers so callers can resolve snippets
without managing widget lifecycles themselves.
"""

from __future__ import annotations

from typing import Dict, Iterable, Optional

from .cache import FetchCoordinator, get_default_coordinator
from .config.ambient import get_ambient_config
from .config.sources import SNIPPET_HOST
from .exceptions import MissingConfigurationError, SnippetNotFoundError
from .languages import resolve_snippet_key
from .models import Ready, ViewerState
from .provider import Provider
from .render import Renderer
from .viewer import MISSING_CONFIGURATION_MESSAGE, Viewer


async def get_snippet(
    key: str,
    host: Optional[str] = None,
    coordinator: Optional[FetchCoordinator] = None,
) -> Ready:
    """
    Resolve one snippet, raising instead of returning a failed state.

    Args:
        key: Snippet key
        host: Resource host; the ambient default host is used if None
        coordinator: Coordinator to resolve through

    Returns:
        Ready state with code, language tag and display name

    Raises:
        MissingConfigurationError: If no key or host is available
        SnippetNotFoundError: If the resource has no such key
        NetworkFailure: If the host answers with an error status
        TransportFailure: On connection or decoding errors
    """
    host = host or get_ambient_config().lookup(SNIPPET_HOST)
    if not key or not host:
        raise MissingConfigurationError(MISSING_CONFIGURATION_MESSAGE)

    coordinator = coordinator or get_default_coordinator()
    mapping = await coordinator.resolve(host)
    if key not in mapping:
        raise SnippetNotFoundError(key, url=coordinator.url_for(host))

    info = resolve_snippet_key(key)
    return Ready(code=mapping[key], language=info.language, display_name=info.display_name)


async def load_snippet(
    key: str,
    host: Optional[str] = None,
    renderer: Optional[Renderer] = None,
    coordinator: Optional[FetchCoordinator] = None,
) -> ViewerState:
    """Attach a throwaway viewer for ``key`` and return its settled state."""
    viewer = Viewer(key, host, coordinator=coordinator, renderer=renderer)
    await viewer.attach()
    state = await viewer.wait()
    viewer.detach()
    return state


async def load_snippets(
    keys: Iterable[str],
    host: Optional[str] = None,
    renderer: Optional[Renderer] = None,
    coordinator: Optional[FetchCoordinator] = None,
) -> Dict[str, ViewerState]:
    """
    Resolve several snippets of one host with a single fetch.

    Viewers are grouped under a provider; each viewer renders once the
    provider has settled.
    """
    host = host or get_ambient_config().lookup(SNIPPET_HOST)
    provider = Provider(host, coordinator=coordinator)
    await provider.prefetch()

    viewers = [Viewer(key, coordinator=coordinator, renderer=renderer) for key in keys]
    for viewer in viewers:
        provider.add_viewer(viewer)
        viewer.attach()
    await provider.wait()

    states = {viewer.snippet: viewer.state for viewer in viewers}
    for viewer in viewers:
        viewer.detach()
    return states
