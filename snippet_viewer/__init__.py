"""
Embeddable code snippet viewer backed by a shared snippets.json resource.

Many viewers, possibly spread over independent embeds, display snippets
from the same host. A process-wide cache with single-flight request
deduplication makes sure each resource is fetched at most once at a time and
stored once, and providers prefetch a resource on behalf of a whole group of
viewers.

Features:
- Async resolution with aiohttp and one in-flight request per resource
- Write-once resource cache shared by every viewer and provider
- Viewer state machine that discards stale results after reconfiguration
- Providers that broadcast completion and propagate their host to viewers
- Layered configuration: explicit, provider, ambient, page metadata, built-in
- Pygments/rich rendering that degrades to plain text
"""

from .cache import (
    FetchCoordinator,
    PendingOperation,
    ResourceCache,
    get_default_coordinator,
    set_default_coordinator,
)
from .config import (
    AmbientConfig,
    ConfigChain,
    ConfigLoader,
    GlobalConfig,
    HttpConfig,
    LoggingConfig,
    MetaTagSource,
    SnippetConfig,
    get_ambient_config,
    load_config,
    set_default_host,
    set_theme,
)
from .convenience import get_snippet, load_snippet, load_snippets
from .exceptions import (
    ConfigurationError,
    ErrorHandler,
    MissingConfigurationError,
    NetworkFailure,
    RenderingDegraded,
    SnippetNotFoundError,
    SnippetViewerError,
    TransportFailure,
)
from .http import SnippetFetcher, fetch_snippet_mapping
from .languages import DEFAULT_LANGUAGE, LANGUAGE_MAP, resolve_snippet_key
from .models import (
    ConfigurationChanged,
    Failed,
    Idle,
    ProviderState,
    Ready,
    RenderInstruction,
    RenderKind,
    Resolving,
    SnippetInfo,
    SnippetMapping,
    SnippetsLoaded,
    ViewerState,
    ViewerStatus,
    resource_url,
)
from .provider import Provider
from .render import ConsoleRenderer, Highlighter, HtmlRenderer, PlainRenderer, Renderer
from .viewer import Viewer

__version__ = "0.1.0"

__all__ = [
    # Cache and coordination
    "FetchCoordinator",
    "PendingOperation",
    "ResourceCache",
    "get_default_coordinator",
    "set_default_coordinator",
    # Configuration
    "AmbientConfig",
    "ConfigChain",
    "ConfigLoader",
    "GlobalConfig",
    "HttpConfig",
    "LoggingConfig",
    "MetaTagSource",
    "SnippetConfig",
    "get_ambient_config",
    "load_config",
    "set_default_host",
    "set_theme",
    # Convenience
    "get_snippet",
    "load_snippet",
    "load_snippets",
    # Exceptions
    "ConfigurationError",
    "ErrorHandler",
    "MissingConfigurationError",
    "NetworkFailure",
    "RenderingDegraded",
    "SnippetNotFoundError",
    "SnippetViewerError",
    "TransportFailure",
    # HTTP
    "SnippetFetcher",
    "fetch_snippet_mapping",
    # Languages
    "DEFAULT_LANGUAGE",
    "LANGUAGE_MAP",
    "resolve_snippet_key",
    # Models
    "ConfigurationChanged",
    "Failed",
    "Idle",
    "ProviderState",
    "Ready",
    "RenderInstruction",
    "RenderKind",
    "Resolving",
    "SnippetInfo",
    "SnippetMapping",
    "SnippetsLoaded",
    "ViewerState",
    "ViewerStatus",
    "resource_url",
    # Widgets
    "Provider",
    "Viewer",
    # Rendering
    "ConsoleRenderer",
    "Highlighter",
    "HtmlRenderer",
    "PlainRenderer",
    "Renderer",
]
