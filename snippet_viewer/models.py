"""
Data models for the snippet viewer.

This module defines the per-widget state variants, the provider state, the
render instructions handed to the rendering collaborator and the events
exchanged between providers, viewers and external listeners.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional, Union

DEFAULT_RESOURCE_PATH = "snippets.json"

# Snippet key -> source code, read-only once resolved
SnippetMapping = Mapping[str, str]


def resource_url(host: str, resource_path: str = DEFAULT_RESOURCE_PATH) -> str:
    """
    Normalize a resource host into the URL of its snippet resource.

    A single trailing path separator is stripped so that ``https://a/b`` and
    ``https://a/b/`` share one cache entry.

    Args:
        host: Configured resource host
        resource_path: Path of the JSON resource below the host

    Returns:
        The normalized resource URL used as cache key
    """
    if host.endswith("/"):
        host = host[:-1]
    return f"{host}/{resource_path}"


def freeze_mapping(data: Mapping[str, str]) -> SnippetMapping:
    """Return a read-only snapshot of a snippet mapping."""
    if isinstance(data, MappingProxyType):
        return data
    return MappingProxyType(dict(data))


class ViewerStatus(str, Enum):
    """Display status of a viewer."""

    IDLE = "idle"
    RESOLVING = "resolving"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class Idle:
    """Viewer not attached yet, or detached."""

    status: ViewerStatus = field(default=ViewerStatus.IDLE, init=False)


@dataclass(frozen=True)
class Resolving:
    """Viewer waiting for its resource to resolve."""

    host: str
    snippet: str
    status: ViewerStatus = field(default=ViewerStatus.RESOLVING, init=False)


@dataclass(frozen=True)
class Ready:
    """Viewer displaying a snippet."""

    code: str
    language: str
    display_name: str
    status: ViewerStatus = field(default=ViewerStatus.READY, init=False)


@dataclass(frozen=True)
class Failed:
    """Viewer displaying an error message."""

    message: str
    status: ViewerStatus = field(default=ViewerStatus.FAILED, init=False)


ViewerState = Union[Idle, Resolving, Ready, Failed]


@dataclass(frozen=True)
class SnippetInfo:
    """Display name and language tag derived from a snippet key."""

    display_name: str
    language: str
    extension: str = ""


@dataclass
class ProviderState:
    """Mutable state owned by a single provider."""

    host: Optional[str] = None
    snippets: Optional[SnippetMapping] = None
    loading: bool = True
    error: Optional[str] = None


class RenderKind(str, Enum):
    """Kind of output a render instruction asks for."""

    LOADING = "loading"
    CODE = "code"
    ERROR = "error"


@dataclass(frozen=True)
class RenderInstruction:
    """
    What a viewer asks the rendering collaborator to display.

    Attributes:
        kind: Loading indicator, highlighted code or error text
        title: Header text (display name, "Loading..." or "Error")
        text: Body text (source code or status message)
        language: Language tag for code instructions
        theme: Visual theme name in effect for the viewer
    """

    kind: RenderKind
    title: str
    text: str
    language: Optional[str] = None
    theme: Optional[str] = None

    @classmethod
    def loading(cls, theme: Optional[str] = None) -> "RenderInstruction":
        return cls(RenderKind.LOADING, "Loading...", "Loading snippet...", theme=theme)

    @classmethod
    def error(cls, message: str, theme: Optional[str] = None) -> "RenderInstruction":
        return cls(RenderKind.ERROR, "Error", message, theme=theme)

    @classmethod
    def code(
        cls, display_name: str, code: str, language: str, theme: Optional[str] = None
    ) -> "RenderInstruction":
        return cls(RenderKind.CODE, display_name, code, language=language, theme=theme)


@dataclass(frozen=True)
class ConfigurationChanged:
    """Notification that an effective configuration value changed."""

    name: str
    old_value: Optional[str]
    new_value: Optional[str]


@dataclass(frozen=True)
class SnippetsLoaded:
    """Completion notification broadcast by a provider after each prefetch."""

    host: str
    snippets: Optional[SnippetMapping] = None
    error: Optional[str] = None

    @property
    def is_success(self) -> bool:
        return self.error is None
