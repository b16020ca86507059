"""
Configuration sources and the precedence chain.

A viewer's host and theme are looked up through an ordered list of sources;
the first source returning a non-empty value wins:

1. values set explicitly on the viewer
2. values propagated by an enclosing provider
3. ambient shared defaults (programmatic, then discovered from page
   metadata or the environment)
4. built-in fallbacks (theme only; there is no fallback host)
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Protocol, Tuple, Union

from bs4 import BeautifulSoup

from .models import DEFAULT_THEME

logger = logging.getLogger(__name__)

SNIPPET = "snippet"
SNIPPET_HOST = "snippet-host"
SNIPPET_THEME = "snippet-theme"


class ConfigSource(Protocol):
    """A single configuration source returning a value or ``None``."""

    name: str

    def lookup(self, key: str) -> Optional[str]: ...


class MappingSource:
    """Source backed by a live mapping, such as a widget's attributes."""

    def __init__(self, name: str, values: Mapping[str, Optional[str]]) -> None:
        self.name = name
        self._values = values

    def lookup(self, key: str) -> Optional[str]:
        return self._values.get(key) or None


class MetaTagSource:
    """
    Source discovered from declarative page metadata.

    Reads ``<meta name="snippet-host" content="...">`` style tags from an
    HTML document.
    """

    name = "meta"

    def __init__(self, html: str) -> None:
        soup = BeautifulSoup(html, "html.parser")
        self._values: Dict[str, str] = {}
        for meta in soup.find_all("meta"):
            meta_name = meta.get("name")
            content = meta.get("content")
            if meta_name and content and meta_name not in self._values:
                self._values[meta_name] = content.strip()

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "MetaTagSource":
        return cls(Path(path).read_text(encoding="utf-8"))

    def lookup(self, key: str) -> Optional[str]:
        return self._values.get(key) or None


class EnvironmentSource:
    """Source reading ``SNIPPET_VIEWER_HOST`` / ``SNIPPET_VIEWER_THEME``."""

    name = "environment"

    KEYS = {
        SNIPPET_HOST: "SNIPPET_VIEWER_HOST",
        SNIPPET_THEME: "SNIPPET_VIEWER_THEME",
    }

    def __init__(self, environ: Optional[Mapping[str, str]] = None) -> None:
        self._environ = environ

    def lookup(self, key: str) -> Optional[str]:
        env_var = self.KEYS.get(key)
        if env_var is None:
            return None
        environ = os.environ if self._environ is None else self._environ
        return environ.get(env_var) or None


class BuiltinSource:
    """Built-in fallbacks. Only the theme has one."""

    name = "builtin"

    DEFAULTS = {SNIPPET_THEME: DEFAULT_THEME}

    def lookup(self, key: str) -> Optional[str]:
        return self.DEFAULTS.get(key)


class ConfigChain:
    """Ordered list of sources queried in priority order."""

    def __init__(self, sources: Iterable[ConfigSource]) -> None:
        self.sources: List[ConfigSource] = list(sources)

    def lookup_with_source(self, key: str) -> Tuple[Optional[str], Optional[str]]:
        """Return the winning value and the name of the source that supplied it."""
        for source in self.sources:
            value = source.lookup(key)
            if value:
                return value, source.name
        return None, None

    def lookup(self, key: str) -> Optional[str]:
        return self.lookup_with_source(key)[0]
