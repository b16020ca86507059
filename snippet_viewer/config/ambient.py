"""
Ambient shared configuration.

Holds the defaults that every viewer without explicit configuration falls
back to. Values can be set programmatically or discovered from page metadata
and the environment; the first discovered value is remembered once read.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

from .models import GlobalConfig
from .sources import (
    SNIPPET_HOST,
    SNIPPET_THEME,
    ConfigSource,
    EnvironmentSource,
    MetaTagSource,
)

logger = logging.getLogger(__name__)


class AmbientConfig:
    """Shared defaults for viewers, providers and the CLI."""

    name = "ambient"

    def __init__(self, discovered: Optional[Iterable[ConfigSource]] = None) -> None:
        self._values: Dict[str, str] = {}
        self._discovered: List[ConfigSource] = list(discovered or [])

    def set_default_host(self, host: Optional[str]) -> None:
        """Set the host used by viewers that have none of their own."""
        self._set(SNIPPET_HOST, host)

    def set_theme(self, theme: Optional[str]) -> None:
        """Set the visual theme used by viewers that have none of their own."""
        self._set(SNIPPET_THEME, theme)

    @property
    def default_host(self) -> Optional[str]:
        return self.lookup(SNIPPET_HOST)

    @property
    def theme(self) -> Optional[str]:
        return self.lookup(SNIPPET_THEME)

    def _set(self, key: str, value: Optional[str]) -> None:
        if value:
            self._values[key] = value
        else:
            self._values.pop(key, None)

    def add_source(self, source: ConfigSource) -> None:
        """Register a discovery source, consulted after programmatic values."""
        self._discovered.append(source)

    def discover_page(self, html: str) -> MetaTagSource:
        """Register the ``<meta>`` tags of an HTML page as a discovery source."""
        source = MetaTagSource(html)
        self.add_source(source)
        return source

    def discover_page_file(self, path: Union[str, Path]) -> MetaTagSource:
        source = MetaTagSource.from_file(path)
        self.add_source(source)
        return source

    def apply(self, config: GlobalConfig) -> None:
        """Take default host and theme from a loaded configuration."""
        if config.snippets.default_host:
            self.set_default_host(config.snippets.default_host)
        if config.snippets.theme:
            self.set_theme(config.snippets.theme)

    def lookup(self, key: str) -> Optional[str]:
        value = self._values.get(key)
        if value:
            return value

        for source in self._discovered:
            value = source.lookup(key)
            if value:
                logger.debug(f"Discovered {key}={value!r} from {source.name} source")
                self._values[key] = value
                return value
        return None

    def clear(self) -> None:
        """Forget programmatic and remembered values."""
        self._values.clear()


_ambient_config: Optional[AmbientConfig] = None


def get_ambient_config() -> AmbientConfig:
    """Get or create the process-wide ambient configuration."""
    global _ambient_config
    if _ambient_config is None:
        _ambient_config = AmbientConfig(discovered=[EnvironmentSource()])
    return _ambient_config


def set_default_host(host: Optional[str]) -> None:
    """Set the process-wide default snippet host."""
    get_ambient_config().set_default_host(host)


def set_theme(theme: Optional[str]) -> None:
    """Set the process-wide default theme."""
    get_ambient_config().set_theme(theme)
