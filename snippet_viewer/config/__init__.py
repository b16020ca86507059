"""
Configuration for snippet_viewer.

This module provides the configuration models, the file/environment loader,
the configuration source chain and the ambient shared defaults.
"""

from .ambient import AmbientConfig, get_ambient_config, set_default_host, set_theme
from .loader import ConfigLoader, load_config
from .models import (
    DEFAULT_THEME,
    THEME_STYLES,
    GlobalConfig,
    HttpConfig,
    LoggingConfig,
    LogLevel,
    SnippetConfig,
    theme_style,
)
from .sources import (
    SNIPPET,
    SNIPPET_HOST,
    SNIPPET_THEME,
    BuiltinSource,
    ConfigChain,
    ConfigSource,
    EnvironmentSource,
    MappingSource,
    MetaTagSource,
)

__all__ = [
    "AmbientConfig",
    "get_ambient_config",
    "set_default_host",
    "set_theme",
    "ConfigLoader",
    "load_config",
    "DEFAULT_THEME",
    "THEME_STYLES",
    "GlobalConfig",
    "HttpConfig",
    "LoggingConfig",
    "LogLevel",
    "SnippetConfig",
    "theme_style",
    "SNIPPET",
    "SNIPPET_HOST",
    "SNIPPET_THEME",
    "BuiltinSource",
    "ConfigChain",
    "ConfigSource",
    "EnvironmentSource",
    "MappingSource",
    "MetaTagSource",
]
