"""
Configuration models for snippet_viewer.

This module defines all configuration data models with validation and defaults.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..models import DEFAULT_RESOURCE_PATH

DEFAULT_THEME = "tomorrow"

# Widget theme name -> Pygments style name
THEME_STYLES: Dict[str, str] = {
    "tomorrow": "default",
    "okaidia": "monokai",
    "twilight": "native",
    "coy": "friendly",
    "solarizedlight": "solarized-light",
    "dark": "github-dark",
}


def theme_style(theme: Optional[str]) -> str:
    """Return the Pygments style for a theme name, falling back to the default."""
    return THEME_STYLES.get((theme or "").lower(), THEME_STYLES[DEFAULT_THEME])


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(default=LogLevel.WARNING, description="Default logging level")
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log message format",
    )
    file_path: Optional[Path] = Field(default=None, description="Log file path")
    max_file_size: int = Field(
        default=10 * 1024 * 1024, description="Max log file size in bytes"
    )
    backup_count: int = Field(default=5, description="Number of backup log files")
    enable_console: bool = Field(default=True, description="Enable console logging")
    enable_file: bool = Field(default=False, description="Enable file logging")
    enable_structured: bool = Field(
        default=False, description="Enable structured JSON logging"
    )

    # Component-specific log levels
    component_levels: Dict[str, LogLevel] = Field(
        default_factory=dict, description="Per-component log levels"
    )


class HttpConfig(BaseModel):
    """HTTP client configuration for fetching snippet resources."""

    timeout: float = Field(default=30.0, gt=0, description="Total request timeout in seconds")
    connect_timeout: float = Field(
        default=10.0, gt=0, description="Connection timeout in seconds"
    )
    user_agent: str = Field(
        default="snippet-viewer/0.1", description="User-Agent header sent to hosts"
    )
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")
    headers: Dict[str, str] = Field(
        default_factory=dict, description="Extra request headers"
    )


class SnippetConfig(BaseModel):
    """Snippet resource configuration."""

    default_host: Optional[str] = Field(
        default=None, description="Resource host used when a viewer sets none"
    )
    theme: Optional[str] = Field(default=None, description="Visual theme name")
    resource_path: str = Field(
        default=DEFAULT_RESOURCE_PATH, description="JSON resource path below the host"
    )

    @field_validator("resource_path")
    @classmethod
    def validate_resource_path(cls, v: str) -> str:
        v = v.strip().lstrip("/")
        if not v:
            raise ValueError("resource_path must not be empty")
        return v


class GlobalConfig(BaseModel):
    """Top-level configuration."""

    model_config = ConfigDict(extra="ignore")

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    http: HttpConfig = Field(default_factory=HttpConfig)
    snippets: SnippetConfig = Field(default_factory=SnippetConfig)
