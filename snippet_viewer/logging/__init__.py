"""
Logging setup for snippet_viewer.

This module provides console and rotating file logging with colored or
structured JSON output.
"""

from .formatters import ColoredFormatter, StructuredFormatter
from .manager import LoggingManager, cleanup_logging, setup_logging

__all__ = [
    "LoggingManager",
    "setup_logging",
    "cleanup_logging",
    "StructuredFormatter",
    "ColoredFormatter",
]
