"""
Logging manager for snippet_viewer.

This module provides centralized logging configuration and management.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Dict, Optional

from ..config.models import LoggingConfig
from .formatters import ColoredFormatter, StructuredFormatter


class LoggingManager:
    """Centralized logging manager."""

    def __init__(self) -> None:
        """Initialize logging manager."""
        self._configured = False
        self._handlers: Dict[str, logging.Handler] = {}
        self._loggers: Dict[str, logging.Logger] = {}

    def setup_logging(self, config: LoggingConfig) -> None:
        """
        Setup logging based on configuration.

        Args:
            config: Logging configuration
        """
        if self._configured:
            self.cleanup()

        root_logger = logging.getLogger()
        root_logger.setLevel(getattr(logging, config.level.value))

        if config.enable_console:
            self._setup_console_handler(config)

        if config.enable_file and config.file_path:
            self._setup_file_handler(config)

        self._setup_component_loggers(config)

        self._configured = True

        logger = logging.getLogger(__name__)
        logger.debug("Logging system configured successfully")

    def _setup_console_handler(self, config: LoggingConfig) -> None:
        """Setup console logging handler on stderr."""
        handler = logging.StreamHandler(sys.stderr)

        formatter: logging.Formatter
        if config.enable_structured:
            formatter = StructuredFormatter()
        else:
            formatter = ColoredFormatter(config.format)

        handler.setFormatter(formatter)
        handler.setLevel(getattr(logging, config.level.value))

        self._add_handler("console", handler)

    def _setup_file_handler(self, config: LoggingConfig) -> None:
        """Setup rotating file logging handler."""
        if not config.file_path:
            return

        log_path = Path(str(config.file_path))
        log_path.parent.mkdir(parents=True, exist_ok=True)

        handler = logging.handlers.RotatingFileHandler(
            filename=str(log_path),
            maxBytes=config.max_file_size,
            backupCount=config.backup_count,
            encoding="utf-8",
        )

        formatter: logging.Formatter
        if config.enable_structured:
            formatter = StructuredFormatter()
        else:
            formatter = logging.Formatter(config.format)

        handler.setFormatter(formatter)
        handler.setLevel(getattr(logging, config.level.value))

        self._add_handler("file", handler)

    def _setup_component_loggers(self, config: LoggingConfig) -> None:
        """Setup component-specific loggers."""
        for component, level in config.component_levels.items():
            logger = logging.getLogger(component)
            logger.setLevel(getattr(logging, level.value))
            self._loggers[component] = logger

    def _add_handler(self, name: str, handler: logging.Handler) -> None:
        logging.getLogger().addHandler(handler)
        self._handlers[name] = handler

    def _remove_handler(self, name: str) -> None:
        if name in self._handlers:
            handler = self._handlers.pop(name)
            logging.getLogger().removeHandler(handler)
            handler.close()

    def cleanup(self) -> None:
        """Remove and close the handlers installed by this manager."""
        for name in list(self._handlers):
            self._remove_handler(name)

        for logger in self._loggers.values():
            logger.setLevel(logging.NOTSET)

        self._loggers.clear()
        self._configured = False


# Global logging manager instance
_logging_manager = LoggingManager()


def setup_logging(config: Optional[LoggingConfig] = None) -> None:
    """
    Setup logging with configuration.

    Args:
        config: Logging configuration (defaults if None)
    """
    _logging_manager.setup_logging(config or LoggingConfig())


def cleanup_logging() -> None:
    """Cleanup logging system."""
    _logging_manager.cleanup()
