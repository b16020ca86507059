"""
Exception hierarchy for the snippet viewer.

This module defines the errors that can surface while resolving a snippet
resource and the helpers that translate low-level aiohttp, asyncio and JSON
failures into them.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Optional

import aiohttp


class SnippetViewerError(Exception):
    """
    Base exception for all snippet viewer operations.

    Attributes:
        message: Human-readable error message
        url: Resource URL involved in the error (if applicable)
        details: Additional error details as keyword arguments
    """

    def __init__(self, message: str, url: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(message)
        self.message = message
        self.url = url
        self.details = kwargs


class MissingConfigurationError(SnippetViewerError):
    """Raised when a snippet key or resource host is absent at resolution time."""

    pass


class ConfigurationError(SnippetViewerError):
    """Raised when a configuration file cannot be read or parsed."""

    pass


class NetworkFailure(SnippetViewerError):
    """
    Raised when the resource host answers with a non-success HTTP status.

    Attributes:
        status_code: HTTP status code returned by the host
        reason: HTTP reason phrase, if the server sent one
    """

    def __init__(
        self,
        message: str,
        status_code: int,
        url: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> None:
        super().__init__(message, url)
        self.status_code = status_code
        self.reason = reason


class TransportFailure(SnippetViewerError):
    """
    Raised when the resource could not be obtained or decoded.

    Covers connection problems, timeouts and malformed response bodies, i.e.
    everything that goes wrong before a usable HTTP status is available.

    Attributes:
        cause: The underlying exception, if any
    """

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message, url)
        self.cause = cause


class SnippetNotFoundError(SnippetViewerError):
    """Raised when a key is absent from an otherwise resolved snippet mapping."""

    def __init__(self, key: str, url: Optional[str] = None) -> None:
        super().__init__(f'Snippet "{key}" not found', url)
        self.key = key


class RenderingDegraded(SnippetViewerError):
    """
    Raised by the highlighter when a language cannot be highlighted.

    Never escapes the render layer: renderers catch it and fall back to the
    plain source text.
    """

    def __init__(self, message: str, language: Optional[str] = None) -> None:
        super().__init__(message)
        self.language = language


class ErrorHandler:
    """
    Utility class for converting transport-level exceptions.

    Every failure that leaves the fetch layer is expressed as either a
    NetworkFailure or a TransportFailure.
    """

    @staticmethod
    def handle_aiohttp_error(
        error: BaseException, url: Optional[str] = None
    ) -> TransportFailure:
        """
        Convert aiohttp, asyncio and decoding exceptions to TransportFailure.

        Args:
            error: The original exception
            url: The resource URL being fetched

        Returns:
            TransportFailure wrapping the original exception
        """
        if isinstance(error, asyncio.TimeoutError):
            return TransportFailure(f"Request timed out: {error}", url=url, cause=error)

        elif isinstance(error, aiohttp.ClientSSLError):
            return TransportFailure(f"SSL error: {error}", url=url, cause=error)

        elif isinstance(error, aiohttp.ClientConnectionError):
            return TransportFailure(f"Connection error: {error}", url=url, cause=error)

        elif isinstance(error, aiohttp.ClientPayloadError):
            return TransportFailure(f"Payload error: {error}", url=url, cause=error)

        elif isinstance(error, (json.JSONDecodeError, aiohttp.ContentTypeError)):
            return TransportFailure(f"Invalid JSON: {error}", url=url, cause=error)

        elif isinstance(error, aiohttp.ClientError):
            return TransportFailure(f"Client error: {error}", url=url, cause=error)

        else:
            return TransportFailure(
                f"Unexpected transport error: {error}", url=url, cause=error
            )

    @staticmethod
    def handle_http_status_error(
        status_code: int,
        reason: Optional[str] = None,
        url: Optional[str] = None,
    ) -> NetworkFailure:
        """
        Create a NetworkFailure for a non-success HTTP response.

        Args:
            status_code: HTTP status code
            reason: HTTP reason phrase
            url: The resource URL that was requested

        Returns:
            NetworkFailure carrying the status code
        """
        return NetworkFailure(
            f"HTTP {status_code}: {reason or ''}".rstrip(),
            status_code,
            url=url,
            reason=reason,
        )

    @staticmethod
    def normalize(error: BaseException, url: Optional[str] = None) -> SnippetViewerError:
        """Pass snippet viewer errors through, wrap anything else."""
        if isinstance(error, SnippetViewerError):
            return error
        return ErrorHandler.handle_aiohttp_error(error, url)
