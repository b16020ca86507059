"""
HTTP access to snippet resources using AIOHTTP.

The SnippetFetcher issues the single GET request behind each resolution,
checks the status, decodes the JSON body and validates that it is a flat
object of string snippet keys to string source code.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, Optional

import aiohttp
from aiohttp import ClientSession, ClientTimeout, TCPConnector
from pydantic import TypeAdapter, ValidationError

from .config.models import HttpConfig
from .exceptions import ErrorHandler, TransportFailure
from .models import SnippetMapping, freeze_mapping

logger = logging.getLogger(__name__)

_MAPPING_ADAPTER: TypeAdapter[Dict[str, str]] = TypeAdapter(Dict[str, str])


def parse_snippet_mapping(data: Any, url: Optional[str] = None) -> SnippetMapping:
    """
    Validate a decoded JSON body as a snippet mapping.

    Raises:
        TransportFailure: If the body is not an object of strings
    """
    try:
        mapping = _MAPPING_ADAPTER.validate_python(data, strict=True)
    except ValidationError as e:
        raise TransportFailure(
            f"Malformed snippet resource: expected an object of strings "
            f"({e.error_count()} validation errors)",
            url=url,
            cause=e,
        ) from e
    return freeze_mapping(mapping)


class SnippetFetcher:
    """
    Fetches snippet resources over HTTP(S).

    Can be used as an async context manager to share one session across
    requests; otherwise a short-lived session is opened per request.

    Example:
        ```python
        async with SnippetFetcher() as fetcher:
            mapping = await fetcher.fetch("https://example.com/snippets.json")
        ```
    """

    def __init__(
        self,
        config: Optional[HttpConfig] = None,
        session: Optional[ClientSession] = None,
    ) -> None:
        self.config = config or HttpConfig()
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "SnippetFetcher":
        if self._session is None:
            self._session = self._create_session()
            self._owns_session = True
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def _create_session(self) -> ClientSession:
        timeout = ClientTimeout(
            total=self.config.timeout, connect=self.config.connect_timeout
        )
        headers = {
            "User-Agent": self.config.user_agent,
            "Accept": "application/json",
            **self.config.headers,
        }
        connector = TCPConnector(ssl=self.config.verify_ssl)
        return ClientSession(timeout=timeout, headers=headers, connector=connector)

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
            self._session = None

    async def fetch(self, url: str) -> SnippetMapping:
        """
        Fetch and decode the snippet resource at ``url``.

        Args:
            url: Normalized resource URL

        Returns:
            Read-only snippet mapping

        Raises:
            NetworkFailure: If the host answers with a non-success status
            TransportFailure: On connection, timeout or decoding errors
        """
        if self._session is not None:
            return await self._fetch_with(self._session, url)

        async with self._create_session() as session:
            return await self._fetch_with(session, url)

    async def _fetch_with(self, session: ClientSession, url: str) -> SnippetMapping:
        logger.debug(f"GET {url}")
        try:
            async with session.get(url) as response:
                if not 200 <= response.status < 300:
                    raise ErrorHandler.handle_http_status_error(
                        response.status, response.reason, url
                    )
                data = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, json.JSONDecodeError) as e:
            raise ErrorHandler.handle_aiohttp_error(e, url) from e

        return parse_snippet_mapping(data, url)


async def fetch_snippet_mapping(
    url: str, config: Optional[HttpConfig] = None
) -> SnippetMapping:
    """Fetch one resource with a short-lived session."""
    return await SnippetFetcher(config).fetch(url)
