"""
Shared snippet resource cache with single-flight request coordination.

The ResourceCache stores each resolved snippet mapping once per resource URL
and never replaces it. The FetchCoordinator sits in front of the cache and
makes sure at most one network request is outstanding per URL: concurrent
callers join the pending operation and all settle with the same result or
the same exception.

Both objects are bound to a single asyncio event loop. The check of the cache,
the check of the pending table and the creation of a pending operation happen
without an intervening ``await``, which is what keeps them atomic.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Iterator, Optional

from .exceptions import ErrorHandler
from .http import SnippetFetcher
from .models import DEFAULT_RESOURCE_PATH, SnippetMapping, freeze_mapping, resource_url

logger = logging.getLogger(__name__)

FetchFunction = Callable[[str], Awaitable[SnippetMapping]]


class ResourceCache:
    """Write-once store of resolved snippet mappings keyed by resource URL."""

    def __init__(self) -> None:
        self._entries: Dict[str, SnippetMapping] = {}

    def __contains__(self, url: object) -> bool:
        return url in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def get(self, url: str) -> Optional[SnippetMapping]:
        return self._entries.get(url)

    def store(self, url: str, mapping: SnippetMapping) -> SnippetMapping:
        """
        Store the mapping for ``url`` unless one is already present.

        Returns:
            The mapping held by the cache afterwards. An existing entry is
            never replaced.
        """
        existing = self._entries.get(url)
        if existing is not None:
            logger.warning(f"Ignoring second write for cached resource {url}")
            return existing
        frozen = freeze_mapping(mapping)
        self._entries[url] = frozen
        return frozen


@dataclass
class PendingOperation:
    """An in-flight resolution shared by every caller that joined it."""

    url: str
    task: asyncio.Task[SnippetMapping]
    created_at: float = field(default_factory=time.time)
    waiters: int = 1

    def add_waiter(self) -> None:
        """Increment the count of callers waiting for this result."""
        self.waiters += 1

    @property
    def age_seconds(self) -> float:
        return time.time() - self.created_at


@dataclass
class CoordinatorStats:
    """Counters describing coordinator activity."""

    cache_hits: int = 0
    joins: int = 0
    requests_issued: int = 0
    failures: int = 0


class FetchCoordinator:
    """
    Resolves resource hosts to snippet mappings with single-flight semantics.

    Args:
        fetch: Coroutine function fetching one resource URL. Defaults to a
            SnippetFetcher opening a short-lived session per request.
        cache: Cache to populate; a fresh one is created if omitted
        resource_path: Path of the JSON resource below each host
    """

    def __init__(
        self,
        fetch: Optional[FetchFunction] = None,
        cache: Optional[ResourceCache] = None,
        resource_path: str = DEFAULT_RESOURCE_PATH,
    ) -> None:
        self._fetch = fetch or SnippetFetcher().fetch
        self.cache = cache if cache is not None else ResourceCache()
        self.resource_path = resource_path
        self._pending: Dict[str, PendingOperation] = {}
        self.stats = CoordinatorStats()

    def url_for(self, host: str) -> str:
        return resource_url(host, self.resource_path)

    def is_pending(self, host: str) -> bool:
        return self.url_for(host) in self._pending

    async def resolve(self, host: str) -> SnippetMapping:
        """
        Resolve ``host`` to its snippet mapping.

        Returns the cached mapping without network activity when present,
        joins the outstanding request when one exists, and otherwise starts
        exactly one new request.

        Raises:
            NetworkFailure: If the host answered with a non-success status
            TransportFailure: On connection or decoding errors
        """
        url = self.url_for(host)

        cached = self.cache.get(url)
        if cached is not None:
            self.stats.cache_hits += 1
            logger.debug(f"Cache hit for {url}")
            return cached

        pending = self._pending.get(url)
        if pending is not None:
            pending.add_waiter()
            self.stats.joins += 1
            logger.debug(f"Joining pending request for {url} ({pending.waiters} waiters)")
        else:
            task = asyncio.get_running_loop().create_task(self._run(url))
            pending = PendingOperation(url, task)
            # An eagerly executed task may already have settled
            if not task.done():
                self._pending[url] = pending
            self.stats.requests_issued += 1
            logger.info(f"Fetching snippet resource {url}")

        # Shielded so a cancelled caller does not abort the request for the others
        return await asyncio.shield(pending.task)

    async def _run(self, url: str) -> SnippetMapping:
        try:
            mapping = await self._fetch(url)
        except Exception as e:
            self.stats.failures += 1
            error = ErrorHandler.normalize(e, url)
            logger.info(f"Fetching {url} failed: {error.message}")
            if error is e:
                raise
            raise error from e
        else:
            stored = self.cache.store(url, mapping)
            logger.info(f"Cached {len(stored)} snippets from {url}")
            return stored
        finally:
            self._pending.pop(url, None)

    def get_stats(self) -> Dict[str, Any]:
        """Get statistics about cache and pending state."""
        return {
            "cached_resources": len(self.cache),
            "pending_requests": len(self._pending),
            "cache_hits": self.stats.cache_hits,
            "joins": self.stats.joins,
            "requests_issued": self.stats.requests_issued,
            "failures": self.stats.failures,
            "pending_details": [
                {
                    "url": pending.url,
                    "age_seconds": pending.age_seconds,
                    "waiters": pending.waiters,
                }
                for pending in self._pending.values()
            ],
        }


_default_coordinator: Optional[FetchCoordinator] = None


def get_default_coordinator() -> FetchCoordinator:
    """Get or create the process-wide coordinator."""
    global _default_coordinator
    if _default_coordinator is None:
        _default_coordinator = FetchCoordinator()
    return _default_coordinator


def set_default_coordinator(coordinator: Optional[FetchCoordinator]) -> None:
    """Replace the process-wide coordinator (``None`` resets it lazily)."""
    global _default_coordinator
    _default_coordinator = coordinator
