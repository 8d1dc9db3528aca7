# File: bizscout/cache.py
"""bizscout.cache: process-local result cache with TTL and a size bound."""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from typing import Callable, Optional, Tuple

from bizscout.aggregator import CrawlResult
from bizscout.logger import logger

__all__ = ["ResultCache", "DEFAULT_TTL", "DEFAULT_MAX_SIZE"]

DEFAULT_TTL = 24 * 60 * 60
DEFAULT_MAX_SIZE = 100


class ResultCache:
    """Successful crawl results keyed by source URL.

    An entry older than *ttl* seconds is dropped on read. When a new URL would
    push the cache past *max_size*, the entry inserted first is evicted.
    Reads never refresh an entry's position.
    """

    def __init__(
        self,
        ttl: float = DEFAULT_TTL,
        max_size: int = DEFAULT_MAX_SIZE,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_size < 1:
            raise ValueError("max_size must be >= 1")
        self.ttl = ttl
        self.max_size = max_size
        self._clock = clock
        self._entries: "OrderedDict[str, Tuple[CrawlResult, float]]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, url: str) -> Optional[CrawlResult]:
        with self._lock:
            entry = self._entries.get(url)
            if entry is None:
                return None
            result, stored_at = entry
            if self._clock() - stored_at > self.ttl:
                del self._entries[url]
                logger.debug("Cache entry expired for %s", url)
                return None
            return result

    def put(self, url: str, result: CrawlResult) -> bool:
        """Store *result*; failed results are refused. Returns whether it was stored."""
        if not result.success:
            return False
        with self._lock:
            if url in self._entries:
                del self._entries[url]
            elif len(self._entries) >= self.max_size:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("Cache full, evicted %s", evicted)
            self._entries[url] = (result, self._clock())
        return True

    def __contains__(self, url: object) -> bool:
        return isinstance(url, str) and self.get(url) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
