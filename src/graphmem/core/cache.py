"""In-memory result cache with lazy TTL expiry"""

import copy
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300.0  # 5 minutes


@dataclass
class CacheEntry:
    data: Any
    ttl: float  # Seconds
    timestamp: float  # Clock reading at insertion

    def expired(self, now: float) -> bool:
        return now - self.timestamp > self.ttl


class ResultCache:
    """
    Query-result cache keyed by canonical query serialization.

    Expired entries are dropped when looked up, never swept. Stored and
    returned data are deep copies so callers cannot mutate cached rows.
    """

    def __init__(
        self,
        ttl: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        enabled: bool = True,
    ):
        self.ttl = ttl
        self.clock = clock
        self.enabled = enabled
        self._entries: Dict[str, CacheEntry] = {}
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Optional[Any]:
        """Return cached data, or None if absent or expired"""
        if not self.enabled:
            return None

        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return None

        if entry.expired(self.clock()):
            del self._entries[key]
            self.misses += 1
            logger.debug("Cache entry expired after %.1fs", entry.ttl)
            return None

        self.hits += 1
        return copy.deepcopy(entry.data)

    def set(self, key: str, data: Any, ttl: Optional[float] = None) -> None:
        if not self.enabled:
            return
        self._entries[key] = CacheEntry(
            data=copy.deepcopy(data),
            ttl=self.ttl if ttl is None else ttl,
            timestamp=self.clock(),
        )

    def clear(self) -> None:
        self._entries.clear()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries
