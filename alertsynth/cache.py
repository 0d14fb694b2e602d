from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 3600.0


@dataclass
class CacheEntry:
    pool: Any
    timestamp: float


def pool_fingerprint(record_count: int, field_count: Optional[int] = None, theme: Optional[str] = None,
                     technique_enabled: bool = False) -> str:
    return f"{int(record_count)}-{int(field_count or 0)}-{theme or 'none'}-{str(bool(technique_enabled)).lower()}"


class CacheStore:
    """In-memory pool cache keyed by fingerprint.

    Entries older than the TTL are treated as absent and dropped on read.
    Writes are last-write-wins; at capacity the oldest entry is evicted.
    """

    def __init__(self, ttl_seconds: float = DEFAULT_TTL_SECONDS, max_entries: int = 100,
                 clock: Callable[[], float] = time.time) -> None:
        self.ttl_seconds = float(ttl_seconds)
        self.max_entries = int(max_entries)
        self.clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def _expired(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.timestamp >= self.ttl_seconds

    def get(self, fingerprint: str) -> Optional[Any]:
        entry = self._entries.get(fingerprint)
        if entry is None:
            self.misses += 1
            return None
        if self._expired(entry, self.clock()):
            del self._entries[fingerprint]
            self.misses += 1
            logger.debug("cache entry %s expired", fingerprint)
            return None
        self.hits += 1
        return entry.pool

    def put(self, fingerprint: str, pool: Any) -> None:
        self._entries.pop(fingerprint, None)
        if self.max_entries > 0 and len(self._entries) >= self.max_entries:
            oldest = min(self._entries, key=lambda k: self._entries[k].timestamp)
            del self._entries[oldest]
        self._entries[fingerprint] = CacheEntry(pool=pool, timestamp=self.clock())

    def clear(self) -> None:
        self._entries.clear()

    def clear_expired(self) -> int:
        now = self.clock()
        stale = [k for k, e in self._entries.items() if self._expired(e, now)]
        for k in stale:
            del self._entries[k]
        return len(stale)

    def stats(self) -> Dict[str, Any]:
        total = self.hits + self.misses
        return {
            "size": len(self._entries),
            "max_entries": self.max_entries,
            "ttl_seconds": self.ttl_seconds,
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": (self.hits / total) if total else 0.0,
        }
