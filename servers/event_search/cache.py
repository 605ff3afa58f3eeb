"""
Short-lived cache of processed search results.

Entries expire lazily on read and through a periodic sweep. Values are
replaced whole, never patched.
"""

import asyncio
import hashlib
import json
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

import structlog

from .models import ProcessedResult, SearchParams

logger = structlog.get_logger()

DEFAULT_TTL = 300.0
COORDINATE_PRECISION = 4


def cache_key_fields(params: SearchParams) -> dict[str, Any]:
    """The subset of a search that changes its result set.

    Pagination, ``requestId`` and ``useCache`` are left out.
    """
    def rounded(value: Optional[float]) -> Optional[float]:
        return None if value is None else round(value, COORDINATE_PRECISION)

    return {
        "lat": rounded(params.latitude),
        "lng": rounded(params.longitude),
        "radius": params.radius,
        "location": params.location.strip().lower() if params.location else None,
        "categories": sorted(params.categories),
        "keyword": params.keyword.strip().lower() if params.keyword else None,
        "startDate": params.start_date.isoformat() if params.start_date else None,
        "endDate": params.end_date.isoformat() if params.end_date else None,
        "datePreset": params.date_preset,
        "sortBy": params.sort_by,
        "excludeIds": sorted(params.exclude_ids),
    }


def build_cache_key(params: SearchParams) -> str:
    payload = json.dumps(cache_key_fields(params), sort_keys=True, separators=(",", ":"))
    return hashlib.md5(payload.encode()).hexdigest()


@dataclass(frozen=True)
class CacheEntry:
    value: ProcessedResult
    stored_at: float
    ttl: float

    def expired(self, now: float) -> bool:
        return now - self.stored_at >= self.ttl


class ResultCache:
    """TTL cache keyed by ``build_cache_key``."""

    def __init__(self, ttl: float = DEFAULT_TTL, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._sweeper: Optional[asyncio.Task] = None

    def get(self, key: str) -> Optional[ProcessedResult]:
        """Return a live entry, removing it if it has expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None
            if entry.expired(self._clock()):
                del self._entries[key]
                self._misses += 1
                logger.debug("cache_expired", key=key)
                return None
            self._hits += 1
            return entry.value

    def set(self, key: str, value: ProcessedResult, ttl: Optional[float] = None) -> None:
        entry = CacheEntry(value=value, stored_at=self._clock(), ttl=ttl if ttl is not None else self.ttl)
        with self._lock:
            self._entries[key] = entry

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> int:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            return count

    def sweep(self) -> int:
        """Drop every expired entry. Returns the number removed."""
        with self._lock:
            now = self._clock()
            expired = [k for k, e in self._entries.items() if e.expired(now)]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.debug("cache_swept", removed=len(expired))
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def stats(self) -> dict[str, Any]:
        with self._lock:
            lookups = self._hits + self._misses
            return {
                "size": len(self._entries),
                "hits": self._hits,
                "misses": self._misses,
                "hitRate": round(self._hits / lookups, 3) if lookups else 0.0,
                "ttl": self.ttl,
            }

    async def _sweep_forever(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            self.sweep()

    def start_sweeper(self, interval: float) -> None:
        """Start the periodic sweep on the running loop."""
        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.get_running_loop().create_task(self._sweep_forever(interval))

    async def stop_sweeper(self) -> None:
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        try:
            await self._sweeper
        except asyncio.CancelledError:
            pass
        self._sweeper = None
