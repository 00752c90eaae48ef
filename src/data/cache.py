"""In-process result cache for computed portfolio views.

Memoizes dashboard metrics, loan pages, reports and schedules for a short
freshness window so repeated identical queries skip the database and the
aggregation. Keys are built by callers with fingerprint(); the cache itself
never inspects them beyond prefix matching.
"""

import json
import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable

logger = logging.getLogger(__name__)


@dataclass
class _Entry:
    value: Any
    inserted_at: float
    ttl_seconds: float


def organization_prefix(organization_id: str) -> str:
    """Prefix shared by every key belonging to one organization."""
    return f"org:{organization_id}:"


def fingerprint(namespace: str, organization_id: str, **params: Any) -> str:
    """Generate a deterministic, collision-free cache key for a query.

    Params are encoded as canonical JSON, not hashed, so two logically
    different queries can never share a key.
    """
    raw = json.dumps(params, sort_keys=True, default=str, separators=(",", ":"))
    return f"{organization_prefix(organization_id)}{namespace}:{raw}"


class ResultCache:
    """TTL cache bounded by entry count, evicting oldest insertions first.

    Eviction follows insertion order, not access recency: a get() does not
    protect an entry, while a put() of an existing key re-inserts it at the
    back. All operations hold a single lock for the duration of an
    in-memory map update.

    Each invalidate() bumps a generation counter for its prefix. A caller
    that reads generation(prefix) before computing a value can pass it to
    put(); the put is dropped if the prefix was invalidated in between.
    """

    def __init__(
        self,
        ttl_seconds: float = 300,
        max_entries: int = 100,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, _Entry] = OrderedDict()
        self._generations: dict[str, int] = {}
        self._lock = threading.Lock()

    def _expired(self, entry: _Entry, now: float) -> bool:
        return now - entry.inserted_at >= entry.ttl_seconds

    def get(self, key: str) -> Any | None:
        """Return the cached value, or None if missing or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                logger.debug("Cache miss: %s", key)
                return None
            if self._expired(entry, self._clock()):
                del self._entries[key]
                logger.debug("Cache expired: %s", key)
                return None
            logger.debug("Cache hit: %s", key)
            return entry.value

    def generation(self, prefix: str) -> int:
        """Number of times prefix has been invalidated."""
        with self._lock:
            return self._generations.get(prefix, 0)

    def put(
        self,
        key: str,
        value: Any,
        ttl_seconds: float | None = None,
        generation: tuple[str, int] | None = None,
    ) -> bool:
        """Store a value and return whether it was stored.

        None is not cacheable, since get() uses it to signal a miss. When
        generation is a (prefix, count) pair taken before the value was
        computed, the value is dropped if prefix has been invalidated since.
        """
        if value is None:
            return False
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        with self._lock:
            if generation is not None:
                prefix, seen = generation
                if self._generations.get(prefix, 0) != seen:
                    logger.debug("Dropped stale result for %s", key)
                    return False
            now = self._clock()
            self._entries.pop(key, None)
            self._entries[key] = _Entry(value=value, inserted_at=now, ttl_seconds=ttl)
            self._sweep(now)
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("Cache evicted: %s", evicted)
        return True

    def invalidate(self, prefix: str) -> int:
        """Remove every entry whose key starts with prefix. Returns the number removed."""
        with self._lock:
            stale = [key for key in self._entries if key.startswith(prefix)]
            for key in stale:
                del self._entries[key]
            self._generations[prefix] = self._generations.get(prefix, 0) + 1
        if stale:
            logger.info("Invalidated %d cache entries under %s", len(stale), prefix)
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        """Number of live (unexpired) entries."""
        with self._lock:
            now = self._clock()
            return sum(1 for entry in self._entries.values() if not self._expired(entry, now))

    def _sweep(self, now: float) -> None:
        # Caller holds the lock
        for key in [k for k, e in self._entries.items() if self._expired(e, now)]:
            del self._entries[key]


class NullCache:
    """Drop-in replacement that never stores anything."""

    def get(self, key: str) -> Any | None:
        return None

    def generation(self, prefix: str) -> int:
        return 0

    def put(
        self,
        key: str,
        value: Any,
        ttl_seconds: float | None = None,
        generation: tuple[str, int] | None = None,
    ) -> bool:
        return False

    def invalidate(self, prefix: str) -> int:
        return 0

    def clear(self) -> None:
        return None

    def __len__(self) -> int:
        return 0
