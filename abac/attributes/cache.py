"""
ABAC Attributes - Cached Attribute Store
========================================
TTL + LRU cache in front of any AttributeStore.

Entries are keyed by (scope, subject id, workstream) and invalidated
independently. Negative lookups are cached too, so a subject without a
record does not hit the backing store on every check.
Time is injected through a Clock.

Backing-store reads run outside the lock. Every miss captures a
generation token; invalidation bumps it, and a fetch whose token is
stale on return is handed to the caller but not cached.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime, timedelta
from threading import Lock
from typing import Any, Dict, Iterable, Optional, Tuple

from abac.attributes.models import AttributeRecord, AttributeScope
from abac.attributes.provider import AttributeStore
from abac.clock import Clock, SystemClock

logger = logging.getLogger("abac.attributes")

CacheKey = Tuple[str, str, str]
Generation = Tuple[int, int, int]

_MISSING = object()


# ══════════════════════════════════════════════════════════════
# CACHE ENTRY / STATISTICS
# ══════════════════════════════════════════════════════════════

@dataclass
class CacheEntry:
    value: Optional[AttributeRecord]
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    evictions: int = 0
    invalidations: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / total

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
            "invalidations": self.invalidations,
            "hit_rate": round(self.hit_rate, 4),
        }


# ══════════════════════════════════════════════════════════════
# CACHED STORE
# ══════════════════════════════════════════════════════════════

class CachedAttributeStore:
    """
    Read-through cache implementing the AttributeStore protocol.

    Thread-safe: all entry bookkeeping happens under one lock; backing
    store calls happen outside it.
    """

    def __init__(
        self,
        store: AttributeStore,
        clock: Clock | None = None,
        ttl_seconds: int = 900,
        max_size: int = 5000,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive.")
        if max_size <= 0:
            raise ValueError("max_size must be positive.")
        self._store = store
        self._clock = clock or SystemClock()
        self._ttl = timedelta(seconds=ttl_seconds)
        self._max_size = max_size
        self._entries: OrderedDict[CacheKey, CacheEntry] = OrderedDict()
        self._stats = CacheStats()
        self._lock = Lock()

        # Bumped by clear(), invalidate_workstream() and invalidate().
        self._epoch = 0
        self._workstream_generations: Dict[str, int] = {}
        self._key_generations: Dict[CacheKey, int] = {}

    # ══════════════════════════════════════════════════════════
    # ATTRIBUTE STORE PROTOCOL
    # ══════════════════════════════════════════════════════════

    def get_user_attributes(
        self,
        user_id: str,
        workstream_id: str,
    ) -> AttributeRecord | None:
        key = (AttributeScope.USER, user_id, workstream_id)
        cached, generation = self._get(key)
        if cached is not _MISSING:
            return cached
        record = self._store.get_user_attributes(user_id, workstream_id)
        self._put(key, record, generation)
        return record

    def get_group_attributes(
        self,
        group_ids: Iterable[str],
        workstream_id: str,
    ) -> dict[str, AttributeRecord]:
        return self._get_many(
            AttributeScope.GROUP,
            group_ids,
            workstream_id,
            self._store.get_group_attributes,
        )

    def get_role_attributes(
        self,
        role_ids: Iterable[str],
        workstream_id: str,
    ) -> dict[str, AttributeRecord]:
        return self._get_many(
            AttributeScope.ROLE,
            role_ids,
            workstream_id,
            self._store.get_role_attributes,
        )

    # ══════════════════════════════════════════════════════════
    # INVALIDATION
    # ══════════════════════════════════════════════════════════

    def invalidate(self, scope: str, subject_id: str, workstream_id: str) -> bool:
        """
        Drop one cached record. Returns True if an entry was removed.
        A fetch for the same key that is in flight will not be cached.
        """
        key = (scope, subject_id, workstream_id)
        with self._lock:
            self._key_generations[key] = self._key_generations.get(key, 0) + 1
            if self._entries.pop(key, None) is None:
                return False
            self._stats.invalidations += 1
            return True

    def invalidate_workstream(self, workstream_id: str) -> int:
        with self._lock:
            self._workstream_generations[workstream_id] = (
                self._workstream_generations.get(workstream_id, 0) + 1
            )
            keys = [key for key in self._entries if key[2] == workstream_id]
            for key in keys:
                del self._entries[key]
            self._stats.invalidations += len(keys)
            return len(keys)

    def clear(self) -> None:
        with self._lock:
            self._epoch += 1
            self._entries.clear()
            self._key_generations.clear()
            self._workstream_generations.clear()

    @property
    def stats(self) -> CacheStats:
        return self._stats

    @property
    def size(self) -> int:
        return len(self._entries)

    # ══════════════════════════════════════════════════════════
    # INTERNALS
    # ══════════════════════════════════════════════════════════

    def _get_many(self, scope, subject_ids, workstream_id, fetch) -> dict[str, AttributeRecord]:
        found: dict[str, AttributeRecord] = {}
        uncached: dict[str, Generation] = {}
        for subject_id in dict.fromkeys(subject_ids):
            cached, generation = self._get((scope, subject_id, workstream_id))
            if cached is _MISSING:
                uncached[subject_id] = generation
            elif cached is not None:
                found[subject_id] = cached

        if uncached:
            fetched = fetch(list(uncached), workstream_id)
            for subject_id, generation in uncached.items():
                record = fetched.get(subject_id)
                self._put((scope, subject_id, workstream_id), record, generation)
                if record is not None:
                    found[subject_id] = record
        return found

    def _generation(self, key: CacheKey) -> Generation:
        # Caller holds self._lock.
        return (
            self._epoch,
            self._workstream_generations.get(key[2], 0),
            self._key_generations.get(key, 0),
        )

    def _get(self, key: CacheKey) -> Tuple[Any, Generation]:
        """Cached value (or _MISSING) plus the generation seen at lookup."""
        now = self._clock.now_utc()
        with self._lock:
            generation = self._generation(key)
            entry = self._entries.get(key)
            if entry is None:
                self._stats.misses += 1
                return _MISSING, generation
            if entry.is_expired(now):
                del self._entries[key]
                self._stats.evictions += 1
                self._stats.misses += 1
                return _MISSING, generation
            self._entries.move_to_end(key)
            self._stats.hits += 1
            return entry.value, generation

    def _put(self, key: CacheKey, value: AttributeRecord | None, generation: Generation) -> None:
        now = self._clock.now_utc()
        with self._lock:
            if self._generation(key) != generation:
                logger.debug(f"attribute cache skipped stale fetch for {key}")
                return
            if key not in self._entries and len(self._entries) >= self._max_size:
                oldest = next(iter(self._entries))
                del self._entries[oldest]
                self._stats.evictions += 1
                logger.debug(f"attribute cache evicted {oldest}")
            self._entries[key] = CacheEntry(value=value, expires_at=now + self._ttl)
            self._entries.move_to_end(key)
