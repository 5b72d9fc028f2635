"""
cf_attributes.cache.metadata_cache

Sharded, TTL-expiring key/value store for serialized platform objects.

Responsibilities:
- Bound platform API call volume by serving repeated lookups from memory.
- Stay safe under concurrent callers (tasks and threads) without external locking.
- Reclaim expired entries with a periodic sweep that never holds more than one shard lock.

The cache is kind-agnostic: keys are `"<kind>:<id>"` strings and values are opaque bytes.
"""

from __future__ import annotations

import asyncio
import math
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import timedelta

from cachetools import TTLCache

from cf_attributes.errors import EncodingError
from cf_attributes.observability.logging import get_logger

log = get_logger(__name__)

DEFAULT_TTL = timedelta(minutes=10)
DEFAULT_CLEAN_INTERVAL = timedelta(minutes=1)
DEFAULT_SHARDS = 1024


@dataclass(frozen=True, slots=True)
class CacheStats:
    hits: int
    misses: int
    # Entries found stale on read.
    expired: int
    # Entries reclaimed by the cleanup sweep (or on write/len, before TTLCache drops them).
    evicted: int
    entries: int


class _Shard:
    __slots__ = ("lock", "data", "hits", "misses", "expired", "evicted")

    def __init__(self, *, ttl: float, timer: Callable[[], float]) -> None:
        self.lock = threading.Lock()
        # Unbounded: the key space is the set of live apps/spaces/orgs.
        self.data: TTLCache[str, bytes] = TTLCache(maxsize=math.inf, ttl=ttl, timer=timer)
        self.hits = 0
        self.misses = 0
        self.expired = 0
        self.evicted = 0

    def expire(self) -> list[str]:
        # Caller holds the lock.
        return [key for key, _ in self.data.expire()]


class MetadataCache:
    def __init__(
        self,
        *,
        ttl: timedelta = DEFAULT_TTL,
        clean_interval: timedelta = DEFAULT_CLEAN_INTERVAL,
        shards: int = DEFAULT_SHARDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl <= timedelta(0):
            raise ValueError("cache ttl must be positive")
        if clean_interval <= timedelta(0) or clean_interval >= ttl:
            raise ValueError("cache clean interval must be positive and shorter than the ttl")
        if shards < 1 or shards & (shards - 1):
            raise ValueError("cache shard count must be a power of two")

        self._ttl = ttl
        self._clean_interval = clean_interval.total_seconds()
        self._shards = [_Shard(ttl=ttl.total_seconds(), timer=clock) for _ in range(shards)]
        self._mask = shards - 1
        self._cleaner: asyncio.Task[None] | None = None

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def _shard(self, key: str) -> _Shard:
        return self._shards[hash(key) & self._mask]

    def get(self, key: str) -> bytes | None:
        shard = self._shard(key)
        with shard.lock:
            value = shard.data.get(key)
            if value is not None:
                shard.hits += 1
                return value
            shard.misses += 1
            # TTLCache hides stale entries but keeps them until expire(); reclaim them here.
            removed = shard.expire()
            if key in removed:
                shard.expired += 1
                shard.evicted += len(removed) - 1
            else:
                shard.evicted += len(removed)
            return None

    def put(self, key: str, value: bytes) -> None:
        # Validate before touching the shard so a bad value never replaces a good entry.
        if not isinstance(value, (bytes, bytearray, memoryview)):
            raise EncodingError(f"cache values must be bytes, got {type(value).__name__} for {key}")
        data = bytes(value)
        shard = self._shard(key)
        with shard.lock:
            shard.evicted += len(shard.expire())
            shard.data[key] = data

    def delete(self, key: str) -> bool:
        shard = self._shard(key)
        with shard.lock:
            return shard.data.pop(key, None) is not None

    def cleanup(self) -> int:
        """
        One sweep over all shards; returns the number of entries reclaimed.
        """

        removed = 0
        for shard in self._shards:
            with shard.lock:
                n = len(shard.expire())
                shard.evicted += n
                removed += n
        return removed

    def __len__(self) -> int:
        total = 0
        for shard in self._shards:
            with shard.lock:
                shard.evicted += len(shard.expire())
                total += len(shard.data)
        return total

    def stats(self) -> CacheStats:
        hits = misses = expired = evicted = entries = 0
        for shard in self._shards:
            with shard.lock:
                shard.evicted += len(shard.expire())
                hits += shard.hits
                misses += shard.misses
                expired += shard.expired
                evicted += shard.evicted
                entries += len(shard.data)
        return CacheStats(hits=hits, misses=misses, expired=expired, evicted=evicted, entries=entries)

    def clear(self) -> None:
        for shard in self._shards:
            with shard.lock:
                shard.data.clear()

    @property
    def running(self) -> bool:
        return self._cleaner is not None and not self._cleaner.done()

    def start(self) -> None:
        if self.running:
            return
        self._cleaner = asyncio.get_running_loop().create_task(
            self._clean_periodically(), name="metadata-cache-cleanup"
        )

    async def stop(self) -> None:
        task, self._cleaner = self._cleaner, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _clean_periodically(self) -> None:
        while True:
            await asyncio.sleep(self._clean_interval)
            removed = await asyncio.to_thread(self.cleanup)
            if removed:
                log.debug("cache_cleanup", removed=removed, entries=len(self))


# --- Module Notes -----------------------------------------------------------
# A put replaces the whole entry, which resets its age. There is no size bound.
# get/put run on the event loop and take the same per-shard threading.Lock the sweep thread
# holds, so a lookup that lands on the shard being swept blocks the loop until that one
# shard's expire() finishes. With many small shards this wait is short, but it is not zero.
