"""
tests.test_metadata_cache

TTL expiry, cleanup sweep, encoding guard and concurrent access of MetadataCache.
"""

from __future__ import annotations

import asyncio
import threading
from datetime import timedelta

import pytest

from cf_attributes.cache.metadata_cache import MetadataCache
from cf_attributes.errors import EncodingError

from conftest import FakeClock


def _cache(clock: FakeClock, *, ttl: float = 600, shards: int = 16) -> MetadataCache:
    return MetadataCache(
        ttl=timedelta(seconds=ttl),
        clean_interval=timedelta(seconds=60),
        shards=shards,
        clock=clock,
    )


def test_get_within_ttl_returns_stored_bytes(clock: FakeClock) -> None:
    cache = _cache(clock)
    cache.put("app:A1", b"payload")
    clock.advance(599)
    assert cache.get("app:A1") == b"payload"
    assert cache.stats().hits == 1


def test_miss_after_ttl(clock: FakeClock) -> None:
    cache = _cache(clock)
    cache.put("app:A1", b"payload")
    clock.advance(600)
    assert cache.get("app:A1") is None

    stats = cache.stats()
    assert stats.misses == 1
    assert stats.expired == 1
    assert stats.entries == 0


def test_put_replaces_entry_and_resets_age(clock: FakeClock) -> None:
    cache = _cache(clock)
    cache.put("space:S1", b"old")
    clock.advance(500)
    cache.put("space:S1", b"new")
    clock.advance(500)
    assert cache.get("space:S1") == b"new"
    assert len(cache) == 1


def test_non_bytes_put_is_rejected_without_touching_existing_entry(clock: FakeClock) -> None:
    cache = _cache(clock)
    cache.put("org:O1", b"good")
    with pytest.raises(EncodingError):
        cache.put("org:O1", {"not": "bytes"})  # type: ignore[arg-type]
    assert cache.get("org:O1") == b"good"


def test_cleanup_reclaims_only_expired(clock: FakeClock) -> None:
    cache = _cache(clock)
    cache.put("app:old", b"1")
    clock.advance(400)
    cache.put("app:new", b"2")
    clock.advance(250)

    assert cache.cleanup() == 1
    assert cache.get("app:old") is None
    assert cache.get("app:new") == b"2"
    assert cache.stats().evicted == 1


def test_delete_and_clear(clock: FakeClock) -> None:
    cache = _cache(clock)
    cache.put("app:A1", b"1")
    cache.put("app:A2", b"2")
    assert cache.delete("app:A1") is True
    assert cache.delete("app:A1") is False
    cache.clear()
    assert len(cache) == 0


@pytest.mark.parametrize(
    "kwargs",
    [
        {"ttl": timedelta(0)},
        {"ttl": timedelta(minutes=1), "clean_interval": timedelta(minutes=1)},
        {"shards": 3},
    ],
)
def test_invalid_configuration(kwargs: dict) -> None:
    with pytest.raises(ValueError):
        MetadataCache(**kwargs)


def test_concurrent_threads(clock: FakeClock) -> None:
    cache = _cache(clock, shards=4)
    errors: list[BaseException] = []

    def worker(n: int) -> None:
        try:
            for i in range(500):
                key = f"app:{n}-{i % 50}"
                cache.put(key, f"{n}-{i}".encode())
                value = cache.get(key)
                assert value is not None and value.startswith(f"{n}-".encode())
        except BaseException as e:  # pragma: no cover - surfaced below
            errors.append(e)

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert len(cache) == 8 * 50


@pytest.mark.asyncio
async def test_background_cleanup_task() -> None:
    clock = FakeClock()
    cache = MetadataCache(
        ttl=timedelta(seconds=1),
        clean_interval=timedelta(milliseconds=10),
        shards=2,
        clock=clock,
    )
    cache.put("app:A1", b"1")
    clock.advance(5)

    cache.start()
    assert cache.running
    try:
        for _ in range(200):
            if cache.stats().evicted:
                break
            await asyncio.sleep(0.01)
    finally:
        await cache.stop()

    assert cache.stats().evicted == 1
    assert not cache.running


def test_stale_entries_do_not_count_as_live(clock: FakeClock) -> None:
    cache = _cache(clock)
    cache.put("app:A1", b"1")
    cache.put("app:A2", b"2")
    clock.advance(600)
    cache.put("app:A3", b"3")

    assert len(cache) == 1
    assert cache.delete("app:A1") is False
    stats = cache.stats()
    assert stats.entries == 1
    assert stats.evicted == 2
