"""Tests for the brief cache."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

import pytest

from daily_brief.brief.cache import BriefCache, CacheEntry
from daily_brief.core.errors import CacheStorageError, SourceFetchError
from daily_brief.schemas.brief import BriefData, EmailThread
from daily_brief.storage.base import PersistentStore
from daily_brief.storage.memory import MemoryStore

KEY = "brief:96h:24h"


class FailingStore(PersistentStore):
    """Store whose every operation fails."""

    def __init__(self) -> None:
        self.calls = 0

    async def get(self, key: str) -> str | None:
        self.calls += 1
        raise CacheStorageError("disk full")

    async def set(self, key: str, value: str) -> None:
        self.calls += 1
        raise CacheStorageError("disk full")

    async def remove(self, key: str) -> None:
        self.calls += 1
        raise CacheStorageError("disk full")


class CountingGenerator:
    """Generator that records calls and can be held open."""

    def __init__(self, brief: BriefData, hold: bool = False) -> None:
        self.brief = brief
        self.calls = 0
        self.release = asyncio.Event()
        if not hold:
            self.release.set()

    async def __call__(self) -> BriefData:
        self.calls += 1
        await self.release.wait()
        return self.brief


@pytest.fixture
def brief(now: datetime, make_thread: Callable[..., EmailThread]) -> BriefData:
    """A small generated brief."""
    return BriefData.assemble("brief_1", now, [], [make_thread("t1"), make_thread("t2")])


class TestCacheEntry:
    """Tests for CacheEntry."""

    def test_fresh_up_to_ttl(self, brief: BriefData, now: datetime) -> None:
        """Test an entry is fresh at exactly the TTL and stale after it."""
        entry = CacheEntry(data=brief, generated_at=now)
        ttl = timedelta(minutes=5)

        assert entry.is_fresh(now + ttl, ttl)
        assert not entry.is_fresh(now + ttl + timedelta(seconds=1), ttl)


class TestBriefCacheGetOrGenerate:
    """Tests for BriefCache.get_or_generate."""

    @pytest.mark.asyncio
    async def test_generates_once_then_hits(self, brief: BriefData, clock: Any) -> None:
        """Test a miss generates and a later call is served from memory."""
        cache = BriefCache(clock=clock)
        generator = CountingGenerator(brief)

        first = await cache.get_or_generate(KEY, generator)
        second = await cache.get_or_generate(KEY, generator)

        assert first == brief
        assert second == brief
        assert generator.calls == 1

    @pytest.mark.asyncio
    async def test_hit_at_ttl_boundary(self, brief: BriefData, clock: Any) -> None:
        """Test an entry exactly TTL old is still served."""
        cache = BriefCache(ttl=timedelta(minutes=5), clock=clock)
        generator = CountingGenerator(brief)

        await cache.get_or_generate(KEY, generator)
        clock.advance(minutes=5)
        await cache.get_or_generate(KEY, generator)

        assert generator.calls == 1

    @pytest.mark.asyncio
    async def test_regenerates_after_ttl(self, brief: BriefData, clock: Any) -> None:
        """Test an entry generated at T is a miss at T+6min."""
        cache = BriefCache(ttl=timedelta(minutes=5), clock=clock)
        generator = CountingGenerator(brief)

        await cache.get_or_generate(KEY, generator)
        clock.advance(minutes=6)
        await cache.get_or_generate(KEY, generator)

        assert generator.calls == 2

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_generation(
        self, brief: BriefData, clock: Any
    ) -> None:
        """Test concurrent cold calls run the generator once."""
        cache = BriefCache(clock=clock)
        generator = CountingGenerator(brief, hold=True)

        tasks = [asyncio.create_task(cache.get_or_generate(KEY, generator)) for _ in range(5)]
        await asyncio.sleep(0)
        assert cache.in_flight(KEY)

        generator.release.set()
        results = await asyncio.gather(*tasks)

        assert generator.calls == 1
        assert all(result == brief for result in results)
        assert not cache.in_flight(KEY)

    @pytest.mark.asyncio
    async def test_cancelled_caller_does_not_abort_generation(
        self, brief: BriefData, clock: Any
    ) -> None:
        """Test cancelling one waiter leaves the shared generation running."""
        cache = BriefCache(clock=clock)
        generator = CountingGenerator(brief, hold=True)

        cancelled = asyncio.create_task(cache.get_or_generate(KEY, generator))
        waiting = asyncio.create_task(cache.get_or_generate(KEY, generator))
        await asyncio.sleep(0)

        cancelled.cancel()
        with pytest.raises(asyncio.CancelledError):
            await cancelled

        generator.release.set()

        assert await waiting == brief
        assert generator.calls == 1

    @pytest.mark.asyncio
    async def test_failure_reaches_all_waiters_and_is_retried(
        self, brief: BriefData, clock: Any
    ) -> None:
        """Test a failed generation propagates and the next call retries."""
        cache = BriefCache(clock=clock)
        calls = 0

        async def failing() -> BriefData:
            nonlocal calls
            calls += 1
            await asyncio.sleep(0)
            raise SourceFetchError("gmail down", source="email")

        results = await asyncio.gather(
            cache.get_or_generate(KEY, failing),
            cache.get_or_generate(KEY, failing),
            return_exceptions=True,
        )

        assert calls == 1
        assert all(isinstance(r, SourceFetchError) for r in results)
        assert not cache.in_flight(KEY)

        assert await cache.get_or_generate(KEY, CountingGenerator(brief)) == brief

    @pytest.mark.asyncio
    async def test_returns_copies(self, brief: BriefData, clock: Any) -> None:
        """Test mutating a returned brief does not change the cache."""
        cache = BriefCache(clock=clock)
        generator = CountingGenerator(brief)

        first = await cache.get_or_generate(KEY, generator)
        first.all_emails[0].subject = "changed"

        second = await cache.get_or_generate(KEY, generator)

        assert second.all_emails[0].subject == "Hello"

    @pytest.mark.asyncio
    async def test_keys_are_independent(self, brief: BriefData, clock: Any) -> None:
        """Test different window keys are generated separately."""
        cache = BriefCache(clock=clock)
        generator = CountingGenerator(brief)

        await cache.get_or_generate("brief:96h:24h", generator)
        await cache.get_or_generate("brief:48h:24h", generator)

        assert generator.calls == 2

    def test_rejects_non_positive_ttl(self) -> None:
        """Test a zero TTL is rejected."""
        with pytest.raises(ValueError, match="ttl"):
            BriefCache(ttl=timedelta(0))


class TestBriefCachePersistence:
    """Tests for persistent store handling."""

    @pytest.mark.asyncio
    async def test_put_writes_both_keys(self, brief: BriefData, clock: Any) -> None:
        """Test data and timestamp are persisted under separate keys."""
        store = MemoryStore()
        cache = BriefCache(store, clock=clock)

        await cache.put(KEY, brief)

        raw_data = await store.get(f"cached_brief_data:{KEY}")
        raw_timestamp = await store.get(f"brief_timestamp:{KEY}")
        assert raw_data is not None
        assert BriefData.model_validate_json(raw_data) == brief
        assert raw_timestamp == clock.now.isoformat()

    @pytest.mark.asyncio
    async def test_fresh_entry_loaded_by_new_process(self, brief: BriefData, clock: Any) -> None:
        """Test a new cache over the same store reuses a fresh entry."""
        store = MemoryStore()
        await BriefCache(store, clock=clock).put(KEY, brief)
        clock.advance(minutes=2)

        restarted = BriefCache(store, clock=clock)
        generator = CountingGenerator(brief)

        assert await restarted.get_or_generate(KEY, generator) == brief
        assert generator.calls == 0

    @pytest.mark.asyncio
    async def test_partial_entry_is_a_miss(self, brief: BriefData, clock: Any) -> None:
        """Test data without a timestamp counts as a full miss."""
        store = MemoryStore()
        await store.set(f"cached_brief_data:{KEY}", brief.model_dump_json())
        cache = BriefCache(store, clock=clock)

        assert await cache.get(KEY) is None

    @pytest.mark.asyncio
    async def test_corrupt_entry_is_removed(self, clock: Any) -> None:
        """Test unreadable data is a miss and is deleted."""
        store = MemoryStore()
        await store.set(f"cached_brief_data:{KEY}", "{not json")
        await store.set(f"brief_timestamp:{KEY}", clock.now.isoformat())
        cache = BriefCache(store, clock=clock)

        assert await cache.get(KEY) is None
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_expired_entry_is_removed_but_known(
        self, brief: BriefData, clock: Any
    ) -> None:
        """Test an expired persisted entry is deleted and kept as last known."""
        store = MemoryStore()
        await BriefCache(store, clock=clock).put(KEY, brief)
        clock.advance(minutes=10)

        restarted = BriefCache(store, clock=clock)

        assert await restarted.get(KEY) is None
        assert len(store) == 0
        assert restarted.last_known(KEY) == brief

    @pytest.mark.asyncio
    async def test_store_failure_degrades_to_memory(self, brief: BriefData, clock: Any) -> None:
        """Test a failing store is abandoned and the cache keeps working."""
        store = FailingStore()
        cache = BriefCache(store, clock=clock)
        generator = CountingGenerator(brief)

        result = await cache.get_or_generate(KEY, generator)

        assert result == brief
        assert cache.persistent is False
        calls_after_failure = store.calls

        await cache.invalidate(KEY)
        await cache.get_or_generate(KEY, generator)

        assert store.calls == calls_after_failure
        assert generator.calls == 2


class TestBriefCacheInvalidation:
    """Tests for invalidation and last-known lookups."""

    @pytest.mark.asyncio
    async def test_invalidate_removes_entry(self, brief: BriefData, clock: Any) -> None:
        """Test invalidation forces regeneration and clears the store."""
        store = MemoryStore()
        cache = BriefCache(store, clock=clock)
        generator = CountingGenerator(brief)
        await cache.get_or_generate(KEY, generator)

        await cache.invalidate(KEY)

        assert len(store) == 0
        assert await cache.get(KEY) is None
        assert cache.last_known(KEY) == brief
        await cache.get_or_generate(KEY, generator)
        assert generator.calls == 2

    @pytest.mark.asyncio
    async def test_last_known_across_keys(
        self, brief: BriefData, clock: Any, now: datetime
    ) -> None:
        """Test last_known without a key returns the most recent brief."""
        cache = BriefCache(clock=clock)
        newer = brief.model_copy(update={"id": "brief_2"})

        await cache.put("brief:96h:24h", brief)
        clock.advance(minutes=1)
        await cache.put("brief:48h:24h", newer)

        latest = cache.last_known()
        assert latest is not None
        assert latest.id == "brief_2"
        assert cache.last_generated_at() == now + timedelta(minutes=1)
        assert cache.last_generated_at("brief:96h:24h") == now
        assert cache.last_known("brief:1h:1h") is None

    @pytest.mark.asyncio
    async def test_clear(self, brief: BriefData, clock: Any) -> None:
        """Test clear drops live and last-known entries."""
        store = MemoryStore()
        cache = BriefCache(store, clock=clock)
        await cache.put(KEY, brief)

        await cache.clear()

        assert cache.last_known() is None
        assert cache.last_generated_at() is None
        assert len(store) == 0
