"""Time-to-live brief cache with single-flight generation.

Entries live in memory and, when a store is configured, are mirrored to it
under two keys per cache key so a restarted process can reuse a fresh brief.
Concurrent misses for the same key share one generation task.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import structlog
from pydantic import ValidationError

from daily_brief.core.clock import Clock, utcnow
from daily_brief.core.errors import CacheStorageError
from daily_brief.schemas.brief import BriefData
from daily_brief.storage.base import PersistentStore

logger = structlog.get_logger(__name__)

DEFAULT_TTL = timedelta(minutes=5)
DATA_KEY_PREFIX = "cached_brief_data:"
TIMESTAMP_KEY_PREFIX = "brief_timestamp:"

BriefGenerator = Callable[[], Awaitable[BriefData]]


def data_key(key: str) -> str:
    return f"{DATA_KEY_PREFIX}{key}"


def timestamp_key(key: str) -> str:
    return f"{TIMESTAMP_KEY_PREFIX}{key}"


@dataclass
class CacheEntry:
    """A generated brief and the time it was stored."""

    data: BriefData
    generated_at: datetime

    def is_fresh(self, now: datetime, ttl: timedelta) -> bool:
        """Entries are served up to and including the TTL boundary."""
        return now - self.generated_at <= ttl


class BriefCache:
    """Caches briefs per key under a TTL policy.

    Returned briefs are always deep copies, so callers cannot mutate cached
    state. A store failure switches the cache to memory-only operation for
    the rest of the process.

    Example:
        cache = BriefCache(store=MemoryStore(), ttl=timedelta(minutes=5))
        brief = await cache.get_or_generate("brief:96h:24h", build_brief)
    """

    def __init__(
        self,
        store: PersistentStore | None = None,
        ttl: timedelta = DEFAULT_TTL,
        clock: Clock = utcnow,
    ) -> None:
        """Initialize cache.

        Args:
            store: Persistent store to mirror entries to. None keeps entries
                in memory only.
            ttl: Maximum age at which an entry is served.
            clock: Returns the current time.
        """
        if ttl <= timedelta(0):
            raise ValueError("ttl must be positive")
        self._store = store
        self._store_available = store is not None
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        # Survives expiry and invalidation; used for the stale fallback
        self._last_known: dict[str, CacheEntry] = {}
        self._pending: dict[str, asyncio.Task[BriefData]] = {}

    @property
    def persistent(self) -> bool:
        """Whether entries are currently mirrored to the store."""
        return self._store_available

    def in_flight(self, key: str) -> bool:
        """Check whether a generation for the key is running."""
        return key in self._pending

    def _memory_hit(self, key: str) -> BriefData | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_fresh(self._clock(), self.ttl):
            logger.debug("brief_cache_hit", key=key, generated_at=entry.generated_at.isoformat())
            return entry.data.model_copy(deep=True)
        del self._entries[key]
        logger.info("brief_cache_expired", key=key, generated_at=entry.generated_at.isoformat())
        return None

    async def get(self, key: str) -> BriefData | None:
        """Return the fresh brief for a key, or None.

        Checks memory first, then the store. Expired entries are discarded
        from both and kept only as the last-known fallback.
        """
        brief = self._memory_hit(key)
        if brief is not None:
            return brief

        entry = await self._load(key)
        if entry is None:
            return None

        self._remember_last_known(key, entry)
        if not entry.is_fresh(self._clock(), self.ttl):
            await logger.ainfo(
                "brief_cache_expired", key=key, generated_at=entry.generated_at.isoformat()
            )
            await self._remove_persisted(key)
            return None

        self._entries[key] = entry
        await logger.ainfo("brief_cache_loaded", key=key)
        return entry.data.model_copy(deep=True)

    async def put(self, key: str, data: BriefData) -> None:
        """Store a brief as the live entry for a key."""
        entry = CacheEntry(data=data.model_copy(deep=True), generated_at=self._clock())
        self._entries[key] = entry
        self._remember_last_known(key, entry)

        if not self._store_available or self._store is None:
            return
        try:
            await self._store.set(data_key(key), entry.data.model_dump_json())
            await self._store.set(timestamp_key(key), entry.generated_at.isoformat())
        except CacheStorageError as e:
            await self._degrade("put", key, e)

    async def invalidate(self, key: str) -> None:
        """Discard the live entry for a key; the last-known copy is kept."""
        self._entries.pop(key, None)
        await self._remove_persisted(key)
        await logger.ainfo("brief_cache_invalidated", key=key)

    async def clear(self) -> None:
        """Discard every entry, including last-known copies."""
        keys = set(self._entries) | set(self._last_known)
        self._entries.clear()
        self._last_known.clear()
        for key in keys:
            await self._remove_persisted(key)
        await logger.ainfo("brief_cache_cleared", keys=len(keys))

    def last_known(self, key: str | None = None) -> BriefData | None:
        """Latest brief ever stored, even if expired or invalidated.

        Args:
            key: Cache key to look up. None picks the most recent brief
                across all keys.
        """
        entry = self._last_known_entry(key)
        return entry.data.model_copy(deep=True) if entry else None

    def last_generated_at(self, key: str | None = None) -> datetime | None:
        """Time the latest brief for a key (or any key) was stored."""
        entry = self._last_known_entry(key)
        return entry.generated_at if entry else None

    async def get_or_generate(self, key: str, generator: BriefGenerator) -> BriefData:
        """Return the cached brief for a key, generating it on a miss.

        A fresh in-memory entry is returned without suspending. Otherwise a
        single task per key checks the store, runs the generator and stores
        the result; concurrent callers await that same task. Cancelling one
        caller does not cancel the shared generation.

        Raises:
            Exception: Whatever the generator raised, to every waiting caller.
        """
        brief = self._memory_hit(key)
        if brief is not None:
            return brief

        task = self._pending.get(key)
        if task is None:
            task = asyncio.create_task(self._load_or_generate(key, generator))
            self._pending[key] = task
            task.add_done_callback(lambda t: self._forget(key, t))
        else:
            await logger.adebug("brief_generation_joined", key=key)

        result = await asyncio.shield(task)
        return result.model_copy(deep=True)

    async def _load_or_generate(self, key: str, generator: BriefGenerator) -> BriefData:
        brief = await self.get(key)
        if brief is not None:
            return brief

        await logger.ainfo("brief_generation_started", key=key)
        data = await generator()
        await self.put(key, data)
        return data

    def _forget(self, key: str, task: asyncio.Task[BriefData]) -> None:
        if self._pending.get(key) is task:
            del self._pending[key]
        # Mark the exception retrieved when every waiter has been cancelled
        if not task.cancelled():
            task.exception()

    def _last_known_entry(self, key: str | None) -> CacheEntry | None:
        if key is not None:
            return self._last_known.get(key)
        if not self._last_known:
            return None
        return max(self._last_known.values(), key=lambda e: e.generated_at)

    def _remember_last_known(self, key: str, entry: CacheEntry) -> None:
        current = self._last_known.get(key)
        if current is None or entry.generated_at >= current.generated_at:
            self._last_known[key] = entry

    async def _load(self, key: str) -> CacheEntry | None:
        """Read an entry from the store; partial or corrupt entries are misses."""
        if not self._store_available or self._store is None:
            return None
        try:
            raw_data = await self._store.get(data_key(key))
            raw_timestamp = await self._store.get(timestamp_key(key))
        except CacheStorageError as e:
            await self._degrade("get", key, e)
            return None

        if raw_data is None and raw_timestamp is None:
            return None
        if raw_data is None or raw_timestamp is None:
            await logger.awarning(
                "brief_cache_partial_entry",
                key=key,
                has_data=raw_data is not None,
                has_timestamp=raw_timestamp is not None,
            )
            return None

        try:
            data = BriefData.model_validate_json(raw_data)
            generated_at = datetime.fromisoformat(raw_timestamp)
        except (ValidationError, ValueError) as e:
            await logger.awarning("brief_cache_corrupt_entry", key=key, error=str(e))
            await self._remove_persisted(key)
            return None

        if generated_at.tzinfo is None:
            generated_at = generated_at.replace(tzinfo=UTC)
        return CacheEntry(data=data, generated_at=generated_at)

    async def _remove_persisted(self, key: str) -> None:
        if not self._store_available or self._store is None:
            return
        try:
            await self._store.remove(data_key(key))
            await self._store.remove(timestamp_key(key))
        except CacheStorageError as e:
            await self._degrade("remove", key, e)

    async def _degrade(self, operation: str, key: str, error: CacheStorageError) -> None:
        if not self._store_available:
            return
        self._store_available = False
        await logger.awarning(
            "brief_cache_storage_degraded",
            operation=operation,
            key=key,
            error=str(error),
        )
