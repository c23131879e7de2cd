"""Persistent key-value store interface."""

from __future__ import annotations

from abc import ABC, abstractmethod


class PersistentStore(ABC):
    """Opaque string key-value storage used by the brief cache.

    Implementations raise CacheStorageError when the backing storage
    cannot be read or written.
    """

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the stored value, or None if the key is absent."""

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Store a value, replacing any previous one."""

    @abstractmethod
    async def remove(self, key: str) -> None:
        """Delete a key. Removing an absent key is not an error."""

    async def close(self) -> None:
        """Release resources held by the store."""
