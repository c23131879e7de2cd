"""In-process key-value store."""

from __future__ import annotations

from daily_brief.storage.base import PersistentStore


class MemoryStore(PersistentStore):
    """Dictionary-backed store; contents do not survive a restart."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def __len__(self) -> int:
        return len(self._data)
