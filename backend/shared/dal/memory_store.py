"""In-memory key-value store for tests and ephemeral sessions."""

import asyncio

from shared.dal.kv_store import KeyValueStore


class InMemoryKeyValueStore(KeyValueStore):
    """Dict-backed store. Contents are lost when the process exits."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._items: dict[str, str] = dict(initial or {})
        self._lock = asyncio.Lock()

    async def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    async def set_item(self, key: str, value: str) -> None:
        async with self._lock:
            self._items[key] = value

    async def remove_item(self, key: str) -> None:
        async with self._lock:
            self._items.pop(key, None)

    def snapshot(self) -> dict[str, str]:
        """Return a copy of every stored key and value."""
        return dict(self._items)
