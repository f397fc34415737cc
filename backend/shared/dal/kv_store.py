"""Abstract interface for string-keyed blob persistence."""

from __future__ import annotations

from abc import ABC, abstractmethod


class KeyValueStore(ABC):
    """Abstract interface for string-keyed blob storage.

    Values are opaque strings (JSON in practice). A write either fully
    replaces the stored value or leaves the previous one in place.
    Implementations raise StorageIOError when the medium fails.
    """

    @abstractmethod
    async def get_item(self, key: str) -> str | None: ...

    @abstractmethod
    async def set_item(self, key: str, value: str) -> None: ...

    @abstractmethod
    async def remove_item(self, key: str) -> None: ...
