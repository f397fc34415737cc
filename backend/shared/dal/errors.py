"""Errors raised by key-value storage backends."""


class StorageError(Exception):
    """Base class for persistence failures."""


class StorageIOError(StorageError):
    """The underlying storage medium failed to read or write a value."""

    def __init__(self, message: str, *, key: str | None = None) -> None:
        super().__init__(message)
        self.key = key


class CorruptDataError(StorageError):
    """Stored bytes for a key could not be decoded or parsed."""

    def __init__(self, message: str, *, key: str | None = None) -> None:
        super().__init__(message)
        self.key = key
