"""Error kinds raised by the score sheet core."""

from collections.abc import Sequence

from shared.dal.errors import CorruptDataError, StorageError, StorageIOError


class GameError(Exception):
    """A score sheet operation was used incorrectly (no current game, bad round data)."""


class GameValidationError(StorageError):
    """A game record is structurally invalid and must not be trusted."""

    def __init__(self, errors: Sequence[str], *, context: str = "Invalid game data") -> None:
        self.errors = tuple(errors)
        detail = "; ".join(self.errors) if self.errors else "unknown problem"
        super().__init__(f"{context}: {detail}")


__all__ = [
    "CorruptDataError",
    "GameError",
    "GameValidationError",
    "StorageError",
    "StorageIOError",
]
