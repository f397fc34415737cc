"""Structural and semantic checks for persisted game records.

validate_game_record never raises for bad input. It returns a
ValidationResult that either carries the parsed GameRecord or the list of
problems found, so the storage layer decides how to surface the failure.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from pinochle.errors import GameValidationError
from pinochle.models import GameRecord


@dataclass(frozen=True)
class ValidationResult:
    record: GameRecord | None = None
    errors: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return self.record is not None

    def unwrap(self, context: str = "Invalid game data") -> GameRecord:
        """Return the record or raise GameValidationError with the collected problems."""
        if self.record is None:
            raise GameValidationError(self.errors, context=context)
        return self.record


def _format_error(error: Mapping[str, Any]) -> str:
    location = ".".join(str(part) for part in error["loc"])
    message = error["msg"]
    if location:
        return f"{location}: {message}"
    return message


def validate_game_record(data: Any) -> ValidationResult:  # noqa: ANN401
    """Check a decoded JSON value against the game record shape.

    Requires id, timestamp, a non-empty team list (each team with id and
    name), and rounds with id, bidWinner, positive bid, and meld/trickPoints
    mappings of non-negative integers. Every bidWinner must name one of the
    game's teams. version, cardImageIndex and winningScore are optional here.
    """
    if isinstance(data, GameRecord):
        return ValidationResult(record=data)
    if not isinstance(data, Mapping):
        return ValidationResult(errors=(f"expected a JSON object, got {type(data).__name__}",))

    try:
        record = GameRecord.model_validate(dict(data))
    except ValidationError as exc:
        return ValidationResult(errors=tuple(_format_error(err) for err in exc.errors()))
    return ValidationResult(record=record)
