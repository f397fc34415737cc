"""Persistence of the current game, the game history, settings and the backup slot.

Every read parses, validates and migrates; every write validates and
migrates first so data on disk is always in the current schema.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

import structlog
from pydantic import BaseModel, ValidationError

from pinochle.errors import CorruptDataError, GameValidationError
from pinochle.migration import migrate_game
from pinochle.models import Backup, Game, GameSettings, to_json_data
from pinochle.validation import validate_game_record

if TYPE_CHECKING:
    from shared.dal.kv_store import KeyValueStore

logger = structlog.get_logger()

CURRENT_GAME_KEY = "pinochle_current_game"
GAME_HISTORY_KEY = "pinochle_game_history"
GAME_SETTINGS_KEY = "pinochle_game_settings"
BACKUP_KEY = "pinochle_data_backup"

ALL_KEYS = (CURRENT_GAME_KEY, GAME_HISTORY_KEY, GAME_SETTINGS_KEY, BACKUP_KEY)

GameInput = Game | Mapping[str, Any]


def _as_data(game: GameInput | BaseModel) -> Any:  # noqa: ANN401
    if isinstance(game, BaseModel):
        return to_json_data(game)
    return game


def prepare_game(game: GameInput | Any, *, context: str = "Invalid game data") -> Game:  # noqa: ANN401
    """Validate and migrate a game given as a model or decoded JSON."""
    record = validate_game_record(_as_data(game)).unwrap(context)
    return migrate_game(record)


class GameStore:
    """Game persistence over a KeyValueStore.

    Assumes a single writer per key; each operation is one read or one
    full replacement of a key's value.
    """

    def __init__(self, kv: KeyValueStore) -> None:
        self._kv = kv

    async def _read_json(self, key: str) -> tuple[bool, Any]:
        """Return (present, decoded value) for key. Raises CorruptDataError on unparsable bytes."""
        raw = await self._kv.get_item(key)
        if raw is None:
            return False, None
        try:
            return True, json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.error("stored data is not valid JSON", key=key)
            msg = f"Stored data for '{key}' is corrupt"
            raise CorruptDataError(msg, key=key) from exc

    async def _write_json(self, key: str, value: Any) -> None:  # noqa: ANN401
        await self._kv.set_item(key, json.dumps(value, separators=(",", ":")))

    async def save_current_game(self, game: GameInput | None) -> None:
        """Store game as the in-progress game, or clear the slot when game is None.

        Raises GameValidationError without writing when game is invalid.
        """
        if game is None:
            await self._write_json(CURRENT_GAME_KEY, None)
            logger.info("cleared current game")
            return

        prepared = prepare_game(game)
        await self._write_json(CURRENT_GAME_KEY, to_json_data(prepared))
        logger.debug("saved current game", game_id=prepared.id, rounds=len(prepared.rounds))

    async def get_current_game(self) -> Game | None:
        """Load the in-progress game. Migrated data is returned but not written back."""
        present, data = await self._read_json(CURRENT_GAME_KEY)
        if not present or data is None:
            return None
        return prepare_game(data, context=f"Invalid game data in '{CURRENT_GAME_KEY}'")

    async def save_game_history(self, games: Iterable[GameInput]) -> None:
        """Replace the full history. Any invalid game aborts the write."""
        prepared: list[Game] = []
        for index, game in enumerate(games):
            try:
                prepared.append(prepare_game(game))
            except GameValidationError as exc:
                raise GameValidationError(exc.errors, context=f"Invalid game data at history index {index}") from exc
        await self._write_json(GAME_HISTORY_KEY, [to_json_data(game) for game in prepared])
        logger.debug("saved game history", count=len(prepared))

    async def get_game_history(self) -> list[Game]:
        present, data = await self._read_json(GAME_HISTORY_KEY)
        if not present or data is None:
            return []
        if not isinstance(data, list):
            msg = f"Stored data for '{GAME_HISTORY_KEY}' is not a list"
            raise CorruptDataError(msg, key=GAME_HISTORY_KEY)
        return [
            prepare_game(item, context=f"Invalid game data at history index {index}")
            for index, item in enumerate(data)
        ]

    async def add_game_to_history(self, game: GameInput) -> None:
        prepared = prepare_game(game)
        history = await self.get_game_history()
        history.append(prepared)
        await self.save_game_history(history)
        logger.info("archived game", game_id=prepared.id, history_size=len(history))

    async def delete_games_from_history(self, game_ids: Iterable[str]) -> int:
        """Remove games by id. Returns the number of games removed."""
        doomed = set(game_ids)
        history = await self.get_game_history()
        kept = [game for game in history if game.id not in doomed]
        removed = len(history) - len(kept)
        if removed:
            await self.save_game_history(kept)
            logger.info("deleted games from history", count=removed)
        return removed

    async def save_game_settings(self, settings: GameSettings) -> None:
        await self._write_json(GAME_SETTINGS_KEY, to_json_data(settings))

    async def get_game_settings(self) -> GameSettings | None:
        present, data = await self._read_json(GAME_SETTINGS_KEY)
        if not present or data is None:
            return None
        try:
            return GameSettings.model_validate(data)
        except ValidationError as exc:
            msg = f"Stored data for '{GAME_SETTINGS_KEY}' has an unexpected shape"
            raise CorruptDataError(msg, key=GAME_SETTINGS_KEY) from exc

    async def read_backup(self) -> Backup | None:
        """Load the backup snapshot, or None when no backup was taken."""
        present, data = await self._read_json(BACKUP_KEY)
        if not present or data is None:
            return None
        try:
            return Backup.model_validate(data)
        except ValidationError as exc:
            msg = f"Stored data for '{BACKUP_KEY}' has an unexpected shape"
            raise CorruptDataError(msg, key=BACKUP_KEY) from exc

    async def write_backup(self, backup: Backup) -> None:
        await self._write_json(BACKUP_KEY, backup.to_json_data())

    async def clear_storage(self) -> None:
        """Remove every score sheet key, including the backup."""
        for key in ALL_KEYS:
            await self._kv.remove_item(key)
        logger.warning("cleared all score sheet storage")
