"""Backup, restore and startup self-heal for the score sheet store.

Backups are a safety net, not the source of truth: a failed backup is
logged and reported in the returned result, never raised. The one fatal
path is migrate_all's load-and-resave of the primary data, since a failure
there means the store itself is unusable.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog

from pinochle.migration import CURRENT_SCHEMA_VERSION
from pinochle.models import Backup
from pinochle.store import prepare_game

if TYPE_CHECKING:
    from pinochle.models import Game
    from pinochle.store import GameStore

logger = structlog.get_logger()


@dataclass(frozen=True)
class BestEffortResult:
    """Outcome of an operation whose failure is logged but not raised."""

    ok: bool
    error: str | None = None


@dataclass(frozen=True)
class MigrationReport:
    """What migrate_all did during startup."""

    restored: bool
    restore_error: str | None
    has_current_game: bool
    history_size: int
    backup: BestEffortResult


class BackupController:
    def __init__(self, store: GameStore) -> None:
        self._store = store

    async def backup(self) -> BestEffortResult:
        """Snapshot the current game and history into the backup slot. Never raises."""
        try:
            current = await self._store.get_current_game()
            history = await self._store.get_game_history()
            await self._store.write_backup(Backup.capture(current, history, CURRENT_SCHEMA_VERSION))
        except Exception as exc:  # noqa: BLE001
            logger.warning("backup failed", error=str(exc), error_type=type(exc).__name__)
            return BestEffortResult(ok=False, error=str(exc))

        logger.info("backup written", has_current_game=current is not None, history_size=len(history))
        return BestEffortResult(ok=True)

    async def restore(self) -> bool:
        """Write the backed-up current game and history back through the store.

        Returns False and touches nothing when no backup exists. Every
        embedded game is validated and migrated before anything is written,
        so an unusable backup raises without overwriting stored data.
        """
        backup = await self._store.read_backup()
        if backup is None:
            logger.info("no backup to restore")
            return False

        current: Game | None = None
        if backup.current_game is not None:
            current = prepare_game(backup.current_game, context="Invalid current game in backup")
        history = [
            prepare_game(item, context=f"Invalid game data at backup history index {index}")
            for index, item in enumerate(backup.game_history)
        ]

        await self._store.save_current_game(current)
        await self._store.save_game_history(history)
        logger.info(
            "restored from backup",
            backup_timestamp=backup.timestamp,
            backup_version=backup.version,
            has_current_game=current is not None,
            history_size=len(history),
        )
        return True

    async def migrate_all(self) -> MigrationReport:
        """Startup self-heal: restore, re-save everything in the current schema, back up.

        Restore and backup failures are logged and reported. Failures while
        loading or re-saving the current game or history propagate.
        """
        restored = False
        restore_error: str | None = None
        try:
            restored = await self.restore()
        except Exception as exc:  # noqa: BLE001
            restore_error = str(exc)
            logger.warning("restore from backup failed, keeping stored data", error=restore_error)

        try:
            current = await self._store.get_current_game()
            await self._store.save_current_game(current)
            history = await self._store.get_game_history()
            await self._store.save_game_history(history)
        except Exception:
            logger.exception("data migration failed")
            raise

        backup_result = await self.backup()
        report = MigrationReport(
            restored=restored,
            restore_error=restore_error,
            has_current_game=current is not None,
            history_size=len(history),
            backup=backup_result,
        )
        logger.info(
            "data migration complete",
            restored=restored,
            has_current_game=report.has_current_game,
            history_size=report.history_size,
            backup_ok=backup_result.ok,
        )
        return report
