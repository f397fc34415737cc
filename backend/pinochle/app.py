"""Wiring for a score sheet process: storage backend, store, controllers, startup self-heal."""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from pinochle.backup import BackupController, MigrationReport
from pinochle.scoring import ScoringEngine
from pinochle.service import ScoreSheetService
from pinochle.settings import ScoreSheetSettings, StorageBackend
from pinochle.store import GameStore
from shared.dal.kv_store import KeyValueStore
from shared.dal.memory_store import InMemoryKeyValueStore
from shared.db.connection import Database
from shared.db.kv_store import SqliteKeyValueStore
from shared.storage import FileKeyValueStore

logger = structlog.get_logger()


@dataclass
class ScoreSheet:
    """Everything a caller needs to drive the score sheet."""

    settings: ScoreSheetSettings
    kv: KeyValueStore
    store: GameStore
    backups: BackupController
    service: ScoreSheetService
    startup_report: MigrationReport | None = None
    database: Database | None = None

    def close(self) -> None:
        if self.database is not None:
            self.database.close()


def build_kv_store(settings: ScoreSheetSettings) -> tuple[KeyValueStore, Database | None]:
    """Create the configured key-value backend. The Database is returned so it can be closed."""
    if settings.storage_backend == StorageBackend.SQLITE:
        db = Database(settings.database_path)
        db.connect()
        return SqliteKeyValueStore(db), db
    if settings.storage_backend == StorageBackend.FILE:
        return FileKeyValueStore(settings.data_dir), None
    return InMemoryKeyValueStore(), None


async def open_score_sheet(settings: ScoreSheetSettings | None = None, *, migrate: bool = True) -> ScoreSheet:
    """Open storage, run the startup self-heal and load the in-progress game.

    The self-heal runs before anything else touches the store. If it fails
    the database is closed and the error propagates.
    """
    settings = settings or ScoreSheetSettings()
    kv, db = build_kv_store(settings)
    store = GameStore(kv)
    backups = BackupController(store)
    service = ScoreSheetService(store, ScoringEngine(), backups, winning_score=settings.winning_score)
    sheet = ScoreSheet(settings=settings, kv=kv, store=store, backups=backups, service=service, database=db)

    try:
        if migrate:
            sheet.startup_report = await backups.migrate_all()
        await service.load()
    except BaseException:
        sheet.close()
        raise

    logger.info("score sheet ready", backend=settings.storage_backend, has_current_game=service.current_game is not None)
    return sheet
