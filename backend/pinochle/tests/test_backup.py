"""Tests for backup, restore and the startup self-heal."""

import json
import logging
from unittest.mock import patch

import pytest

from pinochle.backup import BackupController
from pinochle.errors import CorruptDataError, GameValidationError
from pinochle.migration import CURRENT_SCHEMA_VERSION
from pinochle.store import BACKUP_KEY, CURRENT_GAME_KEY, GAME_HISTORY_KEY, GameStore
from pinochle.tests.helpers import legacy_game_data, make_game, make_round
from shared.dal.errors import StorageIOError
from shared.dal.memory_store import InMemoryKeyValueStore


def _backup_blob(current, history, version=CURRENT_SCHEMA_VERSION) -> str:
    return json.dumps(
        {"timestamp": 1_700_000_000_000, "version": version, "currentGame": current, "gameHistory": history},
    )


class TestBackup:
    async def test_snapshots_current_game_and_history(
        self,
        store: GameStore,
        backups: BackupController,
        kv: InMemoryKeyValueStore,
    ):
        current = make_game("game-1", rounds=[make_round("r1")])
        await store.save_current_game(current)
        await store.save_game_history([make_game("game-0")])

        result = await backups.backup()

        assert result.ok
        assert result.error is None
        snapshot = json.loads(await kv.get_item(BACKUP_KEY))
        assert snapshot["version"] == CURRENT_SCHEMA_VERSION
        assert snapshot["currentGame"]["id"] == "game-1"
        assert [game["id"] for game in snapshot["gameHistory"]] == ["game-0"]
        assert isinstance(snapshot["timestamp"], int)

    async def test_writes_null_current_game_when_none(self, backups: BackupController, kv: InMemoryKeyValueStore):
        result = await backups.backup()

        assert result.ok
        raw = await kv.get_item(BACKUP_KEY)
        assert '"currentGame":null' in raw.replace(" ", "")
        assert json.loads(raw)["gameHistory"] == []

    async def test_failure_is_reported_not_raised(self, backups: BackupController, kv: InMemoryKeyValueStore):
        with patch.object(kv, "set_item", side_effect=StorageIOError("disk full")):
            result = await backups.backup()

        assert not result.ok
        assert result.error == "disk full"

    async def test_corrupt_source_data_is_reported(self, backups: BackupController, kv: InMemoryKeyValueStore):
        await kv.set_item(CURRENT_GAME_KEY, "{broken")

        result = await backups.backup()

        assert not result.ok
        assert await kv.get_item(BACKUP_KEY) is None


class TestRestore:
    async def test_returns_false_without_backup(self, store: GameStore, backups: BackupController):
        await store.save_current_game(make_game("game-1"))
        await store.save_game_history([make_game("game-0")])

        assert await backups.restore() is False

        current = await store.get_current_game()
        assert current is not None
        assert current.id == "game-1"
        assert [game.id for game in await store.get_game_history()] == ["game-0"]

    async def test_restores_backup_contents(
        self,
        store: GameStore,
        backups: BackupController,
        kv: InMemoryKeyValueStore,
    ):
        await kv.set_item(BACKUP_KEY, _backup_blob(legacy_game_data("game-5"), [legacy_game_data("game-4")]))

        assert await backups.restore() is True

        current = await store.get_current_game()
        assert current is not None
        assert current.id == "game-5"
        assert [game.id for game in await store.get_game_history()] == ["game-4"]

    async def test_migrates_old_backup(self, backups: BackupController, kv: InMemoryKeyValueStore):
        await kv.set_item(BACKUP_KEY, _backup_blob(legacy_game_data(), [legacy_game_data("game-2")], version=0))

        await backups.restore()

        stored_current = json.loads(await kv.get_item(CURRENT_GAME_KEY))
        stored_history = json.loads(await kv.get_item(GAME_HISTORY_KEY))
        assert stored_current["version"] == CURRENT_SCHEMA_VERSION
        assert "cardImageIndex" in stored_current
        assert stored_history[0]["version"] == CURRENT_SCHEMA_VERSION

    async def test_restores_empty_current_game(self, store: GameStore, backups: BackupController, kv):
        await store.save_current_game(make_game("game-1"))
        await kv.set_item(BACKUP_KEY, _backup_blob(None, []))

        assert await backups.restore() is True
        assert await store.get_current_game() is None

    async def test_invalid_backup_raises_without_writing(
        self,
        store: GameStore,
        backups: BackupController,
        kv: InMemoryKeyValueStore,
    ):
        await store.save_current_game(make_game("game-1"))
        broken = legacy_game_data("game-2")
        del broken["teams"]
        await kv.set_item(BACKUP_KEY, _backup_blob(make_game("game-3").model_dump(by_alias=True), [broken]))

        with pytest.raises(GameValidationError, match="backup history index 0"):
            await backups.restore()

        current = await store.get_current_game()
        assert current is not None
        assert current.id == "game-1"

    async def test_unparsable_backup_raises_corrupt_data(self, backups: BackupController, kv: InMemoryKeyValueStore):
        await kv.set_item(BACKUP_KEY, "not json at all")

        with pytest.raises(CorruptDataError):
            await backups.restore()

    async def test_backup_with_wrong_shape_raises_corrupt_data(self, backups, kv: InMemoryKeyValueStore):
        await kv.set_item(BACKUP_KEY, json.dumps(["not", "a", "backup"]))

        with pytest.raises(CorruptDataError):
            await backups.restore()


class TestMigrateAll:
    async def test_persists_migration_and_takes_backup(
        self,
        backups: BackupController,
        kv: InMemoryKeyValueStore,
    ):
        await kv.set_item(CURRENT_GAME_KEY, json.dumps(legacy_game_data("game-1")))
        await kv.set_item(GAME_HISTORY_KEY, json.dumps([legacy_game_data("game-0")]))

        report = await backups.migrate_all()

        assert report.restored is False
        assert report.restore_error is None
        assert report.has_current_game
        assert report.history_size == 1
        assert report.backup.ok
        assert json.loads(await kv.get_item(CURRENT_GAME_KEY))["version"] == CURRENT_SCHEMA_VERSION
        assert json.loads(await kv.get_item(GAME_HISTORY_KEY))[0]["version"] == CURRENT_SCHEMA_VERSION
        assert json.loads(await kv.get_item(BACKUP_KEY))["currentGame"]["id"] == "game-1"

    async def test_restores_from_prior_backup(self, store: GameStore, backups: BackupController, kv):
        await kv.set_item(BACKUP_KEY, _backup_blob(legacy_game_data("game-7"), []))

        report = await backups.migrate_all()

        assert report.restored is True
        current = await store.get_current_game()
        assert current is not None
        assert current.id == "game-7"

    async def test_broken_backup_is_logged_and_skipped(
        self,
        store: GameStore,
        backups: BackupController,
        kv: InMemoryKeyValueStore,
        caplog: pytest.LogCaptureFixture,
    ):
        await store.save_current_game(make_game("game-1"))
        await kv.set_item(BACKUP_KEY, "garbage")

        with caplog.at_level(logging.WARNING):
            report = await backups.migrate_all()

        assert report.restored is False
        assert report.restore_error is not None
        assert "restore from backup failed" in caplog.text
        current = await store.get_current_game()
        assert current is not None
        assert current.id == "game-1"
        # The fresh backup replaced the broken one.
        assert json.loads(await kv.get_item(BACKUP_KEY))["currentGame"]["id"] == "game-1"

    async def test_corrupt_primary_data_is_fatal(self, backups: BackupController, kv: InMemoryKeyValueStore):
        await kv.set_item(GAME_HISTORY_KEY, "{{{")

        with pytest.raises(CorruptDataError):
            await backups.migrate_all()

    async def test_invalid_primary_data_is_fatal(self, backups: BackupController, kv: InMemoryKeyValueStore):
        data = legacy_game_data()
        del data["teams"]
        await kv.set_item(CURRENT_GAME_KEY, json.dumps(data))

        with pytest.raises(GameValidationError):
            await backups.migrate_all()

    async def test_backup_failure_does_not_fail_migration(self, backups: BackupController, kv: InMemoryKeyValueStore):
        await kv.set_item(CURRENT_GAME_KEY, json.dumps(legacy_game_data()))

        with patch.object(backups._store, "write_backup", side_effect=StorageIOError("read-only")):
            report = await backups.migrate_all()

        assert not report.backup.ok
        assert report.backup.error == "read-only"
        assert json.loads(await kv.get_item(CURRENT_GAME_KEY))["version"] == CURRENT_SCHEMA_VERSION

    async def test_empty_store(self, backups: BackupController, kv: InMemoryKeyValueStore):
        report = await backups.migrate_all()

        assert report.restored is False
        assert not report.has_current_game
        assert report.history_size == 0
        assert json.loads(await kv.get_item(GAME_HISTORY_KEY)) == []
