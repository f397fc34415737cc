"""Shared fixtures for score sheet tests."""

import pytest

from pinochle.backup import BackupController
from pinochle.scoring import ScoringEngine
from pinochle.service import ScoreSheetService
from pinochle.store import GameStore
from shared.dal.memory_store import InMemoryKeyValueStore


@pytest.fixture
def kv() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def store(kv: InMemoryKeyValueStore) -> GameStore:
    return GameStore(kv)


@pytest.fixture
def backups(store: GameStore) -> BackupController:
    return BackupController(store)


@pytest.fixture
def engine() -> ScoringEngine:
    return ScoringEngine()


@pytest.fixture
def service(store: GameStore, engine: ScoringEngine, backups: BackupController) -> ScoreSheetService:
    return ScoreSheetService(store, engine, backups)
