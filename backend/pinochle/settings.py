"""Score sheet configuration via environment variables."""

from enum import StrEnum

from pydantic import Field
from pydantic_settings import BaseSettings

from pinochle.models import DEFAULT_WINNING_SCORE


class StorageBackend(StrEnum):
    SQLITE = "sqlite"
    FILE = "file"
    MEMORY = "memory"


class ScoreSheetSettings(BaseSettings):
    model_config = {"env_prefix": "PINOCHLE_"}

    storage_backend: StorageBackend = StorageBackend.SQLITE

    # SQLite database file, used by the sqlite backend
    database_path: str = Field(default="backend/data/pinochle.db", min_length=1)

    # Directory of per-key JSON files, used by the file backend
    data_dir: str = Field(default="backend/data/kv", min_length=1)

    # Directory for log files; stdout only when unset
    log_dir: str | None = None

    winning_score: int = Field(default=DEFAULT_WINNING_SCORE, ge=1)
