"""Forward migration of game records to the current schema.

Schema history:
- version 0 (implicit): no ``version``, no ``cardImageIndex``; rounds may
  lack ``timestamp`` and games may lack ``winningScore``.
- version 1: all of the above present.

Migration only adds missing fields with safe defaults. It never drops teams,
rounds or round results.
"""

from __future__ import annotations

import hashlib
import random

import structlog

from pinochle.models import CARD_IMAGE_COUNT, DEFAULT_WINNING_SCORE, Game, GameRecord

logger = structlog.get_logger()

CURRENT_SCHEMA_VERSION = 1


def _is_valid_card_image_index(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value < CARD_IMAGE_COUNT


def _usable_card_image_index(value: object) -> int | None:
    """Return value as an index when it is a whole number in range, else None."""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, int) and _is_valid_card_image_index(value):
        return value
    return None


def pick_card_image_index(game_id: str) -> int:
    """Choose a card artwork index in [0, CARD_IMAGE_COUNT) seeded by the game id.

    Seeding by id keeps repeated migrations of the same record stable.
    """
    seed = int.from_bytes(hashlib.sha256(game_id.encode("utf-8")).digest()[:8], "big")
    return random.Random(seed).randrange(CARD_IMAGE_COUNT)  # noqa: S311


def needs_migration(record: GameRecord | Game) -> bool:
    if isinstance(record, Game):
        return record.version < CURRENT_SCHEMA_VERSION
    return (
        not _is_valid_card_image_index(record.card_image_index)
        or not isinstance(record.version, int)
        or isinstance(record.version, bool)
        or record.version < CURRENT_SCHEMA_VERSION
        or record.winning_score is None
        or any(round_.timestamp is None for round_ in record.rounds)
    )


def migrate_game(record: GameRecord | Game) -> Game:
    """Upgrade a validated record to the current schema.

    Deterministic and idempotent: a Game already at the current version is
    returned as-is, and migrating a migrated record yields an equal Game.
    """
    if isinstance(record, Game) and record.version >= CURRENT_SCHEMA_VERSION:
        return record

    card_image_index = _usable_card_image_index(record.card_image_index)
    if card_image_index is None:
        card_image_index = pick_card_image_index(record.id)

    version = record.version
    if not isinstance(version, int) or isinstance(version, bool) or version < CURRENT_SCHEMA_VERSION:
        version = CURRENT_SCHEMA_VERSION

    rounds = [
        round_ if round_.timestamp is not None else round_.model_copy(update={"timestamp": record.timestamp})
        for round_ in record.rounds
    ]

    game = Game(
        id=record.id,
        timestamp=record.timestamp,
        teams=record.teams,
        rounds=rounds,
        card_image_index=card_image_index,
        winning_score=record.winning_score if record.winning_score is not None else DEFAULT_WINNING_SCORE,
        version=version,
    )
    if needs_migration(record):
        logger.info(
            "migrated game record",
            game_id=game.id,
            from_version=record.version,
            to_version=game.version,
        )
    return game
