"""Builders for games and rounds used across score sheet tests."""

from __future__ import annotations

from typing import Any

from pinochle.models import Game, Round, Team

TEAM_A = "team-1"
TEAM_B = "team-2"


def make_round(
    round_id: str = "round-1",
    *,
    bid_winner: str = TEAM_A,
    bid: int = 250,
    meld: dict[str, int] | None = None,
    tricks: dict[str, int] | None = None,
    moon_shot: bool | None = None,
    timestamp: int | None = 1_700_000_000_000,
) -> Round:
    """Build a round. moon_shot=None means no moon shot; True/False is its outcome."""
    return Round(
        id=round_id,
        bid_winner=bid_winner,
        bid=bid,
        meld=meld if meld is not None else {TEAM_A: 0, TEAM_B: 0},
        trick_points=tricks if tricks is not None else {TEAM_A: 125, TEAM_B: 125},
        moon_shot_attempted=moon_shot is not None,
        moon_shot_successful=moon_shot,
        timestamp=timestamp,
    )


def make_game(
    game_id: str = "game-1",
    rounds: list[Round] | None = None,
    *,
    card_image_index: int = 0,
    winning_score: int = 1500,
    version: int = 1,
) -> Game:
    return Game(
        id=game_id,
        timestamp=1_700_000_000_000,
        teams=[Team(id=TEAM_A, name="Team 1"), Team(id=TEAM_B, name="Team 2")],
        rounds=rounds or [],
        card_image_index=card_image_index,
        winning_score=winning_score,
        version=version,
    )


def legacy_game_data(game_id: str = "game-1", **overrides: Any) -> dict[str, Any]:
    """JSON data for a game written before version/cardImageIndex existed."""
    data: dict[str, Any] = {
        "id": game_id,
        "timestamp": 1_700_000_000_000,
        "teams": [
            {"id": TEAM_A, "name": "Team 1", "players": []},
            {"id": TEAM_B, "name": "Team 2", "players": []},
        ],
        "rounds": [],
        "winningScore": 1500,
    }
    data.update(overrides)
    return data
