"""Score sheet models.

Persisted JSON keeps camelCase keys (``bidWinner``, ``trickPoints``,
``cardImageIndex``); Python code uses the snake_case attribute names.
Timestamps are integer milliseconds since the Unix epoch.
"""

from __future__ import annotations

import time
from typing import Any, Self

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    NonNegativeInt,
    PositiveInt,
    TypeAdapter,
    ValidationError,
    model_validator,
)
from pydantic.alias_generators import to_camel

CARD_IMAGE_COUNT = 24
DEFAULT_WINNING_SCORE = 1500
TRICK_POINTS_PER_ROUND = 250

_CAMEL_FROZEN = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

# Same coercion pydantic applies to bool fields (1, "true", "yes" are True).
_LAX_BOOL = TypeAdapter(bool)


def timestamp_ms() -> int:
    """Current time in epoch milliseconds."""
    return int(time.time() * 1000)


def to_json_data(model: BaseModel) -> dict[str, Any]:
    """Dump a model to the camelCase, JSON-compatible shape used on disk."""
    return model.model_dump(mode="json", by_alias=True, exclude_none=True)


class Player(BaseModel):
    model_config = _CAMEL_FROZEN

    id: str
    name: str


class Team(BaseModel):
    model_config = _CAMEL_FROZEN

    id: str = Field(min_length=1)
    name: str
    players: list[Player] = Field(default_factory=list)


class Round(BaseModel):
    """One scoring decision. Immutable once appended to a game."""

    model_config = _CAMEL_FROZEN

    id: str = Field(min_length=1)
    bid_winner: str
    bid: PositiveInt
    meld: dict[str, NonNegativeInt]
    trick_points: dict[str, NonNegativeInt]
    moon_shot_attempted: bool = False
    moon_shot_successful: bool | None = None  # only meaningful when moon_shot_attempted
    timestamp: int | None = None  # legacy rounds lack it; migration fills it in

    @model_validator(mode="before")
    @classmethod
    def _drop_stray_moon_shot_result(cls, data: Any) -> Any:  # noqa: ANN401
        if not isinstance(data, dict):
            return data
        attempted = data.get("moonShotAttempted", data.get("moon_shot_attempted", False))
        try:
            attempted = _LAX_BOOL.validate_python(attempted)
        except ValidationError:
            return data  # reported by field validation
        if attempted:
            return data
        return {k: v for k, v in data.items() if k not in {"moonShotSuccessful", "moon_shot_successful"}}

    def meld_for(self, team_id: str) -> int:
        return self.meld.get(team_id, 0)

    def tricks_for(self, team_id: str) -> int:
        return self.trick_points.get(team_id, 0)


class _GameShape(BaseModel):
    """Fields and cross-checks shared by pre-migration and current-schema games."""

    model_config = _CAMEL_FROZEN

    id: str = Field(min_length=1)
    timestamp: int
    teams: list[Team] = Field(min_length=1)
    rounds: list[Round]

    @model_validator(mode="after")
    def _check_team_references(self) -> Self:
        team_ids = [team.id for team in self.teams]
        if len(set(team_ids)) != len(team_ids):
            raise ValueError("team ids must be unique within a game")
        known = set(team_ids)
        for index, round_ in enumerate(self.rounds):
            if round_.bid_winner not in known:
                raise ValueError(f"round {index} bidWinner '{round_.bid_winner}' is not a team of this game")
        return self

    @property
    def team_ids(self) -> list[str]:
        return [team.id for team in self.teams]

    def get_team(self, team_id: str) -> Team | None:
        return next((team for team in self.teams if team.id == team_id), None)


class GameRecord(_GameShape):
    """A structurally valid game that may predate the current schema.

    cardImageIndex, winningScore and version may be missing or malformed;
    the migrator fills them in.
    """

    card_image_index: Any = None
    winning_score: PositiveInt | None = None
    version: Any = None


class Game(_GameShape):
    """A game in the current schema."""

    card_image_index: int = Field(ge=0, lt=CARD_IMAGE_COUNT)
    winning_score: PositiveInt = DEFAULT_WINNING_SCORE
    version: int = Field(ge=1)

    def with_round(self, round_: Round) -> Game:
        """Return a copy of this game with round_ appended."""
        return self.model_copy(update={"rounds": [*self.rounds, round_]})


class RoundData(BaseModel):
    """Input for appending a round: everything but the id and timestamp."""

    model_config = _CAMEL_FROZEN

    bid_winner: str
    bid: PositiveInt
    meld: dict[str, NonNegativeInt] = Field(default_factory=dict)
    trick_points: dict[str, NonNegativeInt] = Field(default_factory=dict)
    moon_shot_attempted: bool = False
    moon_shot_successful: bool | None = None


class GameSettings(BaseModel):
    """Last team names used to start a game."""

    model_config = _CAMEL_FROZEN

    team_names: list[str] = Field(default_factory=list)


class Backup(BaseModel):
    """Point-in-time snapshot of the current game and the history.

    Embedded games are kept as raw JSON data so that a snapshot written by an
    older schema can still be read and migrated on restore.
    """

    model_config = _CAMEL_FROZEN

    timestamp: int
    version: int = 0
    current_game: dict[str, Any] | None = None
    game_history: list[Any] = Field(default_factory=list)

    @classmethod
    def capture(cls, current_game: Game | None, history: list[Game], version: int) -> Backup:
        return cls(
            timestamp=timestamp_ms(),
            version=version,
            current_game=to_json_data(current_game) if current_game is not None else None,
            game_history=[to_json_data(game) for game in history],
        )

    def to_json_data(self) -> dict[str, Any]:
        # currentGame is written even when null so readers see an explicit empty slot.
        return self.model_dump(mode="json", by_alias=True)
