"""Score sheet orchestration: start games, record rounds, archive finished games."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING

import structlog

from pinochle.errors import GameError
from pinochle.migration import CURRENT_SCHEMA_VERSION, pick_card_image_index
from pinochle.models import (
    DEFAULT_WINNING_SCORE,
    TRICK_POINTS_PER_ROUND,
    Game,
    GameSettings,
    Round,
    RoundData,
    Team,
    timestamp_ms,
)
from pinochle.scoring import ScoringEngine

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from pinochle.backup import BackupController
    from pinochle.store import GameStore

logger = structlog.get_logger()

MIN_TEAMS = 2


@dataclass(frozen=True)
class RoundOutcome:
    """Result of recording a round."""

    game: Game
    scores: dict[str, int]
    winner: Team | None = None

    @property
    def game_over(self) -> bool:
        return self.winner is not None


def _check_round_data(game: Game, data: RoundData) -> None:
    if game.get_team(data.bid_winner) is None:
        raise GameError(f"Bid winner '{data.bid_winner}' is not a team of this game")

    unknown = (set(data.meld) | set(data.trick_points)) - set(game.team_ids)
    if unknown:
        raise GameError(f"Round references unknown teams: {', '.join(sorted(unknown))}")

    if data.moon_shot_attempted:
        if data.moon_shot_successful is None:
            raise GameError("A moon shot round must say whether the moon shot succeeded")
        return

    tricks_total = sum(data.trick_points.values())
    if tricks_total != TRICK_POINTS_PER_ROUND:
        raise GameError(f"Trick points must total {TRICK_POINTS_PER_ROUND}, got {tricks_total}")


def _build_round(game: Game, data: RoundData) -> Round:
    """Create the round to append, filling a meld and trick entry for every team."""
    if data.moon_shot_attempted:
        meld = dict(data.meld)
        trick_points = dict(data.trick_points)
    else:
        meld = {team_id: data.meld.get(team_id, 0) for team_id in game.team_ids}
        trick_points = {team_id: data.trick_points.get(team_id, 0) for team_id in game.team_ids}
    return Round(
        id=f"round-{uuid.uuid4()}",
        timestamp=timestamp_ms(),
        bid_winner=data.bid_winner,
        bid=data.bid,
        meld=meld,
        trick_points=trick_points,
        moon_shot_attempted=data.moon_shot_attempted,
        moon_shot_successful=data.moon_shot_successful if data.moon_shot_attempted else None,
    )


class ScoreSheetService:
    """Keeps the in-progress game in memory and mirrors every change to the store.

    A backup is taken after each change as a best-effort safety net; backup
    failures never fail the change itself.
    """

    def __init__(
        self,
        store: GameStore,
        scoring: ScoringEngine | None = None,
        backups: BackupController | None = None,
        *,
        winning_score: int = DEFAULT_WINNING_SCORE,
    ) -> None:
        self._store = store
        self._scoring = scoring if scoring is not None else ScoringEngine()
        self._backups = backups
        self._winning_score = winning_score
        self._current: Game | None = None

    @property
    def current_game(self) -> Game | None:
        return self._current

    @property
    def scoring(self) -> ScoringEngine:
        return self._scoring

    async def load(self) -> Game | None:
        self._current = await self._store.get_current_game()
        return self._current

    async def start_new_game(self, team_names: Sequence[str], winning_score: int | None = None) -> Game:
        names = [name.strip() for name in team_names]
        if len(names) < MIN_TEAMS:
            raise GameError(f"A game needs at least {MIN_TEAMS} teams")
        if any(not name for name in names):
            raise GameError("Team names must not be blank")

        game_id = f"game-{uuid.uuid4()}"
        game = Game(
            id=game_id,
            timestamp=timestamp_ms(),
            teams=[Team(id=f"team-{index}", name=name) for index, name in enumerate(names, start=1)],
            rounds=[],
            card_image_index=pick_card_image_index(game_id),
            winning_score=winning_score or self._winning_score,
            version=CURRENT_SCHEMA_VERSION,
        )
        await self._store.save_current_game(game)
        await self._store.save_game_settings(GameSettings(team_names=names))
        self._current = game
        logger.info("started new game", game_id=game.id, teams=names, winning_score=game.winning_score)
        await self._take_backup()
        return game

    async def add_round(self, data: RoundData) -> RoundOutcome:
        """Append a round to the current game and archive the game if someone won."""
        game = self._require_current()
        _check_round_data(game, data)

        updated = game.with_round(_build_round(game, data))
        scores = self._scoring.all_team_scores(updated)
        winner = self._scoring.winner(updated)

        if winner is None:
            await self._store.save_current_game(updated)
            self._current = updated
            logger.info("recorded round", game_id=updated.id, round_number=len(updated.rounds), scores=scores)
        else:
            logger.info("game won", game_id=updated.id, winner=winner.id, scores=scores)
            await self._archive(updated)

        await self._take_backup()
        return RoundOutcome(game=updated, scores=scores, winner=winner)

    async def end_game(self, game: Game | None = None) -> None:
        """Move the given (or current) game into history and clear the current slot."""
        target = game if game is not None else self._current
        if target is None:
            return
        await self._archive(target)
        await self._take_backup()

    async def delete_games(self, game_ids: Iterable[str]) -> int:
        ids = list(game_ids)
        removed = await self._store.delete_games_from_history(ids)
        for game_id in ids:
            self._scoring.forget(game_id)
        if removed:
            await self._take_backup()
        return removed

    async def history(self) -> list[Game]:
        return await self._store.get_game_history()

    async def last_team_names(self) -> list[str]:
        settings = await self._store.get_game_settings()
        return list(settings.team_names) if settings is not None else []

    def _require_current(self) -> Game:
        if self._current is None:
            raise GameError("No game in progress")
        return self._current

    async def _archive(self, game: Game) -> None:
        await self._store.add_game_to_history(game)
        await self._store.save_current_game(None)
        self._current = None
        self._scoring.forget(game.id)

    async def _take_backup(self) -> None:
        if self._backups is not None:
            await self._backups.backup()
