"""
Score calculation for a Pinochle score sheet.

Per-round points follow the bid/meld/trick rules with the moon shot
override. Cumulative team scores are memoized per (game, team, round count):
rounds are append-only and immutable, so a game's round count changes
whenever its score can change.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from pinochle.errors import GameError

if TYPE_CHECKING:
    from pinochle.models import Game, Round, Team

logger = logging.getLogger(__name__)

MOON_SHOT_POINTS = 1500

CacheKey = tuple[str, str, int]


def round_points(round_: Round, team_id: str) -> int:
    """
    Points team_id earns for a single round.

    Moon shot: the bidder scores +/-MOON_SHOT_POINTS, everyone else 0.
    Otherwise the bidder scores meld + tricks if that reaches the bid and
    loses the bid if not; other teams keep meld + tricks only when they
    took at least one trick.
    """
    is_bid_winner = round_.bid_winner == team_id

    if round_.moon_shot_attempted:
        if not is_bid_winner:
            return 0
        return MOON_SHOT_POINTS if round_.moon_shot_successful else -MOON_SHOT_POINTS

    tricks = round_.tricks_for(team_id)
    total = round_.meld_for(team_id) + tricks

    if is_bid_winner:
        return total if total >= round_.bid else -round_.bid
    return total if tricks > 0 else 0


class ScoreCache:
    """Thread-safe memo of cumulative team scores keyed by (game_id, team_id, round_count).

    Storing a score for a game drops that game's entries recorded at any
    other round count.
    """

    def __init__(self) -> None:
        self._scores: dict[CacheKey, int] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._scores)

    def __contains__(self, key: CacheKey) -> bool:
        with self._lock:
            return key in self._scores

    def get(self, key: CacheKey) -> int | None:
        with self._lock:
            return self._scores.get(key)

    def put(self, key: CacheKey, score: int) -> None:
        game_id, _team_id, round_count = key
        with self._lock:
            stale = [k for k in self._scores if k[0] == game_id and k[2] != round_count]
            for k in stale:
                del self._scores[k]
            self._scores[key] = score

    def invalidate_game(self, game_id: str) -> int:
        """Drop every entry for game_id. Returns the number of entries removed."""
        with self._lock:
            stale = [k for k in self._scores if k[0] == game_id]
            for k in stale:
                del self._scores[k]
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._scores.clear()


class ScoringEngine:
    """Computes team scores for games, memoizing totals in a ScoreCache."""

    def __init__(self, cache: ScoreCache | None = None) -> None:
        self.cache = cache if cache is not None else ScoreCache()

    def team_score(self, game: Game, team_id: str) -> int:
        if game.get_team(team_id) is None:
            raise GameError(f"Team '{team_id}' is not part of game '{game.id}'")

        key = (game.id, team_id, len(game.rounds))
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        score = sum(round_points(round_, team_id) for round_ in game.rounds)
        logger.debug("computed team score game_id=%s team_id=%s rounds=%d score=%d", *key, score)
        self.cache.put(key, score)
        return score

    def all_team_scores(self, game: Game) -> dict[str, int]:
        """Scores for every team, in team order."""
        return {team.id: self.team_score(game, team.id) for team in game.teams}

    def score_progression(self, game: Game) -> list[dict[str, int]]:
        """Cumulative scores after each round, for score history displays."""
        running = dict.fromkeys(game.team_ids, 0)
        progression: list[dict[str, int]] = []
        for round_ in game.rounds:
            for team_id in running:
                running[team_id] += round_points(round_, team_id)
            progression.append(dict(running))
        return progression

    def winner(self, game: Game) -> Team | None:
        """
        Team that reached the game's winning score, if any.

        When several teams reach it in the same round the highest score wins;
        ties go to the team listed first.
        """
        scores = self.all_team_scores(game)
        best: Team | None = None
        for team in game.teams:
            score = scores[team.id]
            if score < game.winning_score:
                continue
            if best is None or score > scores[best.id]:
                best = team
        return best

    def forget(self, game_id: str) -> None:
        """Drop cached scores for a game that was archived or deleted."""
        removed = self.cache.invalidate_game(game_id)
        if removed:
            logger.debug("dropped cached scores game_id=%s entries=%d", game_id, removed)
