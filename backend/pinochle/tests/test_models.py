import pytest
from pydantic import ValidationError

from pinochle.models import Backup, Game, Round, to_json_data
from pinochle.tests.helpers import TEAM_A, TEAM_B, make_game, make_round


class TestRound:
    def test_parses_camel_case_keys(self):
        round_ = Round.model_validate(
            {
                "id": "r1",
                "bidWinner": TEAM_A,
                "bid": 300,
                "meld": {TEAM_A: 120},
                "trickPoints": {TEAM_A: 180, TEAM_B: 70},
            },
        )

        assert round_.bid_winner == TEAM_A
        assert round_.tricks_for(TEAM_B) == 70
        assert round_.meld_for(TEAM_B) == 0
        assert round_.moon_shot_attempted is False

    def test_moon_shot_result_ignored_without_attempt(self):
        round_ = Round.model_validate(
            {"id": "r1", "bidWinner": TEAM_A, "bid": 250, "meld": {}, "trickPoints": {}, "moonShotSuccessful": True},
        )

        assert round_.moon_shot_successful is None

    def test_rejects_negative_points(self):
        with pytest.raises(ValidationError, match="meld"):
            make_round(meld={TEAM_A: -10})

    def test_is_frozen(self):
        round_ = make_round()

        with pytest.raises(ValidationError):
            round_.bid = 400


class TestGame:
    def test_card_image_index_range(self):
        with pytest.raises(ValidationError, match="card_image_index|cardImageIndex"):
            make_game(card_image_index=24)

    def test_with_round_leaves_original_unchanged(self):
        game = make_game()

        longer = game.with_round(make_round("r1"))

        assert game.rounds == []
        assert [r.id for r in longer.rounds] == ["r1"]

    def test_json_data_uses_camel_case_and_drops_nulls(self):
        data = to_json_data(make_game(rounds=[make_round("r1", timestamp=None)]))

        assert data["cardImageIndex"] == 0
        assert data["winningScore"] == 1500
        assert "bidWinner" in data["rounds"][0]
        assert "timestamp" not in data["rounds"][0]
        assert "moonShotSuccessful" not in data["rounds"][0]

    def test_json_data_parses_back(self):
        game = make_game(rounds=[make_round("r1", moon_shot=True)])

        assert Game.model_validate(to_json_data(game)) == game


class TestBackup:
    def test_capture_keeps_null_current_game(self):
        backup = Backup.capture(None, [make_game()], version=1)

        data = backup.to_json_data()

        assert data["currentGame"] is None
        assert data["gameHistory"][0]["id"] == "game-1"
        assert data["version"] == 1

    def test_missing_version_defaults_to_zero(self):
        assert Backup.model_validate({"timestamp": 1, "gameHistory": []}).version == 0
