"""
Tests for leaderboard building and vectorised PGS frames.

Run with: python -m pytest tests/test_leaderboard.py -v
"""

import pandas as pd
import pytest

from fantasy_engine.errors import InvalidInput
from fantasy_engine.gameweek import process_game_week
from fantasy_engine.leaderboard import build_leaderboard, leaderboard_from_results, player_scores_frame
from fantasy_engine.models import FantasyPlayer, UserFantasyTeam
from fantasy_engine.scoring import compute_pgs


class TestBuildLeaderboard:
    def test_ranks_highest_first_with_ties(self):
        board = build_leaderboard(
            [
                {"user_id": "a", "total_points": 10.04},
                {"user_id": "b", "total_points": 12.36},
                {"user_id": "c", "total_points": 10.0},
            ]
        )

        assert board["user_id"].tolist() == ["b", "a", "c"]
        assert board["total_points"].tolist() == [12.4, 10.0, 10.0]
        assert board["rank"].tolist() == [1, 2, 2]

    def test_empty(self):
        board = build_leaderboard([])

        assert board.empty
        assert list(board.columns) == ["rank", "user_id", "total_points", "bonus_applied"]

    def test_missing_columns(self):
        with pytest.raises(InvalidInput):
            build_leaderboard([{"user_id": "a"}])

    def test_from_processed_results(self):
        players = [FantasyPlayer(id="p1", position="Attacker", status="Star")]
        stats = {"p1": {"minutes_played": 90, "goals": 2}}
        results = {
            user: process_game_week(UserFantasyTeam(user_id=user, starters=["p1"], captain_id=captain), players, stats)
            for user, captain in (("u1", None), ("u2", "p1"))
        }

        board = leaderboard_from_results(results)

        assert board["user_id"].tolist() == ["u2", "u1"]
        assert "booster_used" in board.columns


class TestPlayerScoresFrame:
    def test_matches_record_scoring(self):
        rows = [
            {"rating": 8, "impact": 7, "consistency": 6, "minutes_played": 900, "total_possible_minutes": 900},
            {"rating": 6.5, "impact": 6, "consistency": 5, "minutes_played": 500, "total_possible_minutes": 900},
            {"rating": 4, "impact": 3, "consistency": 2, "minutes_played": 100, "total_possible_minutes": 0},
        ]

        scored = player_scores_frame(pd.DataFrame(rows))

        for row, (_, out) in zip(rows, scored.iterrows()):
            expected = compute_pgs(row)
            assert out["PGS"] == pytest.approx(expected.pgs)
            assert out["PLAYTIME_RATIO"] == pytest.approx(expected.playtime_ratio)
            assert out["CATEGORY"] == expected.category

    def test_case_insensitive_columns_and_missing_values(self):
        df = pd.DataFrame(
            {
                "RATING": [None],
                "IMPACT": [5.0],
                "CONSISTENCY": [5.0],
                "MINUTES_PLAYED": [0],
                "TOTAL_POSSIBLE_MINUTES": [900],
            }
        )

        scored = player_scores_frame(df)

        assert scored.loc[0, "PGS"] == pytest.approx(2.55)
        assert scored.loc[0, "CATEGORY"] == "Wild"

    def test_missing_columns_listed(self):
        with pytest.raises(InvalidInput, match="consistency"):
            player_scores_frame(pd.DataFrame({"rating": [1.0], "impact": [1.0]}))
