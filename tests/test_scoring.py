"""
Tests for the fantasy scoring engine.

Run with: python -m pytest tests/test_scoring.py -v
"""

import itertools
import random
from datetime import date

import pytest

from fantasy_engine.config import merge_config_overrides
from fantasy_engine.errors import InvalidInput
from fantasy_engine.models import FantasyPlayer, PlayerMatchStats
from fantasy_engine.scoring import (
    calculate_fatigue,
    category_rank,
    compute_pgs,
    compute_player_points,
    compute_team_total,
    next_fitness,
    player_category_from_pgs,
)

ON_DATE = date(2025, 6, 1)


@pytest.fixture
def attacker_line():
    return {"minutes_played": 90, "goals": 1, "assists": 1}


@pytest.fixture
def squad():
    return [
        FantasyPlayer(id="p1", name="Forward", position="Attacker", status="Star"),
        FantasyPlayer(id="p2", name="Back", position="Defender", status="Key"),
        FantasyPlayer(id="p3", name="Mid", position="Midfielder", status="Wild"),
    ]


class TestComputePGS:
    def test_full_playtime(self):
        score = compute_pgs(
            {"rating": 8, "impact": 7, "consistency": 6, "minutes_played": 900, "total_possible_minutes": 900}
        )

        assert score.pgs == pytest.approx(7.6)
        assert score.playtime_ratio == pytest.approx(1.0)
        assert score.category == "Star"

    @pytest.mark.parametrize(
        "minutes, adjustment",
        [(900, 0.3), (810, 0.3), (809, 0.15), (450, 0.15), (449, 0.05), (0, 0.05)],
    )
    def test_playtime_adjustment_steps(self, minutes, adjustment):
        score = compute_pgs({"minutes_played": minutes, "total_possible_minutes": 900})

        assert score.pgs == pytest.approx(adjustment)

    def test_no_possible_minutes_means_zero_ratio(self):
        score = compute_pgs({"rating": 6, "minutes_played": 300, "total_possible_minutes": 0})

        assert score.playtime_ratio == 0.0
        assert score.pgs == pytest.approx(3.05)

    def test_missing_and_garbage_fields_count_as_zero(self):
        score = compute_pgs({"rating": None, "impact": "n/a", "consistency": float("nan")})

        assert score.pgs == pytest.approx(0.05)
        assert score.category == "Wild"

    def test_none_stats_are_neutral(self):
        assert compute_pgs(None).pgs == pytest.approx(0.05)

    def test_malformed_shape_raises(self):
        with pytest.raises(InvalidInput):
            compute_pgs([8, 7, 6])

    def test_weights_are_injectable(self):
        config = merge_config_overrides({"pgs_weights": {"rating": 1.0, "impact": 0.0, "consistency": 0.0}})

        score = compute_pgs({"rating": 7, "impact": 10, "consistency": 10}, config)

        assert score.pgs == pytest.approx(7.05)


class TestPlayerCategory:
    @pytest.mark.parametrize(
        "pgs, category",
        [(9.0, "Star"), (7.5, "Star"), (7.49, "Key"), (6.0, "Key"), (5.99, "Wild"), (-1.0, "Wild")],
    )
    def test_default_thresholds(self, pgs, category):
        assert player_category_from_pgs(pgs) == category

    def test_step_function_within_bands(self):
        bands = [(-5.0, 5.99), (6.0, 7.49), (7.5, 12.0)]
        rng = random.Random(7)
        for low, high in bands:
            values = [rng.uniform(low, high) for _ in range(50)]
            assert len({player_category_from_pgs(value) for value in values}) == 1

    def test_monotonic(self):
        values = [x / 10 for x in range(0, 120)]
        ranks = [category_rank(player_category_from_pgs(value)) for value in values]

        assert ranks == sorted(ranks)

    def test_thresholds_are_injectable(self):
        config = merge_config_overrides({"category_thresholds": [[9.0, "Star"], [4.0, "Key"]]})

        assert player_category_from_pgs(8.0, config) == "Key"
        assert player_category_from_pgs(9.0, config) == "Star"
        assert player_category_from_pgs(3.9, config) == "Wild"


class TestCalculateFatigue:
    def test_no_appearances(self):
        assert calculate_fatigue([]) == 0.0

    def test_full_window_of_full_matches(self):
        assert calculate_fatigue([90] * 5) == pytest.approx(1.0)

    def test_bounded(self):
        assert calculate_fatigue([120] * 12) == pytest.approx(1.0)
        assert calculate_fatigue([-30, -30]) == 0.0

    def test_only_window_counts(self):
        assert calculate_fatigue([90, 0, 0, 0, 0, 0]) == 0.0

    def test_recent_minutes_weigh_more(self):
        assert calculate_fatigue([0, 0, 0, 0, 90]) > calculate_fatigue([90, 0, 0, 0, 0])

    def test_monotonic_in_minutes(self):
        rng = random.Random(11)
        for _ in range(200):
            window = [rng.uniform(0, 90) for _ in range(5)]
            slot = rng.randrange(5)
            heavier = list(window)
            heavier[slot] += rng.uniform(0, 30)
            assert calculate_fatigue(heavier) >= calculate_fatigue(window)

    def test_accepts_stat_lines(self):
        lines = [PlayerMatchStats(minutes_played=90), {"minutes_played": 45}, {}]

        assert calculate_fatigue(lines) == pytest.approx(calculate_fatigue([90, 45, 0]))

    def test_window_is_injectable(self):
        config = merge_config_overrides({"workload": {"window_size": 1}})

        assert calculate_fatigue([0, 0, 45], config) == pytest.approx(0.5)

    def test_rejects_non_sequence(self):
        with pytest.raises(InvalidInput):
            calculate_fatigue(90)

    def test_rejects_single_stat_line(self):
        with pytest.raises(InvalidInput):
            calculate_fatigue({"minutes_played": 90})
        with pytest.raises(InvalidInput):
            calculate_fatigue(PlayerMatchStats(minutes_played=90))


class TestNextFitness:
    @pytest.mark.parametrize(
        "current, category, played, expected",
        [
            (1.0, "Star", True, 0.8),
            (1.0, "Key", True, 0.9),
            (1.0, "Wild", True, 1.0),
            (0.1, "Star", True, 0.0),
            (0.5, "Star", False, 0.6),
            (0.95, "Key", False, 1.0),
        ],
    )
    def test_transitions(self, current, category, played, expected):
        assert next_fitness(current, category, played) == pytest.approx(expected)


class TestComputePlayerPoints:
    def test_attacker_goal_and_assist(self, attacker_line):
        points = compute_player_points(attacker_line, "Attacker")

        assert points.base_points == pytest.approx(7.7)
        assert points.total_points == pytest.approx(7.7)
        assert points.breakdown["Minutes > 60"] == 1
        assert points.breakdown["goals"] == 4
        assert points.breakdown["assists"] == 2
        assert points.breakdown["Rating Bonus"] == pytest.approx(0.7)

    def test_defender_clean_sheet_with_fitness(self):
        points = compute_player_points({"minutes_played": 90, "clean_sheet": True}, "Defender", fitness=0.8)

        assert points.base_points == pytest.approx(6.5)
        assert points.total_points == pytest.approx(5.2)
        assert points.breakdown["Fatigue Effect"] == pytest.approx(-1.3)

    def test_clean_sheet_needs_more_than_sixty_minutes(self):
        points = compute_player_points({"minutes_played": 60, "clean_sheet": True}, "Defender")

        assert points.total_points == 0.0
        assert points.breakdown == {}

    def test_goalkeeper_saves_and_conceded(self):
        points = compute_player_points({"minutes_played": 90, "saves": 6, "goals_conceded": 2}, "Goalkeeper")

        assert points.total_points == pytest.approx(1.5)

    def test_captain_and_double_impact(self, attacker_line):
        captain = compute_player_points(attacker_line, "Attacker", is_captain=True)
        doubled = compute_player_points(attacker_line, "Attacker", is_captain=True, double_impact=True)

        assert captain.total_points == pytest.approx(7.7 * 1.1)
        assert doubled.total_points == pytest.approx(7.7 * 2.2)
        assert "Double Impact" in doubled.breakdown

    def test_double_impact_ignored_for_non_captain(self, attacker_line):
        points = compute_player_points(attacker_line, "Attacker", double_impact=True)

        assert points.total_points == pytest.approx(7.7)

    def test_negative_actions_ignored(self):
        points = compute_player_points({"minutes_played": 90, "goals": -3}, "Attacker")

        assert points.total_points == pytest.approx(1.1)

    def test_cards_cost_points(self):
        points = compute_player_points({"minutes_played": 30, "yellow_cards": 1, "red_cards": 1}, "Midfielder")

        assert points.total_points == pytest.approx(-4 * 1.2)

    def test_empty_line_scores_zero(self):
        assert compute_player_points({}, "Midfielder").total_points == 0.0

    def test_unknown_position_raises(self, attacker_line):
        with pytest.raises(InvalidInput):
            compute_player_points(attacker_line, "Striker")

    def test_malformed_stats_raise(self):
        with pytest.raises(InvalidInput):
            compute_player_points(42, "Attacker")


class TestComputeTeamTotal:
    def test_raw_total_is_order_independent(self, squad):
        lines = {
            "p1": ({"minutes_played": 90, "goals": 2, "shots_on_target": 3}, "Attacker"),
            "p2": ({"minutes_played": 75, "tackles": 4, "interceptions": 3, "yellow_cards": 1}, "Defender"),
            "p3": ({"minutes_played": 64, "assists": 1, "duels_won": 7, "duels_lost": 3}, "Midfielder"),
        }
        points = {pid: compute_player_points(stats, position).total_points for pid, (stats, position) in lines.items()}
        expected = sum(points.values())

        for order in itertools.permutations(points):
            shuffled = {pid: points[pid] for pid in order}
            total = compute_team_total(squad, shuffled, on_date=ON_DATE)
            assert total.raw_total == pytest.approx(expected)
            assert total.final_score == pytest.approx(expected)

    def test_star_in_lineup_gets_no_bonus(self, squad):
        total = compute_team_total(squad, {"p1": 10, "p2": 5}, on_date=ON_DATE)

        assert total.bonus_applied is None
        assert total.final_score == pytest.approx(15)

    def test_no_star_bonus(self, squad):
        players = squad[1:]

        total = compute_team_total(players, {"p2": 10, "p3": 10}, on_date=ON_DATE)

        assert total.final_score == pytest.approx(25)
        assert total.bonus_applied == "No Star Bonus (+25%)"

    def test_crazy_beats_no_star(self):
        players = [FantasyPlayer(id=str(i), position="Midfielder", status="Wild") for i in range(3)]

        total = compute_team_total(players, {"0": 10}, on_date=ON_DATE)

        assert total.final_score == pytest.approx(14)
        assert total.bonus_applied == "Crazy Boost (+40%)"

    def test_vintage_bonus(self):
        players = [
            FantasyPlayer(id="a", position="Defender", status="Star", birthdate=date(1990, 1, 1)),
            FantasyPlayer(id="b", position="Attacker", status="Key", birthdate=date(1994, 7, 1)),
        ]

        total = compute_team_total(players, {"a": 10, "b": 10}, on_date=ON_DATE)

        assert total.final_score == pytest.approx(24)
        assert total.bonus_applied == "Vintage Boost (+20%)"

    def test_golden_game_stacks(self, squad):
        total = compute_team_total(squad[1:], {"p2": 10}, golden_game=True, on_date=ON_DATE)

        assert total.final_score == pytest.approx(10 * 1.25 * 1.2)
        assert total.bonus_applied == "No Star Bonus (+25%) & Golden Game (+20%)"

    def test_golden_game_alone(self, squad):
        total = compute_team_total(squad, {"p1": 10}, golden_game=True, on_date=ON_DATE)

        assert total.bonus_applied == "Golden Game (+20%)"

    def test_empty_roster(self):
        total = compute_team_total([], {}, on_date=ON_DATE)

        assert total.final_score == 0.0
        assert total.bonus_applied is None

    def test_rejects_points_list(self, squad):
        with pytest.raises(InvalidInput):
            compute_team_total(squad, [1.0, 2.0])
