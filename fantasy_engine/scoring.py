from __future__ import annotations

import logging
import math
from datetime import date
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Union

from pydantic import BaseModel

from .config import CATEGORIES, DEFAULT_FANTASY_CONFIG, FantasyConfig
from .errors import InvalidInput
from .models import FantasyPlayer, PlayerLast10Stats, PlayerMatchStats, PlayerPoints, PlayerScore, TeamTotal, coerce_number

logger = logging.getLogger(__name__)

PointsValue = Union[float, int, PlayerPoints]


def playtime_ratio(stats: PlayerLast10Stats) -> float:
    if stats.total_possible_minutes <= 0:
        return 0.0
    ratio = max(stats.minutes_played, 0.0) / stats.total_possible_minutes
    return min(ratio, 1.0)


def compute_pgs(stats: Any, config: FantasyConfig = DEFAULT_FANTASY_CONFIG) -> PlayerScore:
    """Player Game Score from a last-ten-matches line, plus a playtime adjustment.

    Missing fields contribute nothing; the playtime adjustment is the first configured
    step whose ratio cutoff is reached, or ``playtime_floor`` if none is.
    """
    line = PlayerLast10Stats.from_record(stats)
    weights = config.pgs_weights
    base_pgs = line.rating * weights.rating + line.impact * weights.impact + line.consistency * weights.consistency

    ratio = playtime_ratio(line)
    adjustment = config.playtime_floor
    for cutoff, bonus in config.playtime_adjustments:
        if ratio >= cutoff:
            adjustment = bonus
            break

    pgs = base_pgs + adjustment
    return PlayerScore(pgs=pgs, playtime_ratio=ratio, category=player_category_from_pgs(pgs, config))


def player_category_from_pgs(pgs: float, config: FantasyConfig = DEFAULT_FANTASY_CONFIG) -> str:
    for cutoff, category in config.category_thresholds:
        if pgs >= cutoff:
            return category
    return config.default_category


def category_rank(category: str) -> int:
    """Position of ``category`` in the Wild < Key < Star ordering."""
    try:
        return CATEGORIES.index(category)
    except ValueError as exc:
        raise InvalidInput(f"Unknown player category '{category}'") from exc


def _appearance_minutes(appearance: Any) -> float:
    if isinstance(appearance, BaseModel):
        appearance = appearance.model_dump()
    if isinstance(appearance, Mapping):
        appearance = appearance.get("minutes_played")
    return max(coerce_number(appearance), 0.0)


def calculate_fatigue(recent_appearances: Iterable[Any], config: FantasyConfig = DEFAULT_FANTASY_CONFIG) -> float:
    """Workload fatigue in ``[0, 1]`` over the most recent appearances (oldest first).

    Each appearance contributes its minutes, capped at a full match, weighted by
    ``decay_rate ** age`` where the latest appearance has age 0. The sum is normalised
    by the weight of a window full of full matches, so fewer or shorter appearances
    always give equal or lower fatigue.
    """
    if isinstance(recent_appearances, (str, bytes, Mapping, BaseModel)) or not isinstance(recent_appearances, Iterable):
        raise InvalidInput(f"Recent appearances must be a sequence, got {type(recent_appearances).__name__}")

    workload = config.workload
    window: List[float] = [_appearance_minutes(item) for item in recent_appearances][-workload.window_size:]
    full_window = sum(workload.decay_rate ** age for age in range(workload.window_size))

    load = 0.0
    for age, minutes in enumerate(reversed(window)):
        load += (workload.decay_rate ** age) * min(minutes, workload.full_match_minutes) / workload.full_match_minutes
    fatigue = load / full_window
    return min(max(fatigue, 0.0), 1.0)


def next_fitness(
    current: float,
    category: str,
    played: bool,
    config: FantasyConfig = DEFAULT_FANTASY_CONFIG,
) -> float:
    """Fitness after a game week: resting recovers, Star and Key players tire when they play."""
    if not played:
        return min(1.0, max(current, 0.0) + config.fatigue.rest)

    reduction = 0.0
    if category == "Star":
        reduction = config.fatigue.star
    elif category == "Key":
        reduction = config.fatigue.key
    return min(max(current - reduction, 0.0), 1.0)


def compute_player_points(
    stats: Any,
    position: str,
    fitness: float = 1.0,
    is_captain: bool = False,
    double_impact: bool = False,
    config: FantasyConfig = DEFAULT_FANTASY_CONFIG,
) -> PlayerPoints:
    """Game-week points for one player, with a labelled breakdown of every contribution."""
    if position not in config.rating_multipliers:
        raise InvalidInput(f"Unknown player position '{position}'")
    line = PlayerMatchStats.from_record(stats)
    table = config.scoring_table
    breakdown = {}
    base_points = 0.0

    completed_match = line.minutes_played > config.appearance_minutes
    if completed_match:
        points = table.get("minutes_played", {}).get(position, 0.0)
        base_points += points
        breakdown[f"Minutes > {config.appearance_minutes:g}"] = points

    if line.clean_sheet and completed_match:
        points = table.get("clean_sheet", {}).get(position, 0.0)
        base_points += points
        if points:
            breakdown["Clean Sheet"] = points

    for action, value in line.actions().items():
        if value <= 0:
            continue
        per_action = table.get(action, {}).get(position, 0.0)
        if per_action:
            action_points = per_action * value
            base_points += action_points
            breakdown[action.replace("_", " ")] = action_points

    rating_points = base_points * (config.rating_multipliers[position] - 1)
    base_points += rating_points
    if rating_points:
        breakdown["Rating Bonus"] = rating_points

    final_points = base_points
    fitness_effect = final_points * (fitness - 1)
    final_points += fitness_effect
    if fitness_effect:
        breakdown["Fatigue Effect"] = fitness_effect

    if is_captain:
        captain_bonus = final_points * (config.captain_passive - 1)
        final_points += captain_bonus
        if captain_bonus:
            breakdown["Captain Bonus"] = captain_bonus

        if double_impact:
            # Captain passive is already in; scale the rest of the way to the booster total.
            remaining = config.boosters.double_impact / config.captain_passive
            double_bonus = final_points * (remaining - 1)
            final_points += double_bonus
            if double_bonus:
                breakdown["Double Impact"] = double_bonus

    return PlayerPoints(total_points=final_points, base_points=base_points, breakdown=breakdown)


def _percent_label(multiplier: float) -> str:
    return f"+{round((multiplier - 1) * 100):g}%"


def _points_value(value: PointsValue) -> float:
    if isinstance(value, PlayerPoints):
        return value.total_points
    return coerce_number(value)


def compute_team_total(
    players: Sequence[FantasyPlayer],
    player_points: Mapping[str, PointsValue],
    golden_game: bool = False,
    on_date: Optional[date] = None,
    config: FantasyConfig = DEFAULT_FANTASY_CONFIG,
) -> TeamTotal:
    """Sum player points and apply the best team bonus, then the golden game booster.

    ``raw_total`` is the plain sum of ``player_points`` and does not depend on order.
    Team bonuses are exclusive; only the highest applicable multiplier is used.
    """
    if not isinstance(player_points, Mapping):
        raise InvalidInput(f"Player points must be keyed by player id, got {type(player_points).__name__}")
    raw_total = math.fsum(_points_value(points) for points in player_points.values())
    if not players:
        return TeamTotal(raw_total=raw_total, final_score=raw_total)

    bonuses = config.bonuses
    best_multiplier = 1.0
    bonus_applied: Optional[str] = None

    if all(player.status != "Star" for player in players):
        best_multiplier = max(best_multiplier, bonuses.no_star)
        bonus_applied = f"No Star Bonus ({_percent_label(bonuses.no_star)})"

    if all(player.status == "Wild" for player in players) and bonuses.crazy > best_multiplier:
        best_multiplier = bonuses.crazy
        bonus_applied = f"Crazy Boost ({_percent_label(bonuses.crazy)})"

    on_date = on_date or date.today()
    ages = [age for age in (player.age_on(on_date) for player in players) if age is not None]
    if ages and sum(ages) / len(ages) >= bonuses.vintage_age and bonuses.vintage > best_multiplier:
        best_multiplier = bonuses.vintage
        bonus_applied = f"Vintage Boost ({_percent_label(bonuses.vintage)})"

    final_score = raw_total * best_multiplier

    if golden_game:
        final_score *= config.boosters.golden_game
        golden_label = f"Golden Game ({_percent_label(config.boosters.golden_game)})"
        bonus_applied = f"{bonus_applied} & {golden_label}" if bonus_applied else golden_label

    logger.debug("Team total %.2f -> %.2f (%s)", raw_total, final_score, bonus_applied or "no bonus")
    return TeamTotal(raw_total=raw_total, final_score=final_score, bonus_applied=bonus_applied)
