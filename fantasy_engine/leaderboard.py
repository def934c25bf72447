from __future__ import annotations

import logging
import math
from typing import Iterable, Mapping, Sequence

import pandas as pd

from .config import DEFAULT_FANTASY_CONFIG, FantasyConfig
from .errors import InvalidInput
from .models import GameWeekResult

logger = logging.getLogger(__name__)

LAST10_COLUMNS: Sequence[str] = (
    "rating",
    "impact",
    "consistency",
    "minutes_played",
    "total_possible_minutes",
)
LEADERBOARD_COLUMNS: Sequence[str] = ("rank", "user_id", "total_points", "bonus_applied")


def _numeric(df: pd.DataFrame, column: str) -> pd.Series:
    values = pd.to_numeric(df[column], errors="coerce").replace([math.inf, -math.inf], math.nan)
    return values.fillna(0.0)


def player_scores_frame(df: pd.DataFrame, config: FantasyConfig = DEFAULT_FANTASY_CONFIG) -> pd.DataFrame:
    """Return a copy of ``df`` with `PGS`, `PLAYTIME_RATIO` and `CATEGORY` columns.

    Column names are matched case-insensitively; missing values count as zero.
    """
    columns = {col.lower(): col for col in df.columns}
    missing = [stat for stat in LAST10_COLUMNS if stat not in columns]
    if missing:
        raise InvalidInput(
            "The stats frame is missing required columns for PGS: " + ", ".join(sorted(missing))
        )

    scored = df.copy()
    stats = {stat: _numeric(scored, columns[stat]) for stat in LAST10_COLUMNS}
    weights = config.pgs_weights
    base = stats["rating"] * weights.rating + stats["impact"] * weights.impact + stats["consistency"] * weights.consistency

    possible = stats["total_possible_minutes"]
    ratio = (stats["minutes_played"].clip(lower=0.0) / possible.where(possible > 0)).fillna(0.0).clip(upper=1.0)

    adjustment = pd.Series(config.playtime_floor, index=scored.index)
    # Walk from the lowest cutoff up so higher cutoffs overwrite.
    for cutoff, bonus in reversed(config.playtime_adjustments):
        adjustment = adjustment.mask(ratio >= cutoff, bonus)

    pgs = base + adjustment
    category = pd.Series(config.default_category, index=scored.index)
    for cutoff, label in reversed(config.category_thresholds):
        category = category.mask(pgs >= cutoff, label)

    scored["PGS"] = pgs
    scored["PLAYTIME_RATIO"] = ratio
    scored["CATEGORY"] = category
    return scored


def build_leaderboard(entries: Iterable[Mapping[str, object]]) -> pd.DataFrame:
    """Rank game-week totals, highest first; tied totals share the best rank.

    Each entry needs a `user_id` and a `total_points`; totals are rounded to one decimal.
    """
    frame = pd.DataFrame(list(entries))
    if frame.empty:
        return pd.DataFrame(columns=list(LEADERBOARD_COLUMNS))
    missing = [col for col in ("user_id", "total_points") if col not in frame.columns]
    if missing:
        raise InvalidInput("Leaderboard entries are missing: " + ", ".join(missing))

    if "bonus_applied" not in frame.columns:
        frame["bonus_applied"] = None
    frame["total_points"] = pd.to_numeric(frame["total_points"], errors="coerce").fillna(0.0).round(1)
    frame = frame.sort_values(["total_points", "user_id"], ascending=[False, True], kind="mergesort")
    frame["rank"] = frame["total_points"].rank(method="min", ascending=False).astype(int)
    extra = [col for col in frame.columns if col not in LEADERBOARD_COLUMNS]
    return frame[[*LEADERBOARD_COLUMNS, *extra]].reset_index(drop=True)


def leaderboard_from_results(results: Mapping[str, GameWeekResult]) -> pd.DataFrame:
    """Leaderboard for processed teams keyed by user id."""
    entries = [
        {
            "user_id": user_id,
            "total_points": result.team_total.final_score,
            "bonus_applied": result.team_total.bonus_applied,
            "booster_used": result.updated_team.booster_used,
        }
        for user_id, result in results.items()
    ]
    logger.debug("Building leaderboard for %d teams", len(entries))
    return build_leaderboard(entries)
