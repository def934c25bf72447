from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .config import DEFAULT_FANTASY_CONFIG, FantasyConfig
from .errors import InvalidInput
from .models import (
    BOOSTER_NAMES,
    DOUBLE_IMPACT,
    GOLDEN_GAME,
    RECOVERY_BOOST,
    FantasyPlayer,
    GameWeekResult,
    PlayerGameWeekResult,
    PlayerMatchStats,
    UserFantasyTeam,
)
from .scoring import compute_pgs, compute_player_points, compute_team_total, next_fitness

logger = logging.getLogger(__name__)


def update_all_player_statuses(
    players: Sequence[FantasyPlayer],
    stats_by_id: Mapping[str, Any],
    config: FantasyConfig = DEFAULT_FANTASY_CONFIG,
) -> List[FantasyPlayer]:
    """Refresh PGS, playtime ratio and category ahead of a game week.

    Players without a stats line are returned as they are.
    """
    updated: List[FantasyPlayer] = []
    for player in players:
        stats = stats_by_id.get(player.id)
        if stats is None:
            updated.append(player)
            continue
        score = compute_pgs(stats, config)
        updated.append(
            player.model_copy(
                update={
                    "pgs": round(score.pgs, 2),
                    "playtime_ratio": round(score.playtime_ratio, 2),
                    "status": score.category,
                }
            )
        )
    return updated


def _player_lookup(players: Sequence[FantasyPlayer]) -> Dict[str, FantasyPlayer]:
    return {player.id: player for player in players}


def _apply_recovery_boost(
    team: UserFantasyTeam,
    lookup: Mapping[str, FantasyPlayer],
    stats_by_id: Mapping[str, PlayerMatchStats],
    fitness_state: Dict[str, float],
) -> Tuple[Optional[str], bool]:
    target_id = team.booster_target_id
    if not target_id:
        return "Recovery Boost ignored: No target player selected.", False

    player = lookup.get(target_id)
    if player is None or player.position == "Goalkeeper":
        return "Recovery Boost ignored: Target is a Goalkeeper or invalid.", False

    stats = stats_by_id.get(target_id)
    if stats is not None and stats.played:
        fitness_state[target_id] = 1.0
        logger.info("Applied Recovery Boost to player %s", target_id)
        return f"Recovery Boost applied to {player.name or player.id}.", False

    logger.info("Refunding Recovery Boost for team %s: player %s did not play", team.user_id, target_id)
    team.booster_used = None
    team.booster_target_id = None
    return f"Recovery Boost refunded: {player.name or player.id} did not play.", True


def _initial_fitness(fitness_state: Mapping[str, float], player: FantasyPlayer) -> float:
    value = fitness_state.get(player.id)
    if value is None:
        return player.fitness
    return value


def process_game_week(
    team: UserFantasyTeam,
    players: Sequence[FantasyPlayer],
    stats_by_id: Mapping[str, Any],
    config: FantasyConfig = DEFAULT_FANTASY_CONFIG,
    on_date: Optional[date] = None,
) -> GameWeekResult:
    """Score one user's team for a game week and roll its fitness state forward.

    The input team is left untouched; the returned result carries an updated copy.
    """
    booster = team.booster_used
    if booster is not None and booster not in BOOSTER_NAMES:
        raise InvalidInput(f"Unknown booster id {booster}")

    working = team.model_copy(deep=True)
    lookup = _player_lookup(players)
    # Only lines for this team's starters and booster target are read.
    relevant = set(working.starters)
    if working.booster_target_id is not None:
        relevant.add(working.booster_target_id)
    lines = {
        player_id: PlayerMatchStats.from_record(stats_by_id[player_id])
        for player_id in relevant
        if stats_by_id.get(player_id) is not None
    }
    fitness_state: Dict[str, float] = dict(working.fitness_state)

    booster_status: Optional[str] = None
    booster_refunded = False
    if booster == RECOVERY_BOOST:
        booster_status, booster_refunded = _apply_recovery_boost(working, lookup, lines, fitness_state)

    double_impact = working.booster_used == DOUBLE_IMPACT
    player_results: Dict[str, PlayerGameWeekResult] = {}
    player_points: Dict[str, float] = {}

    for player_id in working.starters:
        player = lookup.get(player_id)
        if player is None:
            logger.warning("Starter %s is not in the player pool, skipping", player_id)
            continue
        initial = _initial_fitness(fitness_state, player)
        stats = lines.get(player_id)
        if stats is None:
            final = next_fitness(initial, player.status, False, config)
            fitness_state[player_id] = final
            player_results[player_id] = PlayerGameWeekResult(
                points=0.0,
                base_points=0.0,
                initial_fitness=initial,
                final_fitness=final,
            )
            continue

        points = compute_player_points(
            stats,
            player.position,
            fitness=initial,
            is_captain=player_id == working.captain_id,
            double_impact=double_impact,
            config=config,
        )
        player_points[player_id] = points.total_points
        final = next_fitness(initial, player.status, stats.played, config)
        fitness_state[player_id] = final
        player_results[player_id] = PlayerGameWeekResult(
            points=points.total_points,
            base_points=points.base_points,
            initial_fitness=initial,
            final_fitness=final,
            breakdown=points.breakdown,
        )

    for player_id in working.substitutes:
        player = lookup.get(player_id)
        if player is None:
            continue
        initial = _initial_fitness(fitness_state, player)
        final = next_fitness(initial, player.status, False, config)
        fitness_state[player_id] = final
        player_results[player_id] = PlayerGameWeekResult(
            points=0.0,
            base_points=0.0,
            initial_fitness=initial,
            final_fitness=final,
        )

    starters = [lookup[player_id] for player_id in working.starters if player_id in lookup]
    team_total = compute_team_total(
        starters,
        player_points,
        golden_game=working.booster_used == GOLDEN_GAME,
        on_date=on_date,
        config=config,
    )
    working.fitness_state = fitness_state

    logger.info(
        "Processed game week for team %s: %.1f points (%s)",
        working.user_id or "<anonymous>",
        team_total.final_score,
        team_total.bonus_applied or "no bonus",
    )
    return GameWeekResult(
        player_results=player_results,
        team_total=team_total,
        updated_team=working,
        booster_status=booster_status,
        booster_refunded=booster_refunded,
    )
