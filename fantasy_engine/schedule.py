from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from .errors import InvalidInput
from .validation import (
    CHAMPIONSHIP,
    CHAMPIONSHIP_KNOCKOUT,
    KNOCKOUT,
    TournamentConfig,
    ValidationResult,
    is_power_of_two,
    knockout_rounds_for,
)

logger = logging.getLogger(__name__)

BYE = "BYE"


@dataclass
class Matchday:
    index: int
    phase: str
    label: str
    pairings: List[Tuple[str, str]] = field(default_factory=list)
    resting: Optional[str] = None

    def to_dict(self) -> Dict[str, object]:
        return {
            "index": self.index,
            "phase": self.phase,
            "label": self.label,
            "pairings": [list(pair) for pair in self.pairings],
            "resting": self.resting,
        }


@dataclass
class KnockoutRound:
    index: int
    label: str
    ties: List[Tuple[str, str]]
    legs: int

    def to_dict(self) -> Dict[str, object]:
        return {
            "index": self.index,
            "label": self.label,
            "ties": [list(tie) for tie in self.ties],
            "legs": self.legs,
        }


@dataclass
class LeaguePlan:
    config: TournamentConfig
    validation: ValidationResult
    matchdays: List[Matchday] = field(default_factory=list)
    knockout: List[KnockoutRound] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return self.validation.valid

    def to_dict(self) -> Dict[str, object]:
        return {
            "config": self.config.model_dump(),
            "validation": self.validation.to_dict(),
            "matchdays": [matchday.to_dict() for matchday in self.matchdays],
            "knockout": [round_.to_dict() for round_ in self.knockout],
        }


def _round_robin_pairs(participants: Sequence[str]) -> List[Tuple[List[Tuple[str, str]], Optional[str]]]:
    """Circle method: one participant stays fixed while the rest rotate."""
    teams = list(participants)
    if len(teams) % 2 != 0:
        teams.append(BYE)
    team_count = len(teams)
    if team_count <= 1:
        return []

    schedule: List[Tuple[List[Tuple[str, str]], Optional[str]]] = []
    for _ in range(team_count - 1):
        pairings: List[Tuple[str, str]] = []
        resting: Optional[str] = None
        for index in range(team_count // 2):
            home = teams[index]
            away = teams[team_count - 1 - index]
            if home == BYE:
                resting = away
            elif away == BYE:
                resting = home
            else:
                pairings.append((home, away))
        schedule.append((pairings, resting))
        teams = [teams[0], teams[-1], *teams[1:-1]]
    return schedule


def round_robin_matchdays(
    participants: Sequence[str],
    matchday_count: Optional[int] = None,
    start_index: int = 1,
) -> List[Matchday]:
    """Round-robin matchdays, cycling the base schedule and mirroring home/away on alternate cycles.

    With an odd number of participants exactly one rests on each matchday.
    ``matchday_count`` defaults to one full cycle.
    """
    base_schedule = _round_robin_pairs(participants)
    if not base_schedule:
        return []
    base_length = len(base_schedule)
    if matchday_count is None:
        matchday_count = base_length

    matchdays: List[Matchday] = []
    for offset in range(matchday_count):
        pairings, resting = base_schedule[offset % base_length]
        if (offset // base_length) % 2 == 1:
            pairings = [(away, home) for home, away in pairings]
        index = start_index + offset
        matchdays.append(
            Matchday(
                index=index,
                phase="group",
                label=f"Matchday {index}",
                pairings=list(pairings),
                resting=resting,
            )
        )
    return matchdays


def _seed_order(size: int) -> List[int]:
    order = [1]
    while len(order) < size:
        doubled = len(order) * 2
        order = [seed for top in order for seed in (top, doubled + 1 - top)]
    return order


def _round_label(remaining: int) -> str:
    if remaining == 2:
        return "Final"
    if remaining == 4:
        return "Semi-finals"
    if remaining == 8:
        return "Quarter-finals"
    return f"Round of {remaining}"


def knockout_rounds(
    players: int,
    knockout_type: Optional[str] = None,
    participants: Optional[Sequence[str]] = None,
) -> List[KnockoutRound]:
    """Bracket layout for a power-of-two field, seeded 1 v N, 2 v N-1 and so on."""
    if players < 2 or not is_power_of_two(players):
        raise InvalidInput(f"A knockout bracket needs a power of two players, got {players}.")
    names = list(participants) if participants is not None else [f"Seed {seed}" for seed in range(1, players + 1)]
    if len(names) != players:
        raise InvalidInput(f"Expected {players} participants, got {len(names)}.")

    legs = 2 if knockout_type == "double" else 1
    order = _seed_order(players)
    first_round = [(names[order[i] - 1], names[order[i + 1] - 1]) for i in range(0, players, 2)]

    rounds: List[KnockoutRound] = [KnockoutRound(index=1, label=_round_label(players), ties=first_round, legs=legs)]
    remaining = players // 2
    for round_index in range(2, knockout_rounds_for(players) + 1):
        previous = round_index - 1
        ties = [
            (f"Winner R{previous}M{match}", f"Winner R{previous}M{match + 1}")
            for match in range(1, remaining, 2)
        ]
        rounds.append(KnockoutRound(index=round_index, label=_round_label(remaining), ties=ties, legs=legs))
        remaining //= 2
    return rounds


def _knockout_matchdays(rounds: Sequence[KnockoutRound], start_index: int, phase: str) -> List[Matchday]:
    matchdays: List[Matchday] = []
    index = start_index
    for round_ in rounds:
        for leg in range(1, round_.legs + 1):
            ties = list(round_.ties) if leg == 1 else [(away, home) for home, away in round_.ties]
            label = round_.label if round_.legs == 1 else f"{round_.label} (leg {leg})"
            matchdays.append(Matchday(index=index, phase=phase, label=label, pairings=ties))
            index += 1
    return matchdays


def _playoff_rounds(legs: int) -> List[KnockoutRound]:
    return [
        KnockoutRound(
            index=1,
            label="Semi-finals",
            ties=[("Group 1st", "Group 4th"), ("Group 2nd", "Group 3rd")],
            legs=legs,
        ),
        KnockoutRound(
            index=2,
            label="Final",
            ties=[("Winner SF1", "Winner SF2")],
            legs=legs,
        ),
    ]


def plan_private_league(
    config: TournamentConfig,
    participants: Optional[Sequence[str]] = None,
) -> LeaguePlan:
    """Validate ``config`` and lay out its matchdays.

    An invalid configuration yields a plan carrying the failed validation and no matchdays.
    """
    validation = config.validate_config()
    plan = LeaguePlan(config=config, validation=validation)
    if not validation.valid:
        logger.debug("Not planning invalid league config: %s", validation.error)
        return plan

    names = list(participants) if participants is not None else [
        f"Player {number}" for number in range(1, config.player_count + 1)
    ]
    if len(names) != config.player_count:
        raise InvalidInput(f"Expected {config.player_count} participants, got {len(names)}.")
    if len(set(names)) != len(names):
        raise InvalidInput("Participant names must be unique.")

    if config.format == CHAMPIONSHIP:
        plan.matchdays = round_robin_matchdays(names, config.matchday_count)
    elif config.format == CHAMPIONSHIP_KNOCKOUT:
        group_days = config.matchday_count - (validation.playoff_days or 0)
        plan.matchdays = round_robin_matchdays(names, group_days)
        plan.knockout = _playoff_rounds(config.legs)
        plan.matchdays.extend(_knockout_matchdays(plan.knockout, group_days + 1, "playoff"))
    elif config.format == KNOCKOUT:
        plan.knockout = knockout_rounds(config.player_count, config.knockout_type, names)
        plan.matchdays = _knockout_matchdays(plan.knockout, 1, "knockout")

    logger.debug(
        "Planned %s league: %d players, %d matchdays",
        config.format,
        config.player_count,
        len(plan.matchdays),
    )
    return plan
