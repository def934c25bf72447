from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Literal, Mapping, Optional

from pydantic import BaseModel, ValidationError, ValidationInfo, field_validator

from .errors import InvalidInput

PlayerCategory = Literal["Wild", "Key", "Star"]
PlayerPosition = Literal["Goalkeeper", "Defender", "Midfielder", "Attacker"]

DOUBLE_IMPACT = 1
GOLDEN_GAME = 2
RECOVERY_BOOST = 3
BOOSTER_NAMES: Dict[int, str] = {
    DOUBLE_IMPACT: "Double Impact",
    GOLDEN_GAME: "Golden Game",
    RECOVERY_BOOST: "Recovery Boost",
}


def coerce_number(value: Any) -> float:
    if value is None or isinstance(value, bool):
        return float(bool(value))
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(number):
        return 0.0
    return number


class _StatLine(BaseModel):
    @field_validator("*", mode="before")
    @classmethod
    def _numeric_or_zero(cls, value: Any, info: ValidationInfo) -> Any:
        if info.field_name == "clean_sheet":
            if isinstance(value, str):
                return value.strip().lower() in {"true", "1", "yes"}
            return bool(value)
        return coerce_number(value)

    @classmethod
    def from_record(cls, record: Any):
        """Build a stat line from a model, mapping or ``None``; absent fields count as zero."""
        if record is None:
            return cls()
        if isinstance(record, cls):
            return record
        if isinstance(record, BaseModel):
            record = record.model_dump()
        if not isinstance(record, Mapping):
            raise InvalidInput(f"{cls.__name__} expects a mapping of stats, got {type(record).__name__}")
        try:
            return cls.model_validate(dict(record))
        except ValidationError as exc:
            raise InvalidInput(f"Could not read {cls.__name__}: {exc}") from exc


class PlayerLast10Stats(_StatLine):
    rating: float = 0.0
    impact: float = 0.0
    consistency: float = 0.0
    minutes_played: float = 0.0
    total_possible_minutes: float = 0.0


class PlayerMatchStats(_StatLine):
    minutes_played: float = 0.0
    goals: float = 0.0
    assists: float = 0.0
    shots_on_target: float = 0.0
    saves: float = 0.0
    penalties_saved: float = 0.0
    penalties_scored: float = 0.0
    penalties_missed: float = 0.0
    yellow_cards: float = 0.0
    red_cards: float = 0.0
    goals_conceded: float = 0.0
    interceptions: float = 0.0
    tackles: float = 0.0
    duels_won: float = 0.0
    duels_lost: float = 0.0
    dribbles_succeeded: float = 0.0
    fouls_committed: float = 0.0
    fouls_suffered: float = 0.0
    rating: float = 0.0
    clean_sheet: bool = False

    @property
    def played(self) -> bool:
        return self.minutes_played > 0

    def actions(self) -> Dict[str, float]:
        """Countable actions, i.e. everything except minutes, clean sheet and rating."""
        return {
            name: value
            for name, value in self.model_dump().items()
            if name not in {"minutes_played", "clean_sheet", "rating"}
        }


class FantasyPlayer(BaseModel):
    id: str
    name: str = ""
    position: PlayerPosition
    birthdate: Optional[date] = None
    fitness: float = 1.0
    pgs: float = 0.0
    status: PlayerCategory = "Wild"
    playtime_ratio: Optional[float] = None

    def age_on(self, on_date: date) -> Optional[int]:
        if self.birthdate is None:
            return None
        born = self.birthdate
        before_birthday = (on_date.month, on_date.day) < (born.month, born.day)
        return on_date.year - born.year - int(before_birthday)


class UserFantasyTeam(BaseModel):
    user_id: str = ""
    starters: List[str]
    substitutes: List[str] = []
    captain_id: Optional[str] = None
    fitness_state: Dict[str, float] = {}
    booster_used: Optional[int] = None
    booster_target_id: Optional[str] = None


@dataclass
class PlayerScore:
    pgs: float
    playtime_ratio: float
    category: str

    def to_dict(self) -> Dict[str, object]:
        return {
            "pgs": self.pgs,
            "playtime_ratio": self.playtime_ratio,
            "category": self.category,
        }


@dataclass
class PlayerPoints:
    total_points: float
    base_points: float
    breakdown: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, object]:
        return {
            "total_points": self.total_points,
            "base_points": self.base_points,
            "breakdown": dict(self.breakdown),
        }


@dataclass
class TeamTotal:
    raw_total: float
    final_score: float
    bonus_applied: Optional[str] = None

    def to_dict(self) -> Dict[str, object]:
        return {
            "raw_total": self.raw_total,
            "final_score": self.final_score,
            "bonus_applied": self.bonus_applied,
        }


@dataclass
class PlayerGameWeekResult:
    points: float
    base_points: float
    initial_fitness: float
    final_fitness: float
    breakdown: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, object]:
        return {
            "points": self.points,
            "base_points": self.base_points,
            "breakdown": dict(self.breakdown),
            "initial_fitness": self.initial_fitness,
            "final_fitness": self.final_fitness,
        }


@dataclass
class GameWeekResult:
    player_results: Dict[str, PlayerGameWeekResult]
    team_total: TeamTotal
    updated_team: UserFantasyTeam
    booster_status: Optional[str] = None
    booster_refunded: bool = False

    def to_dict(self) -> Dict[str, object]:
        return {
            "player_results": {pid: result.to_dict() for pid, result in self.player_results.items()},
            "team_result": {
                **self.team_total.to_dict(),
                "booster_status": self.booster_status,
                "booster_refunded": self.booster_refunded,
            },
            "updated_team": self.updated_team.model_dump(mode="json"),
        }
