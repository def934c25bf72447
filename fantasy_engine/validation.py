from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

KnockoutType = Literal["single", "double"]

CHAMPIONSHIP = "championship"
CHAMPIONSHIP_KNOCKOUT = "championship_knockout"
KNOCKOUT = "knockout"
FORMATS = (CHAMPIONSHIP, CHAMPIONSHIP_KNOCKOUT, KNOCKOUT)

# Semi-finals + final, one leg each.
SINGLE_LEG_PLAYOFF_DAYS = 2


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    error: Optional[str] = None
    playoff_days: Optional[int] = None
    rest_week: Optional[bool] = None
    required_days: Optional[int] = None

    def to_dict(self) -> Dict[str, object]:
        payload: Dict[str, object] = {"valid": self.valid}
        if self.error is not None:
            payload["error"] = self.error
        if self.playoff_days is not None:
            payload["playoff_days"] = self.playoff_days
        if self.rest_week is not None:
            payload["rest_week"] = self.rest_week
        if self.required_days is not None:
            payload["required_days"] = self.required_days
        return payload


def is_power_of_two(value: int) -> bool:
    """Exact integer check: a power of two has a single set bit, so ``n & (n - 1)`` clears it.

    Zero also satisfies the bitwise identity, hence the explicit ``value >= 1`` guard.
    """
    return value >= 1 and (value & (value - 1)) == 0


def knockout_rounds_for(players: int) -> int:
    """log2 of a power-of-two field, computed from the bit length rather than floats."""
    return players.bit_length() - 1


def validate_private_league_config(
    format: str,
    players: int,
    matchdays: int,
    knockout_type: Optional[str] = None,
) -> ValidationResult:
    """Check a private league setup and return the schedule metadata it implies.

    Never raises for a rejected configuration; callers branch on ``valid``.
    """
    if format == CHAMPIONSHIP:
        if players < 3:
            return ValidationResult(valid=False, error="Championship format requires at least 3 players.")
        return ValidationResult(valid=True, rest_week=players % 2 != 0)

    if format == CHAMPIONSHIP_KNOCKOUT:
        if players < 4:
            return ValidationResult(
                valid=False,
                error="This format requires at least 4 players for the knockout stage.",
            )
        required_playoff_days = SINGLE_LEG_PLAYOFF_DAYS * (2 if knockout_type == "double" else 1)
        if matchdays <= required_playoff_days:
            return ValidationResult(
                valid=False,
                error=f"You need more than {required_playoff_days} matchdays to include playoffs.",
            )
        return ValidationResult(
            valid=True,
            playoff_days=required_playoff_days,
            rest_week=players % 2 != 0,
        )

    if format == KNOCKOUT:
        if players < 2 or not is_power_of_two(players):
            return ValidationResult(
                valid=False,
                error="Knockout format works best with a power of 2 players (e.g., 4, 8, 16).",
            )
        rounds = knockout_rounds_for(players)
        required_days = rounds * 2 if knockout_type == "double" else rounds
        if matchdays < required_days:
            return ValidationResult(
                valid=False,
                error=f"This format requires at least {required_days} matchdays for {players} players.",
            )
        return ValidationResult(valid=True, required_days=required_days)

    logger.debug("Rejected unknown league format %r", format)
    return ValidationResult(valid=False, error="Invalid format selected.")


class TournamentConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    format: str
    player_count: int = Field(ge=0)
    matchday_count: int = Field(ge=0)
    knockout_type: Optional[KnockoutType] = None

    def validate_config(self) -> ValidationResult:
        return validate_private_league_config(
            self.format,
            self.player_count,
            self.matchday_count,
            self.knockout_type,
        )

    @property
    def legs(self) -> int:
        return 2 if self.knockout_type == "double" else 1
