from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_serializer, field_validator

from .errors import InvalidInput

BASE_DIR = Path(__file__).resolve().parent.parent
DATA_DIR = BASE_DIR / "data"

logger = logging.getLogger(__name__)

POSITIONS: Tuple[str, ...] = ("Goalkeeper", "Defender", "Midfielder", "Attacker")
CATEGORIES: Tuple[str, ...] = ("Wild", "Key", "Star")


def _per_position(goalkeeper: float, defender: float, midfielder: float, attacker: float) -> Dict[str, float]:
    return {
        "Goalkeeper": goalkeeper,
        "Defender": defender,
        "Midfielder": midfielder,
        "Attacker": attacker,
    }


def _default_scoring_table() -> Dict[str, Dict[str, float]]:
    return {
        "minutes_played": _per_position(1, 1, 1, 1),
        "clean_sheet": _per_position(5, 4, 2, 0),
        "goals": _per_position(8, 6, 5, 4),
        "assists": _per_position(4, 4, 3, 2),
        "shots_on_target": _per_position(0.5, 0.5, 0.5, 0.5),
        "saves": _per_position(1 / 3, 0, 0, 0),
        "penalties_saved": _per_position(5, 0, 0, 0),
        "penalties_scored": _per_position(3, 3, 3, 3),
        "penalties_missed": _per_position(-2, -2, -2, -2),
        "yellow_cards": _per_position(-1, -1, -1, -1),
        "red_cards": _per_position(-3, -3, -3, -3),
        "goals_conceded": _per_position(-1, -0.5, 0, 0),
        "interceptions": _per_position(0.3, 0.5, 0.2, 0),
        "tackles": _per_position(0.3, 0.5, 0.2, 0),
        "duels_won": _per_position(0.2, 0.3, 0.3, 0.2),
        "duels_lost": _per_position(-0.1, -0.1, -0.1, -0.1),
        "dribbles_succeeded": _per_position(0, 0.2, 0.3, 0.3),
        "fouls_committed": _per_position(-0.3, -0.3, -0.3, -0.3),
        "fouls_suffered": _per_position(0.2, 0.2, 0.2, 0.2),
    }


def _check_descending(thresholds: Tuple[Tuple[float, Any], ...]) -> Tuple[Tuple[float, Any], ...]:
    cutoffs = [float(cutoff) for cutoff, _ in thresholds]
    if any(later >= earlier for earlier, later in zip(cutoffs, cutoffs[1:])):
        raise ValueError("Thresholds must be listed in strictly descending order.")
    return thresholds


def _freeze(value: Mapping[str, Any]) -> Mapping[str, Any]:
    return MappingProxyType(
        {key: _freeze(inner) if isinstance(inner, Mapping) else inner for key, inner in value.items()}
    )


def _thaw(value: Mapping[str, Any]) -> Dict[str, Any]:
    return {key: _thaw(inner) if isinstance(inner, Mapping) else inner for key, inner in value.items()}


class PGSWeights(BaseModel):
    model_config = ConfigDict(frozen=True)

    rating: float = 0.5
    impact: float = 0.3
    consistency: float = 0.2


class FatigueRates(BaseModel):
    """Per-game-week fitness changes: drained when Star/Key players play, restored when resting."""

    model_config = ConfigDict(frozen=True)

    star: float = 0.2
    key: float = 0.1
    rest: float = 0.1


class WorkloadWindow(BaseModel):
    model_config = ConfigDict(frozen=True)

    window_size: int = Field(default=5, ge=1)
    decay_rate: float = Field(default=0.8, gt=0.0, le=1.0)
    full_match_minutes: float = Field(default=90.0, gt=0.0)


class TeamBonuses(BaseModel):
    model_config = ConfigDict(frozen=True)

    no_star: float = 1.25
    crazy: float = 1.4
    vintage: float = 1.2
    vintage_age: float = 30.0


class Boosters(BaseModel):
    model_config = ConfigDict(frozen=True)

    double_impact: float = 2.2
    golden_game: float = 1.2


class FantasyConfig(BaseModel):
    """Every coefficient and threshold the scoring engine reads."""

    model_config = ConfigDict(frozen=True)

    pgs_weights: PGSWeights = Field(default_factory=PGSWeights)
    playtime_adjustments: Tuple[Tuple[float, float], ...] = ((0.9, 0.3), (0.5, 0.15))
    playtime_floor: float = 0.05
    category_thresholds: Tuple[Tuple[float, str], ...] = ((7.5, "Star"), (6.0, "Key"))
    default_category: str = "Wild"
    fatigue: FatigueRates = Field(default_factory=FatigueRates)
    workload: WorkloadWindow = Field(default_factory=WorkloadWindow)
    bonuses: TeamBonuses = Field(default_factory=TeamBonuses)
    boosters: Boosters = Field(default_factory=Boosters)
    captain_passive: float = 1.1
    appearance_minutes: float = 60.0
    scoring_table: Mapping[str, Mapping[str, float]] = Field(default_factory=_default_scoring_table, validate_default=True)
    rating_multipliers: Mapping[str, float] = Field(
        default_factory=lambda: _per_position(1.5, 1.3, 1.2, 1.1),
        validate_default=True,
    )

    @field_validator("playtime_adjustments")
    @classmethod
    def _playtime_descending(cls, value: Tuple[Tuple[float, float], ...]) -> Tuple[Tuple[float, float], ...]:
        return _check_descending(value)

    @field_validator("category_thresholds")
    @classmethod
    def _categories_descending(cls, value: Tuple[Tuple[float, str], ...]) -> Tuple[Tuple[float, str], ...]:
        unknown = [category for _, category in value if category not in CATEGORIES]
        if unknown:
            raise ValueError(f"Unknown player categories: {', '.join(unknown)}")
        return _check_descending(value)

    @field_validator("default_category")
    @classmethod
    def _known_default(cls, value: str) -> str:
        if value not in CATEGORIES:
            raise ValueError(f"Unknown player category '{value}'")
        return value

    @field_validator("rating_multipliers")
    @classmethod
    def _all_positions(cls, value: Mapping[str, float]) -> Mapping[str, float]:
        missing = [position for position in POSITIONS if position not in value]
        if missing:
            raise ValueError(f"Rating multipliers missing positions: {', '.join(missing)}")
        return value

    @field_validator("scoring_table", "rating_multipliers", mode="after")
    @classmethod
    def _read_only(cls, value: Mapping[str, Any]) -> Mapping[str, Any]:
        return _freeze(value)

    @field_serializer("scoring_table", "rating_multipliers")
    def _plain_dicts(self, value: Mapping[str, Any]) -> Dict[str, Any]:
        return _thaw(value)

    def describe(self) -> str:
        """Return a concise string with the headline multipliers."""
        bits = [
            f"captain(x{self.captain_passive})",
            f"double_impact(x{self.boosters.double_impact})",
            f"golden_game(x{self.boosters.golden_game})",
            f"no_star(x{self.bonuses.no_star})",
            f"crazy(x{self.bonuses.crazy})",
            f"vintage(x{self.bonuses.vintage})",
        ]
        return "Fantasy scoring: " + ", ".join(bits)


DEFAULT_FANTASY_CONFIG = FantasyConfig()


def _deep_merge(base: Dict[str, Any], overrides: Mapping[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def merge_config_overrides(
    overrides: Mapping[str, Any],
    base: FantasyConfig | None = None,
) -> FantasyConfig:
    """Return a new config with ``overrides`` deep-merged over ``base``."""
    base = base or DEFAULT_FANTASY_CONFIG
    payload = _deep_merge(base.model_dump(), overrides)
    try:
        return FantasyConfig.model_validate(payload)
    except ValidationError as exc:
        raise InvalidInput(f"Invalid fantasy configuration override: {exc}") from exc


class Settings(BaseModel):
    log_level: str = Field(default_factory=lambda: os.getenv("FANTASY_LOG_LEVEL", "INFO"))
    config_path: Path = Field(
        default_factory=lambda: Path(
            os.getenv("FANTASY_CONFIG_PATH", str(DATA_DIR / "fantasy_config.json"))
        )
    )

    def load_fantasy_config(self, path: Path | None = None) -> FantasyConfig:
        """Load persisted overrides (if any) on top of the default config."""
        config_path = path or self.config_path
        if not config_path.exists():
            logger.debug("No fantasy config overrides at %s, using defaults", config_path)
            return DEFAULT_FANTASY_CONFIG

        with config_path.open("r", encoding="utf-8") as handle:
            try:
                payload = json.load(handle)
            except json.JSONDecodeError as exc:
                raise InvalidInput(f"Fantasy config at {config_path} is not valid JSON") from exc

        if not isinstance(payload, dict):
            raise InvalidInput(f"Fantasy config at {config_path} must be a JSON object")
        logger.info("Loaded fantasy config overrides from %s", config_path)
        return merge_config_overrides(payload)

    def persist_fantasy_config(self, config: FantasyConfig, path: Path | None = None) -> Path:
        config_path = path or self.config_path
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with config_path.open("w", encoding="utf-8") as handle:
            json.dump(config.model_dump(mode="json"), handle, indent=2, sort_keys=True)
        return config_path


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


settings = Settings()
