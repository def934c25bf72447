from __future__ import annotations

import argparse
import json
import sys
from datetime import date
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

from fantasy_engine.config import configure_logging, settings  # noqa: E402
from fantasy_engine.errors import InvalidInput  # noqa: E402
from fantasy_engine.gameweek import process_game_week  # noqa: E402
from fantasy_engine.leaderboard import leaderboard_from_results  # noqa: E402
from fantasy_engine.models import FantasyPlayer, UserFantasyTeam  # noqa: E402


def load_payload(path: Path) -> dict:
    """Read a game-week payload: `players`, `teams` and per-player `stats`."""
    if not path.exists():
        raise FileNotFoundError(f"Missing game-week payload at {path}.")
    with path.open("r", encoding="utf-8") as handle:
        payload = json.load(handle)
    if not isinstance(payload, dict):
        raise InvalidInput(f"Game-week payload at {path} must be a JSON object")
    return payload


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Score every team in a game-week payload and print the leaderboard.",
    )
    parser.add_argument("payload", type=Path, help="JSON file with players, teams and stats.")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Fantasy config overrides (default: FANTASY_CONFIG_PATH or data/fantasy_config.json).",
    )
    parser.add_argument(
        "--date",
        type=date.fromisoformat,
        default=None,
        help="Reference date for player ages, YYYY-MM-DD (default: today).",
    )
    args = parser.parse_args(argv)

    configure_logging()
    try:
        payload = load_payload(args.payload)
        config = settings.load_fantasy_config(args.config)
        players = [FantasyPlayer.model_validate(item) for item in payload.get("players", [])]
        stats = payload.get("stats", {})
        results = {}
        for raw_team in payload.get("teams", []):
            team = UserFantasyTeam.model_validate(raw_team)
            if not team.user_id:
                raise InvalidInput("Every team in the payload needs a user_id")
            if team.user_id in results:
                raise InvalidInput(f"Duplicate user_id '{team.user_id}' in the payload")
            results[team.user_id] = process_game_week(team, players, stats, config=config, on_date=args.date)
    except (FileNotFoundError, ValueError) as err:
        print(f"Failed to score game week: {err}")
        return 1

    board = leaderboard_from_results(results)
    print(board.to_string(index=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
