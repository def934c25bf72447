from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

from fantasy_engine.config import configure_logging  # noqa: E402
from fantasy_engine.schedule import plan_private_league  # noqa: E402
from fantasy_engine.validation import FORMATS, TournamentConfig  # noqa: E402


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Validate a private league setup and print the matchday plan it implies.",
    )
    parser.add_argument("format", help=f"League format ({', '.join(FORMATS)}).")
    parser.add_argument("players", type=int, help="Number of players in the league.")
    parser.add_argument("matchdays", type=int, help="Number of matchdays selected.")
    parser.add_argument(
        "--knockout-type",
        choices=("single", "double"),
        default=None,
        help="Single or two-legged knockout ties (default: single).",
    )
    parser.add_argument(
        "--participant",
        action="append",
        dest="participants",
        help="Participant name; repeat once per player (default: Player 1..N).",
    )
    parser.add_argument("--json", action="store_true", help="Emit the full plan as JSON.")
    args = parser.parse_args(argv)

    configure_logging()
    if args.players < 0 or args.matchdays < 0:
        print("Player and matchday counts cannot be negative.")
        return 2

    config = TournamentConfig(
        format=args.format,
        player_count=args.players,
        matchday_count=args.matchdays,
        knockout_type=args.knockout_type,
    )
    plan = plan_private_league(config, args.participants)

    if args.json:
        print(json.dumps(plan.to_dict(), indent=2))
        return 0 if plan.valid else 1

    if not plan.valid:
        print(f"Invalid configuration: {plan.validation.error}")
        return 1

    print(f"Valid {config.format} league for {config.player_count} players.")
    if plan.validation.rest_week:
        print("With an odd number of players, one will rest each matchday.")
    for matchday in plan.matchdays:
        games = ", ".join(f"{home} v {away}" for home, away in matchday.pairings)
        resting = f" (rest: {matchday.resting})" if matchday.resting else ""
        print(f"- {matchday.label}: {games}{resting}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
