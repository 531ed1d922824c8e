"""Command-line interface for seeding the fixture store and managing saved matches."""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path
from typing import Awaitable, TypeVar

from footyminutes.config import load_settings
from footyminutes.matches import MatchPersistence
from footyminutes.persistence import FixtureStore
from footyminutes.seed_loader import SeedBundle, seed_store


T = TypeVar("T")


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Track football fixtures, lineups and results")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    commands = parser.add_subparsers(dest="command", required=True)

    seed = commands.add_parser("seed", help="Replace a team's fixtures with a JSON export")
    seed.add_argument("path", type=Path, help="Path to the JSON export")
    seed.add_argument("--team-id", default=None, help="Team to seed (defaults to FOOTYMINUTES_TEAM_ID)")
    seed.add_argument("--db", type=Path, default=None, help="SQLite database path")

    list_cmd = commands.add_parser("list", help="List saved matches")
    list_cmd.add_argument("--team-id", default=None, help="Team to list (API mode only)")

    import_cmd = commands.add_parser("import", help="Import matches from a JSON export into local storage")
    import_cmd.add_argument("path", type=Path, help="Path to the JSON export")

    export = commands.add_parser("export", help="Write saved matches to a JSON export")
    export.add_argument("path", type=Path, help="Destination path")
    export.add_argument("--team-id", default=None, help="Team to export (API mode only)")
    return parser.parse_args(argv)


async def _closing(persistence: MatchPersistence, operation: Awaitable[T]) -> T:
    try:
        return await operation
    finally:
        await persistence.aclose()


def _print_mode(persistence: MatchPersistence) -> None:
    if persistence.last_error is not None:
        print(f"Persistence mode: {persistence.mode} ({persistence.last_error})")
    else:
        print(f"Persistence mode: {persistence.mode}")


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    settings = load_settings()

    if args.command == "seed":
        team_id = args.team_id or settings.team_id
        if not team_id:
            raise SystemExit("--team-id (or FOOTYMINUTES_TEAM_ID) is required to seed")
        store = FixtureStore(args.db or Path(settings.db_path))
        report = seed_store(store, SeedBundle.load(args.path), team_id=team_id)
        print(f"Seeded {report.players} players and {report.matches} matches into {store.db_path}")
        return

    persistence = MatchPersistence.from_settings(settings)

    if args.command == "list":
        matches = asyncio.run(_closing(persistence, persistence.list_matches(team_id=args.team_id)))
        for match in sorted(matches, key=lambda item: item.date, reverse=True):
            outcome = match.result.result if match.result and match.result.result else "-"
            print(f"{match.date}  {match.opponent:<24} {outcome:<10} {len(match.players)} players  {match.id}")
        _print_mode(persistence)
    elif args.command == "import":
        bundle = SeedBundle.load(args.path)
        result = asyncio.run(_closing(persistence, persistence.bulk_import_matches(bundle.payloads())))
        print(f"Imported {len(result.added)} matches, skipped {result.skipped} duplicates")
        _print_mode(persistence)
    elif args.command == "export":
        matches = asyncio.run(_closing(persistence, persistence.list_matches(team_id=args.team_id)))
        SeedBundle.from_matches(matches).save(args.path)
        print(f"Wrote {len(matches)} matches to {args.path}")
        _print_mode(persistence)


if __name__ == "__main__":
    main()
