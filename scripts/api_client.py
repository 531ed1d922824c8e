"""Lightweight REST client for the footyminutes API."""

from __future__ import annotations

import argparse
import json
import os

import httpx


def _headers(args: argparse.Namespace) -> dict[str, str]:
    headers = {"X-Actor-Roles": args.roles}
    if args.session_secret:
        headers["X-Session-Secret"] = args.session_secret
    return headers


def main() -> None:
    parser = argparse.ArgumentParser(description="Interact with the footyminutes REST API")
    parser.add_argument("base_url", help="Base URL of the API, e.g. http://localhost:8000/api")
    parser.add_argument("--team-id", default=os.getenv("FOOTYMINUTES_TEAM_ID"), help="Team identifier")
    parser.add_argument("--session-secret", default=os.getenv("FOOTYMINUTES_SESSION_SECRET"))
    parser.add_argument("--roles", default=os.getenv("FOOTYMINUTES_ACTOR_ROLES", "coach"))
    parser.add_argument("--list-players", action="store_true", help="List the team's roster and exit")
    parser.add_argument("--include-removed", action="store_true", help="Include removed players in the roster")
    parser.add_argument("--add-player", metavar="NAME", help="Add a player to the roster")
    parser.add_argument("--list-fixtures", action="store_true", help="List the team's fixtures and exit")
    parser.add_argument("--get-fixture", metavar="FIXTURE_ID", help="Fetch a fixture's detail and exit")
    parser.add_argument("--lock", metavar="FIXTURE_ID", help="Lock a fixture")
    args = parser.parse_args()

    needs_team = args.list_players or args.add_player or args.list_fixtures
    if needs_team and not args.team_id:
        raise SystemExit("--team-id (or FOOTYMINUTES_TEAM_ID) is required")

    with httpx.Client(base_url=args.base_url, headers=_headers(args)) as client:
        if args.add_player:
            resp = client.post("/players", params={"teamId": args.team_id}, json={"displayName": args.add_player})
            resp.raise_for_status()
            print(json.dumps(resp.json()["data"], indent=2))
        if args.list_players:
            params = {"teamId": args.team_id, "includeRemoved": "true" if args.include_removed else "false"}
            resp = client.get("/players", params=params)
            resp.raise_for_status()
            for player in resp.json()["data"]:
                removed = " (removed)" if player.get("removedAt") else ""
                print(f"{player['id']}  {player['displayName']}{removed}")
        if args.list_fixtures:
            resp = client.get("/fixtures", params={"teamId": args.team_id})
            resp.raise_for_status()
            for fixture in resp.json()["data"]:
                print(f"{fixture['fixtureDate']}  {fixture['opponent']:<24} {fixture['status']:<7} {fixture['id']}")
        if args.get_fixture:
            resp = client.get(f"/fixtures/{args.get_fixture}")
            if resp.status_code == 404:
                raise SystemExit(f"fixture {args.get_fixture} not found")
            resp.raise_for_status()
            print(json.dumps(resp.json()["data"], indent=2))
        if args.lock:
            resp = client.post(f"/fixtures/{args.lock}/lock")
            if resp.status_code == 404:
                raise SystemExit(f"fixture {args.lock} not found")
            resp.raise_for_status()
            print(f"Locked fixture {args.lock}")


if __name__ == "__main__":
    main()
