"""Load and save JSON match exports, and seed the fixture store from them.

The export shape is ``{"playersData": {"players": [...]}, "matches": [...]}``
where each match is a name-keyed match record.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from footyminutes.errors import PlayerNotFoundError
from footyminutes.matches import encode_allocation, encode_result, has_result_details, normalise_name_key, venue_to_api
from footyminutes.models import MatchRecord, SaveMatchPayload
from footyminutes.persistence import FixtureStore


logger = logging.getLogger(__name__)


@dataclass
class SeedPlayer:
    id: str
    name: str
    created_at: Optional[str] = None
    removed_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SeedPlayer":
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            created_at=data.get("createdAt"),
            removed_at=data.get("removedAt"),
        )

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"id": self.id, "name": self.name}
        if self.created_at:
            payload["createdAt"] = self.created_at
        payload["removedAt"] = self.removed_at
        return payload


@dataclass
class SeedBundle:
    players: List[SeedPlayer] = field(default_factory=list)
    matches: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def load(cls, path: Path) -> "SeedBundle":
        data = json.loads(path.read_text(encoding="utf-8"))
        players_data = data.get("playersData") or {}
        return cls(
            players=[SeedPlayer.from_dict(item) for item in players_data.get("players") or []],
            matches=list(data.get("matches") or []),
        )

    @classmethod
    def from_matches(cls, matches: Iterable[MatchRecord]) -> "SeedBundle":
        """Build an export from stored matches, listing every player they mention."""

        records = list(matches)
        names: dict[str, str] = {}
        for record in records:
            for name in [*record.players, *record.allocation.summary]:
                names.setdefault(normalise_name_key(name), name)
        players = [SeedPlayer(id=key.replace(" ", "-"), name=name) for key, name in sorted(names.items())]
        return cls(players=players, matches=[record.to_json_dict() for record in records])

    def save(self, path: Path) -> None:
        payload = {
            "playersData": {"players": [player.to_dict() for player in self.players]},
            "matches": self.matches,
        }
        path.write_text(json.dumps(payload, indent=2), encoding="utf-8")

    def payloads(self) -> List[SaveMatchPayload]:
        return [_match_payload(item) for item in self.matches]


def _match_payload(data: Dict[str, Any]) -> SaveMatchPayload:
    return SaveMatchPayload.model_validate({**data, "opponent": data.get("opponent") or "Unknown"})


@dataclass
class SeedReport:
    players: int
    matches: int


def seed_store(store: FixtureStore, bundle: SeedBundle, *, team_id: str) -> SeedReport:
    """Replace ``team_id``'s players and fixtures with the bundle's contents.

    Matches with a result end up FINAL, the rest LOCKED. Any name the
    bundle's player list does not contain aborts the seed.
    """

    store.delete_team_data(team_id)

    id_map: dict[str, str] = {}
    for player in bundle.players:
        created = store.create_player(
            team_id=team_id,
            display_name=player.name,
            player_id=player.id,
            created_at=player.created_at,
            removed_at=player.removed_at,
        )
        id_map[normalise_name_key(player.name)] = created.id

    for raw in bundle.matches:
        payload = _match_payload(raw)
        squad_names = list(dict.fromkeys([*payload.players, *payload.allocation.summary]))
        squad = []
        for name in squad_names:
            player_id = id_map.get(normalise_name_key(name))
            if not player_id:
                raise PlayerNotFoundError([name], f'Unknown player "{name}" while seeding matches.')
            squad.append((player_id, "STARTER"))

        fixture = store.create_fixture(
            team_id=team_id,
            opponent=payload.opponent,
            fixture_date=payload.date,
            kickoff_time=payload.time,
            venue_type=venue_to_api(payload.result.venue if payload.result else None),
            squad=squad,
            fixture_id=raw.get("id"),
            created_at=raw.get("createdAt"),
        )
        slots = encode_allocation(payload.allocation, id_map)
        if slots:
            store.write_lineup(fixture.id, slots)
        store.lock_fixture(fixture.id)
        if has_result_details(payload.result):
            store.write_result(fixture.id, encode_result(payload.result, id_map))
        logger.info("Seeded fixture %s vs %s on %s", fixture.id, fixture.opponent, fixture.fixture_date)

    logger.info("Seed complete: %d players, %d matches", len(bundle.players), len(bundle.matches))
    return SeedReport(players=len(bundle.players), matches=len(bundle.matches))
