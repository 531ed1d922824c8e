"""Remote (API) and local (keyed storage) match persistence backends.

Both backends expose the same coroutine interface so the mediator can swap
one for the other without branching inside each operation.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Iterable, List, Optional, Protocol, Sequence
from uuid import uuid4

from footyminutes.client import ApiTransport, RosterClient
from footyminutes.errors import PlayerNotFoundError, RemoteRequestError, RemoteUnavailableError
from footyminutes.models import (
    Allocation,
    BulkImportResult,
    FixtureCreateRequest,
    FixtureDetail,
    FixtureSummary,
    FixtureUpdateRequest,
    MatchMetadata,
    MatchRecord,
    MatchResult,
    MatchUpdatePayload,
    SaveMatchPayload,
    SquadEntryWrite,
)
from footyminutes.persistence.local import KeyValueStorage

from .allocation import decode_lineup, encode_allocation
from .audit import diff_match_update, utc_now_iso
from .resolver import NameResolver, RosterSource, normalise_name_key
from .result import decode_result, encode_result, has_result_details, venue_to_api, void_result


logger = logging.getLogger(__name__)

STORAGE_KEY = "ffm:matches"


class MatchBackend(Protocol):
    async def save_match(self, payload: SaveMatchPayload, *, team_id: Optional[str] = None) -> MatchRecord:
        ...

    async def list_matches(self, *, team_id: Optional[str] = None) -> List[MatchRecord]:
        ...

    async def update_match(
        self,
        match_id: str,
        updates: MatchUpdatePayload,
        *,
        team_id: Optional[str] = None,
    ) -> Optional[MatchRecord]:
        ...


def collect_names(
    players: Iterable[str] | None,
    allocation: Optional[Allocation],
    result: Optional[MatchResult],
) -> List[str]:
    names: list[str] = list(players or [])
    if allocation is not None:
        for quarter in allocation.quarters:
            names.extend(slot.player for slot in quarter.slots)
    if result is not None:
        if result.player_of_match:
            names.append(result.player_of_match)
        names.extend(result.scorers or [])
        names.extend(result.honorable_mentions or [])
    return names


def fixture_detail_to_match(detail: FixtureDetail) -> MatchRecord:
    fixture = detail.fixture
    lineup = decode_lineup(detail.quarters, detail.squad)
    return MatchRecord(
        id=fixture.id,
        date=fixture.fixture_date,
        time=fixture.kickoff_time,
        opponent=fixture.opponent,
        players=lineup.players,
        allocation=lineup.allocation,
        result=decode_result(detail.result, detail.awards, fixture.venue_type),
        created_at=fixture.created_at,
        last_modified_at=fixture.updated_at,
        metadata=MatchMetadata(
            player_id_lookup=lineup.player_id_lookup,
            venue_type=fixture.venue_type,
            kickoff_time=fixture.kickoff_time,
            status=fixture.status,
            team_id=fixture.team_id,
        ),
    )


class RemoteMatchBackend:
    """Persist matches through the fixture API.

    A save is create fixture, write lineup, lock, write result, each awaited
    in turn. The API is not transactional: if a later step fails the earlier
    writes stay on the server while the caller sees the whole save fail.
    """

    def __init__(self, transport: ApiTransport, *, roster: RosterSource | None = None):
        self._transport = transport
        self._roster = roster

    def _resolver(self, team_id: str) -> NameResolver:
        return NameResolver(self._roster or RosterClient(self._transport, team_id))

    async def aclose(self) -> None:
        await self._transport.aclose()

    async def fetch_fixture_detail(self, fixture_id: str) -> FixtureDetail:
        data = await self._transport.request(f"/fixtures/{fixture_id}")
        if not data:
            raise RemoteUnavailableError("Unable to load fixture detail")
        return FixtureDetail.model_validate(data)

    async def save_match(self, payload: SaveMatchPayload, *, team_id: Optional[str] = None) -> MatchRecord:
        if not team_id:
            raise RemoteUnavailableError("A team id is required for API match operations")
        resolver = self._resolver(team_id)
        id_map = await resolver.resolve(collect_names(payload.players, payload.allocation, payload.result))

        squad: list[SquadEntryWrite] = []
        for name in payload.players:
            player_id = id_map.get(normalise_name_key(name))
            if not player_id:
                raise PlayerNotFoundError([name], f'Unknown player "{name}" while creating fixture')
            squad.append(SquadEntryWrite(player_id=player_id, role="STARTER"))

        slots = encode_allocation(payload.allocation, id_map)
        if has_result_details(payload.result):
            result_body = encode_result(payload.result, id_map)
        else:
            result_body = void_result()

        create = FixtureCreateRequest(
            team_id=team_id,
            opponent=payload.opponent,
            fixture_date=payload.date,
            kickoff_time=payload.time or None,
            venue_type=venue_to_api(payload.result.venue if payload.result else None),
            squad=squad,
        )
        actor = payload.created_by
        summary = FixtureSummary.model_validate(
            await self._transport.request("/fixtures", method="POST", body=create.to_json_dict(), actor_id=actor)
        )
        if slots:
            await self._transport.request(
                f"/fixtures/{summary.id}/lineup",
                method="POST",
                body={"slots": [slot.to_json_dict() for slot in slots]},
                actor_id=actor,
            )
        await self._transport.request(f"/fixtures/{summary.id}/lock", method="POST", actor_id=actor)
        await self._transport.request(
            f"/fixtures/{summary.id}/result",
            method="POST",
            body=result_body.to_json_dict(),
            actor_id=actor,
        )
        return fixture_detail_to_match(await self.fetch_fixture_detail(summary.id))

    async def list_matches(self, *, team_id: Optional[str] = None) -> List[MatchRecord]:
        if not team_id:
            raise RemoteUnavailableError("A team id is required for API match operations")
        data = await self._transport.request("/fixtures", query={"teamId": team_id})
        summaries = [FixtureSummary.model_validate(item) for item in data or []]
        if not summaries:
            return []
        # Every detail fetch settles before the first failure is raised.
        details = await asyncio.gather(
            *(self.fetch_fixture_detail(summary.id) for summary in summaries),
            return_exceptions=True,
        )
        for detail in details:
            if isinstance(detail, BaseException):
                raise detail
        return [fixture_detail_to_match(detail) for detail in details]

    async def update_match(
        self,
        match_id: str,
        updates: MatchUpdatePayload,
        *,
        team_id: Optional[str] = None,
    ) -> Optional[MatchRecord]:
        if not team_id:
            raise RemoteUnavailableError("A team id is required for API match operations")
        try:
            detail = await self.fetch_fixture_detail(match_id)
        except RemoteRequestError as exc:
            if exc.status_code == 404:
                return None
            raise

        existing = fixture_detail_to_match(detail)
        lookup = existing.metadata.player_id_lookup if existing.metadata else {}

        metadata = FixtureUpdateRequest()
        if updates.opponent and updates.opponent.strip():
            metadata.opponent = updates.opponent.strip()
        if updates.date is not None:
            metadata.fixture_date = updates.date
        if updates.time is not None:
            metadata.kickoff_time = updates.time
        if updates.result is not None and updates.result.venue:
            metadata.venue_type = venue_to_api(updates.result.venue)

        names = collect_names(updates.players, updates.allocation, updates.result)
        id_map = await self._resolver(team_id).resolve(names, lookup) if names else {}

        slots = encode_allocation(updates.allocation, id_map) if updates.allocation is not None else None
        result_body = None
        if updates.includes_result:
            if has_result_details(updates.result):
                result_body = encode_result(updates.result, id_map)
            else:
                result_body = void_result()

        patch = metadata.to_json_dict()
        if patch:
            await self._transport.request(
                f"/fixtures/{match_id}", method="PATCH", body=patch, actor_id=updates.editor
            )
        if slots is not None:
            await self._transport.request(
                f"/fixtures/{match_id}/lineup",
                method="POST",
                body={"slots": [slot.to_json_dict() for slot in slots]},
                actor_id=updates.editor,
            )
        if result_body is not None:
            await self._transport.request(
                f"/fixtures/{match_id}/result",
                method="POST",
                body=result_body.to_json_dict(),
                actor_id=updates.editor,
            )
        return fixture_detail_to_match(await self.fetch_fixture_detail(match_id))


class LocalMatchBackend:
    """Persist matches as one JSON list under a single storage key.

    Reads and writes are a plain read-modify-write of the whole list; with
    several writers the last one wins.
    """

    def __init__(self, storage: KeyValueStorage, *, key: str = STORAGE_KEY):
        self._storage = storage
        self._key = key

    def _read(self) -> List[MatchRecord]:
        raw = self._storage.get_item(self._key)
        if not raw:
            return []
        return [MatchRecord.model_validate(item) for item in json.loads(raw)]

    def _write(self, matches: Sequence[MatchRecord]) -> None:
        self._storage.set_item(self._key, json.dumps([match.to_json_dict() for match in matches]))

    @staticmethod
    def _new_record(payload: SaveMatchPayload, now: str) -> MatchRecord:
        return MatchRecord.model_validate(
            {
                **payload.model_dump(),
                "id": uuid4().hex,
                "created_at": now,
                "last_modified_at": now,
                "edit_history": [],
            }
        )

    async def save_match(self, payload: SaveMatchPayload, *, team_id: Optional[str] = None) -> MatchRecord:
        matches = self._read()
        record = self._new_record(payload, utc_now_iso())
        matches.append(record)
        self._write(matches)
        return record

    async def list_matches(self, *, team_id: Optional[str] = None) -> List[MatchRecord]:
        try:
            return self._read()
        except ValueError as exc:
            logger.warning("Ignoring unreadable local match storage: %s", exc)
            return []

    async def update_match(
        self,
        match_id: str,
        updates: MatchUpdatePayload,
        *,
        team_id: Optional[str] = None,
    ) -> Optional[MatchRecord]:
        matches = self._read()
        for index, match in enumerate(matches):
            if match.id == match_id:
                break
        else:
            return None

        updated, events = diff_match_update(match, updates)
        if not events:
            return match
        matches[index] = updated
        self._write(matches)
        return updated

    async def bulk_import(self, payloads: Sequence[SaveMatchPayload]) -> BulkImportResult:
        """Append payloads whose ``date|opponent`` key is not already stored."""

        if not payloads:
            return BulkImportResult(added=[], skipped=0)

        matches = self._read()
        now = utc_now_iso()
        existing_keys = {f"{match.date}|{match.opponent}" for match in matches}
        added: list[MatchRecord] = []
        skipped = 0
        for payload in payloads:
            key = f"{payload.date}|{payload.opponent}"
            if key in existing_keys:
                skipped += 1
                continue
            record = self._new_record(payload, now)
            matches.append(record)
            existing_keys.add(key)
            added.append(record)

        try:
            self._write(matches)
        except Exception as exc:
            logger.warning("bulk import: unable to persist imported matches: %s", exc)
        return BulkImportResult(added=added, skipped=skipped)
