import asyncio

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from footyminutes.api import create_app
from footyminutes.client import ApiTransport, RosterClient
from footyminutes.config import Settings
from footyminutes.errors import ConfigurationError, PlayerNotFoundError, RemoteRequestError
from footyminutes.matches import LocalMatchBackend, MatchPersistence, PersistenceState, RemoteMatchBackend
from footyminutes.models import (
    Allocation,
    MatchResult,
    MatchUpdatePayload,
    PlayerSlot,
    QuarterAllocation,
    SaveMatchPayload,
)
from footyminutes.persistence import FixtureStore, MemoryStorage


TEAM = "team-1"
API_SETTINGS = Settings(use_api=True, team_id=TEAM, session_secret="s3cret")


@pytest.fixture
def store(tmp_path):
    store = FixtureStore(tmp_path / "fixtures.sqlite")
    for player_id, name in (("p-alice", "Alice"), ("p-bob", "Bob"), ("p-carol", "Carol")):
        store.create_player(team_id=TEAM, display_name=name, player_id=player_id)
    return store


@pytest.fixture
async def transport(store):
    client = AsyncClient(transport=ASGITransport(app=create_app(store)))
    async with ApiTransport("http://testserver/api", session_secret="s3cret", actor_roles=["coach"], client=client) as api:
        yield api
    await client.aclose()


def _api_persistence(transport: ApiTransport, storage: MemoryStorage | None = None) -> MatchPersistence:
    return MatchPersistence(
        API_SETTINGS,
        local=LocalMatchBackend(storage or MemoryStorage()),
        remote=RemoteMatchBackend(transport),
    )


def _failing_transport() -> ApiTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"detail": "database unavailable"})

    client = AsyncClient(transport=httpx.MockTransport(handler))
    return ApiTransport("http://remote.invalid/api", client=client)


def _payload(**overrides) -> SaveMatchPayload:
    quarters = [
        QuarterAllocation(
            quarter=2,
            slots=[
                PlayerSlot(player="Bob", position="GK", minutes=10),
                PlayerSlot(player="alice", position="ATT", minutes=5, wave="first"),
                PlayerSlot(player="Carol", position="ATT", minutes=5, wave="second", is_substitution=True),
            ],
        ),
        QuarterAllocation(
            quarter=1,
            slots=[
                PlayerSlot(player="Alice", position="GK", minutes=10, wave="first"),
                PlayerSlot(player="Bob", position="DEF", minutes=10),
            ],
        ),
    ]
    data = {
        "date": "2024-09-01",
        "time": "09:30",
        "opponent": "Rovers",
        "players": ["Alice", "Bob"],
        "allocation": Allocation(quarters=quarters, summary={"Bob": 20, "alice": 5, "Alice": 10, "Carol": 5}),
        "result": MatchResult(
            venue="Away",
            result="Win",
            goals_for=3,
            goals_against=0,
            player_of_match="Carol",
            scorers=["Alice", "Alice", "Bob"],
            honorable_mentions=["Carol"],
        ),
        "created_by": "coach",
    }
    data.update(overrides)
    return SaveMatchPayload(**data)


@pytest.mark.anyio
async def test_local_mode():
    persistence = MatchPersistence(Settings(), local=LocalMatchBackend(MemoryStorage()))

    saved = await persistence.save_match(_payload())

    assert persistence.mode == "local"
    assert persistence.last_error is None
    assert await persistence.list_matches() == [saved]


@pytest.mark.anyio
async def test_api_mode_save_round_trip(transport, store):
    persistence = _api_persistence(transport)

    saved = await persistence.save_match(_payload())

    assert persistence.mode == "api"
    assert persistence.last_error is None
    assert saved.metadata.status == "FINAL"
    assert saved.metadata.venue_type == "AWAY"
    assert saved.metadata.team_id == TEAM
    assert saved.time == "09:30"
    assert [quarter.quarter for quarter in saved.allocation.quarters] == [1, 2]
    assert [(slot.player, slot.wave) for slot in saved.allocation.quarters[1].slots] == [
        ("Bob", None),
        ("Alice", "first"),
        ("Carol", "second"),
    ]
    assert saved.allocation.quarters[0].slots[0].wave is None
    assert saved.allocation.summary == {"Alice": 15, "Bob": 20, "Carol": 5}
    assert saved.players == ["Alice", "Bob", "Carol"]
    assert saved.result.scorers == ["Alice", "Alice", "Bob"]
    assert saved.result.honorable_mentions == ["Carol"]
    assert saved.result.player_of_match == "Carol"
    assert saved.result.venue == "Away"

    squad = {row.display_name: row for row in store.get_squad(saved.id)}
    assert squad["Alice"].role == "STARTER"
    assert squad["Carol"].role == "BENCH"
    assert squad["Alice"].minutes == 15


@pytest.mark.anyio
async def test_api_mode_save_without_result_leaves_fixture_locked(transport):
    persistence = _api_persistence(transport)

    saved = await persistence.save_match(_payload(result=MatchResult(venue="Home")))

    assert persistence.mode == "api"
    assert saved.metadata.status == "LOCKED"
    assert saved.result == MatchResult(venue="Home")


@pytest.mark.anyio
async def test_api_mode_list(transport):
    persistence = _api_persistence(transport)
    first = await persistence.save_match(_payload())
    second = await persistence.save_match(_payload(opponent="United", date="2024-09-08"))

    listed = await persistence.list_matches()

    assert persistence.mode == "api"
    assert [match.id for match in listed] == [second.id, first.id]
    assert listed[1].result.scorers == ["Alice", "Alice", "Bob"]


@pytest.mark.anyio
async def test_api_mode_update(transport):
    persistence = _api_persistence(transport)
    saved = await persistence.save_match(_payload())

    updated = await persistence.update_match(
        saved.id,
        MatchUpdatePayload(
            opponent=" United ",
            result=MatchResult(venue="Neutral", result="Draw", goals_for=1, goals_against=1, scorers=["Carol"]),
            editor="assistant",
        ),
    )

    assert persistence.mode == "api"
    assert updated.opponent == "United"
    assert updated.metadata.venue_type == "NEUTRAL"
    assert updated.result.result == "Draw"
    assert updated.result.scorers == ["Carol"]
    assert updated.result.player_of_match is None
    assert updated.allocation == saved.allocation


@pytest.mark.anyio
async def test_api_mode_update_clearing_result(transport):
    persistence = _api_persistence(transport)
    saved = await persistence.save_match(_payload())

    updated = await persistence.update_match(
        saved.id, MatchUpdatePayload.model_validate({"editor": "coach", "result": None})
    )

    assert updated.metadata.status == "LOCKED"
    assert updated.result == MatchResult(venue="Away")


@pytest.mark.anyio
async def test_api_mode_update_missing_fixture(transport):
    persistence = _api_persistence(transport)

    assert await persistence.update_match("missing", MatchUpdatePayload(editor="coach")) is None
    assert persistence.mode == "api"


@pytest.mark.anyio
async def test_remote_failure_falls_back_to_local():
    storage = MemoryStorage()
    persistence = _api_persistence(_failing_transport(), storage)

    saved = await persistence.save_match(_payload())

    assert persistence.mode == "fallback"
    assert isinstance(persistence.last_error, RemoteRequestError)
    assert persistence.last_error.status_code == 500
    assert await LocalMatchBackend(storage).list_matches() == [saved]

    listed = await persistence.list_matches()
    assert listed == [saved]
    assert persistence.mode == "fallback"


@pytest.mark.anyio
async def test_unknown_player_falls_back_to_local(transport):
    persistence = _api_persistence(transport)

    saved = await persistence.save_match(_payload(players=["Alice", "Dave"]))

    assert persistence.mode == "fallback"
    assert isinstance(persistence.last_error, PlayerNotFoundError)
    assert "Dave" in str(persistence.last_error)
    assert saved.players == ["Alice", "Dave"]


@pytest.mark.anyio
async def test_missing_team_id_is_a_configuration_fallback(transport):
    settings = Settings(use_api=True)
    persistence = MatchPersistence(settings, local=LocalMatchBackend(MemoryStorage()), remote=RemoteMatchBackend(transport))

    assert persistence.mode == "fallback"
    assert isinstance(persistence.last_error, ConfigurationError)

    await persistence.save_match(_payload())

    assert persistence.mode == "fallback"
    assert isinstance(persistence.last_error, ConfigurationError)

    await persistence.list_matches(team_id=TEAM)

    assert persistence.mode == "api"
    assert persistence.last_error is None


@pytest.mark.anyio
async def test_bulk_import_never_goes_remote(transport, store):
    persistence = _api_persistence(transport)

    result = await persistence.bulk_import_matches([_payload(), _payload()])

    assert len(result.added) == 1
    assert result.skipped == 1
    assert persistence.mode == "fallback"
    assert persistence.last_error is None
    assert store.list_fixtures(TEAM) == []


@pytest.mark.anyio
async def test_bulk_import_reports_configuration_error_without_team_id():
    persistence = MatchPersistence(Settings(use_api=True), local=LocalMatchBackend(MemoryStorage()))

    result = await persistence.bulk_import_matches([_payload()])

    assert len(result.added) == 1
    assert persistence.mode == "fallback"
    assert isinstance(persistence.last_error, ConfigurationError)


@pytest.mark.anyio
async def test_bulk_import_with_api_disabled_is_local():
    persistence = MatchPersistence(Settings(), local=LocalMatchBackend(MemoryStorage()))

    await persistence.bulk_import_matches([_payload()])

    assert persistence.mode == "local"
    assert persistence.last_error is None


@pytest.mark.anyio
async def test_remote_list_waits_for_every_detail_before_failing():
    completed: list[str] = []

    async def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/fixtures":
            summaries = [
                {
                    "id": fixture_id,
                    "teamId": TEAM,
                    "opponent": "Rovers",
                    "fixtureDate": "2024-05-01",
                    "venueType": "HOME",
                    "status": "FINAL",
                    "createdAt": "2024-05-01T10:00:00Z",
                    "updatedAt": "2024-05-01T10:00:00Z",
                }
                for fixture_id in ("fx-1", "fx-2")
            ]
            return httpx.Response(200, json={"data": summaries})
        if request.url.path == "/api/fixtures/fx-1":
            completed.append("fx-1")
            return httpx.Response(500, json={"detail": "database unavailable"})
        for _ in range(5):
            await asyncio.sleep(0)
        completed.append("fx-2")
        return httpx.Response(503, json={"detail": "busy"})

    async with AsyncClient(transport=httpx.MockTransport(handler)) as client:
        backend = RemoteMatchBackend(ApiTransport("http://remote.invalid/api", client=client))

        with pytest.raises(RemoteRequestError) as excinfo:
            await backend.list_matches(team_id=TEAM)

    assert excinfo.value.status_code == 500
    assert sorted(completed) == ["fx-1", "fx-2"]


@pytest.mark.anyio
async def test_per_call_state_leaves_shared_state_alone():
    persistence = _api_persistence(_failing_transport())
    persistence.state.record("api")
    call_state = PersistenceState()

    await persistence.save_match(_payload(), state=call_state)

    assert call_state.mode == "fallback"
    assert call_state.error is not None
    assert persistence.mode == "api"


@pytest.mark.anyio
async def test_roster_client_includes_removed_players(transport, store):
    store.set_player_removed("p-carol", True)
    roster = RosterClient(transport, TEAM)

    active = await roster.list_roster()
    everyone = await roster.list_roster(include_removed=True)

    assert [player.name for player in active] == ["Alice", "Bob"]
    assert [player.name for player in everyone] == ["Alice", "Bob", "Carol"]
    assert everyone[2].removed_at is not None


@pytest.mark.anyio
async def test_transport_sends_headers_and_unwraps_envelope():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"data": {"ok": True}})

    async with ApiTransport(
        "http://remote.invalid/api/",
        session_secret="s3cret",
        actor_roles=["coach", "admin"],
        client=AsyncClient(transport=httpx.MockTransport(handler)),
    ) as api:
        data = await api.request("/fixtures", query={"teamId": TEAM, "skip": None}, actor_id="coach-1")

    assert data == {"ok": True}
    assert str(seen[0].url) == "http://remote.invalid/api/fixtures?teamId=team-1"
    assert seen[0].headers["X-Session-Secret"] == "s3cret"
    assert seen[0].headers["X-Actor-Roles"] == "coach,admin"
    assert seen[0].headers["X-Actor-Id"] == "coach-1"
