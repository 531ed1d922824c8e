"""REST API for rosters, fixtures, lineups and results."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from fastapi import APIRouter, FastAPI, HTTPException, Query
from pydantic import BaseModel

from footyminutes.config import load_settings
from footyminutes.models import (
    Ack,
    AwardDetail,
    FixtureCreateRequest,
    FixtureDetail,
    FixturePlayerDetail,
    FixtureResultDetail,
    FixtureResultSummary,
    FixtureSummary,
    FixtureUpdateRequest,
    LineupSlotDetail,
    LineupWriteRequest,
    PlayerCreateRequest,
    PlayerResponse,
    PlayerUpdateRequest,
    ResultWriteRequest,
)
from footyminutes.persistence import FixtureRow, FixtureStore, PlayerRow


logger = logging.getLogger(__name__)


def _dump(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if isinstance(value, list):
        return [_dump(item) for item in value]
    return value


def _envelope(value: Any) -> dict[str, Any]:
    return {"data": _dump(value)}


def player_to_response(player: PlayerRow) -> PlayerResponse:
    return PlayerResponse(
        id=player.id,
        team_id=player.team_id,
        display_name=player.display_name,
        squad_number=player.squad_number,
        preferred_positions=list(player.preferred_positions),
        created_at=player.created_at,
        updated_at=player.updated_at,
        removed_at=player.removed_at,
    )


def fixture_to_summary(fixture: FixtureRow) -> FixtureSummary:
    result = None
    if fixture.has_result:
        result = FixtureResultSummary(
            result_code=fixture.result_code,
            team_goals=fixture.team_goals,
            opponent_goals=fixture.opponent_goals,
        )
    return FixtureSummary(
        id=fixture.id,
        team_id=fixture.team_id,
        opponent=fixture.opponent,
        fixture_date=fixture.fixture_date,
        kickoff_time=fixture.kickoff_time,
        venue_type=fixture.venue_type,
        status=fixture.status,
        created_at=fixture.created_at,
        updated_at=fixture.updated_at,
        result=result,
    )


def build_fixture_detail(store: FixtureStore, fixture: FixtureRow) -> FixtureDetail:
    squad = [
        FixturePlayerDetail(
            id=row.id,
            player_id=row.player_id,
            display_name=row.display_name,
            role=row.role,
            minutes=row.minutes,
            positions=row.positions,
            notes=row.notes,
            removed_at=row.removed_at,
        )
        for row in store.get_squad(fixture.id)
    ]
    quarters = [
        LineupSlotDetail(
            id=slot.id,
            fixture_id=slot.fixture_id,
            quarter_number=slot.quarter_number,
            wave=slot.wave,
            position=slot.position,
            player_id=slot.player_id,
            player_name=slot.player_name,
            minutes=slot.minutes,
            is_substitution=slot.is_substitution,
            squad_role=slot.squad_role,
        )
        for slot in store.get_lineup(fixture.id)
    ]
    result = None
    if fixture.has_result:
        player_of_match = store.get_player(fixture.player_of_match_id) if fixture.player_of_match_id else None
        result = FixtureResultDetail(
            result_code=fixture.result_code,
            team_goals=fixture.team_goals,
            opponent_goals=fixture.opponent_goals,
            player_of_match_id=fixture.player_of_match_id,
            player_of_match_name=player_of_match.display_name if player_of_match else None,
        )
    awards = [
        AwardDetail(
            id=award.id,
            fixture_id=award.fixture_id,
            player_id=award.player_id,
            player_name=award.player_name,
            award_type=award.award_type,
            count=award.count,
        )
        for award in store.get_awards(fixture.id)
    ]
    return FixtureDetail(
        fixture=fixture_to_summary(fixture),
        squad=squad,
        quarters=quarters,
        result=result,
        awards=awards,
    )


def _default_db_path() -> Path:
    return Path(load_settings().db_path)


def create_app(store: FixtureStore | None = None, *, db_path: Path | str | None = None) -> FastAPI:
    app = FastAPI(title="footyminutes")
    store = store or FixtureStore(db_path or _default_db_path())
    app.state.fixture_store = store
    router = APIRouter(prefix="/api")

    def _player_or_404(player_id: str) -> PlayerRow:
        player = store.get_player(player_id)
        if player is None:
            raise HTTPException(status_code=404, detail="Player not found")
        return player

    def _fixture_or_404(fixture_id: str) -> FixtureRow:
        fixture = store.get_fixture(fixture_id)
        if fixture is None:
            raise HTTPException(status_code=404, detail="Fixture not found")
        return fixture

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    # Players ---------------------------------------------------------------

    @router.get("/players")
    async def list_players(
        team_id: str = Query(..., alias="teamId", min_length=1),
        include_removed: bool = Query(False, alias="includeRemoved"),
    ):
        players = store.list_players(team_id, include_removed=include_removed)
        return _envelope([player_to_response(player) for player in players])

    @router.post("/players", status_code=201)
    async def create_player(body: PlayerCreateRequest, team_id: str = Query(..., alias="teamId", min_length=1)):
        try:
            player = store.create_player(
                team_id=team_id,
                display_name=body.display_name,
                squad_number=body.squad_number,
                preferred_positions=body.preferred_positions,
                player_id=body.id,
            )
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        logger.info("Created player %s for team %s", player.id, team_id)
        return _envelope(player_to_response(player))

    @router.get("/players/{player_id}")
    async def get_player(player_id: str):
        return _envelope(player_to_response(_player_or_404(player_id)))

    @router.patch("/players/{player_id}")
    async def update_player(player_id: str, body: PlayerUpdateRequest):
        _player_or_404(player_id)
        changes: dict[str, Any] = {
            "display_name": body.display_name,
            "preferred_positions": body.preferred_positions,
        }
        if "squad_number" in body.model_fields_set:
            changes["squad_number"] = body.squad_number
        try:
            player = store.update_player(player_id, **changes)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return _envelope(player_to_response(player))

    @router.delete("/players/{player_id}")
    async def remove_player(player_id: str):
        _player_or_404(player_id)
        return _envelope(player_to_response(store.set_player_removed(player_id, True)))

    @router.post("/players/{player_id}/restore")
    async def restore_player(player_id: str):
        _player_or_404(player_id)
        return _envelope(player_to_response(store.set_player_removed(player_id, False)))

    # Fixtures --------------------------------------------------------------

    @router.get("/fixtures")
    async def list_fixtures(team_id: str = Query(..., alias="teamId", min_length=1)):
        return _envelope([fixture_to_summary(fixture) for fixture in store.list_fixtures(team_id)])

    @router.post("/fixtures", status_code=201)
    async def create_fixture(body: FixtureCreateRequest):
        try:
            fixture = store.create_fixture(
                team_id=body.team_id,
                opponent=body.opponent,
                fixture_date=body.fixture_date,
                kickoff_time=body.kickoff_time,
                venue_type=body.venue_type,
                squad=[(entry.player_id, entry.role) for entry in body.squad],
            )
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        logger.info("Created fixture %s vs %s", fixture.id, fixture.opponent)
        return _envelope(fixture_to_summary(fixture))

    @router.get("/fixtures/{fixture_id}")
    async def get_fixture(fixture_id: str):
        return _envelope(build_fixture_detail(store, _fixture_or_404(fixture_id)))

    @router.patch("/fixtures/{fixture_id}")
    async def update_fixture(fixture_id: str, body: FixtureUpdateRequest):
        _fixture_or_404(fixture_id)
        try:
            fixture = store.update_fixture(
                fixture_id,
                opponent=body.opponent,
                fixture_date=body.fixture_date,
                kickoff_time=body.kickoff_time,
                venue_type=body.venue_type,
            )
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return _envelope(Ack(id=fixture.id))

    @router.post("/fixtures/{fixture_id}/lineup")
    async def write_lineup(fixture_id: str, body: LineupWriteRequest):
        _fixture_or_404(fixture_id)
        try:
            fixture = store.write_lineup(fixture_id, body.slots)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return _envelope(Ack(id=fixture.id))

    @router.post("/fixtures/{fixture_id}/lock")
    async def lock_fixture(fixture_id: str):
        _fixture_or_404(fixture_id)
        return _envelope(Ack(id=store.lock_fixture(fixture_id).id))

    @router.post("/fixtures/{fixture_id}/result")
    async def write_result(fixture_id: str, body: ResultWriteRequest):
        _fixture_or_404(fixture_id)
        try:
            fixture = store.write_result(fixture_id, body)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return _envelope(Ack(id=fixture.id))

    app.include_router(router)
    return app


__all__ = ["build_fixture_detail", "create_app", "fixture_to_summary", "player_to_response"]
