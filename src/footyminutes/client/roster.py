"""Roster lookups against the players endpoint."""

from __future__ import annotations

from typing import List

from footyminutes.models import Player, PlayerResponse

from .transport import ApiTransport


class RosterClient:
    def __init__(self, transport: ApiTransport, team_id: str):
        self._transport = transport
        self.team_id = team_id

    async def list_roster(self, *, include_removed: bool = False) -> List[Player]:
        data = await self._transport.request(
            "/players",
            query={"teamId": self.team_id, "includeRemoved": "true" if include_removed else "false"},
        )
        players = [PlayerResponse.model_validate(item) for item in data or []]
        return [
            Player(
                id=player.id,
                name=player.display_name,
                squad_number=player.squad_number,
                preferred_positions=player.preferred_positions,
                removed_at=player.removed_at,
            )
            for player in players
        ]
