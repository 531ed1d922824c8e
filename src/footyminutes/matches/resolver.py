"""Resolve player display names to stable roster identifiers."""

from __future__ import annotations

import logging
from typing import Iterable, List, Mapping, Protocol

from footyminutes.errors import PlayerNotFoundError
from footyminutes.models import Player


logger = logging.getLogger(__name__)


class RosterSource(Protocol):
    async def list_roster(self, *, include_removed: bool = False) -> List[Player]:
        ...


def normalise_name_key(value: str) -> str:
    return value.strip().lower()


class NameResolver:
    """Map display names to player ids.

    A pre-seeded ``lookup`` (for example the ``playerIdLookup`` carried in a
    fixture's metadata) is consulted first; the roster is only queried when
    names remain unresolved. The roster query includes soft-deleted players
    because historical fixtures may still reference them.

    Matching is by display name, so a player renamed after a fixture was
    recorded can only be resolved through a lookup captured before the rename.
    """

    def __init__(self, roster: RosterSource):
        self._roster = roster

    async def resolve(
        self,
        names: Iterable[str],
        lookup: Mapping[str, str] | None = None,
    ) -> dict[str, str]:
        resolved: dict[str, str] = {}
        for name, player_id in (lookup or {}).items():
            if name and player_id:
                resolved[normalise_name_key(name)] = player_id

        pending: dict[str, str] = {}
        for name in names:
            key = normalise_name_key(name)
            if key and key not in resolved:
                pending.setdefault(key, name.strip())

        if not pending:
            return resolved

        roster = await self._roster.list_roster(include_removed=True)
        for player in roster:
            key = normalise_name_key(player.name)
            if key in pending and key not in resolved:
                resolved[key] = player.id
                del pending[key]

        if pending:
            logger.debug("Unresolved player names after roster lookup: %s", list(pending.values()))
            raise PlayerNotFoundError(list(pending.values()))
        return resolved
