"""Convert between the flat allocation shape and normalised lineup slots.

The allocation a coach edits is keyed by player display name and grouped by
quarter. The API stores one slot per (quarter, player, position, wave) with a
player id. Squad minutes and positions are always re-derived from the complete
slot set, never patched incrementally, so writing the same lineup twice
leaves the squad totals unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from footyminutes.errors import PlayerNotFoundError
from footyminutes.models import (
    Allocation,
    FixturePlayerDetail,
    LineupSlotDetail,
    LineupSlotWrite,
    PlayerSlot,
    QuarterAllocation,
    Wave,
)
from footyminutes.models.fixture import LineupWave

from .resolver import normalise_name_key


@dataclass
class DecodedLineup:
    allocation: Allocation
    players: List[str]
    player_id_lookup: Dict[str, str]


@dataclass
class SquadTotals:
    minutes: int = 0
    positions: List[str] = field(default_factory=list)


def normalise_wave(position: str, wave: Optional[str]) -> LineupWave:
    """Goalkeepers always play the full quarter; others default to FULL too."""

    if position == "GK":
        return "FULL"
    token = (wave or "").strip().lower()
    if token == "first":
        return "FIRST"
    if token == "second":
        return "SECOND"
    return "FULL"


def _display_wave(wave: LineupWave) -> Optional[Wave]:
    if wave == "FIRST":
        return "first"
    if wave == "SECOND":
        return "second"
    return None


def encode_allocation(allocation: Allocation, name_to_id: Mapping[str, str]) -> List[LineupSlotWrite]:
    slots: list[LineupSlotWrite] = []
    for quarter in allocation.quarters:
        for slot in quarter.slots:
            player_id = name_to_id.get(normalise_name_key(slot.player))
            if not player_id:
                raise PlayerNotFoundError(
                    [slot.player],
                    f'Unknown player "{slot.player}" when building lineup payload',
                )
            slots.append(
                LineupSlotWrite(
                    quarter_number=quarter.quarter,
                    wave=normalise_wave(slot.position, slot.wave),
                    position=slot.position,
                    player_id=player_id,
                    minutes=slot.minutes,
                    is_substitution=slot.is_substitution,
                )
            )
    return slots


def summarize_allocation(quarters: Iterable[QuarterAllocation]) -> Dict[str, int]:
    summary: dict[str, int] = {}
    for quarter in quarters:
        for slot in quarter.slots:
            summary[slot.player] = summary.get(slot.player, 0) + slot.minutes
    return summary


def decode_lineup(
    slots: Sequence[LineupSlotDetail],
    squad: Sequence[FixturePlayerDetail],
) -> DecodedLineup:
    quarter_map: dict[int, QuarterAllocation] = {}
    lookup: dict[str, str] = {}

    for slot in slots:
        if slot.player_id:
            lookup[normalise_name_key(slot.player_name)] = slot.player_id
        quarter = quarter_map.setdefault(
            slot.quarter_number,
            QuarterAllocation(quarter=slot.quarter_number, slots=[]),
        )
        quarter.slots.append(
            PlayerSlot(
                player=slot.player_name,
                position=slot.position,
                minutes=slot.minutes,
                wave=_display_wave(normalise_wave(slot.position, slot.wave)),
                is_substitution=slot.is_substitution,
            )
        )

    quarters = sorted(quarter_map.values(), key=lambda item: item.quarter)
    summary = summarize_allocation(quarters)

    squad_names: list[str] = []
    for member in squad:
        lookup.setdefault(normalise_name_key(member.display_name), member.player_id)
        squad_names.append(member.display_name)

    players = sorted(set(squad_names) | set(summary), key=lambda name: (name.casefold(), name))
    return DecodedLineup(
        allocation=Allocation(quarters=quarters, summary=summary, warnings=[]),
        players=players,
        player_id_lookup=lookup,
    )


def derive_squad_totals(slots: Iterable[LineupSlotWrite]) -> Dict[str, SquadTotals]:
    """Aggregate minutes and distinct positions per player id from scratch."""

    totals: dict[str, SquadTotals] = {}
    for slot in slots:
        entry = totals.setdefault(slot.player_id, SquadTotals())
        entry.minutes += slot.minutes
        if slot.position not in entry.positions:
            entry.positions.append(slot.position)
    return totals
