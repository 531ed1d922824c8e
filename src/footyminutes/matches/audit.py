"""Field-level edit history for matches kept in local storage.

Remote fixtures derive their audit trail from the store itself; this module
only serves the local persistence path.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional, Tuple
from uuid import uuid4

from footyminutes.models import Allocation, MatchEditEvent, MatchRecord, MatchResult, MatchUpdatePayload
from footyminutes.models.match import MatchEditField


FieldChange = Tuple[MatchEditField, str, str]


def _new_event_id() -> str:
    return uuid4().hex


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def serialize_text(value: Optional[str]) -> str:
    return value if value is not None else ""


def serialize_number(value: Optional[int]) -> str:
    return "" if value is None else str(value)


def serialize_list(values: Optional[Iterable[str]]) -> str:
    items = list(values or [])
    return ", ".join(items) if items else ""


def canonical_allocation(allocation: Optional[Allocation]) -> str:
    if allocation is None:
        return ""
    return json.dumps(allocation.to_json_dict(), sort_keys=True)


def diff_result(previous: Optional[MatchResult], proposed: Optional[MatchResult]) -> List[FieldChange]:
    """Compare two results sub-field by sub-field using their string forms."""

    prev = previous or MatchResult()
    nxt = proposed or MatchResult()
    pairs: list[FieldChange] = [
        ("result.venue", serialize_text(prev.venue), serialize_text(nxt.venue)),
        ("result.result", serialize_text(prev.result), serialize_text(nxt.result)),
        ("result.goalsFor", serialize_number(prev.goals_for), serialize_number(nxt.goals_for)),
        ("result.goalsAgainst", serialize_number(prev.goals_against), serialize_number(nxt.goals_against)),
        ("result.playerOfMatch", serialize_text(prev.player_of_match), serialize_text(nxt.player_of_match)),
        (
            "result.honorableMentions",
            serialize_list(prev.honorable_mentions),
            serialize_list(nxt.honorable_mentions),
        ),
        ("result.scorers", serialize_list(prev.scorers), serialize_list(nxt.scorers)),
    ]
    return [(field, before, after) for field, before, after in pairs if before != after]


def diff_match_update(
    match: MatchRecord,
    updates: MatchUpdatePayload,
    *,
    now: Optional[str] = None,
    id_factory: Callable[[], str] = _new_event_id,
) -> Tuple[MatchRecord, List[MatchEditEvent]]:
    """Apply ``updates`` to ``match`` and return the new record plus its edit events.

    When nothing changed the original record is returned untouched, with no
    timestamp bump.
    """

    timestamp = now or utc_now_iso()
    events: list[MatchEditEvent] = []
    changes: dict[str, object] = {}

    def record(field: MatchEditField, previous: str, new: str) -> None:
        events.append(
            MatchEditEvent(
                id=id_factory(),
                field=field,
                previous_value=previous,
                new_value=new,
                edited_at=timestamp,
                edited_by=updates.editor,
            )
        )

    if updates.opponent is not None and updates.opponent != match.opponent:
        record("opponent", match.opponent, updates.opponent)
        changes["opponent"] = updates.opponent

    if updates.date is not None and updates.date != match.date:
        record("date", match.date, updates.date)
        changes["date"] = updates.date

    if updates.time is not None and updates.time != (match.time or ""):
        record("time", match.time or "", updates.time)
        changes["time"] = updates.time

    if updates.includes_result:
        result_changes = diff_result(match.result, updates.result)
        for field, previous, new in result_changes:
            record(field, previous, new)
        if result_changes:
            changes["result"] = updates.result

    if updates.allocation is not None:
        previous_blob = canonical_allocation(match.allocation)
        next_blob = canonical_allocation(updates.allocation)
        if previous_blob != next_blob:
            record("allocation", previous_blob, next_blob)
            changes["allocation"] = updates.allocation
            if updates.players:
                changes["players"] = list(updates.players)
            else:
                changes["players"] = sorted(updates.allocation.summary, key=lambda name: (name.casefold(), name))

    if not events:
        return match, []

    changes["last_modified_at"] = timestamp
    changes["edit_history"] = [*match.edit_history, *events]
    return match.model_copy(update=changes), events
