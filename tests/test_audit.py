import json

from footyminutes.matches import diff_match_update, diff_result
from footyminutes.matches.audit import canonical_allocation, serialize_list, serialize_number
from footyminutes.models import (
    Allocation,
    MatchRecord,
    MatchResult,
    MatchUpdatePayload,
    PlayerSlot,
    QuarterAllocation,
)


CREATED = "2024-09-01T10:00:00+00:00"
NOW = "2024-09-02T08:30:00+00:00"


def _match(**overrides) -> MatchRecord:
    data = {
        "id": "m1",
        "date": "2024-09-01",
        "opponent": "Rovers",
        "players": ["Alice", "Bob"],
        "allocation": Allocation(
            quarters=[QuarterAllocation(quarter=1, slots=[PlayerSlot(player="Alice", position="GK", minutes=10)])],
            summary={"Alice": 10},
        ),
        "result": MatchResult(venue="Home", result="Win", goals_for=None, scorers=["Alice"]),
        "created_at": CREATED,
        "last_modified_at": CREATED,
    }
    data.update(overrides)
    return MatchRecord(**data)


def _ids():
    counter = iter(range(100))
    return lambda: f"e{next(counter)}"


def test_serializers():
    assert serialize_number(None) == ""
    assert serialize_number(0) == "0"
    assert serialize_list([]) == ""
    assert serialize_list(None) == ""
    assert serialize_list(["Alice", "Bob"]) == "Alice, Bob"


def test_unchanged_update_produces_no_events():
    match = _match()

    updated, events = diff_match_update(match, MatchUpdatePayload(opponent="Rovers", editor="coach"), now=NOW)

    assert events == []
    assert updated is match
    assert updated.last_modified_at == CREATED


def test_scalar_change_records_one_event_each():
    updated, events = diff_match_update(
        _match(),
        MatchUpdatePayload(opponent="United", time="10:30", editor="coach"),
        now=NOW,
        id_factory=_ids(),
    )

    assert [(event.field, event.previous_value, event.new_value) for event in events] == [
        ("opponent", "Rovers", "United"),
        ("time", "", "10:30"),
    ]
    assert all(event.edited_by == "coach" and event.edited_at == NOW for event in events)
    assert updated.opponent == "United"
    assert updated.time == "10:30"
    assert updated.last_modified_at == NOW
    assert [event.id for event in updated.edit_history] == ["e0", "e1"]


def test_goals_from_absent_to_zero_is_one_event():
    match = _match()
    new_result = match.result.model_copy(update={"goals_for": 0})

    updated, events = diff_match_update(match, MatchUpdatePayload(result=new_result, editor="coach"), now=NOW)

    assert len(events) == 1
    assert events[0].field == "result.goalsFor"
    assert events[0].previous_value == ""
    assert events[0].new_value == "0"
    assert updated.result.goals_for == 0


def test_result_sub_fields_share_timestamp_and_replace_atomically():
    new_result = MatchResult(venue="Away", result="Loss", goals_for=1, goals_against=2, scorers=["Bob"])

    updated, events = diff_match_update(
        _match(), MatchUpdatePayload(result=new_result, editor="assistant"), now=NOW
    )

    assert [event.field for event in events] == [
        "result.venue",
        "result.result",
        "result.goalsFor",
        "result.goalsAgainst",
        "result.scorers",
    ]
    assert {event.edited_at for event in events} == {NOW}
    assert updated.result == new_result


def test_clearing_the_result_diffs_against_empty():
    updated, events = diff_match_update(
        _match(), MatchUpdatePayload.model_validate({"editor": "coach", "result": None}), now=NOW
    )

    assert {event.field for event in events} == {"result.venue", "result.result", "result.scorers"}
    assert updated.result is None


def test_omitted_result_is_not_diffed():
    _, events = diff_match_update(_match(), MatchUpdatePayload(editor="coach"), now=NOW)

    assert events == []


def test_allocation_change_is_a_single_event_with_full_blobs():
    match = _match()
    allocation = Allocation(
        quarters=[
            QuarterAllocation(
                quarter=1,
                slots=[
                    PlayerSlot(player="Carol", position="GK", minutes=10),
                    PlayerSlot(player="Bob", position="DEF", minutes=10),
                ],
            )
        ],
        summary={"Carol": 10, "Bob": 10},
    )

    updated, events = diff_match_update(match, MatchUpdatePayload(allocation=allocation, editor="coach"), now=NOW)

    assert [event.field for event in events] == ["allocation"]
    assert json.loads(events[0].previous_value) == json.loads(canonical_allocation(match.allocation))
    assert json.loads(events[0].new_value)["summary"] == {"Carol": 10, "Bob": 10}
    assert updated.players == ["Bob", "Carol"]


def test_allocation_change_uses_explicit_players():
    allocation = Allocation(summary={"Carol": 10})

    updated, _ = diff_match_update(
        _match(), MatchUpdatePayload(allocation=allocation, players=["Carol", "Dave"], editor="coach"), now=NOW
    )

    assert updated.players == ["Carol", "Dave"]


def test_allocation_change_orders_summary_players_ignoring_case():
    allocation = Allocation(summary={"bob": 10, "Carol": 10, "alice": 5})

    updated, _ = diff_match_update(_match(), MatchUpdatePayload(allocation=allocation, editor="coach"), now=NOW)

    assert updated.players == ["alice", "bob", "Carol"]


def test_diff_result_uses_string_forms():
    changes = diff_result(MatchResult(honorable_mentions=[]), MatchResult(honorable_mentions=None))

    assert changes == []
