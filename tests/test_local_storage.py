import json

import pytest
from pydantic import ValidationError

from footyminutes.matches import STORAGE_KEY, LocalMatchBackend
from footyminutes.models import MatchResult, MatchUpdatePayload, SaveMatchPayload
from footyminutes.persistence import MemoryStorage, SqliteKeyValueStorage


class FailingWrites(MemoryStorage):
    def set_item(self, key: str, value: str) -> None:
        raise OSError("disk full")


def _payload(opponent: str = "Rovers", date: str = "2024-09-01") -> SaveMatchPayload:
    return SaveMatchPayload(
        date=date,
        opponent=opponent,
        players=["Alice", "Bob"],
        result=MatchResult(result="Win", goals_for=2, goals_against=0),
        created_by="coach",
    )


def test_sqlite_storage_persists_between_instances(tmp_path):
    path = tmp_path / "local.sqlite"
    SqliteKeyValueStorage(path).set_item("k", "v1")
    SqliteKeyValueStorage(path).set_item("k", "v2")

    assert SqliteKeyValueStorage(path).get_item("k") == "v2"
    assert SqliteKeyValueStorage(path).get_item("missing") is None


@pytest.mark.anyio
async def test_save_and_list(tmp_path):
    backend = LocalMatchBackend(SqliteKeyValueStorage(tmp_path / "local.sqlite"))

    saved = await backend.save_match(_payload())
    listed = await backend.list_matches()

    assert saved.id
    assert saved.created_at == saved.last_modified_at
    assert saved.edit_history == []
    assert listed == [saved]


@pytest.mark.anyio
async def test_list_ignores_absent_or_corrupt_storage():
    assert await LocalMatchBackend(MemoryStorage()).list_matches() == []
    assert await LocalMatchBackend(MemoryStorage({STORAGE_KEY: "{not json"})).list_matches() == []


@pytest.mark.anyio
async def test_stored_blob_uses_camel_case():
    storage = MemoryStorage()
    await LocalMatchBackend(storage).save_match(_payload())

    stored = json.loads(storage.get_item(STORAGE_KEY))

    assert stored[0]["createdBy"] == "coach"
    assert stored[0]["result"]["goalsFor"] == 2


@pytest.mark.anyio
async def test_update_appends_history():
    backend = LocalMatchBackend(MemoryStorage())
    saved = await backend.save_match(_payload())

    updated = await backend.update_match(saved.id, MatchUpdatePayload(opponent="United", editor="coach"))

    assert updated.opponent == "United"
    assert [event.field for event in updated.edit_history] == ["opponent"]
    assert (await backend.list_matches())[0].opponent == "United"


@pytest.mark.anyio
async def test_update_without_changes_returns_record_untouched():
    backend = LocalMatchBackend(MemoryStorage())
    saved = await backend.save_match(_payload())

    updated = await backend.update_match(saved.id, MatchUpdatePayload(opponent="Rovers", editor="coach"))

    assert updated == saved


@pytest.mark.anyio
async def test_update_unknown_match_returns_none():
    backend = LocalMatchBackend(MemoryStorage())

    assert await backend.update_match("missing", MatchUpdatePayload(editor="coach")) is None


@pytest.mark.parametrize(("field", "value"), [("opponent", ""), ("opponent", "   "), ("date", ""), ("date", " ")])
def test_update_payload_rejects_blank_opponent_or_date(field: str, value: str):
    with pytest.raises(ValidationError, match=f"{field} is required"):
        MatchUpdatePayload(editor="coach", **{field: value})


@pytest.mark.anyio
async def test_rejected_blank_update_leaves_stored_matches_readable():
    backend = LocalMatchBackend(MemoryStorage())
    first = await backend.save_match(_payload())
    await backend.save_match(_payload(opponent="United", date="2024-09-08"))

    with pytest.raises(ValidationError):
        await backend.update_match(first.id, MatchUpdatePayload(opponent="", editor="coach"))

    assert [match.opponent for match in await backend.list_matches()] == ["Rovers", "United"]
    third = await backend.save_match(_payload(opponent="City", date="2024-09-15"))
    assert len(await backend.list_matches()) == 3
    assert third.opponent == "City"


@pytest.mark.anyio
async def test_bulk_import_skips_duplicates():
    backend = LocalMatchBackend(MemoryStorage())
    await backend.save_match(_payload("Rovers"))

    result = await backend.bulk_import(
        [_payload("Rovers"), _payload("United"), _payload("United"), _payload("United", date="2024-09-08")]
    )

    assert [record.opponent for record in result.added] == ["United", "United"]
    assert result.skipped == 2
    assert len(await backend.list_matches()) == 3


@pytest.mark.anyio
async def test_bulk_import_of_nothing():
    result = await LocalMatchBackend(MemoryStorage()).bulk_import([])

    assert result.added == []
    assert result.skipped == 0


@pytest.mark.anyio
async def test_bulk_import_write_failure_is_logged(caplog):
    result = await LocalMatchBackend(FailingWrites()).bulk_import([_payload()])

    assert len(result.added) == 1
    assert "unable to persist" in caplog.text
