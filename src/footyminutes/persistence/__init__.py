"""Persistence layer: the relational fixture store and local keyed storage."""

from __future__ import annotations

import json
import logging
import sqlite3
import tempfile
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple
from uuid import uuid4

from footyminutes.matches.allocation import derive_squad_totals, normalise_wave
from footyminutes.models import LineupSlotWrite, ResultWriteRequest

from .local import KeyValueStorage, MemoryStorage, SqliteKeyValueStorage


logger = logging.getLogger(__name__)

_UNSET = object()


@dataclass
class PlayerRow:
    id: str
    team_id: str
    display_name: str
    squad_number: Optional[int]
    preferred_positions: List[str]
    created_at: str
    updated_at: str
    removed_at: Optional[str]


@dataclass
class FixtureRow:
    id: str
    team_id: str
    opponent: str
    fixture_date: str
    kickoff_time: Optional[str]
    venue_type: str
    status: str
    result_code: Optional[str]
    team_goals: Optional[int]
    opponent_goals: Optional[int]
    player_of_match_id: Optional[str]
    created_at: str
    updated_at: str

    @property
    def has_result(self) -> bool:
        return self.result_code is not None


@dataclass
class SquadRow:
    id: str
    fixture_id: str
    player_id: str
    display_name: str
    role: str
    minutes: int
    positions: List[str] = field(default_factory=list)
    notes: Optional[str] = None
    removed_at: Optional[str] = None


@dataclass
class SlotRow:
    id: str
    fixture_id: str
    quarter_number: int
    slot_index: int
    wave: str
    position: str
    player_id: str
    player_name: str
    minutes: int
    is_substitution: bool
    squad_role: Optional[str]


@dataclass
class AwardRow:
    id: str
    fixture_id: str
    player_id: Optional[str]
    player_name: Optional[str]
    award_type: str
    count: int


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def parse_fixture_date(value: str) -> str:
    """Normalise a fixture date to ``YYYY-MM-DD``; raises ValueError when invalid."""

    if not isinstance(value, str) or not value.strip():
        raise ValueError("fixtureDate must be a non-empty string")
    text = value.strip()
    try:
        return date.fromisoformat(text).isoformat()
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date().isoformat()
    except ValueError as exc:
        raise ValueError(f"fixtureDate is invalid: {value!r}") from exc


class FixtureStore:
    """SQLite-backed store for players, fixtures, squads, lineups and awards."""

    def __init__(self, db_path: Path | str):
        self._use_uri = False
        if isinstance(db_path, str) and db_path.startswith("file:"):
            self.db_path: Path | str = db_path
            self._use_uri = True
        else:
            self.db_path = Path(db_path)
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        if isinstance(self.db_path, Path):
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            conn = sqlite3.connect(self.db_path, uri=self._use_uri)
        except sqlite3.OperationalError:
            fallback_dir = Path(tempfile.gettempdir()) / "footyminutes-runtime"
            fallback_dir.mkdir(parents=True, exist_ok=True)
            fallback = fallback_dir / "footyminutes.sqlite"
            logger.warning("Unable to open %s; using %s instead", self.db_path, fallback)
            conn = sqlite3.connect(fallback)
            self.db_path = fallback
            self._use_uri = False
            self._create_schema(conn)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            self._create_schema(conn)

    def _create_schema(self, conn: sqlite3.Connection) -> None:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS players (
                id TEXT PRIMARY KEY,
                team_id TEXT NOT NULL,
                display_name TEXT NOT NULL,
                squad_number INTEGER,
                preferred_positions_json TEXT NOT NULL,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                removed_at TEXT
            )
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS fixtures (
                id TEXT PRIMARY KEY,
                team_id TEXT NOT NULL,
                opponent TEXT NOT NULL,
                fixture_date TEXT NOT NULL,
                kickoff_time TEXT,
                venue_type TEXT NOT NULL,
                status TEXT NOT NULL,
                result_code TEXT,
                team_goals INTEGER,
                opponent_goals INTEGER,
                player_of_match_id TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS fixture_players (
                id TEXT PRIMARY KEY,
                fixture_id TEXT NOT NULL REFERENCES fixtures(id) ON DELETE CASCADE,
                player_id TEXT NOT NULL REFERENCES players(id),
                role TEXT NOT NULL,
                minutes INTEGER NOT NULL DEFAULT 0,
                positions_json TEXT NOT NULL DEFAULT '[]',
                notes TEXT,
                UNIQUE (fixture_id, player_id)
            )
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS lineup_slots (
                id TEXT PRIMARY KEY,
                fixture_id TEXT NOT NULL REFERENCES fixtures(id) ON DELETE CASCADE,
                quarter_number INTEGER NOT NULL,
                slot_index INTEGER NOT NULL,
                wave TEXT NOT NULL,
                position TEXT NOT NULL,
                player_id TEXT NOT NULL REFERENCES players(id),
                minutes INTEGER NOT NULL,
                is_substitution INTEGER NOT NULL DEFAULT 0
            )
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS fixture_awards (
                id TEXT PRIMARY KEY,
                fixture_id TEXT NOT NULL REFERENCES fixtures(id) ON DELETE CASCADE,
                player_id TEXT REFERENCES players(id),
                award_type TEXT NOT NULL,
                count INTEGER NOT NULL DEFAULT 1,
                UNIQUE (fixture_id, player_id, award_type)
            )
            """
        )
        conn.commit()

    # Players ---------------------------------------------------------------

    def create_player(
        self,
        *,
        team_id: str,
        display_name: str,
        squad_number: Optional[int] = None,
        preferred_positions: Iterable[str] = (),
        player_id: Optional[str] = None,
        created_at: Optional[str] = None,
        removed_at: Optional[str] = None,
    ) -> PlayerRow:
        name = display_name.strip()
        if not name:
            raise ValueError("displayName is required")
        player_id = player_id or uuid4().hex
        now = created_at or _now_iso()
        with self._connect() as conn:
            try:
                conn.execute(
                    """
                    INSERT INTO players (
                        id, team_id, display_name, squad_number, preferred_positions_json,
                        created_at, updated_at, removed_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        player_id,
                        team_id,
                        name,
                        squad_number,
                        json.dumps([pos.strip() for pos in preferred_positions]),
                        now,
                        now,
                        removed_at,
                    ),
                )
            except sqlite3.IntegrityError as exc:
                raise ValueError(f"Player {player_id} already exists") from exc
            conn.commit()
        player = self.get_player(player_id)
        if player is None:  # pragma: no cover
            raise KeyError(f"Player {player_id} not found after insert")
        return player

    def get_player(self, player_id: str) -> Optional[PlayerRow]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM players WHERE id = ?", (player_id,)).fetchone()
        return self._row_to_player(row) if row is not None else None

    def find_team_player(self, team_id: str, player_id: Optional[str]) -> Optional[PlayerRow]:
        if not player_id:
            return None
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM players WHERE id = ? AND team_id = ?",
                (player_id, team_id),
            ).fetchone()
        return self._row_to_player(row) if row is not None else None

    def list_players(self, team_id: str, *, include_removed: bool = False) -> List[PlayerRow]:
        query = "SELECT * FROM players WHERE team_id = ?"
        if not include_removed:
            query += " AND removed_at IS NULL"
        query += " ORDER BY display_name ASC"
        with self._connect() as conn:
            rows = conn.execute(query, (team_id,)).fetchall()
        return [self._row_to_player(row) for row in rows]

    def update_player(
        self,
        player_id: str,
        *,
        display_name: Optional[str] = None,
        squad_number: object = _UNSET,
        preferred_positions: Optional[Iterable[str]] = None,
    ) -> PlayerRow:
        player = self.get_player(player_id)
        if player is None:
            raise KeyError(f"Player {player_id} not found")

        updated_name = display_name.strip() if display_name is not None else player.display_name
        if not updated_name:
            raise ValueError("displayName cannot be blank")
        updated_number = player.squad_number if squad_number is _UNSET else squad_number
        updated_positions = (
            [pos.strip() for pos in preferred_positions]
            if preferred_positions is not None
            else player.preferred_positions
        )
        with self._connect() as conn:
            conn.execute(
                """
                UPDATE players
                SET display_name = ?, squad_number = ?, preferred_positions_json = ?, updated_at = ?
                WHERE id = ?
                """,
                (updated_name, updated_number, json.dumps(updated_positions), _now_iso(), player_id),
            )
            conn.commit()
        updated = self.get_player(player_id)
        if updated is None:  # pragma: no cover
            raise KeyError(f"Player {player_id} not found after update")
        return updated

    def set_player_removed(self, player_id: str, removed: bool) -> PlayerRow:
        """Soft-delete (``removed=True``) or restore a player."""

        if self.get_player(player_id) is None:
            raise KeyError(f"Player {player_id} not found")
        now = _now_iso()
        with self._connect() as conn:
            conn.execute(
                "UPDATE players SET removed_at = ?, updated_at = ? WHERE id = ?",
                (now if removed else None, now, player_id),
            )
            conn.commit()
        updated = self.get_player(player_id)
        if updated is None:  # pragma: no cover
            raise KeyError(f"Player {player_id} not found after update")
        return updated

    # Fixtures --------------------------------------------------------------

    def create_fixture(
        self,
        *,
        team_id: str,
        opponent: str,
        fixture_date: str,
        kickoff_time: Optional[str] = None,
        venue_type: str = "HOME",
        squad: Iterable[Tuple[str, str]] = (),
        fixture_id: Optional[str] = None,
        created_at: Optional[str] = None,
    ) -> FixtureRow:
        opponent = opponent.strip()
        if not opponent:
            raise ValueError("opponent is required")
        normalised_date = parse_fixture_date(fixture_date)
        entries: list[tuple[str, str]] = []
        for player_id, role in squad:
            if self.find_team_player(team_id, player_id) is None:
                raise ValueError(f"Player {player_id} not found for team {team_id}")
            entries.append((player_id, "BENCH" if role == "BENCH" else "STARTER"))

        fixture_id = fixture_id or uuid4().hex
        now = created_at or _now_iso()
        with self._connect() as conn:
            try:
                conn.execute(
                    """
                    INSERT INTO fixtures (
                        id, team_id, opponent, fixture_date, kickoff_time, venue_type, status,
                        result_code, team_goals, opponent_goals, player_of_match_id,
                        created_at, updated_at
                    ) VALUES (?, ?, ?, ?, ?, ?, 'DRAFT', NULL, NULL, NULL, NULL, ?, ?)
                    """,
                    (fixture_id, team_id, opponent, normalised_date, kickoff_time, venue_type, now, now),
                )
            except sqlite3.IntegrityError as exc:
                raise ValueError(f"Fixture {fixture_id} already exists") from exc
            for player_id, role in entries:
                conn.execute(
                    """
                    INSERT OR IGNORE INTO fixture_players (id, fixture_id, player_id, role)
                    VALUES (?, ?, ?, ?)
                    """,
                    (f"{fixture_id}_{player_id}", fixture_id, player_id, role),
                )
            conn.commit()
        fixture = self.get_fixture(fixture_id)
        if fixture is None:  # pragma: no cover
            raise KeyError(f"Fixture {fixture_id} not found after insert")
        return fixture

    def get_fixture(self, fixture_id: str) -> Optional[FixtureRow]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM fixtures WHERE id = ?", (fixture_id,)).fetchone()
        return self._row_to_fixture(row) if row is not None else None

    def require_fixture(self, fixture_id: str) -> FixtureRow:
        fixture = self.get_fixture(fixture_id)
        if fixture is None:
            raise KeyError(f"Fixture {fixture_id} not found")
        return fixture

    def list_fixtures(self, team_id: str) -> List[FixtureRow]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM fixtures WHERE team_id = ? ORDER BY fixture_date DESC, created_at DESC",
                (team_id,),
            ).fetchall()
        return [self._row_to_fixture(row) for row in rows]

    def update_fixture(
        self,
        fixture_id: str,
        *,
        opponent: Optional[str] = None,
        fixture_date: Optional[str] = None,
        kickoff_time: Optional[str] = None,
        venue_type: Optional[str] = None,
    ) -> FixtureRow:
        fixture = self.require_fixture(fixture_id)
        updated_opponent = opponent.strip() if opponent is not None else fixture.opponent
        if not updated_opponent:
            raise ValueError("opponent cannot be blank")
        updated_date = parse_fixture_date(fixture_date) if fixture_date is not None else fixture.fixture_date
        with self._connect() as conn:
            conn.execute(
                """
                UPDATE fixtures
                SET opponent = ?, fixture_date = ?, kickoff_time = ?, venue_type = ?, updated_at = ?
                WHERE id = ?
                """,
                (
                    updated_opponent,
                    updated_date,
                    kickoff_time if kickoff_time is not None else fixture.kickoff_time,
                    venue_type or fixture.venue_type,
                    _now_iso(),
                    fixture_id,
                ),
            )
            conn.commit()
        return self.require_fixture(fixture_id)

    def lock_fixture(self, fixture_id: str) -> FixtureRow:
        """Move a DRAFT fixture to LOCKED; LOCKED and FINAL are left alone."""

        fixture = self.require_fixture(fixture_id)
        if fixture.status != "DRAFT":
            return fixture
        with self._connect() as conn:
            conn.execute(
                "UPDATE fixtures SET status = 'LOCKED', updated_at = ? WHERE id = ?",
                (_now_iso(), fixture_id),
            )
            conn.commit()
        return self.require_fixture(fixture_id)

    def delete_team_data(self, team_id: str) -> None:
        with self._connect() as conn:
            fixture_ids = [row["id"] for row in conn.execute("SELECT id FROM fixtures WHERE team_id = ?", (team_id,))]
            for fixture_id in fixture_ids:
                conn.execute("DELETE FROM fixture_awards WHERE fixture_id = ?", (fixture_id,))
                conn.execute("DELETE FROM lineup_slots WHERE fixture_id = ?", (fixture_id,))
                conn.execute("DELETE FROM fixture_players WHERE fixture_id = ?", (fixture_id,))
            conn.execute("DELETE FROM fixtures WHERE team_id = ?", (team_id,))
            conn.execute("DELETE FROM players WHERE team_id = ?", (team_id,))
            conn.commit()

    # Squad / lineup ---------------------------------------------------------

    def get_squad(self, fixture_id: str) -> List[SquadRow]:
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT fp.*, p.display_name AS display_name, p.removed_at AS removed_at
                FROM fixture_players fp
                JOIN players p ON p.id = fp.player_id
                WHERE fp.fixture_id = ?
                ORDER BY p.display_name ASC
                """,
                (fixture_id,),
            ).fetchall()
        return [
            SquadRow(
                id=row["id"],
                fixture_id=row["fixture_id"],
                player_id=row["player_id"],
                display_name=row["display_name"],
                role=row["role"],
                minutes=row["minutes"],
                positions=json.loads(row["positions_json"] or "[]"),
                notes=row["notes"],
                removed_at=row["removed_at"],
            )
            for row in rows
        ]

    def get_lineup(self, fixture_id: str) -> List[SlotRow]:
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT ls.*, p.display_name AS player_name, fp.role AS squad_role
                FROM lineup_slots ls
                JOIN players p ON p.id = ls.player_id
                LEFT JOIN fixture_players fp
                    ON fp.fixture_id = ls.fixture_id AND fp.player_id = ls.player_id
                WHERE ls.fixture_id = ?
                ORDER BY ls.quarter_number ASC, ls.slot_index ASC
                """,
                (fixture_id,),
            ).fetchall()
        return [
            SlotRow(
                id=row["id"],
                fixture_id=row["fixture_id"],
                quarter_number=row["quarter_number"],
                slot_index=row["slot_index"],
                wave=row["wave"],
                position=row["position"],
                player_id=row["player_id"],
                player_name=row["player_name"],
                minutes=row["minutes"],
                is_substitution=bool(row["is_substitution"]),
                squad_role=row["squad_role"],
            )
            for row in rows
        ]

    def write_lineup(self, fixture_id: str, slots: Sequence[LineupSlotWrite]) -> FixtureRow:
        """Replace the fixture's lineup and re-derive every squad member's totals.

        Players on the team but not yet in the squad join it on the bench.
        """

        fixture = self.require_fixture(fixture_id)
        for slot in slots:
            if self.find_team_player(fixture.team_id, slot.player_id) is None:
                raise ValueError(f"Unknown player {slot.player_id} in lineup payload")

        normalised = [
            slot.model_copy(update={"wave": normalise_wave(slot.position, slot.wave)}) for slot in slots
        ]
        totals = derive_squad_totals(normalised)
        with self._connect() as conn:
            existing = {
                row["player_id"]
                for row in conn.execute(
                    "SELECT player_id FROM fixture_players WHERE fixture_id = ?", (fixture_id,)
                )
            }
            for player_id in totals:
                if player_id not in existing:
                    conn.execute(
                        "INSERT INTO fixture_players (id, fixture_id, player_id, role) VALUES (?, ?, ?, 'BENCH')",
                        (f"{fixture_id}_{player_id}", fixture_id, player_id),
                    )
                    existing.add(player_id)

            conn.execute("DELETE FROM lineup_slots WHERE fixture_id = ?", (fixture_id,))
            for index, slot in enumerate(normalised):
                conn.execute(
                    """
                    INSERT INTO lineup_slots (
                        id, fixture_id, quarter_number, slot_index, wave, position,
                        player_id, minutes, is_substitution
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        f"{fixture_id}_{slot.quarter_number}_{index}",
                        fixture_id,
                        slot.quarter_number,
                        index,
                        slot.wave,
                        slot.position,
                        slot.player_id,
                        slot.minutes,
                        int(slot.is_substitution),
                    ),
                )

            for player_id in existing:
                entry = totals.get(player_id)
                conn.execute(
                    "UPDATE fixture_players SET minutes = ?, positions_json = ? WHERE fixture_id = ? AND player_id = ?",
                    (
                        entry.minutes if entry else 0,
                        json.dumps(entry.positions if entry else []),
                        fixture_id,
                        player_id,
                    ),
                )
            conn.execute("UPDATE fixtures SET updated_at = ? WHERE id = ?", (_now_iso(), fixture_id))
            conn.commit()
        return self.require_fixture(fixture_id)

    # Results / awards --------------------------------------------------------

    def get_awards(self, fixture_id: str) -> List[AwardRow]:
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT fa.*, p.display_name AS player_name
                FROM fixture_awards fa
                LEFT JOIN players p ON p.id = fa.player_id
                WHERE fa.fixture_id = ?
                ORDER BY fa.rowid ASC
                """,
                (fixture_id,),
            ).fetchall()
        return [
            AwardRow(
                id=row["id"],
                fixture_id=row["fixture_id"],
                player_id=row["player_id"],
                player_name=row["player_name"],
                award_type=row["award_type"],
                count=row["count"],
            )
            for row in rows
        ]

    def write_result(self, fixture_id: str, result: ResultWriteRequest) -> FixtureRow:
        """Store a result, replacing the whole award set.

        A VOID (or missing) result code clears the result and leaves the fixture
        LOCKED. Award entries whose player is not on the team are skipped.
        """

        fixture = self.require_fixture(fixture_id)
        now = _now_iso()

        if result.is_void:
            with self._connect() as conn:
                conn.execute(
                    """
                    UPDATE fixtures
                    SET result_code = NULL, team_goals = NULL, opponent_goals = NULL,
                        player_of_match_id = NULL, status = 'LOCKED', updated_at = ?
                    WHERE id = ?
                    """,
                    (now, fixture_id),
                )
                conn.execute("DELETE FROM fixture_awards WHERE fixture_id = ?", (fixture_id,))
                conn.commit()
            return self.require_fixture(fixture_id)

        if result.player_of_match_id and self.find_team_player(fixture.team_id, result.player_of_match_id) is None:
            raise ValueError("Unknown playerOfMatchId")

        counts: dict[tuple[str, str], int] = {}
        for award in result.awards:
            if self.find_team_player(fixture.team_id, award.player_id) is None:
                logger.warning(
                    "Skipping %s award for unknown player %s on fixture %s",
                    award.award_type,
                    award.player_id,
                    fixture_id,
                )
                continue
            key = (award.player_id, award.award_type)
            if award.award_type == "SCORER":
                counts[key] = counts.get(key, 0) + award.count
            else:
                counts[key] = 1

        with self._connect() as conn:
            conn.execute(
                """
                UPDATE fixtures
                SET result_code = ?, team_goals = ?, opponent_goals = ?,
                    player_of_match_id = ?, status = 'FINAL', updated_at = ?
                WHERE id = ?
                """,
                (
                    result.result_code,
                    result.team_goals,
                    result.opponent_goals,
                    result.player_of_match_id,
                    now,
                    fixture_id,
                ),
            )
            conn.execute("DELETE FROM fixture_awards WHERE fixture_id = ?", (fixture_id,))
            for (player_id, award_type), count in counts.items():
                conn.execute(
                    """
                    INSERT INTO fixture_awards (id, fixture_id, player_id, award_type, count)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (uuid4().hex, fixture_id, player_id, award_type, count),
                )
            conn.commit()
        return self.require_fixture(fixture_id)

    # Row mapping -------------------------------------------------------------

    def _row_to_player(self, row: sqlite3.Row) -> PlayerRow:
        return PlayerRow(
            id=row["id"],
            team_id=row["team_id"],
            display_name=row["display_name"],
            squad_number=row["squad_number"],
            preferred_positions=json.loads(row["preferred_positions_json"] or "[]"),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            removed_at=row["removed_at"],
        )

    def _row_to_fixture(self, row: sqlite3.Row) -> FixtureRow:
        return FixtureRow(
            id=row["id"],
            team_id=row["team_id"],
            opponent=row["opponent"],
            fixture_date=row["fixture_date"],
            kickoff_time=row["kickoff_time"],
            venue_type=row["venue_type"],
            status=row["status"],
            result_code=row["result_code"],
            team_goals=row["team_goals"],
            opponent_goals=row["opponent_goals"],
            player_of_match_id=row["player_of_match_id"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )


__all__ = [
    "AwardRow",
    "FixtureRow",
    "FixtureStore",
    "KeyValueStorage",
    "MemoryStorage",
    "PlayerRow",
    "SlotRow",
    "SqliteKeyValueStorage",
    "SquadRow",
    "parse_fixture_date",
]
