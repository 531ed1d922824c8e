"""Match, allocation and result shapes exchanged with callers and local storage.

These models are keyed by player *display name*. Identifier resolution only
happens at the persistence boundary (see :mod:`footyminutes.matches.resolver`).
"""

from __future__ import annotations

from typing import Dict, List, Literal, Optional

from pydantic import Field, field_validator, model_validator
from pydantic.config import ConfigDict

from .base import CamelModel


Position = Literal["GK", "DEF", "ATT"]
Wave = Literal["first", "second"]

MatchEditField = Literal[
    "opponent",
    "date",
    "time",
    "result.venue",
    "result.result",
    "result.goalsFor",
    "result.goalsAgainst",
    "result.playerOfMatch",
    "result.honorableMentions",
    "result.scorers",
    "allocation",
]


class PlayerSlot(CamelModel):
    player: str
    position: Position
    minutes: int = Field(default=0, ge=0)
    wave: Optional[Wave] = None
    is_substitution: bool = False

    @model_validator(mode="after")
    def _goalkeeper_plays_full(self) -> "PlayerSlot":
        # Goalkeepers are never split into substitution waves.
        if self.position == "GK":
            self.wave = None
        return self


class QuarterAllocation(CamelModel):
    quarter: int = Field(..., ge=1)
    slots: List[PlayerSlot] = Field(default_factory=list)


class Allocation(CamelModel):
    quarters: List[QuarterAllocation] = Field(default_factory=list)
    summary: Dict[str, int] = Field(default_factory=dict)
    warnings: List[str] = Field(default_factory=list)


class MatchResult(CamelModel):
    venue: Optional[str] = None
    result: Optional[str] = None
    goals_for: Optional[int] = Field(default=None, ge=0)
    goals_against: Optional[int] = Field(default=None, ge=0)
    player_of_match: Optional[str] = None
    honorable_mentions: Optional[List[str]] = None
    scorers: Optional[List[str]] = None


class MatchMetadata(CamelModel):
    player_id_lookup: Dict[str, str] = Field(default_factory=dict)
    venue_type: Optional[str] = None
    kickoff_time: Optional[str] = None
    status: Optional[str] = None
    team_id: Optional[str] = None


class SaveMatchPayload(CamelModel):
    date: str = Field(..., min_length=1)
    time: Optional[str] = None
    opponent: str
    players: List[str] = Field(default_factory=list)
    allocation: Allocation = Field(default_factory=Allocation)
    result: Optional[MatchResult] = None
    created_by: Optional[str] = None

    @field_validator("opponent")
    @classmethod
    def _require_opponent(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("opponent is required")
        return value


class MatchEditEvent(CamelModel):
    id: str
    field: MatchEditField
    previous_value: str
    new_value: str
    edited_at: str
    edited_by: str

    model_config = ConfigDict(frozen=True)


class MatchRecord(SaveMatchPayload):
    id: str
    created_at: str
    last_modified_at: str
    edit_history: List[MatchEditEvent] = Field(default_factory=list)
    metadata: Optional[MatchMetadata] = None


class MatchUpdatePayload(CamelModel):
    """Partial update. ``result`` set explicitly to ``None`` clears the result."""

    opponent: Optional[str] = None
    date: Optional[str] = None
    time: Optional[str] = None
    result: Optional[MatchResult] = None
    allocation: Optional[Allocation] = None
    players: Optional[List[str]] = None
    editor: str

    @field_validator("opponent")
    @classmethod
    def _reject_blank_opponent(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            raise ValueError("opponent is required")
        return value

    @field_validator("date")
    @classmethod
    def _reject_blank_date(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            raise ValueError("date is required")
        return value

    @property
    def includes_result(self) -> bool:
        return "result" in self.model_fields_set


class BulkImportResult(CamelModel):
    added: List[MatchRecord] = Field(default_factory=list)
    skipped: int = 0
