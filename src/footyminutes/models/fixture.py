"""Request and response bodies for the fixture endpoints."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import Field, field_validator

from .base import CamelModel


VenueType = Literal["HOME", "AWAY", "NEUTRAL"]
FixtureStatus = Literal["DRAFT", "LOCKED", "FINAL"]
SquadRole = Literal["STARTER", "BENCH"]
LineupWave = Literal["FULL", "FIRST", "SECOND"]
LineupPosition = Literal["GK", "DEF", "ATT"]
ResultCode = Literal["WIN", "DRAW", "LOSS", "ABANDONED", "VOID"]
AwardType = Literal["SCORER", "HONORABLE_MENTION", "ASSIST"]


class Ack(CamelModel):
    id: str


class SquadEntryWrite(CamelModel):
    player_id: str
    role: SquadRole = "STARTER"


class FixtureCreateRequest(CamelModel):
    team_id: str = Field(..., min_length=1)
    opponent: str
    fixture_date: str
    kickoff_time: Optional[str] = None
    venue_type: VenueType = "HOME"
    squad: List[SquadEntryWrite] = Field(default_factory=list)

    @field_validator("opponent")
    @classmethod
    def _require_opponent(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("opponent is required")
        return value.strip()


class FixtureUpdateRequest(CamelModel):
    opponent: Optional[str] = None
    fixture_date: Optional[str] = None
    kickoff_time: Optional[str] = None
    venue_type: Optional[VenueType] = None


class LineupSlotWrite(CamelModel):
    quarter_number: int = Field(..., ge=1)
    wave: LineupWave = "FULL"
    position: LineupPosition
    player_id: str
    minutes: int = Field(default=0, ge=0)
    is_substitution: bool = False


class LineupWriteRequest(CamelModel):
    slots: List[LineupSlotWrite]


class AwardWrite(CamelModel):
    player_id: str
    award_type: AwardType
    count: int = Field(default=1, ge=1)


class ResultWriteRequest(CamelModel):
    result_code: Optional[ResultCode] = None
    team_goals: Optional[int] = Field(default=None, ge=0)
    opponent_goals: Optional[int] = Field(default=None, ge=0)
    player_of_match_id: Optional[str] = None
    awards: List[AwardWrite] = Field(default_factory=list)

    @property
    def is_void(self) -> bool:
        return self.result_code is None or self.result_code == "VOID"


class FixtureResultSummary(CamelModel):
    result_code: ResultCode
    team_goals: Optional[int] = None
    opponent_goals: Optional[int] = None


class FixtureSummary(CamelModel):
    id: str
    team_id: str
    opponent: str
    fixture_date: str
    kickoff_time: Optional[str] = None
    venue_type: VenueType
    status: FixtureStatus
    created_at: str
    updated_at: str
    result: Optional[FixtureResultSummary] = None


class FixturePlayerDetail(CamelModel):
    id: str
    player_id: str
    display_name: str
    role: SquadRole
    minutes: int = 0
    positions: List[str] = Field(default_factory=list)
    notes: Optional[str] = None
    removed_at: Optional[str] = None


class LineupSlotDetail(CamelModel):
    id: str
    fixture_id: str
    quarter_number: int
    wave: LineupWave
    position: LineupPosition
    player_id: str
    player_name: str
    minutes: int
    is_substitution: bool = False
    squad_role: Optional[SquadRole] = None


class FixtureResultDetail(CamelModel):
    result_code: ResultCode
    team_goals: Optional[int] = None
    opponent_goals: Optional[int] = None
    player_of_match_id: Optional[str] = None
    player_of_match_name: Optional[str] = None


class AwardDetail(CamelModel):
    id: str
    fixture_id: str
    player_id: Optional[str] = None
    player_name: Optional[str] = None
    award_type: AwardType
    count: int


class FixtureDetail(CamelModel):
    fixture: FixtureSummary
    squad: List[FixturePlayerDetail] = Field(default_factory=list)
    quarters: List[LineupSlotDetail] = Field(default_factory=list)
    result: Optional[FixtureResultDetail] = None
    awards: List[AwardDetail] = Field(default_factory=list)
