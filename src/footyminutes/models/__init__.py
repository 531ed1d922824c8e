"""Domain and wire models shared across the codecs, persistence layer and API."""

from .base import CamelModel
from .fixture import (
    Ack,
    AwardDetail,
    AwardWrite,
    FixtureCreateRequest,
    FixtureDetail,
    FixturePlayerDetail,
    FixtureResultDetail,
    FixtureResultSummary,
    FixtureSummary,
    FixtureUpdateRequest,
    LineupSlotDetail,
    LineupSlotWrite,
    LineupWriteRequest,
    ResultWriteRequest,
    SquadEntryWrite,
)
from .match import (
    Allocation,
    BulkImportResult,
    MatchEditEvent,
    MatchEditField,
    MatchMetadata,
    MatchRecord,
    MatchResult,
    MatchUpdatePayload,
    PlayerSlot,
    Position,
    QuarterAllocation,
    SaveMatchPayload,
    Wave,
)
from .player import Player, PlayerCreateRequest, PlayerResponse, PlayerUpdateRequest

__all__ = [
    "Ack",
    "Allocation",
    "AwardDetail",
    "AwardWrite",
    "BulkImportResult",
    "CamelModel",
    "FixtureCreateRequest",
    "FixtureDetail",
    "FixturePlayerDetail",
    "FixtureResultDetail",
    "FixtureResultSummary",
    "FixtureSummary",
    "FixtureUpdateRequest",
    "LineupSlotDetail",
    "LineupSlotWrite",
    "LineupWriteRequest",
    "MatchEditEvent",
    "MatchEditField",
    "MatchMetadata",
    "MatchRecord",
    "MatchResult",
    "MatchUpdatePayload",
    "Player",
    "PlayerCreateRequest",
    "PlayerResponse",
    "PlayerSlot",
    "PlayerUpdateRequest",
    "Position",
    "QuarterAllocation",
    "ResultWriteRequest",
    "SaveMatchPayload",
    "SquadEntryWrite",
    "Wave",
]
