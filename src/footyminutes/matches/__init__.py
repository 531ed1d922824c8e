from .allocation import DecodedLineup, SquadTotals, decode_lineup, derive_squad_totals, encode_allocation, normalise_wave, summarize_allocation
from .audit import diff_match_update, diff_result
from .backends import STORAGE_KEY, LocalMatchBackend, RemoteMatchBackend, fixture_detail_to_match
from .mediator import MatchPersistence, PersistenceState
from .resolver import NameResolver, RosterSource, normalise_name_key
from .result import (
    decode_result,
    encode_result,
    has_result_details,
    outcome_to_result_code,
    result_code_to_outcome,
    venue_to_api,
    venue_to_display,
    void_result,
)

__all__ = [
    "DecodedLineup",
    "LocalMatchBackend",
    "MatchPersistence",
    "NameResolver",
    "PersistenceState",
    "RemoteMatchBackend",
    "RosterSource",
    "STORAGE_KEY",
    "SquadTotals",
    "decode_lineup",
    "decode_result",
    "derive_squad_totals",
    "diff_match_update",
    "diff_result",
    "encode_allocation",
    "encode_result",
    "fixture_detail_to_match",
    "has_result_details",
    "normalise_name_key",
    "normalise_wave",
    "outcome_to_result_code",
    "result_code_to_outcome",
    "summarize_allocation",
    "venue_to_api",
    "venue_to_display",
    "void_result",
]
