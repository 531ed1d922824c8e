"""Convert between free-text match results and result codes plus award records."""

from __future__ import annotations

from typing import Iterable, Mapping, Optional

from footyminutes.errors import PlayerNotFoundError
from footyminutes.models import AwardDetail, AwardWrite, FixtureResultDetail, MatchResult, ResultWriteRequest
from footyminutes.models.fixture import ResultCode, VenueType

from .resolver import normalise_name_key


RESULT_CODES: tuple[ResultCode, ...] = ("WIN", "DRAW", "LOSS", "ABANDONED")
VENUE_TYPES: tuple[VenueType, ...] = ("HOME", "AWAY", "NEUTRAL")


def to_title_case(value: str) -> str:
    return " ".join(word[:1].upper() + word[1:].lower() for word in value.strip().split())


def outcome_to_result_code(outcome: Optional[str]) -> ResultCode:
    """Map outcome text to a result code; anything unrecognised is VOID."""

    if not outcome:
        return "VOID"
    key = outcome.strip().upper()
    for code in RESULT_CODES:
        if key == code:
            return code
    return "VOID"


def result_code_to_outcome(code: Optional[str]) -> Optional[str]:
    if not code:
        return None
    upper = code.upper()
    if upper in RESULT_CODES or upper == "VOID":
        return upper.capitalize()
    return to_title_case(code)


def venue_to_api(venue: Optional[str]) -> VenueType:
    key = venue.strip().upper() if venue else ""
    if key == "AWAY":
        return "AWAY"
    if key == "NEUTRAL":
        return "NEUTRAL"
    return "HOME"


def venue_to_display(venue: Optional[str]) -> Optional[str]:
    if not venue:
        return None
    if venue.upper() in VENUE_TYPES:
        return venue.upper().capitalize()
    return to_title_case(venue)


def has_result_details(result: Optional[MatchResult]) -> bool:
    """True when the result carries anything beyond the venue.

    An explicit zero goal count is detail; an absent one is not.
    """

    if result is None:
        return False
    return bool(
        result.result
        or result.goals_for is not None
        or result.goals_against is not None
        or (result.player_of_match and result.player_of_match.strip())
        or result.scorers
        or result.honorable_mentions
    )


def void_result() -> ResultWriteRequest:
    return ResultWriteRequest(
        result_code="VOID",
        team_goals=None,
        opponent_goals=None,
        player_of_match_id=None,
        awards=[],
    )


def encode_result(result: MatchResult, name_to_id: Mapping[str, str]) -> ResultWriteRequest:
    awards: list[AwardWrite] = []

    scorer_counts: dict[str, int] = {}
    scorer_names: dict[str, str] = {}
    for name in result.scorers or []:
        key = normalise_name_key(name)
        scorer_counts[key] = scorer_counts.get(key, 0) + 1
        scorer_names.setdefault(key, name)
    for key, count in scorer_counts.items():
        player_id = name_to_id.get(key)
        if not player_id:
            raise PlayerNotFoundError([scorer_names[key]], f'Unknown scorer "{scorer_names[key]}"')
        awards.append(AwardWrite(player_id=player_id, award_type="SCORER", count=count))

    seen: set[str] = set()
    for name in result.honorable_mentions or []:
        key = normalise_name_key(name)
        if key in seen:
            continue
        seen.add(key)
        player_id = name_to_id.get(key)
        if not player_id:
            raise PlayerNotFoundError([name], f'Unknown honorable mention "{name}"')
        awards.append(AwardWrite(player_id=player_id, award_type="HONORABLE_MENTION", count=1))

    player_of_match_id: Optional[str] = None
    if result.player_of_match and result.player_of_match.strip():
        player_of_match_id = name_to_id.get(normalise_name_key(result.player_of_match))
        if not player_of_match_id:
            raise PlayerNotFoundError(
                [result.player_of_match],
                f'Unknown player of the match "{result.player_of_match}"',
            )

    return ResultWriteRequest(
        result_code=outcome_to_result_code(result.result),
        team_goals=result.goals_for,
        opponent_goals=result.goals_against,
        player_of_match_id=player_of_match_id,
        awards=awards,
    )


def decode_result(
    result: Optional[FixtureResultDetail],
    awards: Iterable[AwardDetail],
    venue_type: Optional[str] = None,
) -> Optional[MatchResult]:
    venue = venue_to_display(venue_type)
    if result is None and venue is None:
        return None

    decoded = MatchResult(venue=venue)
    if result is not None:
        decoded.result = result_code_to_outcome(result.result_code)
        decoded.goals_for = result.team_goals
        decoded.goals_against = result.opponent_goals
        if result.player_of_match_name:
            decoded.player_of_match = result.player_of_match_name

    scorers: list[str] = []
    mentions: list[str] = []
    for award in awards:
        if not award.player_name:
            continue
        if award.award_type == "SCORER":
            scorers.extend([award.player_name] * award.count)
        elif award.award_type == "HONORABLE_MENTION" and award.player_name not in mentions:
            mentions.append(award.player_name)
    if scorers:
        decoded.scorers = scorers
    if mentions:
        decoded.honorable_mentions = mentions
    return decoded
