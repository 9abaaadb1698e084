"""
API request/response schemas for the scoring endpoints.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from takraw.models.match import FailureReason, MatchScoreState, PlayType, ScoreEvent
from takraw.models.roster import Team


class TeamSpec(BaseModel):
    """A regu as entered at match setup: one player per position."""
    name: str
    tekong: str = Field(description="Server's name")
    feeder: str = Field(description="Setter's name")
    striker: str = Field(description="Attacker's name")
    is_bot_team: bool = False


class CreateMatchRequest(BaseModel):
    team_a: TeamSpec
    team_b: TeamSpec
    team_a_serves_first: bool = True


class PlayRequest(BaseModel):
    player_id: Optional[str] = Field(default=None, description="Omit on serve to use the tekong")
    play_type: PlayType
    success: bool = True
    failure_reason: Optional[FailureReason] = None


class ContinuationRequest(BaseModel):
    """Rally continuation attributed to one player (interception, block cover/return)."""
    player_id: str
    play_type: PlayType = PlayType.ATTACK


class ReceiveBlockedRequest(BaseModel):
    player_id: str
    play_type: PlayType = PlayType.RECEIVE


class SetFailureRequest(BaseModel):
    player_id: str
    reason: FailureReason


class MatchCreated(BaseModel):
    match_id: str
    team_a: Team
    team_b: Team
    state: MatchScoreState


class TimelineResponse(BaseModel):
    match_id: str
    total_events: int
    events: list[ScoreEvent]


class UndoResponse(BaseModel):
    tier: str
    reverted_events: int
    state: MatchScoreState
