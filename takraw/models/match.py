"""
Match data models — Rally stages, play vocabulary, stat records and the
score-ledger event shape for a single sepak takraw set.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from takraw.config import settings


# ── Enums ────────────────────────────────────────────────────────────────────

class RallyStage(str, Enum):
    SERVING = "serving"
    RECEIVING = "receiving"
    SETTING = "setting"
    ATTACKING = "attacking"
    BLOCKING = "blocking"
    GAME_END = "game_end"


class PlayType(str, Enum):
    SERVE = "serve"
    SERVE_FEINT = "serve_feint"
    RECEIVE = "receive"
    SETTING = "setting"
    ATTACK = "attack"
    ATTACK_FEINT = "attack_feint"
    HEADING = "heading"
    ROLL_SPIKE = "rollspike"
    SUNBACK_SPIKE = "sunbackspike"
    BLOCK = "block"


class FailureReason(str, Enum):
    OUT = "out"
    BLOCKED = "blocked"
    NET = "net"
    FAULT = "fault"            # serve fault, net touch, etc.
    RECEIVED = "received"
    OVER_SET = "over_set"
    CHANCE_BALL = "chance_ball"
    BLOCK_COVER = "block_cover"
    OVER = "over"


class TeamSide(str, Enum):
    A = "A"
    B = "B"
    NONE = "None"

    @classmethod
    def of(cls, is_team_a: bool) -> "TeamSide":
        return cls.A if is_team_a else cls.B


SERVE_PLAYS = frozenset({PlayType.SERVE, PlayType.SERVE_FEINT})
ATTACK_PLAYS = frozenset({
    PlayType.ATTACK,
    PlayType.ATTACK_FEINT,
    PlayType.HEADING,
    PlayType.ROLL_SPIKE,
    PlayType.SUNBACK_SPIKE,
})

# Failures at the setting stage that hand the ball over instead of ending the rally
KEPT_ALIVE_SET_FAILURES = frozenset({FailureReason.OVER_SET, FailureReason.CHANCE_BALL})


# ── Core Models ──────────────────────────────────────────────────────────────

class SetRules(BaseModel):
    """Point thresholds for one set."""
    points_to_win: int = Field(default=settings.SET_POINTS_TO_WIN, ge=1)
    deuce_at: int = Field(default=settings.SET_DEUCE_AT, ge=1)
    hard_cap: int = Field(default=settings.SET_HARD_CAP, ge=1)

    @model_validator(mode="after")
    def check_thresholds(self) -> "SetRules":
        if not self.deuce_at < self.points_to_win < self.hard_cap:
            raise ValueError(
                f"Set rules need deuce_at < points_to_win < hard_cap, got "
                f"{self.deuce_at}/{self.points_to_win}/{self.hard_cap}"
            )
        return self


class MatchConfig(BaseModel):
    """Configuration the engine needs to seed one set."""
    match_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    team_a_serves_first: bool = settings.DEFAULT_TEAM_A_SERVES_FIRST
    rules: SetRules = Field(default_factory=SetRules)


class StatRecord(BaseModel):
    """One recorded play, owned by the player it is attached to."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    play_type: PlayType
    match_id: str
    success: bool
    failure_reason: Optional[FailureReason] = None


class ScoreEvent(BaseModel):
    """Score snapshot taken after a notable rally action."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    score_a: int = Field(ge=0)
    score_b: int = Field(ge=0)
    scoring_team: TeamSide = TeamSide.NONE
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    player_name: str
    play_type: PlayType
    success: bool = True
    serve_holder: TeamSide

    @property
    def serve_held_by_a(self) -> bool:
        return self.serve_holder == TeamSide.A

    @property
    def is_point(self) -> bool:
        return self.scoring_team != TeamSide.NONE


class SetOutcome(BaseModel):
    """Rules-engine verdict for a score line."""
    model_config = ConfigDict(frozen=True)

    message: str = ""
    is_set_finished: bool = False
    winner: Optional[TeamSide] = None


class MatchScoreState(BaseModel):
    """Externally observable snapshot of the set in progress."""
    match_id: str
    score_a: int = 0
    score_b: int = 0
    serve_held_by_a: bool = True
    rally_stage: RallyStage = RallyStage.SERVING
    rally_flow_reversed: bool = False
    outcome_message: str = ""
    is_set_finished: bool = False
    can_undo: bool = False

    @property
    def serve_holder(self) -> TeamSide:
        return TeamSide.of(self.serve_held_by_a)

    @property
    def score_display(self) -> str:
        return f"{self.score_a}-{self.score_b}"
