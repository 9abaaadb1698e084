"""
Rally State Machine — the serve → receive → set → attack → block protocol.

Holds the current stage, who holds serve, and the rally-flow-reversed flag.
Transitions are computed first (``resolve_*``) and applied separately
(``apply``) so that a rejected play never touches state.

Stage graph:
    serving   --success-->  receiving
    receiving --success-->  setting
    setting   --success-->  attacking
    attacking --success-->  point for the attacking side
    attacking --blocked-->  blocking
    blocking  --success-->  point for the blocking side
    blocking  --cover---->  receiving             (same possession)
    blocking  --returned->  attacking             (possession flips)
    receiving --blocked---> blocking              (receive crossed the net)
    setting   --over-set/chance-ball--> attacking (possession flips)
    attacking --received--> receiving             (possession flips)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from takraw.engine.errors import StageMismatchError
from takraw.models.match import (
    ATTACK_PLAYS,
    KEPT_ALIVE_SET_FAILURES,
    SERVE_PLAYS,
    FailureReason,
    PlayType,
    RallyStage,
)


# ── Stage vocabulary ─────────────────────────────────────────────────────────

STAGE_PLAYS: dict[RallyStage, frozenset[PlayType]] = {
    RallyStage.SERVING: SERVE_PLAYS,
    RallyStage.RECEIVING: frozenset({PlayType.RECEIVE, PlayType.HEADING}),
    RallyStage.SETTING: frozenset({PlayType.SETTING, PlayType.HEADING}),
    RallyStage.ATTACKING: ATTACK_PLAYS,
    RallyStage.BLOCKING: ATTACK_PLAYS | {PlayType.BLOCK},
    RallyStage.GAME_END: frozenset(),
}

_COMMON_FAILURES = frozenset({FailureReason.FAULT, FailureReason.OUT, FailureReason.NET})

STAGE_FAILURES: dict[RallyStage, frozenset[FailureReason]] = {
    RallyStage.SERVING: _COMMON_FAILURES,
    RallyStage.RECEIVING: _COMMON_FAILURES,
    RallyStage.SETTING: _COMMON_FAILURES | KEPT_ALIVE_SET_FAILURES,
    RallyStage.ATTACKING: _COMMON_FAILURES | {FailureReason.BLOCKED},
    RallyStage.BLOCKING: _COMMON_FAILURES | {FailureReason.OVER, FailureReason.CHANCE_BALL},
    RallyStage.GAME_END: frozenset(),
}


@dataclass(frozen=True)
class RallyTransition:
    """Outcome of a play: either a stage change or a point award."""
    next_stage: RallyStage
    flips_possession: bool = False
    resets_flow: bool = False
    point_to_team_a: Optional[bool] = None

    @property
    def awards_point(self) -> bool:
        return self.point_to_team_a is not None


class RallyStateMachine:
    """
    Stage protocol for one rally at a time.

    Usage:
        rally = RallyStateMachine(serve_held_by_a=True)
        transition = rally.resolve_play(PlayType.SERVE, success=True)
        rally.apply(transition)
    """

    def __init__(self, serve_held_by_a: bool = True):
        self.stage = RallyStage.SERVING
        self.serve_held_by_a = serve_held_by_a
        self.rally_flow_reversed = False

    # ── Validation ───────────────────────────────────────────────────────────

    def validate_play(
        self,
        play_type: PlayType,
        success: bool,
        reason: Optional[FailureReason] = None,
    ) -> Optional[FailureReason]:
        """Check a play against the current stage. Returns the effective failure reason."""
        if play_type not in STAGE_PLAYS[self.stage]:
            raise StageMismatchError(
                f"{play_type.value} is not a valid play during {self.stage.value}",
                stage=self.stage.value,
            )
        if success:
            if reason is not None:
                raise StageMismatchError(
                    f"Successful {play_type.value} cannot carry failure reason {reason.value}",
                    stage=self.stage.value,
                )
            return None

        reason = reason or FailureReason.FAULT
        if reason not in STAGE_FAILURES[self.stage]:
            raise StageMismatchError(
                f"Failure reason {reason.value} does not apply during {self.stage.value}",
                stage=self.stage.value,
            )
        return reason

    def _require_stage(self, stage: RallyStage, operation: str) -> None:
        if self.stage != stage:
            raise StageMismatchError(
                f"{operation} requires stage {stage.value}, current stage is {self.stage.value}",
                stage=self.stage.value,
            )

    # ── Point winner rules ───────────────────────────────────────────────────

    def attack_winner_is_a(self) -> bool:
        """Side credited when the attacking side's play succeeds."""
        return self.serve_held_by_a if self.rally_flow_reversed else not self.serve_held_by_a

    def block_winner_is_a(self) -> bool:
        """Side credited when the block succeeds."""
        return (not self.serve_held_by_a) if self.rally_flow_reversed else self.serve_held_by_a

    # ── Transitions ──────────────────────────────────────────────────────────

    def resolve_play(
        self,
        play_type: PlayType,
        success: bool,
        reason: Optional[FailureReason] = None,
    ) -> RallyTransition:
        """Compute the transition for a recorded play without applying it."""
        reason = self.validate_play(play_type, success, reason)
        stage = self.stage

        if stage == RallyStage.SERVING:
            if success:
                return RallyTransition(RallyStage.RECEIVING, resets_flow=True)
            # Serve faults ignore the flow flag: nothing can have reversed yet.
            return self._point(not self.serve_held_by_a)

        if stage == RallyStage.RECEIVING:
            if success:
                return RallyTransition(RallyStage.SETTING)
            return self._point(not self.attack_winner_is_a())

        if stage == RallyStage.SETTING:
            if success:
                return RallyTransition(RallyStage.ATTACKING)
            if reason in KEPT_ALIVE_SET_FAILURES:
                return self._handover(RallyStage.ATTACKING)
            return self._point(not self.attack_winner_is_a())

        if stage == RallyStage.ATTACKING:
            if success:
                return self._point(self.attack_winner_is_a())
            if reason == FailureReason.BLOCKED:
                return RallyTransition(RallyStage.BLOCKING)
            return self._point(not self.attack_winner_is_a())

        # BLOCKING
        if success:
            return self._point(self.block_winner_is_a())
        return self._point(not self.block_winner_is_a())

    def resolve_attack_intercepted(self, play_type: PlayType) -> RallyTransition:
        self._require_stage(RallyStage.ATTACKING, "Attack interception")
        if play_type not in ATTACK_PLAYS:
            raise StageMismatchError(f"{play_type.value} is not an attack", stage=self.stage.value)
        return self._handover(RallyStage.RECEIVING)

    def resolve_set_kept_alive(self, reason: FailureReason) -> RallyTransition:
        self._require_stage(RallyStage.SETTING, "Kept-alive set failure")
        if reason not in KEPT_ALIVE_SET_FAILURES:
            raise StageMismatchError(
                f"{reason.value} does not keep the rally alive", stage=self.stage.value
            )
        return self._handover(RallyStage.ATTACKING)

    def resolve_receive_blocked(self, play_type: PlayType = PlayType.RECEIVE) -> RallyTransition:
        self._require_stage(RallyStage.RECEIVING, "Blocked receive")
        if play_type not in STAGE_PLAYS[RallyStage.RECEIVING]:
            raise StageMismatchError(f"{play_type.value} is not a receive", stage=self.stage.value)
        return RallyTransition(RallyStage.BLOCKING)

    def resolve_block_contained(self, play_type: PlayType) -> RallyTransition:
        self._require_stage(RallyStage.BLOCKING, "Block cover")
        self._require_block_play(play_type)
        return RallyTransition(RallyStage.RECEIVING)

    def resolve_block_to_opponent(self, play_type: PlayType) -> RallyTransition:
        self._require_stage(RallyStage.BLOCKING, "Block return")
        self._require_block_play(play_type)
        return self._handover(RallyStage.ATTACKING)

    def _require_block_play(self, play_type: PlayType) -> None:
        if play_type not in STAGE_PLAYS[RallyStage.BLOCKING]:
            raise StageMismatchError(
                f"{play_type.value} is not a valid play during blocking", stage=self.stage.value
            )

    @staticmethod
    def _point(winner_is_team_a: bool) -> RallyTransition:
        return RallyTransition(RallyStage.SERVING, resets_flow=True, point_to_team_a=winner_is_team_a)

    @staticmethod
    def _handover(stage: RallyStage) -> RallyTransition:
        return RallyTransition(stage, flips_possession=True, resets_flow=True)

    # ── Mutation ─────────────────────────────────────────────────────────────

    def apply(self, transition: RallyTransition) -> None:
        """Apply a resolved transition. A point award always toggles serve."""
        if transition.awards_point or transition.flips_possession:
            self.serve_held_by_a = not self.serve_held_by_a
        self.stage = transition.next_stage
        if transition.resets_flow:
            self.rally_flow_reversed = False

    def switch_flow(self) -> None:
        """Manual correction: swap attacker/defender roles, keep serve."""
        if self.stage == RallyStage.GAME_END:
            raise StageMismatchError("Rally flow cannot change after the set has ended",
                                     stage=self.stage.value)
        self.rally_flow_reversed = not self.rally_flow_reversed
        self.stage = RallyStage.RECEIVING

    def finish(self) -> None:
        self.stage = RallyStage.GAME_END

    def restore(self, stage: RallyStage, serve_held_by_a: bool) -> None:
        """Roll back to an earlier stage/serve; the flow flag always clears."""
        self.stage = stage
        self.serve_held_by_a = serve_held_by_a
        self.rally_flow_reversed = False

    def reset(self, serve_held_by_a: bool) -> None:
        self.restore(RallyStage.SERVING, serve_held_by_a)
