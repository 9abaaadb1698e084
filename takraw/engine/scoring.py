"""
Sepak Takraw Score Engine — facade over the rally protocol, score ledger,
set rules and undo for one set.

Covers:
- Stage-validated play recording (serve, receive, set, attack, block)
- Point awards with serve hand-over after every point
- Rally continuations (intercepted attack, kept-alive set, blocked receive,
  block cover/return)
- Manual rally-flow correction
- Two-tier undo and set reset
- Derived score snapshot and timeline for callers

Every public operation validates before it mutates. State that callers see
(``MatchScoreState``) is rebuilt from the ledger tail and the rally state on
each read.
"""

from __future__ import annotations

import logging
from typing import Optional

from takraw.engine.errors import NoPlayerSelectedError, SetAlreadyFinishedError
from takraw.engine.ledger import ScoreLedger
from takraw.engine.lineup import default_actor
from takraw.engine.rally import RallyStateMachine, RallyTransition
from takraw.engine.rules import evaluate
from takraw.engine.undo import RallyActionRecord, UndoCoordinator, UndoResult
from takraw.models.match import (
    KEPT_ALIVE_SET_FAILURES,
    SERVE_PLAYS,
    FailureReason,
    MatchConfig,
    MatchScoreState,
    PlayType,
    RallyStage,
    ScoreEvent,
    SetOutcome,
    StatRecord,
    TeamSide,
)
from takraw.models.roster import Match, Player, Team

logger = logging.getLogger("takraw.engine")

RALLY_SWITCH_LABEL = "Rally Switch"


class ScoreEngine:
    """
    Single-set scoring state machine.

    Usage:
        engine = ScoreEngine(MatchConfig(team_a_serves_first=True))
        engine.record_play(tekong, PlayType.SERVE, success=True)
        print(engine.state.score_display, engine.stage)
    """

    def __init__(
        self,
        config: Optional[MatchConfig] = None,
        team_a: Optional[Team] = None,
        team_b: Optional[Team] = None,
    ):
        self.config = config or MatchConfig()
        self.team_a = team_a
        self.team_b = team_b
        self.rally = RallyStateMachine(serve_held_by_a=self.config.team_a_serves_first)
        self.ledger = ScoreLedger(team_a_serves_first=self.config.team_a_serves_first)
        self.undo_stack = UndoCoordinator(self.ledger, self.rally)

    @classmethod
    def for_match(cls, match: Match, config: Optional[MatchConfig] = None) -> "ScoreEngine":
        """Build an engine seeded from a match record and its two teams."""
        if config is None:
            config = MatchConfig(match_id=match.id, team_a_serves_first=match.team_a_serves_first)
        return cls(config, team_a=match.team_a, team_b=match.team_b)

    # ── Queries ──────────────────────────────────────────────────────────────

    @property
    def match_id(self) -> str:
        return self.config.match_id

    @property
    def stage(self) -> RallyStage:
        return self.rally.stage

    @property
    def serve_held_by_a(self) -> bool:
        return self.rally.serve_held_by_a

    @property
    def can_undo(self) -> bool:
        return self.undo_stack.can_undo

    @property
    def rally_action_count(self) -> int:
        return len(self.undo_stack)

    @property
    def outcome(self) -> SetOutcome:
        tail = self.ledger.current()
        return evaluate(tail.score_a, tail.score_b, self.config.rules)

    @property
    def is_set_finished(self) -> bool:
        return self.outcome.is_set_finished

    @property
    def state(self) -> MatchScoreState:
        return self.snapshot()

    def snapshot(self) -> MatchScoreState:
        """Current observable state, derived from the ledger tail and rally state."""
        tail = self.ledger.current()
        outcome = evaluate(tail.score_a, tail.score_b, self.config.rules)
        return MatchScoreState(
            match_id=self.match_id,
            score_a=tail.score_a,
            score_b=tail.score_b,
            serve_held_by_a=self.rally.serve_held_by_a,
            rally_stage=self.rally.stage,
            rally_flow_reversed=self.rally.rally_flow_reversed,
            outcome_message=outcome.message,
            is_set_finished=outcome.is_set_finished,
            can_undo=self.undo_stack.can_undo,
        )

    def score_events(self) -> list[ScoreEvent]:
        """Ordered timeline, oldest first, starting with the Game Start event."""
        return self.ledger.events()

    def expected_actor(self) -> Optional[Player]:
        """Rostered player expected to play next, when teams are known."""
        if self.team_a is None or self.team_b is None:
            return None
        return default_actor(self.rally.stage, self.team_a, self.team_b, self.rally.serve_held_by_a)

    # ── Rally operations ─────────────────────────────────────────────────────

    def record_play(
        self,
        player: Optional[Player],
        play_type: PlayType,
        success: bool,
        failure_reason: Optional[FailureReason] = None,
    ) -> MatchScoreState:
        """
        Record one play for the current stage.
        This is the main entry point — stage validation, stat hand-off,
        ledger append, point award and undo bookkeeping.
        """
        self._ensure_open()

        if (
            not success
            and self.rally.stage == RallyStage.SETTING
            and failure_reason in KEPT_ALIVE_SET_FAILURES
        ):
            return self.record_set_failure_kept_alive(player, failure_reason, play_type=play_type)

        transition = self.rally.resolve_play(play_type, success, failure_reason)
        actor = self._resolve_actor(player, play_type)
        reason = None if success else (failure_reason or FailureReason.FAULT)
        stat = self._attach_stat(actor, play_type, success, reason)
        return self._commit(actor, stat, transition)

    def record_attack_intercepted(
        self,
        player: Optional[Player],
        play_type: PlayType = PlayType.ATTACK,
    ) -> MatchScoreState:
        """The opponent received the attack: possession flips, no point."""
        self._ensure_open()
        transition = self.rally.resolve_attack_intercepted(play_type)
        actor = self._require_player(player, "attack interception")
        stat = self._attach_stat(actor, play_type, False, FailureReason.RECEIVED)
        return self._commit(actor, stat, transition)

    def record_set_failure_kept_alive(
        self,
        player: Optional[Player],
        reason: FailureReason,
        play_type: PlayType = PlayType.SETTING,
    ) -> MatchScoreState:
        """Over-set or chance ball: the opponent now attacks the mishit set."""
        self._ensure_open()
        self.rally.validate_play(play_type, False, reason)
        transition = self.rally.resolve_set_kept_alive(reason)
        actor = self._require_player(player, "set failure")
        stat = self._attach_stat(actor, play_type, False, reason)
        return self._commit(actor, stat, transition)

    def record_receive_blocked(
        self,
        player: Optional[Player],
        play_type: PlayType = PlayType.RECEIVE,
    ) -> MatchScoreState:
        """Receive carried over the net and met by a block: the blockers play next."""
        self._ensure_open()
        transition = self.rally.resolve_receive_blocked(play_type)
        actor = self._require_player(player, "blocked receive")
        stat = self._attach_stat(actor, play_type, True, None)
        return self._commit(actor, stat, transition)

    def record_block_contained_by_defense(
        self,
        player: Optional[Player],
        play_type: PlayType = PlayType.ATTACK,
    ) -> MatchScoreState:
        """Blocked ball covered by the attacking side: back to receiving, same possession."""
        self._ensure_open()
        transition = self.rally.resolve_block_contained(play_type)
        actor = self._require_player(player, "block cover")
        stat = self._attach_stat(actor, play_type, False, FailureReason.BLOCK_COVER)
        return self._commit(actor, stat, transition)

    def record_block_leads_to_opponent_play(
        self,
        player: Optional[Player],
        play_type: PlayType = PlayType.ATTACK,
    ) -> MatchScoreState:
        """Block returned into play: the blocking side now attacks."""
        self._ensure_open()
        transition = self.rally.resolve_block_to_opponent(play_type)
        actor = self._require_player(player, "block return")
        stat = self._attach_stat(actor, play_type, False, FailureReason.BLOCKED)
        return self._commit(actor, stat, transition)

    def switch_rally_flow(self) -> MatchScoreState:
        """Operator override: swap attacker/defender roles without moving serve."""
        self._ensure_open()
        stage_before = self.rally.stage
        ledger_length = len(self.ledger)

        self.rally.switch_flow()
        self.ledger.append(self._event(RALLY_SWITCH_LABEL, PlayType.RECEIVE, True))
        self.undo_stack.push(RallyActionRecord(
            player=None,
            stat_record_id=None,
            stage_before_action=stage_before,
            ledger_length_before_action=ledger_length,
        ))
        logger.info(
            "Rally flow %s in match %s",
            "reversed" if self.rally.rally_flow_reversed else "restored", self.match_id,
        )
        return self.state

    # ── Undo / reset ─────────────────────────────────────────────────────────

    def undo_last(self) -> Optional[UndoResult]:
        """Undo the latest rally action, or the latest point. None when there is nothing to undo."""
        result = self.undo_stack.undo()
        if result is None:
            logger.debug("Nothing to undo in match %s", self.match_id)
            return None

        if self.is_set_finished:
            self.rally.finish()
        state = self.state
        logger.info(
            "Undo (%s) in match %s → %s, stage %s",
            result.tier.value, self.match_id, state.score_display, state.rally_stage.value,
        )
        return result

    def reset_set(self) -> MatchScoreState:
        """Back to 0-0 with the initial server. Stats already handed to players stay with them."""
        initial = self.config.team_a_serves_first
        self.ledger.reset(initial)
        self.undo_stack.clear()
        self.rally.reset(initial)
        logger.info("Set reset in match %s", self.match_id)
        return self.state

    # ── Internals ────────────────────────────────────────────────────────────

    def _ensure_open(self) -> None:
        if self.is_set_finished:
            outcome = self.outcome
            logger.warning("Rejected play in match %s: set finished (%s)", self.match_id, outcome.message)
            raise SetAlreadyFinishedError(f"Set is already finished: {outcome.message}")

    def _resolve_actor(self, player: Optional[Player], play_type: PlayType) -> Player:
        if player is not None:
            return player
        if self.rally.stage == RallyStage.SERVING and play_type in SERVE_PLAYS:
            server = self.expected_actor()
            if server is not None:
                logger.debug("Auto-selected server %s", server.name)
                return server
        return self._require_player(None, play_type.value)

    def _require_player(self, player: Optional[Player], operation: str) -> Player:
        if player is None:
            logger.warning("Rejected %s in match %s: no player selected", operation, self.match_id)
            raise NoPlayerSelectedError(f"No player selected for {operation}")
        return player

    def _attach_stat(
        self,
        player: Player,
        play_type: PlayType,
        success: bool,
        reason: Optional[FailureReason],
    ) -> StatRecord:
        stat = StatRecord(
            play_type=play_type,
            match_id=self.match_id,
            success=success,
            failure_reason=reason,
        )
        player.add_stat(stat)
        return stat

    def _event(
        self,
        player_name: str,
        play_type: PlayType,
        success: bool,
        scoring_team: TeamSide = TeamSide.NONE,
        score_a: Optional[int] = None,
        score_b: Optional[int] = None,
    ) -> ScoreEvent:
        tail = self.ledger.current()
        return ScoreEvent(
            score_a=tail.score_a if score_a is None else score_a,
            score_b=tail.score_b if score_b is None else score_b,
            scoring_team=scoring_team,
            player_name=player_name,
            play_type=play_type,
            success=success,
            serve_holder=TeamSide.of(self.rally.serve_held_by_a),
        )

    def _commit(self, player: Player, stat: StatRecord, transition: RallyTransition) -> MatchScoreState:
        if transition.awards_point:
            self._award_point(player, stat, transition)
            return self.state

        stage_before = self.rally.stage
        ledger_length = len(self.ledger)
        self.rally.apply(transition)
        self.ledger.append(self._event(player.name, stat.play_type, stat.success))
        self.undo_stack.push(RallyActionRecord(
            player=player,
            stat_record_id=stat.id,
            stage_before_action=stage_before,
            ledger_length_before_action=ledger_length,
        ))
        logger.debug(
            "%s %s by %s: %s → %s",
            stat.play_type.value, "ok" if stat.success else "failed",
            player.name, stage_before.value, self.rally.stage.value,
        )
        return self.state

    def _award_point(self, player: Player, stat: StatRecord, transition: RallyTransition) -> None:
        tail = self.ledger.current()
        winner_is_a = bool(transition.point_to_team_a)
        score_a = tail.score_a + (1 if winner_is_a else 0)
        score_b = tail.score_b + (0 if winner_is_a else 1)

        self.rally.apply(transition)
        self.ledger.append(self._event(
            player.name,
            stat.play_type,
            stat.success,
            scoring_team=TeamSide.of(winner_is_a),
            score_a=score_a,
            score_b=score_b,
        ))
        self.undo_stack.clear()

        outcome = evaluate(score_a, score_b, self.config.rules)
        logger.info(
            "Point Team %s in match %s → %d-%d %s",
            TeamSide.of(winner_is_a).value, self.match_id, score_a, score_b, outcome.message,
        )
        if outcome.is_set_finished:
            self.rally.finish()
