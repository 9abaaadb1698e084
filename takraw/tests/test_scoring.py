"""
Tests for the Score Engine facade — rally flow, point awards, undo and reset.
"""

import pytest

from conftest import award_point, play_to
from takraw.engine.errors import (
    NoPlayerSelectedError,
    ScoringError,
    SetAlreadyFinishedError,
    StageMismatchError,
)
from takraw.engine.scoring import ScoreEngine
from takraw.engine.undo import UndoTier
from takraw.models.match import FailureReason, PlayType, RallyStage, TeamSide
from takraw.models.roster import Match, Player, Position


def _p(team, position):
    return team.player_at(position)


def _to_attacking(engine, team_a, team_b):
    """Team A serves, team B receives and sets."""
    engine.record_play(_p(team_a, Position.TEKONG), PlayType.SERVE, True)
    engine.record_play(_p(team_b, Position.TEKONG), PlayType.RECEIVE, True)
    engine.record_play(_p(team_b, Position.FEEDER), PlayType.SETTING, True)


class TestInitialState:

    def test_fresh_set(self, engine):
        state = engine.state
        assert (state.score_a, state.score_b) == (0, 0)
        assert state.rally_stage == RallyStage.SERVING
        assert state.serve_held_by_a is True
        assert state.outcome_message == ""
        assert state.is_set_finished is False
        assert state.can_undo is False
        assert len(engine.score_events()) == 1

    def test_team_b_serves_first(self, team_a, team_b):
        engine = ScoreEngine.for_match(Match(team_a=team_a, team_b=team_b, team_a_serves_first=False))
        assert engine.serve_held_by_a is False
        assert engine.score_events()[0].serve_holder == TeamSide.B

    def test_expected_actor_follows_stage(self, engine, team_a, team_b):
        assert engine.expected_actor() is _p(team_a, Position.TEKONG)
        engine.record_play(None, PlayType.SERVE, True)
        assert engine.expected_actor() is None
        engine.record_play(_p(team_b, Position.TEKONG), PlayType.RECEIVE, True)
        assert engine.expected_actor() is _p(team_b, Position.FEEDER)
        engine.record_play(_p(team_b, Position.FEEDER), PlayType.SETTING, True)
        assert engine.expected_actor() is _p(team_b, Position.STRIKER)


class TestRallyFlow:

    def test_serve_success_moves_to_receiving(self, engine, team_a):
        tekong = _p(team_a, Position.TEKONG)
        state = engine.record_play(tekong, PlayType.SERVE, True)
        assert state.rally_stage == RallyStage.RECEIVING
        assert (state.score_a, state.score_b) == (0, 0)
        assert len(tekong.stats) == 1
        assert tekong.stats[0].match_id == engine.match_id
        assert engine.rally_action_count == 1
        assert engine.score_events()[-1].scoring_team == TeamSide.NONE

    def test_receiving_side_wins_attack(self, engine, team_a, team_b):
        _to_attacking(engine, team_a, team_b)
        state = engine.record_play(_p(team_b, Position.STRIKER), PlayType.ATTACK, True)
        assert (state.score_a, state.score_b) == (0, 1)
        assert state.rally_stage == RallyStage.SERVING
        assert state.serve_held_by_a is False
        assert engine.rally_action_count == 0
        last = engine.score_events()[-1]
        assert last.scoring_team == TeamSide.B
        assert last.serve_holder == TeamSide.B

    def test_reversed_flow_credits_serving_side(self, engine, team_a, team_b):
        _to_attacking(engine, team_a, team_b)
        state = engine.switch_rally_flow()
        assert state.rally_flow_reversed is True
        assert state.rally_stage == RallyStage.RECEIVING
        engine.record_play(_p(team_a, Position.TEKONG), PlayType.RECEIVE, True)
        engine.record_play(_p(team_a, Position.FEEDER), PlayType.SETTING, True)
        state = engine.record_play(_p(team_a, Position.STRIKER), PlayType.ATTACK, True)
        assert (state.score_a, state.score_b) == (1, 0)
        assert state.serve_held_by_a is False
        assert state.rally_flow_reversed is False
        assert engine.rally_action_count == 0

    def test_serve_fault_awards_receiver(self, engine, team_a):
        state = engine.record_play(_p(team_a, Position.TEKONG), PlayType.SERVE, False, FailureReason.NET)
        assert (state.score_a, state.score_b) == (0, 1)
        assert _p(team_a, Position.TEKONG).stats[0].failure_reason == FailureReason.NET

    def test_failed_play_defaults_to_fault(self, engine, team_a):
        engine.record_play(_p(team_a, Position.TEKONG), PlayType.SERVE, False)
        assert _p(team_a, Position.TEKONG).stats[0].failure_reason == FailureReason.FAULT

    def test_set_failure_kept_alive_via_record_play(self, engine, team_a, team_b):
        engine.record_play(_p(team_a, Position.TEKONG), PlayType.SERVE, True)
        engine.record_play(_p(team_b, Position.TEKONG), PlayType.RECEIVE, True)
        feeder = _p(team_b, Position.FEEDER)
        state = engine.record_play(feeder, PlayType.SETTING, False, FailureReason.OVER_SET)
        assert (state.score_a, state.score_b) == (0, 0)
        assert state.serve_held_by_a is False
        assert state.rally_stage == RallyStage.ATTACKING
        assert engine.rally_action_count == 3
        assert feeder.stats[-1].failure_reason == FailureReason.OVER_SET
        assert feeder.stats[-1].success is False

    def test_set_failure_kept_alive_then_attack(self, engine, team_a, team_b):
        engine.record_play(_p(team_a, Position.TEKONG), PlayType.SERVE, True)
        engine.record_play(_p(team_b, Position.TEKONG), PlayType.RECEIVE, True)
        engine.record_set_failure_kept_alive(_p(team_b, Position.FEEDER), FailureReason.CHANCE_BALL)
        # Possession flipped, so team A attacks the mishit set.
        state = engine.record_play(_p(team_a, Position.STRIKER), PlayType.ATTACK, True)
        assert (state.score_a, state.score_b) == (1, 0)

    def test_setting_fault_ends_rally(self, engine, team_a, team_b):
        engine.record_play(_p(team_a, Position.TEKONG), PlayType.SERVE, True)
        engine.record_play(_p(team_b, Position.TEKONG), PlayType.RECEIVE, True)
        state = engine.record_play(_p(team_b, Position.FEEDER), PlayType.SETTING, False, FailureReason.FAULT)
        assert (state.score_a, state.score_b) == (1, 0)

    def test_attack_intercepted(self, engine, team_a, team_b):
        _to_attacking(engine, team_a, team_b)
        striker = _p(team_b, Position.STRIKER)
        state = engine.record_attack_intercepted(striker, PlayType.ROLL_SPIKE)
        assert state.rally_stage == RallyStage.RECEIVING
        assert state.serve_held_by_a is False
        assert (state.score_a, state.score_b) == (0, 0)
        assert striker.stats[-1].failure_reason == FailureReason.RECEIVED
        assert striker.stats[-1].play_type == PlayType.ROLL_SPIKE

    def test_blocked_attack_then_cover(self, engine, team_a, team_b):
        _to_attacking(engine, team_a, team_b)
        striker = _p(team_b, Position.STRIKER)
        state = engine.record_play(striker, PlayType.ATTACK, False, FailureReason.BLOCKED)
        assert state.rally_stage == RallyStage.BLOCKING
        state = engine.record_block_contained_by_defense(striker)
        assert state.rally_stage == RallyStage.RECEIVING
        assert state.serve_held_by_a is True
        assert striker.stats[-1].failure_reason == FailureReason.BLOCK_COVER
        assert striker.stats[-1].success is False

    def test_blocked_attack_returned_to_blockers(self, engine, team_a, team_b):
        _to_attacking(engine, team_a, team_b)
        striker = _p(team_b, Position.STRIKER)
        engine.record_play(striker, PlayType.ATTACK, False, FailureReason.BLOCKED)
        state = engine.record_block_leads_to_opponent_play(striker)
        assert state.rally_stage == RallyStage.ATTACKING
        assert state.serve_held_by_a is False
        assert striker.stats[-1].failure_reason == FailureReason.BLOCKED

    def test_blocked_receive_goes_to_blocking(self, engine, team_a, team_b):
        engine.record_play(_p(team_a, Position.TEKONG), PlayType.SERVE, True)
        receiver = _p(team_b, Position.TEKONG)
        state = engine.record_receive_blocked(receiver)
        assert state.rally_stage == RallyStage.BLOCKING
        assert state.serve_held_by_a is True
        assert (state.score_a, state.score_b) == (0, 0)
        assert receiver.stats[-1].play_type == PlayType.RECEIVE
        assert receiver.stats[-1].success is True
        assert receiver.stats[-1].failure_reason is None

        state = engine.record_play(_p(team_a, Position.STRIKER), PlayType.BLOCK, True)
        assert (state.score_a, state.score_b) == (1, 0)

    def test_blocked_receive_outside_receiving_rejected(self, engine, team_a):
        with pytest.raises(StageMismatchError):
            engine.record_receive_blocked(_p(team_a, Position.TEKONG))
        assert _p(team_a, Position.TEKONG).stats == []

    def test_successful_block_scores_for_blockers(self, engine, team_a, team_b):
        _to_attacking(engine, team_a, team_b)
        engine.record_play(_p(team_b, Position.STRIKER), PlayType.ATTACK, False, FailureReason.BLOCKED)
        state = engine.record_play(_p(team_a, Position.STRIKER), PlayType.BLOCK, True)
        assert (state.score_a, state.score_b) == (1, 0)

    def test_failed_block_scores_for_attackers(self, engine, team_a, team_b):
        _to_attacking(engine, team_a, team_b)
        engine.record_play(_p(team_b, Position.STRIKER), PlayType.ATTACK, False, FailureReason.BLOCKED)
        state = engine.record_play(_p(team_a, Position.STRIKER), PlayType.BLOCK, False, FailureReason.OVER)
        assert (state.score_a, state.score_b) == (0, 1)


class TestRejections:

    def test_stage_mismatch_leaves_state_untouched(self, engine, team_b):
        player = _p(team_b, Position.STRIKER)
        before = engine.state
        with pytest.raises(StageMismatchError):
            engine.record_play(player, PlayType.ATTACK, True)
        assert engine.state == before
        assert len(engine.score_events()) == 1
        assert player.stats == []

    def test_errors_are_value_errors(self):
        assert issubclass(StageMismatchError, ValueError)
        assert issubclass(SetAlreadyFinishedError, ScoringError)

    def test_serve_falls_back_to_tekong(self, engine, team_a):
        engine.record_play(None, PlayType.SERVE, True)
        assert len(_p(team_a, Position.TEKONG).stats) == 1

    def test_no_player_outside_serve(self, engine):
        engine.record_play(None, PlayType.SERVE, True)
        with pytest.raises(NoPlayerSelectedError):
            engine.record_play(None, PlayType.RECEIVE, True)
        assert engine.stage == RallyStage.RECEIVING

    def test_no_player_without_roster(self, bare_engine):
        with pytest.raises(NoPlayerSelectedError):
            bare_engine.record_play(None, PlayType.SERVE, True)
        assert len(bare_engine.score_events()) == 1

    def test_special_operations_need_player(self, engine, team_a, team_b):
        _to_attacking(engine, team_a, team_b)
        with pytest.raises(NoPlayerSelectedError):
            engine.record_attack_intercepted(None)

    def test_failed_stat_handoff_leaves_state_untouched(self, engine):
        class BrokenPlayer(Player):
            def add_stat(self, stat):
                raise RuntimeError("storage offline")

        player = BrokenPlayer(name="Broken", position=Position.TEKONG)
        with pytest.raises(RuntimeError):
            engine.record_play(player, PlayType.SERVE, True)
        assert engine.stage == RallyStage.SERVING
        assert len(engine.score_events()) == 1
        assert engine.rally_action_count == 0


class TestSetCompletion:

    def test_fifteen_wins_from_fourteen_thirteen(self, engine, team_a, team_b):
        play_to(engine, 14, 13)
        assert engine.state.outcome_message == "Team A Set Point!"
        # Team B holds serve after an odd number of points, so team A attacks.
        assert engine.serve_held_by_a is False
        engine.record_play(_p(team_b, Position.TEKONG), PlayType.SERVE, True)
        engine.record_play(_p(team_a, Position.TEKONG), PlayType.RECEIVE, True)
        engine.record_play(_p(team_a, Position.FEEDER), PlayType.SETTING, True)
        state = engine.record_play(_p(team_a, Position.STRIKER), PlayType.ATTACK, True)
        assert (state.score_a, state.score_b) == (15, 13)
        assert state.outcome_message == "Team A WINS!"
        assert state.is_set_finished is True
        assert state.rally_stage == RallyStage.GAME_END

    def test_hard_cap_at_seventeen(self, engine):
        play_to(engine, 16, 16)
        assert engine.state.outcome_message == "Deuce! First to 17 wins!"
        award_point(engine, to_team_a=True)
        state = engine.state
        assert (state.score_a, state.score_b) == (17, 16)
        assert state.outcome_message == "Team A WINS!"
        assert state.is_set_finished is True

    def test_play_after_finish_rejected(self, engine, team_a):
        play_to(engine, 15, 0)
        with pytest.raises(SetAlreadyFinishedError):
            engine.record_play(_p(team_a, Position.TEKONG), PlayType.SERVE, True)
        with pytest.raises(SetAlreadyFinishedError):
            engine.switch_rally_flow()
        assert engine.state.score_a == 15

    def test_undo_reopens_finished_set(self, engine):
        play_to(engine, 15, 0)
        result = engine.undo_last()
        assert result.tier == UndoTier.LEDGER_EVENT
        state = engine.state
        assert state.score_a == 14
        assert state.is_set_finished is False
        assert state.rally_stage == RallyStage.SERVING


class TestUndo:

    def test_undo_rally_action_restores_stage_and_stat(self, engine, team_a, team_b):
        engine.record_play(_p(team_a, Position.TEKONG), PlayType.SERVE, True)
        receiver = _p(team_b, Position.TEKONG)
        engine.record_play(receiver, PlayType.RECEIVE, True)
        result = engine.undo_last()
        assert result.tier == UndoTier.RALLY_ACTION
        assert result.stat_removed is True
        assert receiver.stats == []
        assert engine.stage == RallyStage.RECEIVING
        assert engine.rally_action_count == 1

    def test_undo_kept_alive_set_failure(self, engine, team_a, team_b):
        engine.record_play(_p(team_a, Position.TEKONG), PlayType.SERVE, True)
        engine.record_play(_p(team_b, Position.TEKONG), PlayType.RECEIVE, True)
        feeder = _p(team_b, Position.FEEDER)
        engine.record_play(feeder, PlayType.SETTING, False, FailureReason.OVER_SET)
        engine.undo_last()
        assert engine.stage == RallyStage.SETTING
        assert engine.serve_held_by_a is True
        assert feeder.stats == []

    def test_undo_blocked_receive(self, engine, team_a, team_b):
        engine.record_play(_p(team_a, Position.TEKONG), PlayType.SERVE, True)
        receiver = _p(team_b, Position.TEKONG)
        engine.record_receive_blocked(receiver)
        result = engine.undo_last()
        assert result.tier == UndoTier.RALLY_ACTION
        assert result.stat_removed is True
        assert receiver.stats == []
        assert engine.stage == RallyStage.RECEIVING
        assert engine.serve_held_by_a is True
        assert len(engine.score_events()) == 2

    def test_undo_switch_flow(self, engine, team_a, team_b):
        _to_attacking(engine, team_a, team_b)
        engine.switch_rally_flow()
        engine.undo_last()
        state = engine.state
        assert state.rally_stage == RallyStage.ATTACKING
        assert state.rally_flow_reversed is False

    def test_undo_point_then_previous_actions(self, engine, team_a, team_b):
        _to_attacking(engine, team_a, team_b)
        engine.record_play(_p(team_b, Position.STRIKER), PlayType.ATTACK, True)
        result = engine.undo_last()
        assert result.tier == UndoTier.LEDGER_EVENT
        state = engine.state
        assert (state.score_a, state.score_b) == (0, 0)
        assert state.serve_held_by_a is True
        assert state.rally_stage == RallyStage.SERVING
        assert engine.undo_last().tier == UndoTier.LEDGER_EVENT

    def test_nothing_to_undo(self, engine):
        assert engine.can_undo is False
        assert engine.undo_last() is None

    def test_undo_until_empty_returns_to_start(self, engine, team_a, team_b):
        _to_attacking(engine, team_a, team_b)
        engine.record_attack_intercepted(_p(team_b, Position.STRIKER))
        engine.record_play(_p(team_a, Position.TEKONG), PlayType.RECEIVE, False)
        play_to(engine, 6, 4)
        engine.record_play(None, PlayType.SERVE, True)
        engine.switch_rally_flow()

        steps = 0
        while engine.can_undo:
            engine.undo_last()
            steps += 1
            assert steps < 200
        state = engine.state
        assert (state.score_a, state.score_b) == (0, 0)
        assert state.rally_stage == RallyStage.SERVING
        assert state.outcome_message == ""
        assert state.serve_held_by_a is True
        assert len(engine.score_events()) == 1


class TestInvariants:

    def test_scores_never_decrease_without_undo(self, engine):
        play_to(engine, 10, 9)
        events = engine.score_events()
        for prev, cur in zip(events, events[1:]):
            assert cur.score_a >= prev.score_a >= 0
            assert cur.score_b >= prev.score_b >= 0

    def test_serve_toggles_once_per_point(self, engine):
        toggles = 0
        for i in range(12):
            before = engine.serve_held_by_a
            award_point(engine, to_team_a=i % 3 == 0)
            toggles += before != engine.serve_held_by_a
        assert toggles == 12

    def test_serve_toggles_once_per_handover(self, engine, team_a, team_b):
        _to_attacking(engine, team_a, team_b)
        before = engine.serve_held_by_a
        engine.record_attack_intercepted(_p(team_b, Position.STRIKER))
        assert engine.serve_held_by_a is (not before)

    def test_point_events_carry_scoring_team(self, engine):
        play_to(engine, 2, 1)
        points = [e for e in engine.score_events() if e.is_point]
        assert [e.scoring_team for e in points] == [TeamSide.A, TeamSide.B, TeamSide.A]


class TestReset:

    def test_reset_set(self, engine, team_a, team_b):
        play_to(engine, 3, 2)
        engine.record_play(None, PlayType.SERVE, True)
        state = engine.reset_set()
        assert (state.score_a, state.score_b) == (0, 0)
        assert state.rally_stage == RallyStage.SERVING
        assert state.serve_held_by_a is True
        assert state.can_undo is False
        assert engine.rally_action_count == 0
        assert len(engine.score_events()) == 1
