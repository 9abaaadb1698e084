"""
Set rules — pure verdict on a score line.

Sepak takraw set: first to 15, deuce from 14-14, hard cap at 17.
"""

from __future__ import annotations

from typing import Optional

from takraw.models.match import SetOutcome, SetRules, TeamSide

DEFAULT_RULES = SetRules()


def _team_label(side: TeamSide) -> str:
    return f"Team {side.value}"


def deuce_message(rules: SetRules = DEFAULT_RULES) -> str:
    return f"Deuce! First to {rules.hard_cap} wins!"


def winner_of(score_a: int, score_b: int, rules: SetRules = DEFAULT_RULES) -> Optional[TeamSide]:
    """Return the side that has won the set, or None."""
    if (score_a == rules.points_to_win and score_b < rules.deuce_at) or score_a == rules.hard_cap:
        return TeamSide.A
    if (score_b == rules.points_to_win and score_a < rules.deuce_at) or score_b == rules.hard_cap:
        return TeamSide.B
    return None


def evaluate(score_a: int, score_b: int, rules: SetRules = DEFAULT_RULES) -> SetOutcome:
    """
    Compute (message, finished) for a score line.

    Deterministic in its inputs; call it after every score change.
    """
    if score_a < 0 or score_b < 0:
        raise ValueError(f"Scores must be non-negative, got {score_a}-{score_b}")

    winner = winner_of(score_a, score_b, rules)
    if winner is not None:
        return SetOutcome(
            message=f"{_team_label(winner)} WINS!",
            is_set_finished=True,
            winner=winner,
        )

    set_point_at = rules.hard_cap - 1
    if score_a >= rules.deuce_at and score_b >= rules.deuce_at:
        if score_a == score_b:
            return SetOutcome(message=deuce_message(rules))
        if score_a == set_point_at:
            return SetOutcome(message=f"{_team_label(TeamSide.A)} Set Point!")
        if score_b == set_point_at:
            return SetOutcome(message=f"{_team_label(TeamSide.B)} Set Point!")
        # NOTE: a 15-14 lead is reported as deuce, not set point. Kept for
        # compatibility with existing scoresheets; likely a bug upstream.
        return SetOutcome(message=deuce_message(rules))

    if score_a == rules.deuce_at:
        return SetOutcome(message=f"{_team_label(TeamSide.A)} Set Point!")
    if score_b == rules.deuce_at:
        return SetOutcome(message=f"{_team_label(TeamSide.B)} Set Point!")
    return SetOutcome()
