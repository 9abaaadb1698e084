"""
Default actor policy — which rostered player is expected to act next.

Serving:   tekong of the serving team
Setting:   feeder of the receiving team
Attacking: striker of the receiving team
Receiving and blocking can be played by anyone, so there is no default.
"""

from __future__ import annotations

from typing import Optional

from takraw.models.match import RallyStage
from takraw.models.roster import Player, Position, Team


def serving_team(team_a: Team, team_b: Team, serve_held_by_a: bool) -> Team:
    return team_a if serve_held_by_a else team_b


def receiving_team(team_a: Team, team_b: Team, serve_held_by_a: bool) -> Team:
    return team_b if serve_held_by_a else team_a


def default_actor(
    stage: RallyStage,
    team_a: Team,
    team_b: Team,
    serve_held_by_a: bool,
) -> Optional[Player]:
    if stage == RallyStage.SERVING:
        return serving_team(team_a, team_b, serve_held_by_a).player_at(Position.TEKONG)
    if stage == RallyStage.SETTING:
        return receiving_team(team_a, team_b, serve_held_by_a).player_at(Position.FEEDER)
    if stage == RallyStage.ATTACKING:
        return receiving_team(team_a, team_b, serve_held_by_a).player_at(Position.STRIKER)
    return None
