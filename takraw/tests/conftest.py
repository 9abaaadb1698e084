"""Shared fixtures for the scoring tests."""

import pytest

from takraw.engine.scoring import ScoreEngine
from takraw.models.match import MatchConfig, PlayType
from takraw.models.roster import Match, Player, Position, Team


def make_team(name: str) -> Team:
    team = Team(name=name)
    team.add_player(Player(name=f"{name} Tekong", position=Position.TEKONG))
    team.add_player(Player(name=f"{name} Feeder", position=Position.FEEDER))
    team.add_player(Player(name=f"{name} Striker", position=Position.STRIKER))
    return team


def award_point(engine: ScoreEngine, to_team_a: bool) -> None:
    """Award one point to a side using the shortest legal rally."""
    holder_is_a = engine.serve_held_by_a
    serving = engine.team_a if holder_is_a else engine.team_b
    receiving = engine.team_b if holder_is_a else engine.team_a
    tekong = serving.player_at(Position.TEKONG)
    if to_team_a != holder_is_a:
        engine.record_play(tekong, PlayType.SERVE, success=False)
    else:
        engine.record_play(tekong, PlayType.SERVE, success=True)
        engine.record_play(receiving.player_at(Position.TEKONG), PlayType.RECEIVE, success=False)


def play_to(engine: ScoreEngine, score_a: int, score_b: int) -> None:
    """Alternate points until the score line is reached."""
    state = engine.state
    while state.score_a < score_a or state.score_b < score_b:
        award_point(engine, to_team_a=state.score_a < score_a and (
            state.score_a <= state.score_b or state.score_b >= score_b
        ))
        state = engine.state


@pytest.fixture
def team_a() -> Team:
    return make_team("Alpha")


@pytest.fixture
def team_b() -> Team:
    return make_team("Bravo")


@pytest.fixture
def match(team_a, team_b) -> Match:
    return Match(team_a=team_a, team_b=team_b, team_a_serves_first=True)


@pytest.fixture
def engine(match) -> ScoreEngine:
    return ScoreEngine.for_match(match)


@pytest.fixture
def bare_engine() -> ScoreEngine:
    """Engine without rosters, so no default actor can be chosen."""
    return ScoreEngine(MatchConfig(match_id="m-1", team_a_serves_first=True))
