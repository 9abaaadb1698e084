"""
Match routes — live rally scoring, undo, and timeline.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from fastapi import APIRouter, HTTPException

from takraw.api.persistence import InMemoryMatchRepository, save_match
from takraw.engine.errors import PersistenceError, ScoringError, SetAlreadyFinishedError
from takraw.engine.scoring import ScoreEngine
from takraw.models.match import MatchScoreState, StatRecord
from takraw.models.requests import (
    ContinuationRequest,
    CreateMatchRequest,
    MatchCreated,
    PlayRequest,
    ReceiveBlockedRequest,
    SetFailureRequest,
    TeamSpec,
    TimelineResponse,
    UndoResponse,
)
from takraw.models.roster import Match, Player, Position, Team

logger = logging.getLogger("takraw.api")

router = APIRouter()

# ── In-memory match engines ──────────────────────────────────────────────────
_engines: dict[str, ScoreEngine] = {}
_matches: dict[str, Match] = {}
_repository = InMemoryMatchRepository()


def _build_team(spec: TeamSpec) -> Team:
    team = Team(name=spec.name, is_bot_team=spec.is_bot_team)
    team.add_player(Player(name=spec.tekong, position=Position.TEKONG, is_bot=spec.is_bot_team))
    team.add_player(Player(name=spec.feeder, position=Position.FEEDER, is_bot=spec.is_bot_team))
    team.add_player(Player(name=spec.striker, position=Position.STRIKER, is_bot=spec.is_bot_team))
    return team


def _get_match(match_id: str) -> tuple[Match, ScoreEngine]:
    engine = _engines.get(match_id)
    if not engine:
        raise HTTPException(status_code=404, detail="Match not found")
    return _matches[match_id], engine


def _get_player(match: Match, player_id: Optional[str]) -> Optional[Player]:
    if player_id is None:
        return None
    player = match.find_player(player_id)
    if not player:
        raise HTTPException(status_code=404, detail="Player not found")
    return player


def _persist(match: Match, engine: ScoreEngine) -> None:
    state = engine.state
    match.score_a = state.score_a
    match.score_b = state.score_b
    try:
        save_match(_repository, match)
    except PersistenceError as e:
        logger.error(f"{e}; scoring continues from in-memory state")


def _score(match: Match, engine: ScoreEngine, operation: Callable[[], MatchScoreState]) -> MatchScoreState:
    try:
        state = operation()
    except SetAlreadyFinishedError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ScoringError as e:
        raise HTTPException(status_code=400, detail=str(e))
    _persist(match, engine)
    return state


@router.post("/", response_model=MatchCreated, status_code=201)
async def create_match(request: CreateMatchRequest):
    """Create a match between two regus and open its first set."""
    match = Match(
        team_a=_build_team(request.team_a),
        team_b=_build_team(request.team_b),
        team_a_serves_first=request.team_a_serves_first,
    )
    engine = ScoreEngine.for_match(match)
    _matches[match.id] = match
    _engines[match.id] = engine
    _persist(match, engine)
    logger.info(f"Match {match.id} created: {match.team_a.name} vs {match.team_b.name}")
    return MatchCreated(match_id=match.id, team_a=match.team_a, team_b=match.team_b, state=engine.state)


@router.get("/{match_id}", response_model=MatchScoreState)
async def get_match_state(match_id: str):
    """Current score, stage, serve holder and outcome message."""
    _, engine = _get_match(match_id)
    return engine.state


@router.get("/{match_id}/timeline", response_model=TimelineResponse)
async def get_timeline(match_id: str):
    """Ordered score events for rendering a timeline."""
    _, engine = _get_match(match_id)
    events = engine.score_events()
    return TimelineResponse(match_id=match_id, total_events=len(events), events=events)


@router.post("/{match_id}/plays", response_model=MatchScoreState)
async def record_play(match_id: str, request: PlayRequest):
    """Record a play for the current rally stage."""
    match, engine = _get_match(match_id)
    player = _get_player(match, request.player_id)
    return _score(match, engine, lambda: engine.record_play(
        player, request.play_type, request.success, request.failure_reason,
    ))


@router.post("/{match_id}/attack-intercepted", response_model=MatchScoreState)
async def attack_intercepted(match_id: str, request: ContinuationRequest):
    """Attack received by the opponent — possession flips, no point."""
    match, engine = _get_match(match_id)
    player = _get_player(match, request.player_id)
    return _score(match, engine, lambda: engine.record_attack_intercepted(player, request.play_type))


@router.post("/{match_id}/set-kept-alive", response_model=MatchScoreState)
async def set_kept_alive(match_id: str, request: SetFailureRequest):
    """Over-set or chance ball — the opponent attacks next."""
    match, engine = _get_match(match_id)
    player = _get_player(match, request.player_id)
    return _score(match, engine, lambda: engine.record_set_failure_kept_alive(player, request.reason))


@router.post("/{match_id}/receive-blocked", response_model=MatchScoreState)
async def receive_blocked(match_id: str, request: ReceiveBlockedRequest):
    """Receive crossed the net and was blocked by the serving side."""
    match, engine = _get_match(match_id)
    player = _get_player(match, request.player_id)
    return _score(match, engine, lambda: engine.record_receive_blocked(player, request.play_type))


@router.post("/{match_id}/block-covered", response_model=MatchScoreState)
async def block_covered(match_id: str, request: ContinuationRequest):
    """Blocked ball covered by the attacking side."""
    match, engine = _get_match(match_id)
    player = _get_player(match, request.player_id)
    return _score(match, engine, lambda: engine.record_block_contained_by_defense(player, request.play_type))


@router.post("/{match_id}/block-returned", response_model=MatchScoreState)
async def block_returned(match_id: str, request: ContinuationRequest):
    """Block returned into play — the blocking side attacks."""
    match, engine = _get_match(match_id)
    player = _get_player(match, request.player_id)
    return _score(match, engine, lambda: engine.record_block_leads_to_opponent_play(player, request.play_type))


@router.post("/{match_id}/switch-flow", response_model=MatchScoreState)
async def switch_flow(match_id: str):
    """Operator override of attacker/defender roles within the rally."""
    match, engine = _get_match(match_id)
    return _score(match, engine, engine.switch_rally_flow)


@router.post("/{match_id}/undo", response_model=UndoResponse)
async def undo(match_id: str):
    """Undo the latest rally action, or the latest point."""
    match, engine = _get_match(match_id)
    result = engine.undo_last()
    if not result:
        raise HTTPException(status_code=400, detail="Nothing to undo")
    _persist(match, engine)
    return UndoResponse(
        tier=result.tier.value,
        reverted_events=len(result.reverted_events),
        state=engine.state,
    )


@router.post("/{match_id}/reset", response_model=MatchScoreState)
async def reset_set(match_id: str):
    """Back to 0-0 with the original server."""
    match, engine = _get_match(match_id)
    state = engine.reset_set()
    _persist(match, engine)
    return state


@router.get("/{match_id}/players/{player_id}/stats", response_model=list[StatRecord])
async def get_player_stats(match_id: str, player_id: str):
    """Stat records attached to a player during this match."""
    match, _ = _get_match(match_id)
    player = _get_player(match, player_id)
    return player.stats_for_match(match_id)
