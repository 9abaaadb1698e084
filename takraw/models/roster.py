"""
Roster data models — Teams, players and the match record they play in.
The engine only attaches and removes stat records; everything else here is
owned by the caller.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from takraw.models.match import StatRecord


class Position(str, Enum):
    TEKONG = "tekong"      # server
    FEEDER = "feeder"      # setter
    STRIKER = "striker"    # attacker


class DominantFoot(str, Enum):
    RIGHT = "right"
    LEFT = "left"


class AttackStyle(str, Enum):
    ROLLING = "rolling"
    SUNBACK = "sunback"


class ServeStyle(str, Enum):
    INSIDE = "inside"
    INSTEP = "instep"


class Player(BaseModel):
    """A rostered player and the stat records attached to them."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    position: Position
    team_id: Optional[str] = None
    dominant_foot: DominantFoot = DominantFoot.RIGHT
    attack_style: Optional[AttackStyle] = None
    serve_style: Optional[ServeStyle] = None
    is_bot: bool = False
    stats: list[StatRecord] = Field(default_factory=list)

    def add_stat(self, stat: StatRecord) -> None:
        self.stats.append(stat)

    def remove_stat(self, stat_id: str) -> bool:
        """Remove the most recent stat with the given id. Returns False if absent."""
        for idx in range(len(self.stats) - 1, -1, -1):
            if self.stats[idx].id == stat_id:
                del self.stats[idx]
                return True
        return False

    def stats_for_match(self, match_id: str) -> list[StatRecord]:
        return [s for s in self.stats if s.match_id == match_id]


class Team(BaseModel):
    """A team of (usually) three regu players."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    is_bot_team: bool = False
    players: list[Player] = Field(default_factory=list)

    def add_player(self, player: Player) -> Player:
        player.team_id = self.id
        self.players.append(player)
        return player

    def player_at(self, position: Position) -> Optional[Player]:
        return next((p for p in self.players if p.position == position), None)

    def find_player(self, player_id: str) -> Optional[Player]:
        return next((p for p in self.players if p.id == player_id), None)


class Match(BaseModel):
    """Match record pairing two teams."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    date: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    team_a: Team
    team_b: Team
    team_a_serves_first: bool = True
    score_a: int = 0
    score_b: int = 0

    def find_player(self, player_id: str) -> Optional[Player]:
        return self.team_a.find_player(player_id) or self.team_b.find_player(player_id)
