"""
Score Ledger — append-only record of score snapshots for one set.

The tail event is the authoritative current score and serve holder. The
ledger is never empty: it is seeded with a synthetic "Game Start" 0-0 event
that truncation cannot remove.
"""

from __future__ import annotations

from typing import Iterator, Optional

from takraw.models.match import PlayType, ScoreEvent, TeamSide

GAME_START_LABEL = "Game Start"


def game_start_event(team_a_serves_first: bool) -> ScoreEvent:
    return ScoreEvent(
        score_a=0,
        score_b=0,
        scoring_team=TeamSide.NONE,
        player_name=GAME_START_LABEL,
        play_type=PlayType.SERVE,
        success=True,
        serve_holder=TeamSide.of(team_a_serves_first),
    )


class ScoreLedger:
    """Ordered ScoreEvent sequence with truncate-only rollback."""

    def __init__(self, team_a_serves_first: bool = True):
        self._team_a_serves_first = team_a_serves_first
        self._events: list[ScoreEvent] = [game_start_event(team_a_serves_first)]

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[ScoreEvent]:
        return iter(list(self._events))

    def append(self, event: ScoreEvent) -> None:
        self._events.append(event)

    def current(self) -> ScoreEvent:
        return self._events[-1]

    def events(self) -> list[ScoreEvent]:
        return list(self._events)

    @property
    def has_history(self) -> bool:
        """True when anything beyond the start event has been recorded."""
        return len(self._events) > 1

    def truncate_to(self, length: int) -> list[ScoreEvent]:
        """
        Drop events beyond ``length``; retained events are never edited.
        Returns the removed events, oldest first.
        """
        length = max(1, length)
        removed = self._events[length:]
        del self._events[length:]
        return removed

    def pop(self) -> Optional[ScoreEvent]:
        """Remove the tail event, keeping the start event in place."""
        if not self.has_history:
            return None
        return self._events.pop()

    def reset(self, team_a_serves_first: Optional[bool] = None) -> None:
        if team_a_serves_first is not None:
            self._team_a_serves_first = team_a_serves_first
        self._events = [game_start_event(self._team_a_serves_first)]
