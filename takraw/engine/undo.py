"""
Undo Coordinator — two-tier rollback for the set in progress.

Tier 1 reverses the most recent action of the current rally (stat record,
ledger events, stage). When the rally has no recorded actions, tier 2 pops
the last ledger event, which reverts the most recent completed point.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Optional

from takraw.engine.ledger import ScoreLedger
from takraw.engine.rally import RallyStateMachine
from takraw.models.match import RallyStage, ScoreEvent

if TYPE_CHECKING:
    from takraw.models.roster import Player

logger = logging.getLogger("takraw.engine")


class UndoTier(str, Enum):
    RALLY_ACTION = "rally_action"
    LEDGER_EVENT = "ledger_event"


@dataclass
class RallyActionRecord:
    """One reversible action inside the current rally."""
    player: Optional["Player"]
    stat_record_id: Optional[str]
    stage_before_action: RallyStage
    ledger_length_before_action: int


@dataclass
class UndoResult:
    tier: UndoTier
    reverted_events: list[ScoreEvent] = field(default_factory=list)
    action: Optional[RallyActionRecord] = None
    stat_removed: bool = False


class UndoCoordinator:
    """Rally-action stack plus ledger-backed point reversal."""

    def __init__(self, ledger: ScoreLedger, rally: RallyStateMachine):
        self._ledger = ledger
        self._rally = rally
        self._actions: list[RallyActionRecord] = []

    def __len__(self) -> int:
        return len(self._actions)

    @property
    def can_undo(self) -> bool:
        return bool(self._actions) or self._ledger.has_history

    def push(self, record: RallyActionRecord) -> None:
        self._actions.append(record)

    def clear(self) -> None:
        """Start a new rally with an empty stack."""
        self._actions.clear()

    def undo(self) -> Optional[UndoResult]:
        """Reverse the latest rally action, else the latest ledger event. None if nothing to do."""
        if self._actions:
            return self._undo_rally_action()
        if self._ledger.has_history:
            return self._undo_ledger_event()
        return None

    def _undo_rally_action(self) -> UndoResult:
        record = self._actions.pop()

        stat_removed = False
        if record.player is not None and record.stat_record_id is not None:
            stat_removed = record.player.remove_stat(record.stat_record_id)
            if not stat_removed:
                logger.warning(
                    "Stat %s was already gone from player %s",
                    record.stat_record_id, record.player.name,
                )

        reverted = self._ledger.truncate_to(record.ledger_length_before_action)
        tail = self._ledger.current()
        self._rally.restore(record.stage_before_action, tail.serve_held_by_a)

        return UndoResult(
            tier=UndoTier.RALLY_ACTION,
            reverted_events=reverted,
            action=record,
            stat_removed=stat_removed,
        )

    def _undo_ledger_event(self) -> UndoResult:
        popped = self._ledger.pop()
        tail = self._ledger.current()
        self._rally.restore(RallyStage.SERVING, tail.serve_held_by_a)
        return UndoResult(tier=UndoTier.LEDGER_EVENT, reverted_events=[popped])
