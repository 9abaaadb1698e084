"""
Scoring errors — every rejection the engine can report to its caller.
All derive from ValueError so callers that only know the generic contract
still catch them.
"""

from __future__ import annotations

from typing import Optional


class ScoringError(ValueError):
    """Base class for rejected scoring operations."""


class StageMismatchError(ScoringError):
    """The play is not valid for the current rally stage."""

    def __init__(self, message: str, stage: Optional[str] = None):
        super().__init__(message)
        self.stage = stage


class NoPlayerSelectedError(ScoringError):
    """An operation needing an actor was called without one."""


class SetAlreadyFinishedError(ScoringError):
    """The set is over; only undo and reset are accepted."""


class PersistenceError(ScoringError):
    """The caller's save step failed. Never rolls back engine state."""
