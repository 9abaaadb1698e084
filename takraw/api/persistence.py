"""
Match persistence hook — the caller-side save step after each stat change.

The engine's in-memory ledger is authoritative; a failed save is logged and
reported, never rolled back.
"""

from __future__ import annotations

from typing import Optional, Protocol

from takraw.engine.errors import PersistenceError
from takraw.models.roster import Match


class MatchRepository(Protocol):
    def save(self, match: Match) -> None: ...

    def load(self, match_id: str) -> Optional[Match]: ...


class InMemoryMatchRepository:
    """Keeps a deep copy of each saved match, keyed by id."""

    def __init__(self):
        self._matches: dict[str, Match] = {}

    def save(self, match: Match) -> None:
        self._matches[match.id] = match.model_copy(deep=True)

    def load(self, match_id: str) -> Optional[Match]:
        stored = self._matches.get(match_id)
        return stored.model_copy(deep=True) if stored else None

    def __len__(self) -> int:
        return len(self._matches)


def save_match(repository: MatchRepository, match: Match) -> None:
    """Persist ``match``, wrapping any backend failure in PersistenceError."""
    try:
        repository.save(match)
    except Exception as exc:
        raise PersistenceError(f"Saving match {match.id} failed: {exc}") from exc
