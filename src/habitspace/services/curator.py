"""Deduplication, ranking and ownership of the open suggestion set."""

from __future__ import annotations

import threading
import uuid
from datetime import datetime
from typing import Iterable, Optional

from ..domain.repositories import HabitStore
from ..errors import StoreError
from ..logging_config import get_logger
from ..models.suggestion import Suggestion, SuggestionType

logger = get_logger(__name__)


class SuggestionCurator:
    """Keeps the open suggestion set and decides which candidates join it.

    Readers always get an immutable tuple; updates swap the whole tuple under a
    lock so nobody observes a half-applied batch.
    """

    def __init__(self, max_per_cycle: int = 3):
        self.max_per_cycle = max_per_cycle
        self._lock = threading.Lock()
        self._open: tuple[Suggestion, ...] = ()

    @property
    def open_suggestions(self) -> tuple[Suggestion, ...]:
        return self._open

    def replace(self, suggestions: Iterable[Suggestion]) -> None:
        """Reset the open set, e.g. after loading it from the store."""
        with self._lock:
            self._open = tuple(s for s in suggestions if not s.is_accepted)

    def get(self, suggestion_id: uuid.UUID) -> Optional[Suggestion]:
        return next((s for s in self._open if s.id == suggestion_id), None)

    def remove(self, suggestion_id: uuid.UUID) -> Optional[Suggestion]:
        """Drop a suggestion from the open set, returning it if present."""
        with self._lock:
            removed = self.get(suggestion_id)
            if removed is not None:
                self._open = tuple(s for s in self._open if s.id != suggestion_id)
            return removed

    def curate(self, candidates: Iterable[Suggestion], *, now: datetime) -> list[Suggestion]:
        """Deduplicate, rank by priority and truncate this cycle's candidates.

        A candidate is dropped when an earlier candidate in the batch already
        covers its (habit, type), or when an open unaccepted suggestion for the
        same (habit, type) was created today.
        """

        today = now.date()
        open_today: set[tuple[uuid.UUID, SuggestionType]] = {
            (s.habit_id, SuggestionType(s.type))
            for s in self._open
            if not s.is_accepted and s.created_at.date() == today
        }

        seen: set[tuple[uuid.UUID, SuggestionType]] = set()
        kept: list[Suggestion] = []
        for candidate in candidates:
            key = (candidate.habit_id, SuggestionType(candidate.type))
            if key in seen or key in open_today:
                continue
            seen.add(key)
            kept.append(candidate)

        # sorted() is stable: equal priorities keep synthesis order.
        ranked = sorted(kept, key=lambda s: s.priority, reverse=True)
        return ranked[: self.max_per_cycle]

    def commit(self, selected: Iterable[Suggestion], store: HabitStore) -> list[Suggestion]:
        """Persist curated suggestions and append the ones that stored cleanly.

        A failed write drops that suggestion for this cycle; the others still
        go through. The open set is updated in a single swap.
        """

        stored: list[Suggestion] = []
        for suggestion in selected:
            try:
                stored.append(store.save_suggestion(suggestion))
            except StoreError as exc:
                logger.warning(
                    f"Dropping suggestion for habit {suggestion.habit_id}: {exc}",
                    extra={"suggestion_type": SuggestionType(suggestion.type).value},
                )

        if stored:
            with self._lock:
                self._open = self._open + tuple(stored)
        return stored


__all__ = ["SuggestionCurator"]
