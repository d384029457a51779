"""Habit store protocol."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Iterable, Optional, Protocol

from ...models.anchor import Anchor
from ...models.habit import Habit, HabitStatus, LogEntry
from ...models.suggestion import (
    PreferenceWeight,
    Suggestion,
    SuggestionHistoryItem,
)


class HabitStore(Protocol):
    """Durable storage the engine reads from and writes its owned state to.

    Implementations raise ``StoreError`` on read/write failure.
    """

    # Habits
    def get_habit(self, habit_id: uuid.UUID) -> Optional[Habit]:
        """Retrieve a habit by ID."""
        ...

    def list_habits(self, include_inactive: bool = False) -> list[Habit]:
        """List habits ordered by creation date."""
        ...

    def create_habit(self, habit: Habit) -> Habit:
        """Create a new habit."""
        ...

    def update_habit(self, habit: Habit) -> Habit:
        """Update an existing habit."""
        ...

    def delete_habit(self, habit_id: uuid.UUID) -> None:
        """Delete a habit by ID."""
        ...

    def set_streak(self, habit_id: uuid.UUID, streak: int) -> None:
        """Persist the cached streak for a habit."""
        ...

    # Log entries
    def add_log_entry(self, entry: LogEntry) -> LogEntry:
        """Store a new log entry."""
        ...

    def get_log_entries(
        self,
        habit_id: Optional[uuid.UUID] = None,
        *,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        statuses: Optional[Iterable[HabitStatus]] = None,
        newest_first: bool = True,
    ) -> list[LogEntry]:
        """Query entries by habit and half-open [start, end) time range."""
        ...

    def delete_log_entries(
        self, habit_id: uuid.UUID, *, start: datetime, end: datetime
    ) -> int:
        """Delete a habit's entries in [start, end); return the count removed."""
        ...

    # Anchors
    def has_active_anchor(self, habit_id: uuid.UUID) -> bool:
        """Return True if the habit has at least one active anchor."""
        ...

    def add_anchor(self, anchor: Anchor) -> Anchor:
        """Store a new anchor."""
        ...

    # Suggestions
    def list_open_suggestions(self) -> list[Suggestion]:
        """Return all open suggestions, oldest first."""
        ...

    def get_suggestion(self, suggestion_id: uuid.UUID) -> Optional[Suggestion]:
        """Return an open suggestion by ID."""
        ...

    def save_suggestion(self, suggestion: Suggestion) -> Suggestion:
        """Insert or update an open suggestion."""
        ...

    def delete_suggestion(self, suggestion_id: uuid.UUID) -> None:
        """Remove a suggestion from the open set."""
        ...

    # History
    def add_history_item(self, item: SuggestionHistoryItem, *, limit: int) -> SuggestionHistoryItem:
        """Append a history record, evicting the oldest beyond ``limit``."""
        ...

    def get_history_item(self, suggestion_id: uuid.UUID) -> Optional[SuggestionHistoryItem]:
        """Return the history record for a suggestion, if archived."""
        ...

    def update_history_item(self, item: SuggestionHistoryItem) -> SuggestionHistoryItem:
        """Persist feedback on an existing history record."""
        ...

    def list_history(self) -> list[SuggestionHistoryItem]:
        """Return history records, oldest first."""
        ...

    # Preference weights
    def load_weights(self) -> list[PreferenceWeight]:
        """Return all stored preference weights."""
        ...

    def save_weight(self, weight: PreferenceWeight) -> PreferenceWeight:
        """Insert or update one preference weight."""
        ...
