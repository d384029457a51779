"""SQLModel implementation of the habit store."""

from __future__ import annotations

import uuid
from contextlib import contextmanager
from datetime import datetime
from typing import Callable, ContextManager, Iterable, Iterator, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, col, select

from ...errors import StoreError
from ...logging_config import get_logger
from ...models.anchor import Anchor
from ...models.habit import Habit, HabitStatus, LogEntry
from ...models.suggestion import (
    PreferenceWeight,
    Suggestion,
    SuggestionHistoryItem,
)

logger = get_logger(__name__)

SessionFactory = Callable[[], ContextManager[Session]]


def session_scope(engine) -> SessionFactory:
    """Build a session factory that commits on success and rolls back on error."""

    @contextmanager
    def scope() -> Iterator[Session]:
        with Session(engine, expire_on_commit=False) as session:
            try:
                yield session
                session.commit()
            except Exception:
                session.rollback()
                raise

    return scope


class SQLModelHabitStore:
    """SQLModel-based habit store implementation."""

    def __init__(self, session_factory: SessionFactory):
        """Initialize with a session factory."""
        self.session_factory = session_factory

    @contextmanager
    def _session(self, operation: str) -> Iterator[Session]:
        """Open a session, translating driver failures into StoreError."""
        try:
            with self.session_factory() as session:
                yield session
        except SQLAlchemyError as exc:
            logger.error(f"Store operation {operation} failed: {exc}", exc_info=True)
            raise StoreError(operation, str(exc)) from exc

    # Habits
    def get_habit(self, habit_id: uuid.UUID) -> Optional[Habit]:
        """Retrieve a habit by ID."""
        with self._session("get_habit") as session:
            obj = session.get(Habit, habit_id)
            if obj:
                session.expunge(obj)
            return obj

    def list_habits(self, include_inactive: bool = False) -> list[Habit]:
        """List habits ordered by creation date."""
        with self._session("list_habits") as session:
            statement = select(Habit).order_by(col(Habit.created_at))
            if not include_inactive:
                statement = statement.where(Habit.is_active == True)  # noqa: E712
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows

    def create_habit(self, habit: Habit) -> Habit:
        """Create a new habit."""
        with self._session("create_habit") as session:
            session.add(habit)
            session.commit()
            session.refresh(habit)
            session.expunge(habit)
            return habit

    def update_habit(self, habit: Habit) -> Habit:
        """Update an existing habit."""
        with self._session("update_habit") as session:
            merged = session.merge(habit)
            session.commit()
            session.refresh(merged)
            session.expunge(merged)
            return merged

    def delete_habit(self, habit_id: uuid.UUID) -> None:
        """Delete a habit by ID. Its log entries are left in place."""
        with self._session("delete_habit") as session:
            habit = session.get(Habit, habit_id)
            if habit:
                session.delete(habit)
                session.commit()

    def set_streak(self, habit_id: uuid.UUID, streak: int) -> None:
        """Persist the cached streak for a habit."""
        with self._session("set_streak") as session:
            habit = session.get(Habit, habit_id)
            if habit is None:
                return
            habit.streak = max(0, int(streak))
            session.add(habit)
            session.commit()

    # Log entries
    def add_log_entry(self, entry: LogEntry) -> LogEntry:
        """Store a new log entry."""
        with self._session("add_log_entry") as session:
            session.add(entry)
            session.commit()
            session.refresh(entry)
            session.expunge(entry)
            return entry

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
        with self._session("get_log_entries") as session:
            statement = select(LogEntry)
            if habit_id is not None:
                statement = statement.where(LogEntry.habit_id == habit_id)
            if start is not None:
                statement = statement.where(LogEntry.completed_at >= start)
            if end is not None:
                statement = statement.where(LogEntry.completed_at < end)
            if statuses is not None:
                statement = statement.where(col(LogEntry.status).in_(list(statuses)))
            order = col(LogEntry.completed_at)
            statement = statement.order_by(order.desc() if newest_first else order)
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows

    def delete_log_entries(
        self, habit_id: uuid.UUID, *, start: datetime, end: datetime
    ) -> int:
        """Delete a habit's entries in [start, end); return the count removed."""
        with self._session("delete_log_entries") as session:
            entries = session.exec(
                select(LogEntry)
                .where(LogEntry.habit_id == habit_id)
                .where(LogEntry.completed_at >= start)
                .where(LogEntry.completed_at < end)
            ).all()
            for entry in entries:
                session.delete(entry)
            session.commit()
            return len(entries)

    # Anchors
    def has_active_anchor(self, habit_id: uuid.UUID) -> bool:
        """Return True if the habit has at least one active anchor."""
        with self._session("has_active_anchor") as session:
            anchor = session.exec(
                select(Anchor)
                .where(Anchor.habit_id == habit_id)
                .where(Anchor.is_active == True)  # noqa: E712
                .limit(1)
            ).first()
            return anchor is not None

    def add_anchor(self, anchor: Anchor) -> Anchor:
        """Store a new anchor."""
        with self._session("add_anchor") as session:
            session.add(anchor)
            session.commit()
            session.refresh(anchor)
            session.expunge(anchor)
            return anchor

    # Suggestions
    def list_open_suggestions(self) -> list[Suggestion]:
        """Return all open suggestions, oldest first."""
        with self._session("list_open_suggestions") as session:
            rows = list(
                session.exec(select(Suggestion).order_by(col(Suggestion.created_at))).all()
            )
            session.expunge_all()
            return rows

    def get_suggestion(self, suggestion_id: uuid.UUID) -> Optional[Suggestion]:
        """Return an open suggestion by ID."""
        with self._session("get_suggestion") as session:
            obj = session.get(Suggestion, suggestion_id)
            if obj:
                session.expunge(obj)
            return obj

    def save_suggestion(self, suggestion: Suggestion) -> Suggestion:
        """Insert or update an open suggestion."""
        with self._session("save_suggestion") as session:
            merged = session.merge(suggestion)
            session.commit()
            session.refresh(merged)
            session.expunge(merged)
            return merged

    def delete_suggestion(self, suggestion_id: uuid.UUID) -> None:
        """Remove a suggestion from the open set."""
        with self._session("delete_suggestion") as session:
            obj = session.get(Suggestion, suggestion_id)
            if obj:
                session.delete(obj)
                session.commit()

    # History
    def add_history_item(self, item: SuggestionHistoryItem, *, limit: int) -> SuggestionHistoryItem:
        """Append a history record, evicting the oldest beyond ``limit``."""
        with self._session("add_history_item") as session:
            session.add(item)
            session.commit()
            session.refresh(item)

            stale = session.exec(
                select(SuggestionHistoryItem)
                .order_by(col(SuggestionHistoryItem.id).desc())
                .offset(limit)
            ).all()
            if stale:
                for row in stale:
                    session.delete(row)
                session.commit()
                logger.debug(f"Evicted {len(stale)} suggestion history records")

            session.expunge(item)
            return item

    def get_history_item(self, suggestion_id: uuid.UUID) -> Optional[SuggestionHistoryItem]:
        """Return the history record for a suggestion, if archived."""
        with self._session("get_history_item") as session:
            obj = session.exec(
                select(SuggestionHistoryItem).where(
                    SuggestionHistoryItem.suggestion_id == suggestion_id
                )
            ).first()
            if obj:
                session.expunge(obj)
            return obj

    def update_history_item(self, item: SuggestionHistoryItem) -> SuggestionHistoryItem:
        """Persist feedback on an existing history record."""
        with self._session("update_history_item") as session:
            merged = session.merge(item)
            session.commit()
            session.refresh(merged)
            session.expunge(merged)
            return merged

    def list_history(self) -> list[SuggestionHistoryItem]:
        """Return history records, oldest first."""
        with self._session("list_history") as session:
            rows = list(
                session.exec(
                    select(SuggestionHistoryItem).order_by(col(SuggestionHistoryItem.id))
                ).all()
            )
            session.expunge_all()
            return rows

    # Preference weights
    def load_weights(self) -> list[PreferenceWeight]:
        """Return all stored preference weights."""
        with self._session("load_weights") as session:
            rows = list(session.exec(select(PreferenceWeight)).all())
            session.expunge_all()
            return rows

    def save_weight(self, weight: PreferenceWeight) -> PreferenceWeight:
        """Insert or update one preference weight."""
        with self._session("save_weight") as session:
            merged = session.merge(weight)
            session.commit()
            session.refresh(merged)
            session.expunge(merged)
            return merged


__all__ = ["SQLModelHabitStore"]
