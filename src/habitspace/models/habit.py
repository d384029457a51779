"""Habit tracking data structures."""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import ClassVar, Optional

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel


class HabitFrequency(str, Enum):
    """How often a habit is expected to be performed."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()

    def step_down(self) -> Optional["HabitFrequency"]:
        """Return the next less frequent tier, or None below monthly."""
        return _STEP_DOWN.get(self)

    def step_up(self) -> Optional["HabitFrequency"]:
        """Return the next more frequent tier, or None above daily."""
        return _STEP_UP.get(self)


_STEP_DOWN = {HabitFrequency.DAILY: HabitFrequency.WEEKLY, HabitFrequency.WEEKLY: HabitFrequency.MONTHLY}
_STEP_UP = {HabitFrequency.MONTHLY: HabitFrequency.WEEKLY, HabitFrequency.WEEKLY: HabitFrequency.DAILY}


class HabitStatus(str, Enum):
    """Outcome recorded for a habit on a given day."""

    COMPLETED = "completed"
    SKIPPED = "skipped"
    MISSED = "missed"


class Habit(SQLModel, table=True):
    """A user-defined recurring habit."""

    __tablename__: ClassVar[str] = "habit"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    title: str = Field(nullable=False, max_length=80, index=True)
    frequency: HabitFrequency = Field(default=HabitFrequency.DAILY, nullable=False)
    created_at: datetime = Field(
        default_factory=datetime.now, nullable=False, index=True, sa_type=DateTime(timezone=False)
    )
    is_active: bool = Field(default=True, nullable=False)
    # Cached value; only the streak calculator path writes it.
    streak: int = Field(default=0, nullable=False, ge=0)


class LogEntry(SQLModel, table=True):
    """Timestamped outcome for one habit. Immutable once stored, deletable for undo."""

    __tablename__: ClassVar[str] = "log_entry"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    # Weak reference: entries outlive the habit row if it is deleted.
    habit_id: uuid.UUID = Field(nullable=False, index=True)
    completed_at: datetime = Field(
        default_factory=datetime.now, nullable=False, index=True, sa_type=DateTime(timezone=False)
    )
    status: HabitStatus = Field(default=HabitStatus.COMPLETED, nullable=False, index=True)
