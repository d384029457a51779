"""Suggestion, feedback history and preference weight tables."""

from __future__ import annotations

import uuid
from datetime import datetime, time
from enum import Enum
from typing import ClassVar, Optional

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from .habit import HabitFrequency


class SuggestionType(str, Enum):
    """The kinds of suggestion the engine can surface."""

    TIME_OPTIMIZATION = "timeOptimization"
    FREQUENCY_ADJUSTMENT = "frequencyAdjustment"
    STREAK_MOTIVATION = "streakMotivation"
    HABIT_COMBINATION = "habitCombination"
    LOCATION_CHANGE = "locationChange"
    CUSTOM = "custom"

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]


_DISPLAY_NAMES = {
    SuggestionType.TIME_OPTIMIZATION: "Time Optimization",
    SuggestionType.FREQUENCY_ADJUSTMENT: "Frequency Adjustment",
    SuggestionType.STREAK_MOTIVATION: "Streak Motivation",
    SuggestionType.HABIT_COMBINATION: "Habit Combination",
    SuggestionType.LOCATION_CHANGE: "Location Change",
    SuggestionType.CUSTOM: "Custom Suggestion",
}


class Suggestion(SQLModel, table=True):
    """An open, prioritized recommendation for one habit."""

    __tablename__: ClassVar[str] = "suggestion"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    habit_id: uuid.UUID = Field(nullable=False, index=True)
    type: SuggestionType = Field(nullable=False, index=True)
    title: str = Field(default="", max_length=120)
    message: str = Field(nullable=False, max_length=500)
    suggested_time: Optional[time] = Field(default=None)
    suggested_frequency: Optional[HabitFrequency] = Field(default=None)
    related_habit_id: Optional[uuid.UUID] = Field(default=None)
    # Weighted priority; may exceed 1.0 once a preference weight above 1.0 applies.
    priority: float = Field(default=0.5, nullable=False)
    is_accepted: bool = Field(default=False, nullable=False)
    created_at: datetime = Field(
        default_factory=datetime.now, nullable=False, index=True, sa_type=DateTime(timezone=False)
    )


class SuggestionHistoryItem(SQLModel, table=True):
    """Audit record written when a suggestion is accepted or dismissed."""

    __tablename__: ClassVar[str] = "suggestion_history"

    id: Optional[int] = Field(default=None, primary_key=True)
    suggestion_id: uuid.UUID = Field(nullable=False, unique=True, index=True)
    habit_id: uuid.UUID = Field(nullable=False, index=True)
    type: SuggestionType = Field(nullable=False)
    message: str = Field(default="", max_length=500)
    created_at: datetime = Field(nullable=False, sa_type=DateTime(timezone=False))
    responded_at: datetime = Field(
        default_factory=datetime.now, nullable=False, index=True, sa_type=DateTime(timezone=False)
    )
    was_accepted: bool = Field(nullable=False)
    was_helpful: Optional[bool] = Field(default=None)
    user_comment: Optional[str] = Field(default=None, max_length=500)


class PreferenceWeight(SQLModel, table=True):
    """Per suggestion-type weight learned from feedback."""

    __tablename__: ClassVar[str] = "preference_weight"

    suggestion_type: SuggestionType = Field(primary_key=True)
    weight: float = Field(default=1.0, nullable=False)
