"""SQLModel table exports."""

from .anchor import Anchor
from .habit import Habit, HabitFrequency, HabitStatus, LogEntry
from .suggestion import (
    PreferenceWeight,
    Suggestion,
    SuggestionHistoryItem,
    SuggestionType,
)

__all__ = [
    "Anchor",
    "Habit",
    "HabitFrequency",
    "HabitStatus",
    "LogEntry",
    "PreferenceWeight",
    "Suggestion",
    "SuggestionHistoryItem",
    "SuggestionType",
]
