"""Exceptions raised across the store/engine boundary."""

from __future__ import annotations


class StoreError(RuntimeError):
    """A read or write against the habit store failed.

    The engine contains these per habit: the failing habit is dropped from the
    current cycle and the remaining habits are still processed.
    """

    def __init__(self, operation: str, detail: str = "") -> None:
        self.operation = operation
        message = f"Store operation '{operation}' failed"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class SuggestionNotFoundError(LookupError):
    """No open suggestion (or history record) exists for the given id."""

    def __init__(self, suggestion_id: object) -> None:
        self.suggestion_id = suggestion_id
        super().__init__(f"Suggestion not found: {suggestion_id}")


class HabitNotFoundError(LookupError):
    """No habit exists for the given id."""

    def __init__(self, habit_id: object) -> None:
        self.habit_id = habit_id
        super().__init__(f"Habit not found: {habit_id}")
