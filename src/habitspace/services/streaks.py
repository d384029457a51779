"""Streak calculation for habits of any frequency."""

from __future__ import annotations

from typing import Iterable

from ..models.habit import HabitFrequency, HabitStatus, LogEntry
from .periods import SUNDAY, previous_occurrence, same_period


def compute_streak(
    entries: Iterable[LogEntry],
    frequency: HabitFrequency,
    *,
    week_start: int = SUNDAY,
) -> int:
    """Return the current streak from a habit's log entries.

    Only ``completed`` entries are consulted. Walking newest to oldest, the most
    recent completion seeds the streak at 1; each older completion extends it
    only if it lands in the period one frequency unit before the previously
    kept completion. The first mismatch ends the walk. Completions sharing the
    period of the previously kept one are collapsed into it.

    Recency is not checked: a single old completion still yields 1.
    """

    completed_days = sorted(
        (e.completed_at.date() for e in entries if e.status == HabitStatus.COMPLETED),
        reverse=True,
    )

    streak = 0
    last_kept = None
    for day in completed_days:
        if last_kept is None:
            streak = 1
            last_kept = day
            continue

        if same_period(day, last_kept, frequency, week_start=week_start):
            continue

        expected = previous_occurrence(last_kept, frequency)
        if same_period(day, expected, frequency, week_start=week_start):
            streak += 1
            last_kept = day
        else:
            break

    return streak


__all__ = ["compute_streak"]
