"""Completion analytics: weekly rate, longest streak, today's count, 30-day series."""

from __future__ import annotations

import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Iterable

from ..models.habit import Habit, HabitFrequency, HabitStatus, LogEntry
from .periods import SUNDAY, day_bounds, start_of_month, start_of_week, trailing_days


@dataclass(frozen=True, slots=True)
class DailyCompletion:
    """Completion rate for a single calendar day."""

    day: date
    rate: float


@dataclass(frozen=True, slots=True)
class AnalyticsSnapshot:
    """Aggregated statistics published after each recomputation."""

    weekly_rate: float
    longest_streak: int
    today_count: int
    series: tuple[DailyCompletion, ...] = field(default_factory=tuple)

    @classmethod
    def empty(cls, today: date, days: int = 30) -> "AnalyticsSnapshot":
        """Zeroed snapshot used when the store cannot be read."""
        return cls(
            weekly_rate=0.0,
            longest_streak=0,
            today_count=0,
            series=tuple(DailyCompletion(day=d, rate=0.0) for d in trailing_days(today, days)),
        )

    def as_dict(self) -> dict:
        return {
            "weekly_rate": self.weekly_rate,
            "longest_streak": self.longest_streak,
            "today_count": self.today_count,
            "series": [{"day": p.day.isoformat(), "rate": p.rate} for p in self.series],
        }


def _completed_days_by_habit(entries: Iterable[LogEntry]) -> dict[uuid.UUID, set[date]]:
    days: dict[uuid.UUID, set[date]] = defaultdict(set)
    for entry in entries:
        if entry.status == HabitStatus.COMPLETED:
            days[entry.habit_id].add(entry.completed_at.date())
    return days


def expected_this_week(habit: Habit, today: date, *, week_start: int = SUNDAY) -> int:
    """Return how many completions a habit owes between week start and today."""

    week_begin = start_of_week(today, week_start)
    created = habit.created_at.date()
    if created > today:
        return 0

    habit_start = max(week_begin, created)
    frequency = HabitFrequency(habit.frequency)
    if frequency is HabitFrequency.DAILY:
        return (today - habit_start).days + 1
    if frequency is HabitFrequency.WEEKLY:
        return 1
    # Monthly: only owed when the month rolled over while the habit existed this week.
    month_begin = start_of_month(today)
    return 1 if habit_start <= month_begin <= today else 0


def weekly_completion_rate(
    habits: Iterable[Habit],
    entries: Iterable[LogEntry],
    today: date,
    *,
    week_start: int = SUNDAY,
) -> float:
    """Return completed / expected units for active habits this week, in [0, 1].

    Each habit contributes at most its expected units, counted as distinct
    completion days since the later of week start and its creation date.
    Returns 0.0 when nothing is expected.
    """

    week_begin = start_of_week(today, week_start)
    done_days = _completed_days_by_habit(entries)

    expected_total = 0
    completed_total = 0
    for habit in habits:
        if not habit.is_active:
            continue
        expected = expected_this_week(habit, today, week_start=week_start)
        if expected <= 0:
            continue
        window_start = max(week_begin, habit.created_at.date())
        hits = sum(1 for d in done_days.get(habit.id, ()) if window_start <= d <= today)
        expected_total += expected
        completed_total += min(hits, expected)

    if expected_total == 0:
        return 0.0
    return completed_total / expected_total


def longest_active_streak(habits: Iterable[Habit]) -> int:
    """Return the highest cached streak among active habits, 0 if none."""
    return max((h.streak for h in habits if h.is_active), default=0)


def today_completed_count(entries: Iterable[LogEntry], now: datetime) -> int:
    """Count completed entries within [start of today, start of tomorrow)."""
    start, end = day_bounds(now)
    return sum(
        1
        for e in entries
        if e.status == HabitStatus.COMPLETED and start <= e.completed_at < end
    )


def is_expected_on(habit: Habit, day: date) -> bool:
    """Return True if the habit is due on ``day`` given its frequency and creation date."""

    created = habit.created_at.date()
    if created > day:
        return False
    frequency = HabitFrequency(habit.frequency)
    if frequency is HabitFrequency.DAILY:
        return True
    if frequency is HabitFrequency.WEEKLY:
        return day.weekday() == created.weekday()
    return day.day == created.day


def daily_completion_series(
    habits: Iterable[Habit],
    entries: Iterable[LogEntry],
    today: date,
    *,
    days: int = 30,
) -> tuple[DailyCompletion, ...]:
    """Return per-day completion rates for the trailing ``days`` (oldest first).

    The rate for a day is the number of active habits completed that day over
    the number due that day, capped at 1.0; days with nothing due yield 0.0.
    """

    active = [h for h in habits if h.is_active]
    done_days = _completed_days_by_habit(entries)

    series = []
    for day in trailing_days(today, days):
        expected = sum(1 for h in active if is_expected_on(h, day))
        if expected == 0:
            series.append(DailyCompletion(day=day, rate=0.0))
            continue
        completed = sum(
            1
            for h in active
            if h.created_at.date() <= day and day in done_days.get(h.id, ())
        )
        series.append(DailyCompletion(day=day, rate=min(1.0, completed / expected)))
    return tuple(series)


def build_snapshot(
    habits: Iterable[Habit],
    entries: Iterable[LogEntry],
    now: datetime,
    *,
    days: int = 30,
    week_start: int = SUNDAY,
) -> AnalyticsSnapshot:
    """Compose every statistic from one read of habits and completed entries."""

    habits = list(habits)
    entries = list(entries)
    today = now.date()
    return AnalyticsSnapshot(
        weekly_rate=weekly_completion_rate(habits, entries, today, week_start=week_start),
        longest_streak=longest_active_streak(habits),
        today_count=today_completed_count(entries, now),
        series=daily_completion_series(habits, entries, today, days=days),
    )


def analytics_window_start(now: datetime, *, days: int = 30, week_start: int = SUNDAY) -> datetime:
    """Earliest timestamp any statistic in ``build_snapshot`` needs to read."""
    today = now.date()
    earliest = min(start_of_week(today, week_start), today - timedelta(days=days - 1))
    return day_bounds(earliest)[0]


__all__ = [
    "AnalyticsSnapshot",
    "DailyCompletion",
    "analytics_window_start",
    "build_snapshot",
    "daily_completion_series",
    "expected_this_week",
    "is_expected_on",
    "longest_active_streak",
    "today_completed_count",
    "weekly_completion_rate",
]
