"""Per-habit pattern analysis feeding the suggestion rules."""

from __future__ import annotations

import uuid
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, time, timedelta
from typing import Iterable, Mapping, Optional, Sequence

from ..config import BaseConfig
from ..models.habit import Habit, HabitFrequency, HabitStatus, LogEntry
from .periods import day_bounds


@dataclass(frozen=True, slots=True)
class HabitPattern:
    """Derived snapshot of one habit's recent behaviour. Never persisted."""

    habit_id: uuid.UUID
    habit_title: str
    completion_rate: float
    optimal_time_of_day: Optional[time]
    current_frequency: HabitFrequency
    suggested_frequency: Optional[HabitFrequency]
    streak: int
    is_streak_at_risk: bool
    related_habits: tuple[uuid.UUID, ...] = ()


def completion_rate(entries: Iterable[LogEntry], now: datetime, *, window_days: int = 14) -> float:
    """Fraction of ``completed`` entries among all entries in the trailing window."""

    cutoff = now - timedelta(days=window_days)
    recent = [e for e in entries if e.completed_at >= cutoff]
    if not recent:
        return 0.0
    completed = sum(1 for e in recent if e.status == HabitStatus.COMPLETED)
    return completed / len(recent)


def optimal_time_of_day(entries: Iterable[LogEntry]) -> Optional[time]:
    """Return the modal completion hour, or None without completions.

    Ties go to the hour encountered first in ``entries`` order, so the result
    is deterministic for a given ordering.
    """

    hours = Counter(e.completed_at.hour for e in entries if e.status == HabitStatus.COMPLETED)
    if not hours:
        return None
    # most_common is stable for equal counts, keeping first-seen order.
    hour, _ = hours.most_common(1)[0]
    return time(hour=hour)


def statuses_today(entries: Iterable[LogEntry], now: datetime) -> set[HabitStatus]:
    start, end = day_bounds(now)
    return {HabitStatus(e.status) for e in entries if start <= e.completed_at < end}


def suggest_frequency(
    frequency: HabitFrequency,
    rate: float,
    *,
    step_down_below: float = 0.4,
    step_up_above: float = 0.9,
) -> Optional[HabitFrequency]:
    """Step one frequency tier down for weak habits, up for near-perfect ones."""

    frequency = HabitFrequency(frequency)
    if rate < step_down_below:
        return frequency.step_down()
    if rate > step_up_above:
        return frequency.step_up()
    return None


class PatternAnalyzer:
    """Derives a ``HabitPattern`` from a habit and its log history."""

    def __init__(self, config: BaseConfig | type[BaseConfig] = BaseConfig):
        self.min_entries = config.MIN_ENTRIES_FOR_PATTERN
        self.window_days = config.COMPLETION_WINDOW_DAYS
        self.risk_min_streak = config.STREAK_RISK_MIN_STREAK
        self.risk_hour = config.STREAK_RISK_HOUR
        self.step_down_below = config.STEP_DOWN_BELOW
        self.step_up_above = config.STEP_UP_ABOVE

    def is_streak_at_risk(self, streak: int, entries: Iterable[LogEntry], now: datetime) -> bool:
        """Heuristic: a 3+ streak with nothing logged today once the evening starts."""

        if streak < self.risk_min_streak:
            return False
        today = statuses_today(entries, now)
        if HabitStatus.COMPLETED in today or HabitStatus.SKIPPED in today:
            return False
        return now.hour >= self.risk_hour

    def find_related_habits(
        self,
        habit: Habit,
        candidates: Sequence[Habit],
        histories: Mapping[uuid.UUID, Sequence[LogEntry]],
        now: datetime,
    ) -> tuple[uuid.UUID, ...]:
        """Pick at most one other active habit not yet completed today.

        Candidates are ranked by how many days they were completed alongside
        ``habit``; with no overlap at all the first candidate is returned.
        """

        own_days = {
            e.completed_at.date()
            for e in histories.get(habit.id, ())
            if e.status == HabitStatus.COMPLETED
        }

        best: Optional[Habit] = None
        best_overlap = -1
        for other in candidates:
            if other.id == habit.id or not other.is_active:
                continue
            history = histories.get(other.id, ())
            if HabitStatus.COMPLETED in statuses_today(history, now):
                continue
            overlap = len(
                own_days
                & {e.completed_at.date() for e in history if e.status == HabitStatus.COMPLETED}
            )
            if overlap > best_overlap:
                best, best_overlap = other, overlap

        return (best.id,) if best is not None else ()

    def analyze(
        self,
        habit: Habit,
        entries: Sequence[LogEntry],
        *,
        now: datetime,
        streak: Optional[int] = None,
        candidates: Sequence[Habit] = (),
        histories: Optional[Mapping[uuid.UUID, Sequence[LogEntry]]] = None,
    ) -> Optional[HabitPattern]:
        """Return the habit's pattern, or None when it has too little history.

        ``streak`` defaults to the habit's cached value.
        """

        if not habit.is_active or len(entries) < self.min_entries:
            return None

        frequency = HabitFrequency(habit.frequency)
        streak = habit.streak if streak is None else streak
        rate = completion_rate(entries, now, window_days=self.window_days)
        histories = histories if histories is not None else {habit.id: entries}

        return HabitPattern(
            habit_id=habit.id,
            habit_title=habit.title,
            completion_rate=rate,
            optimal_time_of_day=optimal_time_of_day(entries),
            current_frequency=frequency,
            suggested_frequency=suggest_frequency(
                frequency,
                rate,
                step_down_below=self.step_down_below,
                step_up_above=self.step_up_above,
            ),
            streak=streak,
            is_streak_at_risk=self.is_streak_at_risk(streak, entries, now),
            related_habits=self.find_related_habits(habit, candidates, histories, now),
        )


__all__ = [
    "HabitPattern",
    "PatternAnalyzer",
    "completion_rate",
    "optimal_time_of_day",
    "suggest_frequency",
]
