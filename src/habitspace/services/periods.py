"""Calendar-aware period helpers shared by streak and analytics code."""

from __future__ import annotations

from calendar import monthrange
from datetime import date, datetime, time, timedelta

from ..models.habit import HabitFrequency

SUNDAY = 6


def start_of_day(value: datetime | date) -> datetime:
    """Return midnight at the start of the given day."""
    day = value.date() if isinstance(value, datetime) else value
    return datetime.combine(day, time.min)


def day_bounds(value: datetime | date) -> tuple[datetime, datetime]:
    """Return the half-open [start-of-day, start-of-next-day) window."""
    start = start_of_day(value)
    return start, start + timedelta(days=1)


def start_of_week(day: date, week_start: int = SUNDAY) -> date:
    """Return the first day of the week containing ``day``.

    ``week_start`` uses ``date.weekday()`` numbering (Monday=0 ... Sunday=6).
    """
    return day - timedelta(days=(day.weekday() - week_start) % 7)


def start_of_month(day: date) -> date:
    return day.replace(day=1)


def subtract_months(day: date, months: int = 1) -> date:
    """Move back whole calendar months, clamping to the last valid day of month."""
    month_index = day.year * 12 + (day.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    last_day = monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def previous_occurrence(day: date, frequency: HabitFrequency) -> date:
    """Return the date one frequency unit before ``day``."""
    frequency = HabitFrequency(frequency)
    if frequency is HabitFrequency.DAILY:
        return day - timedelta(days=1)
    if frequency is HabitFrequency.WEEKLY:
        return day - timedelta(weeks=1)
    if frequency is HabitFrequency.MONTHLY:
        return subtract_months(day, 1)
    raise ValueError(f"Unsupported frequency: {frequency!r}")


def same_period(
    first: date, second: date, frequency: HabitFrequency, *, week_start: int = SUNDAY
) -> bool:
    """Return True when both dates fall in the same day / week / month."""
    frequency = HabitFrequency(frequency)
    if frequency is HabitFrequency.DAILY:
        return first == second
    if frequency is HabitFrequency.WEEKLY:
        return start_of_week(first, week_start) == start_of_week(second, week_start)
    if frequency is HabitFrequency.MONTHLY:
        return (first.year, first.month) == (second.year, second.month)
    raise ValueError(f"Unsupported frequency: {frequency!r}")


def trailing_days(today: date, count: int) -> list[date]:
    """Return ``count`` calendar days ending with ``today``, oldest first."""
    return [today - timedelta(days=offset) for offset in range(count - 1, -1, -1)]
