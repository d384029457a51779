"""Pytest configuration and shared fixtures for HabitSpace tests.

Every test gets its own SQLite file under ``tmp_path`` and a frozen clock so
date arithmetic is reproducible.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta

import pytest

from habitspace.config import TestingConfig
from habitspace.infra.database import bootstrap_database
from habitspace.infra.repositories import SQLModelHabitStore
from habitspace.models import Habit, HabitFrequency, HabitStatus, LogEntry
from habitspace.orchestrator import InsightEngine
from habitspace.services.notifier import LoggingNotifier

# Wednesday evening; the week (Sunday start) began on 2024-06-09.
NOW = datetime(2024, 6, 12, 19, 0)


class FrozenClock:
    """Callable clock returning a fixed instant that tests can move."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


# =============================================================================
# Configuration & Database Fixtures
# =============================================================================


@pytest.fixture
def config(tmp_path, monkeypatch):
    """Testing config with data and database isolated under tmp_path."""
    monkeypatch.setenv("HABITSPACE_DATA_DIR", str(tmp_path))
    for name in (
        "HABITSPACE_DATABASE_URL",
        "HABITSPACE_ENABLED",
        "HABITSPACE_MAX_SUGGESTIONS",
        "HABITSPACE_DAILY_ANALYSIS_HOUR",
        "HABITSPACE_DEBOUNCE_SECONDS",
    ):
        monkeypatch.delenv(name, raising=False)
    return TestingConfig()


@pytest.fixture
def db(config):
    """Yield (engine, session_factory) for a fresh database."""
    engine, session_factory = bootstrap_database(config)
    yield engine, session_factory
    engine.dispose()


@pytest.fixture
def session_factory(db):
    return db[1]


@pytest.fixture
def store(session_factory):
    return SQLModelHabitStore(session_factory)


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def notifier():
    return LoggingNotifier()


@pytest.fixture
def engine(store, config, clock, notifier):
    insight = InsightEngine(store, config=config, notifier=notifier, clock=clock)
    insight.load_state()
    yield insight
    insight.shutdown()


# =============================================================================
# Data Factories
# =============================================================================


@pytest.fixture
def habit_factory(store):
    """Persist a habit created well before NOW unless told otherwise."""

    def _create(
        title: str = "Drink Water",
        frequency: HabitFrequency = HabitFrequency.DAILY,
        *,
        created_at: datetime | None = None,
        is_active: bool = True,
        streak: int = 0,
    ) -> Habit:
        return store.create_habit(
            Habit(
                title=title,
                frequency=frequency,
                created_at=created_at or NOW - timedelta(days=60),
                is_active=is_active,
                streak=streak,
            )
        )

    return _create


@pytest.fixture
def log_factory(store):
    """Persist a log entry for a habit at the given timestamp."""

    def _log(habit: Habit, when: datetime, status: HabitStatus = HabitStatus.COMPLETED) -> LogEntry:
        return store.add_log_entry(LogEntry(habit_id=habit.id, completed_at=when, status=status))

    return _log


def make_entry(when: datetime, status: HabitStatus = HabitStatus.COMPLETED, habit=None) -> LogEntry:
    """Build an unsaved entry for pure-function tests."""
    kwargs = {"completed_at": when, "status": status}
    if habit is not None:
        kwargs["habit_id"] = habit.id if isinstance(habit, Habit) else habit
    else:
        kwargs["habit_id"] = _ORPHAN_HABIT
    return LogEntry(**kwargs)


_ORPHAN_HABIT = uuid.uuid4()
