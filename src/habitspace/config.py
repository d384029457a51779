"""Application configuration objects and helpers."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    """Interpret environment variable values as booleans."""

    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {value!r}") from exc


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {value!r}") from exc


class BaseConfig:
    """Base configuration shared across environments."""

    APP_NAME = "HabitSpace"
    DB_FILENAME = "habitspace.db"
    SQLITE_PRAGMAS = {"journal_mode": "wal", "foreign_keys": "on"}

    # Pattern analysis
    MIN_ENTRIES_FOR_PATTERN = 3
    COMPLETION_WINDOW_DAYS = 14
    STREAK_RISK_MIN_STREAK = 3
    STREAK_RISK_HOUR = 17
    STEP_DOWN_BELOW = 0.4
    STEP_UP_ABOVE = 0.9

    # Analytics
    SERIES_DAYS = 30
    WEEK_START = 6  # date.weekday() value; 6 = Sunday

    # Suggestions & feedback
    SUGGESTION_CAP = 3  # hard per-cycle ceiling; HABITSPACE_MAX_SUGGESTIONS may only lower it
    HISTORY_LIMIT = 100
    WEIGHT_MIN = 0.1
    WEIGHT_MAX = 2.0
    WEIGHT_STEP = 0.1

    def __init__(self) -> None:
        self.DATA_DIR = self._resolve_data_dir()
        self.DEV_MODE = _env_bool("HABITSPACE_DEV_MODE", default=True)
        self.ENABLED = _env_bool("HABITSPACE_ENABLED", default=True)
        self.DATABASE_URL = os.getenv("HABITSPACE_DATABASE_URL", self._build_sqlite_url())
        self.DEBOUNCE_SECONDS = _env_float("HABITSPACE_DEBOUNCE_SECONDS", 5.0)
        self.DAILY_ANALYSIS_HOUR = _env_int("HABITSPACE_DAILY_ANALYSIS_HOUR", 3)
        self.MAX_SUGGESTIONS = _env_int("HABITSPACE_MAX_SUGGESTIONS", 3)
        if not 0 <= self.DAILY_ANALYSIS_HOUR <= 23:
            raise ValueError("HABITSPACE_DAILY_ANALYSIS_HOUR must be between 0 and 23.")
        if not 0 <= self.MAX_SUGGESTIONS <= self.SUGGESTION_CAP:
            raise ValueError(
                f"HABITSPACE_MAX_SUGGESTIONS must be between 0 and {self.SUGGESTION_CAP}."
            )

    def _resolve_data_dir(self) -> Path:
        """Return the directory where the SQLite file and logs live."""

        data_root = os.getenv("HABITSPACE_DATA_DIR", "instance")
        path = Path(data_root).expanduser().resolve()
        path.mkdir(parents=True, exist_ok=True)
        return path

    def _build_sqlite_url(self) -> str:
        db_path = self.DATA_DIR / self.DB_FILENAME
        return f"sqlite:///{db_path}"

    def sqlalchemy_engine_options(self) -> dict[str, Any]:
        """Expose engine kwargs for SQLModel to consume."""

        if not self.DATABASE_URL.startswith("sqlite"):
            return {}
        return {"connect_args": {"check_same_thread": False}}


class DevConfig(BaseConfig):
    """Development configuration using local SQLite."""

    DEBUG = True
    TESTING = False


class TestingConfig(BaseConfig):
    """Configuration used by the test-suite.

    The debounce window is long enough that data-changed cycles only run when a
    test flushes them explicitly.
    """

    __test__ = False  # keep pytest from collecting this as a test class
    DEBUG = True
    TESTING = True

    def __init__(self) -> None:
        super().__init__()
        self.DEBOUNCE_SECONDS = 60.0
