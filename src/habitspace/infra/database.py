"""Engine and schema setup for the habit store's database."""

from __future__ import annotations

from sqlalchemy import Engine, event
from sqlmodel import SQLModel, create_engine

from .. import models  # noqa: F401  registers every table on SQLModel.metadata
from ..config import BaseConfig
from .repositories.habit_store import SessionFactory, session_scope


def _apply_sqlite_pragmas(engine: Engine, pragmas: dict[str, str]) -> None:
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, _record) -> None:  # pragma: no cover - driver hook
        cursor = dbapi_connection.cursor()
        try:
            for name, value in pragmas.items():
                cursor.execute(f"PRAGMA {name}={value}")
        finally:
            cursor.close()


def open_database(config: BaseConfig) -> Engine:
    """Create the engine for ``config.DATABASE_URL`` and make sure the habit tables exist."""
    url = config.DATABASE_URL
    engine = create_engine(url, **config.sqlalchemy_engine_options())
    if url.startswith("sqlite") and ":memory:" not in url:
        _apply_sqlite_pragmas(engine, config.SQLITE_PRAGMAS)
    SQLModel.metadata.create_all(engine)
    return engine


def bootstrap_database(config: BaseConfig | None = None) -> tuple[Engine, SessionFactory]:
    """Return the engine plus the session factory ``SQLModelHabitStore`` expects."""
    engine = open_database(config or BaseConfig())
    return engine, session_scope(engine)


__all__ = ["bootstrap_database", "open_database"]
