"""Engine context for dependency injection."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .config import BaseConfig
from .infra.database import bootstrap_database
from .infra.repositories import SQLModelHabitStore
from .infra.repositories.habit_store import SessionFactory
from .orchestrator import InsightEngine
from .scheduler import AnalysisScheduler
from .services.notifier import Notifier


@dataclass
class EngineContext:
    """Wires configuration, storage, the engine and its scheduler together."""

    config: BaseConfig
    session_factory: SessionFactory
    store: SQLModelHabitStore
    engine: InsightEngine
    scheduler: Optional[AnalysisScheduler] = None

    def close(self) -> None:
        if self.scheduler is not None:
            self.scheduler.stop()
        self.engine.shutdown()


def create_engine_context(
    config: Optional[BaseConfig] = None,
    *,
    notifier: Optional[Notifier] = None,
    with_scheduler: bool = False,
) -> EngineContext:
    """Create the database, store and engine, restoring persisted engine state."""

    if config is None:
        config = BaseConfig()

    _, session_factory = bootstrap_database(config)
    store = SQLModelHabitStore(session_factory)

    engine = InsightEngine(store, config=config, notifier=notifier)
    engine.load_state()

    scheduler = None
    if with_scheduler:
        scheduler = AnalysisScheduler(engine)
        scheduler.start()

    return EngineContext(
        config=config,
        session_factory=session_factory,
        store=store,
        engine=engine,
        scheduler=scheduler,
    )


__all__ = ["EngineContext", "create_engine_context"]
