"""HabitSpace insight engine package."""

from __future__ import annotations

from .config import BaseConfig, DevConfig
from .context import EngineContext, create_engine_context
from .orchestrator import EngineState, EngineUpdate, InsightEngine, TriggerSource

__all__ = [
    "BaseConfig",
    "DevConfig",
    "EngineContext",
    "EngineState",
    "EngineUpdate",
    "InsightEngine",
    "TriggerSource",
    "create_engine_context",
]
