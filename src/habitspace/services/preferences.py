"""Feedback-driven weighting of suggestion types."""

from __future__ import annotations

import threading
from types import MappingProxyType
from typing import Mapping, Optional

from ..config import BaseConfig
from ..domain.repositories import HabitStore
from ..errors import StoreError
from ..logging_config import get_logger
from ..models.suggestion import PreferenceWeight, SuggestionType

logger = get_logger(__name__)


class PreferenceAdapter:
    """Owns one weight per suggestion type, nudged by helpful/unhelpful feedback.

    Weights start at 1.0 and always stay within [WEIGHT_MIN, WEIGHT_MAX]. When
    a store is given, weights are loaded from and written back to it.
    """

    def __init__(self, store: Optional[HabitStore] = None, *, config: BaseConfig | type[BaseConfig] = BaseConfig):
        self.store = store
        self.minimum = config.WEIGHT_MIN
        self.maximum = config.WEIGHT_MAX
        self.step = config.WEIGHT_STEP
        self._lock = threading.Lock()
        self._weights: dict[SuggestionType, float] = {t: 1.0 for t in SuggestionType}

    def clamp(self, value: float) -> float:
        return max(self.minimum, min(self.maximum, value))

    def load(self) -> None:
        """Pull persisted weights from the store, keeping defaults for missing types."""
        if self.store is None:
            return
        try:
            rows = self.store.load_weights()
        except StoreError as exc:
            logger.warning(f"Using default preference weights: {exc}")
            return
        with self._lock:
            for row in rows:
                self._weights[SuggestionType(row.suggestion_type)] = self.clamp(row.weight)

    def weight(self, suggestion_type: SuggestionType) -> float:
        return self._weights[SuggestionType(suggestion_type)]

    def weights(self) -> Mapping[SuggestionType, float]:
        """Read-only snapshot for the synthesizer."""
        return MappingProxyType(dict(self._weights))

    def record_feedback(self, suggestion_type: SuggestionType, is_helpful: bool) -> float:
        """Apply one feedback event and return the new weight."""

        suggestion_type = SuggestionType(suggestion_type)
        delta = self.step if is_helpful else -self.step
        with self._lock:
            # Round away float drift from repeated +/-0.1 steps.
            updated = round(self.clamp(self._weights[suggestion_type] + delta), 6)
            self._weights[suggestion_type] = updated

        logger.info(
            f"Preference weight for {suggestion_type.value} is now {updated:.2f}",
            extra={"helpful": is_helpful},
        )
        self._persist(suggestion_type, updated)
        return updated

    def _persist(self, suggestion_type: SuggestionType, value: float) -> Optional[PreferenceWeight]:
        if self.store is None:
            return None
        try:
            return self.store.save_weight(
                PreferenceWeight(suggestion_type=suggestion_type, weight=value)
            )
        except StoreError as exc:
            logger.warning(f"Preference weight not persisted: {exc}")
            return None


__all__ = ["PreferenceAdapter"]
