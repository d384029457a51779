"""Tests for feedback-driven preference weights."""

from __future__ import annotations

import pytest

from habitspace.errors import StoreError
from habitspace.models import SuggestionType
from habitspace.services.preferences import PreferenceAdapter


class TestWeights:
    def test_defaults_to_one(self):
        adapter = PreferenceAdapter()
        assert all(w == 1.0 for w in adapter.weights().values())
        assert set(adapter.weights()) == set(SuggestionType)

    def test_helpful_and_unhelpful_steps(self):
        adapter = PreferenceAdapter()
        assert adapter.record_feedback(SuggestionType.TIME_OPTIMIZATION, True) == pytest.approx(1.1)
        assert adapter.record_feedback(SuggestionType.TIME_OPTIMIZATION, False) == pytest.approx(1.0)
        assert adapter.record_feedback(SuggestionType.LOCATION_CHANGE, False) == pytest.approx(0.9)

    def test_weights_clamped_to_bounds(self):
        adapter = PreferenceAdapter()
        for _ in range(30):
            adapter.record_feedback(SuggestionType.STREAK_MOTIVATION, True)
            adapter.record_feedback(SuggestionType.HABIT_COMBINATION, False)
        assert adapter.weight(SuggestionType.STREAK_MOTIVATION) == pytest.approx(2.0)
        assert adapter.weight(SuggestionType.HABIT_COMBINATION) == pytest.approx(0.1)

    def test_any_feedback_sequence_stays_in_range(self):
        adapter = PreferenceAdapter()
        pattern = [True, True, False] * 20 + [False] * 25 + [True] * 40
        for helpful in pattern:
            value = adapter.record_feedback(SuggestionType.CUSTOM, helpful)
            assert 0.1 <= value <= 2.0

    def test_snapshot_is_read_only(self):
        snapshot = PreferenceAdapter().weights()
        with pytest.raises(TypeError):
            snapshot[SuggestionType.CUSTOM] = 5.0


class TestPersistence:
    def test_weights_survive_reload(self, store):
        PreferenceAdapter(store).record_feedback(SuggestionType.FREQUENCY_ADJUSTMENT, True)

        reloaded = PreferenceAdapter(store)
        reloaded.load()

        assert reloaded.weight(SuggestionType.FREQUENCY_ADJUSTMENT) == pytest.approx(1.1)
        assert reloaded.weight(SuggestionType.TIME_OPTIMIZATION) == 1.0

    def test_store_failure_keeps_in_memory_value(self, store, monkeypatch):
        def broken(weight):
            raise StoreError("save_weight", "read-only database")

        monkeypatch.setattr(store, "save_weight", broken)
        adapter = PreferenceAdapter(store)

        assert adapter.record_feedback(SuggestionType.CUSTOM, False) == pytest.approx(0.9)
        assert adapter.weight(SuggestionType.CUSTOM) == pytest.approx(0.9)
