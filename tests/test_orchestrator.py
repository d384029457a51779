"""Integration tests for the insight engine's analysis cycle and suggestion lifecycle."""

from __future__ import annotations

import threading
import uuid
from datetime import timedelta

import pytest

from conftest import NOW
from habitspace.errors import StoreError, SuggestionNotFoundError
from habitspace.models import HabitFrequency, HabitStatus, Suggestion, SuggestionType
from habitspace.orchestrator import EngineState, InsightEngine, TriggerSource
from habitspace.services.suggestions import SuggestionSynthesizer


@pytest.fixture
def seeded(habit_factory, log_factory):
    """Two struggling-but-streaking habits, neither done yet today (NOW is 19:00).

    Drink Water: completed the last 5 mornings, missed the 8 evenings before.
    Stretch: completed the last 3 mornings.
    """

    water = habit_factory("Drink Water", created_at=NOW - timedelta(days=30))
    stretch = habit_factory("Stretch", created_at=NOW - timedelta(days=20))
    for days_ago in range(1, 6):
        log_factory(water, (NOW - timedelta(days=days_ago)).replace(hour=8))
    for days_ago in range(6, 14):
        log_factory(water, (NOW - timedelta(days=days_ago)).replace(hour=20), HabitStatus.MISSED)
    for days_ago in range(1, 4):
        log_factory(stretch, (NOW - timedelta(days=days_ago)).replace(hour=7))
    return water, stretch


def keys(suggestions):
    return [(s.habit_id, SuggestionType(s.type)) for s in suggestions]


class TestAnalysisCycle:
    def test_cycle_ranks_and_caps_suggestions(self, engine, seeded, store):
        water, stretch = seeded

        created = engine.run_analysis_cycle()

        assert keys(created) == [
            (water.id, SuggestionType.STREAK_MOTIVATION),
            (stretch.id, SuggestionType.STREAK_MOTIVATION),
            (water.id, SuggestionType.TIME_OPTIMIZATION),
        ]
        assert created[2].priority == pytest.approx(0.8 * (1 - 5 / 13))
        assert {s.id for s in store.list_open_suggestions()} == {s.id for s in created}
        assert engine.state is EngineState.IDLE

    def test_cycle_refreshes_streaks(self, engine, seeded, store):
        water, stretch = seeded
        engine.run_analysis_cycle()
        assert store.get_habit(water.id).streak == 5
        assert store.get_habit(stretch.id).streak == 3

    def test_streak_suggestions_request_notifications(self, engine, seeded, notifier):
        water, stretch = seeded
        engine.run_analysis_cycle()
        assert [n.habit_id for n in notifier.sent] == [water.id, stretch.id]
        assert notifier.sent[0].title == "Keep your streak going!"

    def test_no_duplicate_kind_for_a_habit_on_the_same_day(self, engine, seeded):
        for _ in range(3):
            created = engine.run_analysis_cycle()
            assert len(created) <= 3

        open_keys = keys(engine.suggestions)
        assert len(open_keys) == len(set(open_keys))
        assert engine.run_analysis_cycle() == []

    def test_habits_argument_limits_the_cycle(self, engine, seeded):
        water, stretch = seeded
        created = engine.run_analysis_cycle([stretch])
        assert keys(created) == [(stretch.id, SuggestionType.STREAK_MOTIVATION)]

    def test_disabled_engine_does_nothing(self, engine, seeded, config):
        config.ENABLED = False
        assert engine.run_analysis_cycle() == []
        assert engine.suggestions == ()

    def test_cancel_event_stops_the_cycle(self, engine, seeded):
        cancel = threading.Event()
        cancel.set()
        assert engine.run_analysis_cycle(cancel_event=cancel) == []
        assert engine.state is EngineState.IDLE

    def test_store_failure_skips_only_that_habit(self, engine, seeded, store, monkeypatch):
        water, stretch = seeded
        original = store.get_log_entries

        def flaky(habit_id=None, **kwargs):
            if habit_id == water.id:
                raise StoreError("get_log_entries", "corrupt page")
            return original(habit_id, **kwargs)

        monkeypatch.setattr(store, "get_log_entries", flaky)

        created = engine.run_analysis_cycle()

        assert keys(created) == [(stretch.id, SuggestionType.STREAK_MOTIVATION)]


class TestStateMachine:
    def test_trigger_while_analyzing_is_dropped(self, store, config, clock, seeded):
        seen_states = []
        inner_results = []
        holder = {}

        def reentrant_rule(pattern, context):
            engine = holder["engine"]
            seen_states.append(engine.state)
            inner_results.append(engine.run_analysis_cycle(trigger=TriggerSource.MANUAL))
            return None

        engine = InsightEngine(
            store,
            config=config,
            clock=clock,
            synthesizer=SuggestionSynthesizer(custom_rules=[reentrant_rule]),
        )
        holder["engine"] = engine

        outer = engine.run_analysis_cycle()

        assert outer
        assert set(seen_states) == {EngineState.ANALYZING}
        assert inner_results and all(result == [] for result in inner_results)
        assert engine.state is EngineState.IDLE

    def test_returns_to_idle_after_failure(self, store, config, clock, seeded):
        def exploding_rule(pattern, context):
            raise RuntimeError("model crashed")

        engine = InsightEngine(
            store,
            config=config,
            clock=clock,
            synthesizer=SuggestionSynthesizer(custom_rules=[exploding_rule]),
        )

        with pytest.raises(RuntimeError):
            engine.run_analysis_cycle()

        assert engine.state is EngineState.IDLE
        engine.synthesizer = SuggestionSynthesizer()
        assert engine.run_analysis_cycle()


class TestObservers:
    def test_update_published_after_cycle(self, engine, seeded):
        updates = []
        engine.subscribe(updates.append)

        created = engine.request_analysis()

        assert len(updates) == 1
        update = updates[0]
        assert update.trigger is TriggerSource.MANUAL
        assert update.new_suggestions == tuple(created)
        assert update.open_suggestions == engine.suggestions
        assert update.analytics.longest_streak == 5
        assert dict(update.streaks) == {seeded[0].id: 5, seeded[1].id: 3}

    def test_unsubscribe_and_failing_observer(self, engine, seeded):
        calls = []

        def broken(update):
            raise ValueError("render failed")

        engine.subscribe(broken)
        engine.subscribe(calls.append)
        engine.run_analysis_cycle()
        engine.unsubscribe(calls.append)
        engine.run_analysis_cycle()

        assert len(calls) == 1

    def test_data_changes_are_coalesced(self, engine, seeded):
        water, stretch = seeded
        updates = []
        engine.subscribe(updates.append)

        engine.skip_habit(stretch.id)
        engine.complete_habit(water.id)
        engine.complete_habit(water.id, at=NOW + timedelta(minutes=1))

        assert updates == []
        assert engine.flush_pending() is True
        assert engine.flush_pending() is False
        assert len(updates) == 1
        assert updates[0].trigger is TriggerSource.DATA_CHANGED


class TestSuggestionLifecycle:
    def _open(self, engine, store, habit, kind=SuggestionType.FREQUENCY_ADJUSTMENT, **extra):
        suggestion = Suggestion(
            habit_id=habit.id,
            type=kind,
            title="Adjust Drink Water frequency",
            message="Consider changing from Daily to Weekly.",
            priority=0.5,
            created_at=NOW,
            **extra,
        )
        engine.curator.commit([suggestion], store)
        return suggestion

    def test_accepting_frequency_adjustment_changes_habit(self, engine, store, habit_factory):
        habit = habit_factory()
        s = self._open(engine, store, habit, suggested_frequency=HabitFrequency.WEEKLY)

        engine.accept_suggestion(s.id)

        assert store.get_habit(habit.id).frequency is HabitFrequency.WEEKLY
        assert engine.suggestions == ()
        assert store.get_suggestion(s.id) is None
        history = engine.suggestion_history()
        assert [(h.suggestion_id, h.was_accepted) for h in history] == [(s.id, True)]

    def test_failed_frequency_change_leaves_suggestion_open(
        self, engine, store, habit_factory, monkeypatch
    ):
        habit = habit_factory()
        s = self._open(engine, store, habit, suggested_frequency=HabitFrequency.WEEKLY)

        def failing_update(habit):
            raise StoreError("update_habit", "disk full")

        monkeypatch.setattr(store, "update_habit", failing_update)

        with pytest.raises(StoreError):
            engine.accept_suggestion(s.id)

        assert [(x.id, x.is_accepted) for x in engine.suggestions] == [(s.id, False)]
        assert store.get_habit(habit.id).frequency is HabitFrequency.DAILY
        assert engine.suggestion_history() == []

        same_day = Suggestion(
            habit_id=habit.id,
            type=SuggestionType.FREQUENCY_ADJUSTMENT,
            message="Consider changing from Daily to Weekly.",
            created_at=NOW,
        )
        assert engine.curator.curate([same_day], now=NOW) == []

    def test_dismiss_then_feedback(self, engine, store, habit_factory):
        habit = habit_factory()
        s = self._open(engine, store, habit, kind=SuggestionType.LOCATION_CHANGE)

        engine.dismiss_suggestion(s.id)
        weight = engine.record_feedback(s.id, False, "anchor is fine")

        assert weight == pytest.approx(0.9)
        item = store.get_history_item(s.id)
        assert item.was_accepted is False
        assert item.was_helpful is False
        assert item.user_comment == "anchor is fine"
        assert engine.preferences.weight(SuggestionType.LOCATION_CHANGE) == pytest.approx(0.9)

    def test_feedback_on_open_suggestion_adjusts_weight(self, engine, store, habit_factory):
        s = self._open(engine, store, habit_factory(), kind=SuggestionType.HABIT_COMBINATION)
        assert engine.record_feedback(s.id, True) == pytest.approx(1.1)

    def test_unknown_suggestion_ids_raise(self, engine):
        missing = uuid.uuid4()
        with pytest.raises(SuggestionNotFoundError):
            engine.accept_suggestion(missing)
        with pytest.raises(SuggestionNotFoundError):
            engine.dismiss_suggestion(missing)
        with pytest.raises(SuggestionNotFoundError):
            engine.record_feedback(missing, True)

    def test_open_set_and_weights_restored_on_load(self, engine, store, config, clock, habit_factory):
        s = self._open(engine, store, habit_factory(), kind=SuggestionType.STREAK_MOTIVATION)
        engine.record_feedback(s.id, True)

        restored = InsightEngine(store, config=config, clock=clock)
        restored.load_state()

        assert [x.id for x in restored.suggestions] == [s.id]
        assert restored.preferences.weight(SuggestionType.STREAK_MOTIVATION) == pytest.approx(1.1)


class TestHabitOperations:
    def test_todays_habits_by_frequency(self, engine, habit_factory):
        daily = habit_factory("Daily")
        same_weekday = habit_factory("Weekly", HabitFrequency.WEEKLY, created_at=NOW - timedelta(days=7))
        habit_factory("Other weekday", HabitFrequency.WEEKLY, created_at=NOW - timedelta(days=8))
        same_day = habit_factory("Monthly", HabitFrequency.MONTHLY, created_at=NOW - timedelta(days=31))
        habit_factory("Paused", is_active=False)

        titles = {h.title for h in engine.todays_habits()}

        assert titles == {daily.title, same_weekday.title, same_day.title}

    def test_create_habit_rejects_blank_title(self, engine):
        with pytest.raises(ValueError):
            engine.create_habit("   ")

    def test_create_habit(self, engine, store):
        habit = engine.create_habit("  Journal ", HabitFrequency.WEEKLY)
        assert store.get_habit(habit.id).title == "Journal"
        assert habit.created_at == NOW
