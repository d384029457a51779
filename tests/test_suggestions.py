"""Tests for suggestion synthesis rules and priorities."""

from __future__ import annotations

import uuid
from datetime import time

import pytest

from conftest import NOW
from habitspace.models import HabitFrequency, SuggestionType
from habitspace.services.patterns import HabitPattern
from habitspace.services.suggestions import (
    SUGGESTION_TEMPLATES,
    SuggestionSynthesizer,
    SynthesisContext,
    build_suggestion,
    format_clock,
    part_of_day,
)


def pattern(**overrides) -> HabitPattern:
    values = dict(
        habit_id=uuid.uuid4(),
        habit_title="Drink Water",
        completion_rate=0.8,
        optimal_time_of_day=time(8),
        current_frequency=HabitFrequency.DAILY,
        suggested_frequency=None,
        streak=0,
        is_streak_at_risk=False,
        related_habits=(),
    )
    values.update(overrides)
    return HabitPattern(**values)


def by_type(suggestions):
    return {s.type: s for s in suggestions}


@pytest.fixture
def context():
    return SynthesisContext(now=NOW)


class TestTemplates:
    def test_every_type_has_a_template(self):
        assert set(SUGGESTION_TEMPLATES) == set(SuggestionType)

    @pytest.mark.parametrize(
        "hour, expected",
        [(5, "morning"), (11, "morning"), (12, "afternoon"), (17, "evening"), (21, "night"), (3, "night")],
    )
    def test_part_of_day(self, hour, expected):
        assert part_of_day(time(hour)) == expected

    def test_clock_format(self):
        assert format_clock(time(8)) == "8:00 AM"
        assert format_clock(time(19, 30)) == "7:30 PM"


class TestRules:
    def test_healthy_habit_gets_nothing(self, context):
        assert SuggestionSynthesizer().synthesize([pattern()], context) == []

    def test_time_optimization(self, context):
        p = pattern(completion_rate=0.5, optimal_time_of_day=time(7))
        s = by_type(SuggestionSynthesizer().synthesize([p], context))[SuggestionType.TIME_OPTIMIZATION]
        assert s.priority == pytest.approx(0.8 * 0.5)
        assert s.suggested_time == time(7)
        assert "morning" in s.message and "7:00 AM" in s.message

    def test_time_optimization_needs_known_time(self, context):
        p = pattern(completion_rate=0.5, optimal_time_of_day=None)
        types = by_type(SuggestionSynthesizer().synthesize([p], context))
        assert SuggestionType.TIME_OPTIMIZATION not in types

    def test_frequency_adjustment(self, context):
        p = pattern(completion_rate=0.3, suggested_frequency=HabitFrequency.WEEKLY)
        s = by_type(SuggestionSynthesizer().synthesize([p], context))[SuggestionType.FREQUENCY_ADJUSTMENT]
        assert s.priority == pytest.approx(0.7 * 0.7)
        assert s.suggested_frequency is HabitFrequency.WEEKLY
        assert "Daily to Weekly" in s.message

    def test_frequency_adjustment_gate(self, context):
        p = pattern(completion_rate=0.6, suggested_frequency=HabitFrequency.WEEKLY)
        types = by_type(SuggestionSynthesizer().synthesize([p], context))
        assert SuggestionType.FREQUENCY_ADJUSTMENT not in types

    def test_streak_motivation(self, context):
        p = pattern(streak=5, is_streak_at_risk=True)
        s = by_type(SuggestionSynthesizer().synthesize([p], context))[SuggestionType.STREAK_MOTIVATION]
        assert s.priority == pytest.approx(0.9)
        assert "5-day streak" in s.message

    def test_habit_combination_names_related_habit(self):
        related = uuid.uuid4()
        ctx = SynthesisContext(now=NOW, habit_titles={related: "Stretch"})
        p = pattern(related_habits=(related,))
        s = by_type(SuggestionSynthesizer().synthesize([p], ctx))[SuggestionType.HABIT_COMBINATION]
        assert s.priority == pytest.approx(0.6 * 0.8)
        assert s.related_habit_id == related
        assert "'Stretch'" in s.message

    def test_location_change_requires_anchor(self, context):
        p = pattern(completion_rate=0.2, optimal_time_of_day=None)
        assert SuggestionType.LOCATION_CHANGE not in by_type(
            SuggestionSynthesizer().synthesize([p], context)
        )

        anchored = SynthesisContext(now=NOW, anchored_habits=frozenset({p.habit_id}))
        s = by_type(SuggestionSynthesizer().synthesize([p], anchored))[SuggestionType.LOCATION_CHANGE]
        assert s.priority == pytest.approx(0.5 * 0.8)

    def test_weight_scales_priority(self):
        ctx = SynthesisContext(now=NOW, weights={SuggestionType.STREAK_MOTIVATION: 1.5})
        p = pattern(streak=4, is_streak_at_risk=True)
        s = by_type(SuggestionSynthesizer().synthesize([p], ctx))[SuggestionType.STREAK_MOTIVATION]
        assert s.priority == pytest.approx(0.9 * 1.5)

    def test_candidates_are_new_and_unaccepted(self, context):
        p = pattern(completion_rate=0.1, streak=3, is_streak_at_risk=True,
                    suggested_frequency=HabitFrequency.WEEKLY)
        suggestions = SuggestionSynthesizer().synthesize([p], context)
        assert len(suggestions) == 3
        assert all(not s.is_accepted and s.created_at == NOW for s in suggestions)
        assert all(s.habit_id == p.habit_id for s in suggestions)


class TestCustomRules:
    def test_custom_rule_runs_after_builtins(self, context):
        def tip(p, ctx):
            return build_suggestion(p, SuggestionType.CUSTOM, ctx, multiplier=0.5,
                                    message="Pair it with your morning coffee.")

        synthesizer = SuggestionSynthesizer(custom_rules=[tip])
        suggestions = synthesizer.synthesize([pattern()], context)

        assert [s.type for s in suggestions] == [SuggestionType.CUSTOM]
        assert suggestions[0].message == "Pair it with your morning coffee."
        assert suggestions[0].title == "A tip for Drink Water"
        assert suggestions[0].priority == pytest.approx(0.25)
