"""Rule-based suggestion synthesis from habit patterns."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, time
from typing import AbstractSet, Callable, Iterable, Mapping, Optional, Sequence

from ..logging_config import get_logger
from ..models.suggestion import Suggestion, SuggestionType
from .patterns import HabitPattern

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class SuggestionTemplate:
    """Fixed wording and base priority for one suggestion type."""

    type: SuggestionType
    title_template: str
    message_template: str
    priority: float


SUGGESTION_TEMPLATES: dict[SuggestionType, SuggestionTemplate] = {
    SuggestionType.TIME_OPTIMIZATION: SuggestionTemplate(
        type=SuggestionType.TIME_OPTIMIZATION,
        title_template="Try {title} at a different time",
        message_template=(
            "You seem to complete '{title}' more consistently in the {part_of_day}. "
            "Consider moving this habit to {clock}."
        ),
        priority=0.8,
    ),
    SuggestionType.FREQUENCY_ADJUSTMENT: SuggestionTemplate(
        type=SuggestionType.FREQUENCY_ADJUSTMENT,
        title_template="Adjust {title} frequency",
        message_template=(
            "You're struggling with '{title}' at its current frequency. "
            "Consider changing from {current} to {suggested}."
        ),
        priority=0.7,
    ),
    SuggestionType.STREAK_MOTIVATION: SuggestionTemplate(
        type=SuggestionType.STREAK_MOTIVATION,
        title_template="Keep your streak going!",
        message_template=(
            "You're on a {streak}-day streak with '{title}'! "
            "Complete it today to keep building momentum."
        ),
        priority=0.9,
    ),
    SuggestionType.HABIT_COMBINATION: SuggestionTemplate(
        type=SuggestionType.HABIT_COMBINATION,
        title_template="Combine habits",
        message_template=(
            "Try combining '{title}' with '{related_title}' since you often do them "
            "around the same time."
        ),
        priority=0.6,
    ),
    SuggestionType.LOCATION_CHANGE: SuggestionTemplate(
        type=SuggestionType.LOCATION_CHANGE,
        title_template="Move your {title} anchor",
        message_template=(
            "Your '{title}' habit might work better if you move its anchor to a more "
            "visible location."
        ),
        priority=0.5,
    ),
    SuggestionType.CUSTOM: SuggestionTemplate(
        type=SuggestionType.CUSTOM,
        title_template="A tip for {title}",
        message_template="{message}",
        priority=0.5,
    ),
}

if set(SUGGESTION_TEMPLATES) != set(SuggestionType):  # pragma: no cover - import-time guard
    raise RuntimeError("Every SuggestionType needs a template")


@dataclass(frozen=True, slots=True)
class SynthesisContext:
    """Inputs the rules need beyond the pattern itself."""

    now: datetime
    weights: Mapping[SuggestionType, float] = field(default_factory=dict)
    habit_titles: Mapping[uuid.UUID, str] = field(default_factory=dict)
    anchored_habits: AbstractSet[uuid.UUID] = frozenset()

    def weight(self, suggestion_type: SuggestionType) -> float:
        return self.weights.get(suggestion_type, 1.0)


# A rule inspects one pattern and proposes at most one suggestion.
SuggestionRule = Callable[[HabitPattern, SynthesisContext], Optional[Suggestion]]


def part_of_day(value: time) -> str:
    """Name the part of day an hour belongs to."""
    hour = value.hour
    if 5 <= hour < 12:
        return "morning"
    if 12 <= hour < 17:
        return "afternoon"
    if 17 <= hour < 21:
        return "evening"
    return "night"


def format_clock(value: time) -> str:
    """Render a time as e.g. '8:00 AM'."""
    return value.strftime("%I:%M %p").lstrip("0")


def build_suggestion(
    pattern: HabitPattern,
    suggestion_type: SuggestionType,
    context: SynthesisContext,
    *,
    multiplier: float = 1.0,
    **values,
) -> Suggestion:
    """Fill the type's template and weight its priority.

    priority = template base x pattern multiplier x preference weight
    """

    template = SUGGESTION_TEMPLATES[suggestion_type]
    fields = {"title": pattern.habit_title, **values}
    extras = {
        key: values[key]
        for key in ("suggested_time", "suggested_frequency", "related_habit_id")
        if key in values
    }
    return Suggestion(
        habit_id=pattern.habit_id,
        type=suggestion_type,
        title=template.title_template.format(**fields),
        message=template.message_template.format(**fields),
        priority=template.priority * multiplier * context.weight(suggestion_type),
        is_accepted=False,
        created_at=context.now,
        **extras,
    )


def time_optimization_rule(pattern: HabitPattern, context: SynthesisContext) -> Optional[Suggestion]:
    if pattern.completion_rate >= 0.7 or pattern.optimal_time_of_day is None:
        return None
    optimal = pattern.optimal_time_of_day
    return build_suggestion(
        pattern,
        SuggestionType.TIME_OPTIMIZATION,
        context,
        multiplier=1.0 - pattern.completion_rate,
        part_of_day=part_of_day(optimal),
        clock=format_clock(optimal),
        suggested_time=optimal,
    )


def frequency_adjustment_rule(
    pattern: HabitPattern, context: SynthesisContext
) -> Optional[Suggestion]:
    suggested = pattern.suggested_frequency
    if (
        pattern.completion_rate >= 0.6
        or suggested is None
        or suggested == pattern.current_frequency
    ):
        return None
    return build_suggestion(
        pattern,
        SuggestionType.FREQUENCY_ADJUSTMENT,
        context,
        multiplier=1.0 - pattern.completion_rate,
        current=pattern.current_frequency.display_name,
        suggested=suggested.display_name,
        suggested_frequency=suggested,
    )


def streak_motivation_rule(pattern: HabitPattern, context: SynthesisContext) -> Optional[Suggestion]:
    if pattern.streak < 3 or not pattern.is_streak_at_risk:
        return None
    return build_suggestion(
        pattern,
        SuggestionType.STREAK_MOTIVATION,
        context,
        streak=pattern.streak,
    )


def habit_combination_rule(pattern: HabitPattern, context: SynthesisContext) -> Optional[Suggestion]:
    if not pattern.related_habits:
        return None
    related_id = pattern.related_habits[0]
    return build_suggestion(
        pattern,
        SuggestionType.HABIT_COMBINATION,
        context,
        multiplier=0.8,
        related_title=context.habit_titles.get(related_id, "another habit"),
        related_habit_id=related_id,
    )


def location_change_rule(pattern: HabitPattern, context: SynthesisContext) -> Optional[Suggestion]:
    if pattern.completion_rate >= 0.5 or pattern.habit_id not in context.anchored_habits:
        return None
    return build_suggestion(
        pattern,
        SuggestionType.LOCATION_CHANGE,
        context,
        multiplier=1.0 - pattern.completion_rate,
    )


BUILTIN_RULES: dict[SuggestionType, SuggestionRule] = {
    SuggestionType.TIME_OPTIMIZATION: time_optimization_rule,
    SuggestionType.FREQUENCY_ADJUSTMENT: frequency_adjustment_rule,
    SuggestionType.STREAK_MOTIVATION: streak_motivation_rule,
    SuggestionType.HABIT_COMBINATION: habit_combination_rule,
    SuggestionType.LOCATION_CHANGE: location_change_rule,
}


class SuggestionSynthesizer:
    """Runs every rule against every pattern.

    Extra ``custom_rules`` are the extension point for non rule-based sources
    (for example a trained model); they run after the built-in rules and should
    emit ``SuggestionType.CUSTOM`` suggestions via ``build_suggestion``.
    """

    def __init__(self, custom_rules: Sequence[SuggestionRule] = ()):
        self.rules: list[SuggestionRule] = [*BUILTIN_RULES.values(), *custom_rules]

    def synthesize(
        self, patterns: Iterable[HabitPattern], context: SynthesisContext
    ) -> list[Suggestion]:
        """Return candidate suggestions in pattern order, then rule order."""

        candidates: list[Suggestion] = []
        for pattern in patterns:
            for rule in self.rules:
                suggestion = rule(pattern, context)
                if suggestion is not None:
                    candidates.append(suggestion)
        logger.debug(f"Synthesized {len(candidates)} candidate suggestions")
        return candidates


__all__ = [
    "BUILTIN_RULES",
    "SUGGESTION_TEMPLATES",
    "SuggestionRule",
    "SuggestionSynthesizer",
    "SuggestionTemplate",
    "SynthesisContext",
    "build_suggestion",
    "format_clock",
    "part_of_day",
]
