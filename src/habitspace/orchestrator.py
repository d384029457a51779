"""Insight engine: coordinates streaks, analytics, patterns and suggestions."""

from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Iterable, Mapping, Optional, Sequence

from .config import BaseConfig
from .domain.repositories import HabitStore
from .errors import HabitNotFoundError, StoreError, SuggestionNotFoundError
from .logging_config import get_logger
from .models.habit import Habit, HabitFrequency, HabitStatus, LogEntry
from .models.suggestion import Suggestion, SuggestionHistoryItem, SuggestionType
from .services.analytics import (
    AnalyticsSnapshot,
    analytics_window_start,
    build_snapshot,
    is_expected_on,
)
from .services.curator import SuggestionCurator
from .services.debounce import Debouncer
from .services.notifier import LoggingNotifier, NotificationRequest, Notifier
from .services.patterns import PatternAnalyzer
from .services.periods import day_bounds
from .services.preferences import PreferenceAdapter
from .services.streaks import compute_streak
from .services.suggestions import SuggestionSynthesizer, SynthesisContext

logger = get_logger(__name__)


class EngineState(str, Enum):
    IDLE = "idle"
    ANALYZING = "analyzing"


class TriggerSource(str, Enum):
    """What asked for an analysis cycle."""

    DATA_CHANGED = "data_changed"
    DAILY = "daily"
    MANUAL = "manual"
    REFRESH = "refresh"  # day rollover; republishes streaks and analytics, no suggestions


@dataclass(frozen=True, slots=True)
class EngineUpdate:
    """Immutable snapshot handed to observers after each completed cycle."""

    trigger: TriggerSource
    completed_at: datetime
    new_suggestions: tuple[Suggestion, ...]
    open_suggestions: tuple[Suggestion, ...]
    analytics: AnalyticsSnapshot
    streaks: Mapping[uuid.UUID, int] = field(default_factory=dict)


Observer = Callable[[EngineUpdate], None]


class InsightEngine:
    """Runs analysis cycles against a habit store and publishes the results.

    All collaborators are injected; defaults are built from ``config``. At most
    one cycle runs at a time: a trigger arriving while a cycle is in progress
    is dropped, not queued.
    """

    def __init__(
        self,
        store: HabitStore,
        *,
        config: Optional[BaseConfig] = None,
        notifier: Optional[Notifier] = None,
        clock: Callable[[], datetime] = datetime.now,
        analyzer: Optional[PatternAnalyzer] = None,
        synthesizer: Optional[SuggestionSynthesizer] = None,
        curator: Optional[SuggestionCurator] = None,
        preferences: Optional[PreferenceAdapter] = None,
    ):
        self.store = store
        self.config = config or BaseConfig()
        self.notifier = notifier or LoggingNotifier()
        self.clock = clock
        self.analyzer = analyzer or PatternAnalyzer(self.config)
        self.synthesizer = synthesizer or SuggestionSynthesizer()
        self.curator = curator or SuggestionCurator(self.config.MAX_SUGGESTIONS)
        self.preferences = preferences or PreferenceAdapter(store, config=self.config)

        self._cycle_lock = threading.Lock()
        self._state = EngineState.IDLE
        self._observers: list[Observer] = []
        self._observers_lock = threading.Lock()
        self._debouncer = Debouncer(self.config.DEBOUNCE_SECONDS, self._on_data_settled)
        self.last_update: Optional[EngineUpdate] = None

    # ------------------------------------------------------------------ state

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def suggestions(self) -> tuple[Suggestion, ...]:
        return self.curator.open_suggestions

    def load_state(self) -> None:
        """Restore open suggestions and preference weights from the store."""
        self.preferences.load()
        try:
            self.curator.replace(self.store.list_open_suggestions())
        except StoreError as exc:
            logger.warning(f"Starting with no open suggestions: {exc}")

    def shutdown(self) -> None:
        self._debouncer.cancel()

    # -------------------------------------------------------------- observers

    def subscribe(self, observer: Observer) -> None:
        with self._observers_lock:
            if observer not in self._observers:
                self._observers.append(observer)

    def unsubscribe(self, observer: Observer) -> None:
        with self._observers_lock:
            if observer in self._observers:
                self._observers.remove(observer)

    def _publish(self, update: EngineUpdate) -> None:
        self.last_update = update
        with self._observers_lock:
            observers = list(self._observers)
        for observer in observers:
            try:
                observer(update)
            except Exception as exc:
                logger.error(f"Observer {observer!r} failed: {exc}", exc_info=True)

    # --------------------------------------------------------------- triggers

    def notify_habit_data_changed(self) -> None:
        """Schedule a cycle once habit data stops changing for the quiet period."""
        self._debouncer.trigger()

    def flush_pending(self) -> bool:
        """Run a debounced cycle immediately if one is waiting."""
        return self._debouncer.flush()

    def _on_data_settled(self) -> None:
        self.run_analysis_cycle(trigger=TriggerSource.DATA_CHANGED)

    def request_analysis(self) -> list[Suggestion]:
        """Manual trigger: run a cycle now on the calling thread."""
        return self.run_analysis_cycle(trigger=TriggerSource.MANUAL)

    # ---------------------------------------------------------------- streaks

    def _require_habit(self, habit_id: uuid.UUID) -> Habit:
        habit = self.store.get_habit(habit_id)
        if habit is None:
            raise HabitNotFoundError(habit_id)
        return habit

    def _refresh_streak(self, habit: Habit, entries: Iterable[LogEntry]) -> int:
        streak = compute_streak(entries, habit.frequency, week_start=self.config.WEEK_START)
        if streak != habit.streak:
            self.store.set_streak(habit.id, streak)
        return streak

    def recompute_streak(self, habit_id: uuid.UUID) -> int:
        """Recalculate and persist one habit's streak from its completed entries."""
        habit = self._require_habit(habit_id)
        entries = self.store.get_log_entries(habit.id, statuses=[HabitStatus.COMPLETED])
        return self._refresh_streak(habit, entries)

    def recalculate_all_streaks(self) -> dict[uuid.UUID, int]:
        """Recompute every habit's streak; a habit whose store access fails is skipped."""
        results: dict[uuid.UUID, int] = {}
        try:
            habits = self.store.list_habits(include_inactive=True)
        except StoreError as exc:
            logger.error(f"Streak recalculation aborted: {exc}")
            return results

        for habit in habits:
            try:
                entries = self.store.get_log_entries(habit.id, statuses=[HabitStatus.COMPLETED])
                results[habit.id] = self._refresh_streak(habit, entries)
            except StoreError as exc:
                logger.warning(f"Skipping streak for habit {habit.id}: {exc}")
        logger.info(f"Recalculated streaks for {len(results)} habits")
        return results

    # -------------------------------------------------------------- analytics

    def compute_analytics(self, now: Optional[datetime] = None) -> AnalyticsSnapshot:
        """Aggregate statistics over active habits; zeroed when the store fails."""
        now = now or self.clock()
        days = self.config.SERIES_DAYS
        week_start = self.config.WEEK_START
        try:
            habits = self.store.list_habits()
            entries = self.store.get_log_entries(
                start=analytics_window_start(now, days=days, week_start=week_start),
                end=day_bounds(now)[1],
                statuses=[HabitStatus.COMPLETED],
            )
        except StoreError as exc:
            logger.error(f"Analytics unavailable: {exc}")
            return AnalyticsSnapshot.empty(now.date(), days)
        return build_snapshot(habits, entries, now, days=days, week_start=week_start)

    def refresh(self) -> EngineUpdate:
        """Recalculate streaks and analytics for the new day and publish them."""
        streaks = self.recalculate_all_streaks()
        update = EngineUpdate(
            trigger=TriggerSource.REFRESH,
            completed_at=self.clock(),
            new_suggestions=(),
            open_suggestions=self.curator.open_suggestions,
            analytics=self.compute_analytics(),
            streaks=streaks,
        )
        self._publish(update)
        return update

    # ----------------------------------------------------------------- habits

    def create_habit(
        self, title: str, frequency: HabitFrequency = HabitFrequency.DAILY
    ) -> Habit:
        title = title.strip()
        if not title:
            raise ValueError("Habit title cannot be empty")
        habit = self.store.create_habit(
            Habit(title=title, frequency=HabitFrequency(frequency), created_at=self.clock())
        )
        logger.info(f"Created habit {habit.title!r}", extra={"habit_id": str(habit.id)})
        self.notify_habit_data_changed()
        return habit

    def complete_habit(self, habit_id: uuid.UUID, at: Optional[datetime] = None) -> LogEntry:
        """Log a completion, refresh the streak, then schedule analysis."""
        self._require_habit(habit_id)
        entry = self.store.add_log_entry(
            LogEntry(habit_id=habit_id, completed_at=at or self.clock(), status=HabitStatus.COMPLETED)
        )
        self.recompute_streak(habit_id)
        self.notify_habit_data_changed()
        return entry

    def skip_habit(self, habit_id: uuid.UUID, at: Optional[datetime] = None) -> LogEntry:
        self._require_habit(habit_id)
        entry = self.store.add_log_entry(
            LogEntry(habit_id=habit_id, completed_at=at or self.clock(), status=HabitStatus.SKIPPED)
        )
        self.notify_habit_data_changed()
        return entry

    def reset_habit_for_today(self, habit_id: uuid.UUID) -> int:
        """Undo: delete today's entries for the habit and return how many were removed."""
        self._require_habit(habit_id)
        start, end = day_bounds(self.clock())
        removed = self.store.delete_log_entries(habit_id, start=start, end=end)
        self.recompute_streak(habit_id)
        self.notify_habit_data_changed()
        return removed

    def todays_habits(self) -> list[Habit]:
        """Active habits due today given their frequency and creation date."""
        today = self.clock().date()
        return [h for h in self.store.list_habits() if is_expected_on(h, today)]

    # ----------------------------------------------------------------- cycle

    def run_analysis_cycle(
        self,
        habits: Optional[Sequence[Habit]] = None,
        *,
        trigger: TriggerSource = TriggerSource.MANUAL,
        cancel_event: Optional[threading.Event] = None,
    ) -> list[Suggestion]:
        """Run one Idle -> Analyzing -> Idle cycle and return the new suggestions.

        Returns an empty list when the engine is disabled, when another cycle
        is already running, or when ``cancel_event`` is set mid-cycle.
        """

        if not self.config.ENABLED:
            logger.debug("Insight engine disabled; skipping analysis")
            return []
        if not self._cycle_lock.acquire(blocking=False):
            logger.info(f"Analysis already running; dropping {trigger.value} trigger")
            return []

        try:
            self._state = EngineState.ANALYZING
            return self._analyze(habits, trigger, cancel_event)
        finally:
            self._state = EngineState.IDLE
            self._cycle_lock.release()

    def _analyze(
        self,
        habits: Optional[Sequence[Habit]],
        trigger: TriggerSource,
        cancel_event: Optional[threading.Event],
    ) -> list[Suggestion]:
        now = self.clock()
        if habits is None:
            try:
                habits = self.store.list_habits()
            except StoreError as exc:
                logger.error(f"Cannot list habits for analysis: {exc}")
                habits = []
        active = [h for h in habits if h.is_active]

        histories: dict[uuid.UUID, list[LogEntry]] = {}
        streaks: dict[uuid.UUID, int] = {}
        anchored: set[uuid.UUID] = set()
        for habit in active:
            if cancel_event is not None and cancel_event.is_set():
                logger.info("Analysis cycle cancelled")
                return []
            try:
                entries = self.store.get_log_entries(habit.id)
                streaks[habit.id] = self._refresh_streak(habit, entries)
                if self.store.has_active_anchor(habit.id):
                    anchored.add(habit.id)
            except StoreError as exc:
                logger.warning(f"Skipping habit {habit.id} this cycle: {exc}")
                continue
            histories[habit.id] = entries

        analyzed = [h for h in active if h.id in histories]
        patterns = []
        for habit in analyzed:
            pattern = self.analyzer.analyze(
                habit,
                histories[habit.id],
                now=now,
                streak=streaks[habit.id],
                candidates=analyzed,
                histories=histories,
            )
            if pattern is not None:
                patterns.append(pattern)

        context = SynthesisContext(
            now=now,
            weights=self.preferences.weights(),
            habit_titles={h.id: h.title for h in active},
            anchored_habits=frozenset(anchored),
        )
        candidates = self.synthesizer.synthesize(patterns, context)
        selected = self.curator.curate(candidates, now=now)
        stored = self.curator.commit(selected, self.store)
        self._request_notifications(stored, now)

        update = EngineUpdate(
            trigger=trigger,
            completed_at=self.clock(),
            new_suggestions=tuple(stored),
            open_suggestions=self.curator.open_suggestions,
            analytics=self.compute_analytics(now),
            streaks=dict(streaks),
        )
        self._publish(update)
        logger.info(
            f"Analysis cycle finished with {len(stored)} new suggestions",
            extra={
                "trigger": trigger.value,
                "habits": len(analyzed),
                "patterns": len(patterns),
                "candidates": len(candidates),
            },
        )
        return stored

    def _request_notifications(self, suggestions: Iterable[Suggestion], now: datetime) -> None:
        for suggestion in suggestions:
            if SuggestionType(suggestion.type) is not SuggestionType.STREAK_MOTIVATION:
                continue
            try:
                self.notifier.request(NotificationRequest.for_suggestion(suggestion, now))
            except Exception as exc:
                logger.error(f"Notifier rejected request: {exc}", exc_info=True)

    # ------------------------------------------------------------ suggestions

    def _require_open(self, suggestion_id: uuid.UUID) -> Suggestion:
        suggestion = self.curator.get(suggestion_id)
        if suggestion is None:
            raise SuggestionNotFoundError(suggestion_id)
        return suggestion

    def _archive(self, suggestion: Suggestion, *, accepted: bool) -> None:
        item = SuggestionHistoryItem(
            suggestion_id=suggestion.id,
            habit_id=suggestion.habit_id,
            type=suggestion.type,
            message=suggestion.message,
            created_at=suggestion.created_at,
            responded_at=self.clock(),
            was_accepted=accepted,
        )
        try:
            self.store.add_history_item(item, limit=self.config.HISTORY_LIMIT)
        except StoreError as exc:
            logger.warning(f"Suggestion {suggestion.id} not archived: {exc}")
        self.curator.remove(suggestion.id)
        try:
            self.store.delete_suggestion(suggestion.id)
        except StoreError as exc:
            logger.warning(f"Suggestion {suggestion.id} not removed from store: {exc}")

    def accept_suggestion(self, suggestion_id: uuid.UUID) -> Suggestion:
        """Apply an open suggestion, archive it and drop it from the open set.

        Accepting a frequency adjustment changes the habit's frequency; the
        other kinds carry no automatic change. When the habit update fails the
        suggestion stays open and unaccepted and the ``StoreError`` propagates.
        """

        suggestion = self._require_open(suggestion_id)

        if (
            SuggestionType(suggestion.type) is SuggestionType.FREQUENCY_ADJUSTMENT
            and suggestion.suggested_frequency is not None
        ):
            habit = self.store.get_habit(suggestion.habit_id)
            if habit is not None:
                habit.frequency = HabitFrequency(suggestion.suggested_frequency)
                self.store.update_habit(habit)
                self.recompute_streak(habit.id)
                logger.info(
                    f"Changed {habit.title!r} to {habit.frequency.display_name}",
                    extra={"habit_id": str(habit.id)},
                )

        self._archive(suggestion, accepted=True)
        # Only flagged once it has left the open set.
        suggestion.is_accepted = True
        return suggestion

    def dismiss_suggestion(self, suggestion_id: uuid.UUID) -> Suggestion:
        suggestion = self._require_open(suggestion_id)
        self._archive(suggestion, accepted=False)
        return suggestion

    def record_feedback(
        self, suggestion_id: uuid.UUID, was_helpful: bool, comment: Optional[str] = None
    ) -> float:
        """Store feedback on an answered or open suggestion; return the new type weight."""

        item = self.store.get_history_item(suggestion_id)
        if item is not None:
            suggestion_type = SuggestionType(item.type)
        else:
            suggestion_type = SuggestionType(self._require_open(suggestion_id).type)

        weight = self.preferences.record_feedback(suggestion_type, was_helpful)

        if item is not None:
            item.was_helpful = was_helpful
            item.user_comment = comment
            try:
                self.store.update_history_item(item)
            except StoreError as exc:
                logger.warning(f"Feedback for {suggestion_id} not persisted: {exc}")
        return weight

    def suggestion_history(self) -> list[SuggestionHistoryItem]:
        return self.store.list_history()


__all__ = ["EngineState", "EngineUpdate", "InsightEngine", "TriggerSource"]
