"""Engine components: streaks, analytics, patterns, suggestions and feedback."""

from .analytics import AnalyticsSnapshot, DailyCompletion, build_snapshot
from .curator import SuggestionCurator
from .debounce import Debouncer
from .notifier import LoggingNotifier, NotificationRequest, Notifier
from .patterns import HabitPattern, PatternAnalyzer
from .preferences import PreferenceAdapter
from .streaks import compute_streak
from .suggestions import SuggestionSynthesizer, SynthesisContext, build_suggestion

__all__ = [
    "AnalyticsSnapshot",
    "DailyCompletion",
    "Debouncer",
    "HabitPattern",
    "LoggingNotifier",
    "NotificationRequest",
    "Notifier",
    "PatternAnalyzer",
    "PreferenceAdapter",
    "SuggestionCurator",
    "SuggestionSynthesizer",
    "SynthesisContext",
    "build_suggestion",
    "compute_streak",
]
