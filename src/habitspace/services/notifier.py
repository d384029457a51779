"""Notification requests emitted by the engine (delivery happens elsewhere)."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from ..logging_config import get_logger
from ..models.suggestion import Suggestion, SuggestionType

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class NotificationRequest:
    suggestion_id: uuid.UUID
    habit_id: uuid.UUID
    title: str
    body: str
    requested_at: datetime

    @classmethod
    def for_suggestion(cls, suggestion: Suggestion, now: datetime) -> "NotificationRequest":
        return cls(
            suggestion_id=suggestion.id,
            habit_id=suggestion.habit_id,
            title=suggestion.title or SuggestionType(suggestion.type).display_name,
            body=suggestion.message,
            requested_at=now,
        )


class Notifier(Protocol):
    """Anything that can accept a notification request."""

    def request(self, notification: NotificationRequest) -> None:  # pragma: no cover - interface
        ...


class LoggingNotifier:
    """Default notifier: records requests in the log and keeps them for inspection."""

    def __init__(self) -> None:
        self.sent: list[NotificationRequest] = []

    def request(self, notification: NotificationRequest) -> None:
        self.sent.append(notification)
        logger.info(
            f"Notification requested: {notification.title}",
            extra={"habit_id": str(notification.habit_id)},
        )


__all__ = ["LoggingNotifier", "NotificationRequest", "Notifier"]
