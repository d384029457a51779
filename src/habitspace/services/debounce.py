"""Trailing-edge debounce for bursts of habit-data-changed events."""

from __future__ import annotations

import threading
import time
from typing import Callable, Optional

from ..logging_config import get_logger

logger = get_logger(__name__)


class Debouncer:
    """Run ``callback`` once ``delay`` seconds pass with no further ``trigger()``.

    Every trigger records a monotonic timestamp and (re)arms a daemon
    ``threading.Timer``. When the timer fires early relative to the latest
    trigger it re-arms for the remaining quiet period instead of running.
    """

    def __init__(self, delay: float, callback: Callable[[], object]):
        if delay < 0:
            raise ValueError("Debounce delay cannot be negative")
        self.delay = delay
        self.callback = callback
        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._last_trigger: Optional[float] = None

    @property
    def pending(self) -> bool:
        return self._timer is not None

    def trigger(self) -> None:
        with self._lock:
            self._last_trigger = time.monotonic()
            if self._timer is None:
                self._arm(self.delay)

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = None
            self._last_trigger = None

    def flush(self) -> bool:
        """Run a pending callback now, on the calling thread."""
        with self._lock:
            if self._timer is None:
                return False
            self._timer.cancel()
            self._timer = None
            self._last_trigger = None
        self._run()
        return True

    def _arm(self, delay: float) -> None:
        timer = threading.Timer(delay, self._fire)
        timer.daemon = True
        self._timer = timer
        timer.start()

    def _fire(self) -> None:
        with self._lock:
            # A cancelled or superseded timer must not run the callback.
            if self._timer is not threading.current_thread() or self._last_trigger is None:
                return
            remaining = self.delay - (time.monotonic() - self._last_trigger)
            if remaining > 0:
                self._arm(remaining)
                return
            self._timer = None
            self._last_trigger = None
        self._run()

    def _run(self) -> None:
        try:
            self.callback()
        except Exception as exc:
            logger.error(f"Debounced callback failed: {exc}", exc_info=True)


__all__ = ["Debouncer"]
