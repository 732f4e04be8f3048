from __future__ import annotations

"""Debounced scheduling of light updates."""

import logging
import threading
from typing import Callable, Optional

from moodlight.emotion_window import monotonic_ms


LOG = logging.getLogger(__name__)

DEFAULT_MIN_INTERVAL_MS = 800

TimerFactory = Callable[[float, Callable[[], None]], threading.Timer]


def _default_timer(delay_s: float, fn: Callable[[], None]) -> threading.Timer:
    timer = threading.Timer(delay_s, fn)
    timer.daemon = True
    return timer


class UpdateThrottler:
    """Coalesce update requests into at most one callback per interval.

    A request made while an update is already scheduled is dropped; the
    scheduled callback will observe the newest state anyway.
    """

    def __init__(
        self,
        callback: Callable[[], None],
        min_interval_ms: int = DEFAULT_MIN_INTERVAL_MS,
        clock: Optional[Callable[[], float]] = None,
        timer_factory: Optional[TimerFactory] = None,
    ) -> None:
        self._callback = callback
        self._min_interval_ms = max(0, int(min_interval_ms))
        self._clock = clock or monotonic_ms
        self._timer_factory = timer_factory or _default_timer
        self._lock = threading.Lock()
        self._pending = False
        self._last_run_ms: Optional[float] = None
        self._timer = None

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._pending

    def request(self) -> bool:
        """Schedule an update unless one is pending. Returns True if scheduled."""
        with self._lock:
            if self._pending:
                return False
            if self._last_run_ms is None:
                wait_ms = 0.0
            else:
                wait_ms = max(0.0, self._min_interval_ms - (self._clock() - self._last_run_ms))
            self._pending = True
            self._timer = self._timer_factory(wait_ms / 1000.0, self._fire)
            self._timer.start()
            return True

    def cancel(self) -> None:
        """Cancel a scheduled update, if any."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = None
            self._pending = False

    def _fire(self) -> None:
        with self._lock:
            if not self._pending:
                return
            self._pending = False
            self._timer = None
            self._last_run_ms = self._clock()
        try:
            self._callback()
        except Exception:
            LOG.exception("Light update failed")
