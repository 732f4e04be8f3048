from __future__ import annotations

"""Sliding time window over emotion snapshots."""

import math
import threading
import time
from collections import deque
from dataclasses import replace
from typing import Callable, Deque, Dict, Optional

from moodlight.emotion_provider import EmotionSnapshot


DEFAULT_WINDOW_MS = 4000


def monotonic_ms() -> int:
    """Return a monotonic clock reading in milliseconds."""
    return int(time.monotonic() * 1000)


def _finite(value: Optional[float]) -> bool:
    if value is None or isinstance(value, bool):
        return False
    try:
        return math.isfinite(float(value))
    except (TypeError, ValueError):
        return False


class EmotionWindow:
    """Keep recent snapshots and average them on demand.

    Emotion scores are averaged over every snapshot in the window, a missing
    key counting as zero. Valence and arousal are averaged over the snapshots
    that carried them and stay None when none did.
    """

    def __init__(
        self,
        window_ms: int = DEFAULT_WINDOW_MS,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        if int(window_ms) <= 0:
            raise ValueError(f"window_ms must be positive, got {window_ms}")
        self._window_ms = int(window_ms)
        self._clock = clock or monotonic_ms
        self._lock = threading.Lock()
        self._samples: Deque[EmotionSnapshot] = deque()

    @property
    def window_ms(self) -> int:
        return self._window_ms

    def add(self, snapshot: EmotionSnapshot) -> None:
        """Append a snapshot, stamping it with the clock if it has no timestamp."""
        with self._lock:
            if snapshot.timestamp_ms is None:
                snapshot = replace(snapshot, timestamp_ms=int(self._clock()))
            self._samples.append(snapshot)
            self._trim()

    def get_aggregate(self) -> EmotionSnapshot:
        """Return the mean snapshot over the current window."""
        with self._lock:
            self._trim()
            samples = list(self._samples)

        if not samples:
            return EmotionSnapshot(emotions={})

        totals: Dict[str, float] = {}
        valence_sum = 0.0
        arousal_sum = 0.0
        valence_count = 0
        arousal_count = 0

        for sample in samples:
            for key, value in (sample.emotions or {}).items():
                if not _finite(value):
                    continue
                totals[key] = totals.get(key, 0.0) + float(value)
            if _finite(sample.valence):
                valence_sum += float(sample.valence)
                valence_count += 1
            if _finite(sample.arousal):
                arousal_sum += float(sample.arousal)
                arousal_count += 1

        count = len(samples)
        return EmotionSnapshot(
            emotions={key: value / count for key, value in totals.items()},
            valence=valence_sum / valence_count if valence_count else None,
            arousal=arousal_sum / arousal_count if arousal_count else None,
        )

    def clear(self) -> None:
        """Drop every buffered snapshot."""
        with self._lock:
            self._samples.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._samples)

    def _trim(self) -> None:
        # Caller holds the lock. Samples may arrive with caller-supplied
        # timestamps out of order, so filter instead of popping from the left.
        cutoff = self._clock() - self._window_ms
        if any(s.timestamp_ms < cutoff for s in self._samples):
            self._samples = deque(s for s in self._samples if s.timestamp_ms >= cutoff)
