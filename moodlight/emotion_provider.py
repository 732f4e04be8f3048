from __future__ import annotations

"""Emotion snapshot and light command types."""

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple


EmotionScores = Dict[str, float]


@dataclass(frozen=True)
class EmotionSnapshot:
    """One emotion observation (or a window aggregate when timestamp_ms is None)."""

    emotions: EmotionScores = field(default_factory=dict)
    valence: Optional[float] = None  # -1 to 1
    arousal: Optional[float] = None  # 0 to 1
    timestamp_ms: Optional[int] = None


@dataclass(frozen=True)
class LightCommand:
    """Color/brightness command for the lighting bridge."""

    xy: Tuple[float, float]
    brightness: int  # 1-100
    transition_ms: int
    label: str
    confidence: float
