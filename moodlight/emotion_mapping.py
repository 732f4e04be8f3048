from __future__ import annotations

"""Map aggregated emotion scores to a Hue color and brightness."""

import math
from typing import Dict, Optional, Tuple

from moodlight.color import clamp, hsl_to_xy
from moodlight.emotion_provider import EmotionScores, EmotionSnapshot, LightCommand


NEUTRAL_LABEL = "neutral"
VALENCE_AROUSAL_SUFFIX = "valence/arousal"
DEFAULT_TRANSITION_MS = 800

# Checked in order; the first group with a keyword contained in the
# lower-cased dominant emotion name wins.
EMOTION_GROUPS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("happy", ("joy", "happiness", "amusement", "contentment", "excited")),
    ("calm", ("calm", "relaxed", "content", "serenity")),
    ("sad", ("sad", "sadness", "disappointment", "despair")),
    ("angry", ("anger", "angry", "annoyance", "frustration")),
    ("fear", ("fear", "anxiety", "nervousness", "panic")),
    ("neutral", ("neutral", "boredom")),
)

HUE_PRESETS: Dict[str, Tuple[Tuple[float, float], int]] = {
    "happy": ((0.52, 0.42), 90),
    "calm": ((0.44, 0.40), 55),
    "sad": ((0.16, 0.08), 35),
    "angry": ((0.70, 0.30), 75),
    "fear": ((0.27, 0.12), 60),
    "neutral": ((0.33, 0.33), 50),
}


def _as_float(value: Optional[float]) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        out = float(value)
    except (TypeError, ValueError):
        return None
    return out if math.isfinite(out) else None


def classify(scores: EmotionScores) -> Tuple[str, float]:
    """Return (group label, winning score) for the dominant emotion.

    Ties on the maximum score go to the lexicographically smallest name so
    the result does not depend on dict ordering.
    """
    best_key: Optional[str] = None
    best_score = -math.inf
    for key, raw in (scores or {}).items():
        value = _as_float(raw)
        if value is None:
            continue
        if value > best_score or (value == best_score and key < best_key):
            best_key = key
            best_score = value

    if best_key is None:
        return NEUTRAL_LABEL, 0.0

    normalized = best_key.lower()
    for group, keywords in EMOTION_GROUPS:
        if any(keyword in normalized for keyword in keywords):
            return group, best_score

    return NEUTRAL_LABEL, best_score


dominant_emotion = classify


def map_valence_arousal(valence: float, arousal: float) -> Tuple[Tuple[float, float], int]:
    """Continuous color model: warm for unpleasant, cool for pleasant."""
    v = clamp(valence, -1.0, 1.0)
    a = clamp(arousal, 0.0, 1.0)
    hue = 30 + (v + 1) * 120  # 30 (warm) to 270 (cool)
    saturation = 50 + a * 50  # 50-100
    lightness = 45 + a * 30  # 45-75
    xy = hsl_to_xy(hue, saturation, lightness)
    brightness = int(round(30 + a * 70))
    return xy, brightness


def _valence_arousal_label(label: str) -> str:
    # Neutral collapses to the bare suffix; every other label keeps its name.
    if label == NEUTRAL_LABEL:
        return VALENCE_AROUSAL_SUFFIX
    return f"{label} ({VALENCE_AROUSAL_SUFFIX})"


def map_emotion_to_light(snapshot: EmotionSnapshot) -> LightCommand:
    """Turn an aggregate snapshot into a light command."""
    label, confidence = classify(snapshot.emotions)
    valence = _as_float(snapshot.valence)
    arousal = _as_float(snapshot.arousal)

    if valence is not None and arousal is not None:
        xy, brightness = map_valence_arousal(valence, arousal)
        return LightCommand(
            xy=xy,
            brightness=int(clamp(brightness, 1, 100)),
            transition_ms=DEFAULT_TRANSITION_MS,
            label=_valence_arousal_label(label),
            confidence=confidence,
        )

    xy, brightness = HUE_PRESETS.get(label, HUE_PRESETS[NEUTRAL_LABEL])
    return LightCommand(
        xy=xy,
        brightness=int(clamp(brightness, 1, 100)),
        transition_ms=DEFAULT_TRANSITION_MS,
        label=label,
        confidence=confidence,
    )
