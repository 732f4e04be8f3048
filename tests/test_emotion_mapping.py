"""Tests for emotion classification and light mapping."""

import pytest

from moodlight.emotion_mapping import (
    DEFAULT_TRANSITION_MS,
    HUE_PRESETS,
    classify,
    dominant_emotion,
    map_emotion_to_light,
    map_valence_arousal,
)
from moodlight.emotion_provider import EmotionSnapshot


class TestClassify:
    """Tests for the dominant-emotion classifier."""

    def test_empty_scores_are_neutral(self):
        assert classify({}) == ("neutral", 0.0)

    def test_picks_highest_score(self):
        assert classify({"Sadness": 0.2, "Joy": 0.7}) == ("happy", 0.7)

    def test_substring_match_is_case_insensitive(self):
        assert classify({"Anxiety (Social)": 0.6}) == ("fear", 0.6)

    def test_group_priority_order(self):
        """'Contentment' hits happy before calm's 'content'."""
        assert classify({"Contentment": 0.5})[0] == "happy"

    def test_calm_vocabulary(self):
        assert classify({"Calmness": 0.5})[0] == "calm"

    def test_unknown_emotion_keeps_score(self):
        assert classify({"Awe": 0.42}) == ("neutral", 0.42)

    def test_boredom_is_neutral(self):
        assert classify({"Boredom": 0.3}) == ("neutral", 0.3)

    def test_anger_and_frustration(self):
        assert classify({"Frustration": 0.3})[0] == "angry"
        assert classify({"Anger": 0.3})[0] == "angry"

    def test_tie_breaks_on_name(self):
        assert classify({"Sadness": 0.5, "Joy": 0.5}) == ("happy", 0.5)
        assert classify({"Joy": 0.5, "Sadness": 0.5}) == ("happy", 0.5)

    def test_alias(self):
        assert dominant_emotion is classify


class TestPresets:
    """Tests for the categorical branch."""

    def test_joy_maps_to_happy_preset(self):
        command = map_emotion_to_light(EmotionSnapshot(emotions={"joy": 0.9}))
        assert command.label == "happy"
        assert command.brightness == 90
        assert command.xy == (0.52, 0.42)
        assert command.confidence == pytest.approx(0.9)
        assert command.transition_ms == DEFAULT_TRANSITION_MS == 800

    def test_sad_maps_to_sad_preset(self):
        command = map_emotion_to_light(EmotionSnapshot(emotions={"sad": 0.8}))
        assert command.label == "sad"
        assert command.brightness == 35
        assert command.xy == (0.16, 0.08)

    @pytest.mark.parametrize("label", sorted(HUE_PRESETS))
    def test_preset_brightness_in_range(self, label):
        xy, brightness = HUE_PRESETS[label]
        assert 1 <= brightness <= 100
        assert all(0.0 <= c <= 1.0 for c in xy)

    def test_no_signal_is_neutral_preset(self):
        command = map_emotion_to_light(EmotionSnapshot(emotions={}))
        assert command.label == "neutral"
        assert command.confidence == 0.0
        assert command.xy == (0.33, 0.33)
        assert command.brightness == 50

    def test_only_valence_uses_preset(self):
        command = map_emotion_to_light(EmotionSnapshot(emotions={"fear": 0.4}, valence=0.3))
        assert command.label == "fear"
        assert command.xy == (0.27, 0.12)


class TestValenceArousal:
    """Tests for the continuous branch."""

    def test_neutral_label_collapses(self):
        command = map_emotion_to_light(EmotionSnapshot(emotions={}, valence=1.0, arousal=0.0))
        assert command.label == "valence/arousal"
        assert command.brightness == 30
        assert command.xy == (0.2695, 0.1383)
        assert command.transition_ms == 800

    def test_other_labels_get_suffix(self):
        command = map_emotion_to_light(EmotionSnapshot(emotions={"Joy": 0.6}, valence=0.5, arousal=0.5))
        assert command.label == "happy (valence/arousal)"
        assert command.confidence == pytest.approx(0.6)

    def test_unknown_emotion_collapses_too(self):
        command = map_emotion_to_light(EmotionSnapshot(emotions={"Awe": 0.6}, valence=0.0, arousal=0.5))
        assert command.label == "valence/arousal"

    @pytest.mark.parametrize("valence", [-1.0, -0.5, 0.0, 0.5, 1.0])
    @pytest.mark.parametrize("arousal", [0.0, 0.25, 0.5, 0.75, 1.0])
    def test_output_ranges(self, valence, arousal):
        (x, y), brightness = map_valence_arousal(valence, arousal)
        assert 0.0 <= x <= 1.0
        assert 0.0 <= y <= 1.0
        assert 30 <= brightness <= 100

    def test_valence_is_clamped(self):
        assert map_valence_arousal(5.0, 0.5) == map_valence_arousal(1.0, 0.5)
        assert map_valence_arousal(-7.0, 0.5) == map_valence_arousal(-1.0, 0.5)

    def test_arousal_is_clamped(self):
        assert map_valence_arousal(0.2, -3.0) == map_valence_arousal(0.2, 0.0)
        assert map_valence_arousal(0.2, 4.0) == map_valence_arousal(0.2, 1.0)

    def test_brightness_endpoints(self):
        assert map_valence_arousal(0.0, 0.0)[1] == 30
        assert map_valence_arousal(0.0, 1.0)[1] == 100
        assert map_valence_arousal(0.0, 0.5)[1] == 65

    def test_nan_falls_back_to_preset(self):
        command = map_emotion_to_light(EmotionSnapshot(emotions={"sad": 0.8}, valence=float("nan"), arousal=0.4))
        assert command.label == "sad"
        assert command.xy == (0.16, 0.08)
