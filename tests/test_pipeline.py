"""Tests for the snapshot-to-light pipeline."""

import pytest

from moodlight.emotion_provider import EmotionSnapshot
from moodlight.emotion_window import EmotionWindow
from moodlight.pipeline import EmotionLightPipeline


class RecordingSink:
    def __init__(self):
        self.commands = []

    def set_lights(self, command):
        self.commands.append(command)
        return {}


def _pipeline(clock, timers, sink, **kwargs):
    window = EmotionWindow(4000, clock=clock)
    pipeline = EmotionLightPipeline(window, sink, clock=clock, timer_factory=timers, **kwargs)
    return pipeline, window


class TestEmotionLightPipeline:
    """Tests for wiring between window, mapper and sink."""

    def test_emotion_triggers_throttled_update(self, clock, timers):
        sink = RecordingSink()
        pipeline, _ = _pipeline(clock, timers, sink)
        pipeline.on_emotion(EmotionSnapshot(emotions={"Joy": 0.9}))
        pipeline.on_emotion(EmotionSnapshot(emotions={"Joy": 0.7}))
        assert len(timers.timers) == 1
        timers.last.fire()
        assert len(sink.commands) == 1
        assert sink.commands[0].label == "happy"
        assert sink.commands[0].confidence == pytest.approx(0.8)

    def test_dry_run_without_sink(self, clock, timers):
        pipeline, _ = _pipeline(clock, timers, None)
        pipeline.on_emotion(EmotionSnapshot(emotions={"Sadness": 0.6}))
        timers.last.fire()
        assert pipeline.last_command.label == "sad"

    def test_valence_without_arousal_stays_categorical(self, clock, timers):
        pipeline, window = _pipeline(clock, timers, None)
        pipeline.on_emotion(EmotionSnapshot(emotions={"Joy": 0.5}, valence=0.2))
        assert window.get_aggregate().arousal is None
        timers.last.fire()
        assert pipeline.last_command.label == "happy"

    def test_stop_cancels_pending_update(self, clock, timers):
        sink = RecordingSink()
        pipeline, _ = _pipeline(clock, timers, sink)
        pipeline.on_emotion(EmotionSnapshot(emotions={"Joy": 0.9}))
        pipeline.stop()
        timers.last.fire()
        assert sink.commands == []
