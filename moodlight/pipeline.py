from __future__ import annotations

"""Glue between incoming emotion snapshots and outgoing light commands."""

import logging
from typing import Callable, Optional, Protocol

from moodlight.emotion_mapping import map_emotion_to_light
from moodlight.emotion_provider import EmotionSnapshot, LightCommand
from moodlight.emotion_window import EmotionWindow
from moodlight.throttle import TimerFactory, UpdateThrottler


LOG = logging.getLogger(__name__)


class LightSink(Protocol):
    def set_lights(self, command: LightCommand) -> object:
        ...


class EmotionLightPipeline:
    """Feed snapshots into the window and push throttled light updates."""

    def __init__(
        self,
        window: EmotionWindow,
        sink: Optional[LightSink],
        min_update_interval_ms: int = 800,
        clock: Optional[Callable[[], float]] = None,
        timer_factory: Optional[TimerFactory] = None,
    ) -> None:
        self._window = window
        self._sink = sink
        self._throttler = UpdateThrottler(
            self.apply_update,
            min_interval_ms=min_update_interval_ms,
            clock=clock,
            timer_factory=timer_factory,
        )
        self._last_command: Optional[LightCommand] = None

    @property
    def last_command(self) -> Optional[LightCommand]:
        return self._last_command

    def on_emotion(self, snapshot: EmotionSnapshot) -> None:
        """Callback for the emotion client."""
        self._window.add(snapshot)
        self._throttler.request()

    def apply_update(self) -> LightCommand:
        """Map the current aggregate and send it to the sink."""
        command = map_emotion_to_light(self._window.get_aggregate())
        self._last_command = command
        LOG.info(
            "Emotion: %s (confidence %.2f) -> Hue xy=(%.4f, %.4f) brightness=%d transition=%dms",
            command.label,
            command.confidence,
            command.xy[0],
            command.xy[1],
            command.brightness,
            command.transition_ms,
        )
        if self._sink is not None:
            self._sink.set_lights(command)
        return command

    def stop(self) -> None:
        self._throttler.cancel()
