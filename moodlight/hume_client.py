from __future__ import annotations

"""Streaming WebSocket client for the Hume expression measurement API."""

import asyncio
import base64
import json
import logging
import threading
from typing import Any, Callable, Dict, List, Optional, Union
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

import websockets

from moodlight.config import HumeConfig
from moodlight.emotion_provider import EmotionSnapshot


LOG = logging.getLogger(__name__)

ACCEPTED_MODELS = {"prosody", "expressive"}
OUTBOX_MAX = 64


class HumeServiceError(RuntimeError):
    """Error message reported by the streaming service."""


def build_stream_url(endpoint: str, api_key: str, config_id: Optional[str] = None) -> str:
    """Append credentials to the streaming endpoint as query parameters."""
    parts = urlparse(endpoint)
    query = dict(parse_qsl(parts.query))
    query["api_key"] = api_key
    if config_id:
        query["config_id"] = config_id
    return urlunparse(parts._replace(query=urlencode(query)))


def backoff_delay(attempts: int, base_seconds: float = 1.0, max_seconds: float = 15.0) -> float:
    """Exponential reconnect delay: base * 2**attempts, capped."""
    return min(base_seconds * (2 ** max(0, attempts)), max_seconds)


def build_audio_message(chunk: bytes, sample_rate: int = 16000) -> str:
    return json.dumps(
        {
            "type": "audio_input",
            "data": base64.b64encode(chunk).decode("ascii"),
            "encoding": "linear16",
            "sample_rate": sample_rate,
        }
    )


def _number(obj: Dict[str, Any], key: str) -> Optional[float]:
    value = obj.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def parse_message(raw: Union[str, bytes]) -> List[EmotionSnapshot]:
    """Extract emotion snapshots from one service message.

    Non-JSON payloads and messages without predictions yield an empty list.
    Service-side errors raise HumeServiceError.
    """
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError:
            return []
    try:
        parsed = json.loads(raw)
    except ValueError:
        return []
    if not isinstance(parsed, dict):
        return []

    if parsed.get("type") == "error":
        raise HumeServiceError(str(parsed.get("message") or "Hume error"))

    predictions = parsed.get("predictions")
    if not isinstance(predictions, list):
        return []

    snapshots: List[EmotionSnapshot] = []
    for prediction in predictions:
        if not isinstance(prediction, dict):
            continue
        model = prediction.get("model")
        if isinstance(model, str) and model and model not in ACCEPTED_MODELS:
            continue

        emotions = prediction.get("emotions")
        if not isinstance(emotions, list):
            continue

        scores: Dict[str, float] = {}
        for item in emotions:
            if not isinstance(item, dict):
                continue
            name = item.get("name")
            score = _number(item, "score")
            if isinstance(name, str) and score is not None:
                scores[name] = score

        if scores:
            snapshots.append(
                EmotionSnapshot(
                    emotions=scores,
                    valence=_number(prediction, "valence"),
                    arousal=_number(prediction, "arousal"),
                )
            )
    return snapshots


class HumeStreamClient(threading.Thread):
    """Stream microphone audio to Hume and report emotion snapshots.

    Runs its own asyncio loop on a daemon thread and reconnects with
    exponential backoff until stop() is called.
    """

    def __init__(
        self,
        config: HumeConfig,
        sample_rate: int = 16000,
        on_emotion: Optional[Callable[[EmotionSnapshot], None]] = None,
        on_error: Optional[Callable[[Exception], None]] = None,
        on_connected: Optional[Callable[[], None]] = None,
        on_disconnected: Optional[Callable[[], None]] = None,
    ) -> None:
        super().__init__(daemon=True)
        self._config = config
        self._sample_rate = int(sample_rate)
        self._on_emotion = on_emotion
        self._on_error = on_error
        self._on_connected = on_connected
        self._on_disconnected = on_disconnected

        self._stop_event = threading.Event()
        self._connected = threading.Event()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._outbox: Optional[asyncio.Queue] = None
        self._reconnect_attempts = 0
        self._dropped_chunks = 0
        self._last_error: Optional[str] = None

    @property
    def connected(self) -> bool:
        return self._connected.is_set()

    def set_emotion_callback(self, callback: Callable[[EmotionSnapshot], None]) -> None:
        self._on_emotion = callback

    def last_error(self) -> Optional[str]:
        """Return the last error message, if any."""
        return self._last_error

    def send_audio(self, chunk: bytes) -> bool:
        """Queue a PCM chunk for sending. Chunks are dropped while disconnected."""
        loop = self._loop
        if not self._connected.is_set() or loop is None or self._outbox is None:
            return False
        message = build_audio_message(chunk, self._sample_rate)
        try:
            loop.call_soon_threadsafe(self._enqueue, message)
        except RuntimeError:
            # loop already closed
            return False
        return True

    def stop(self) -> None:
        """Signal the worker thread to stop and close the socket."""
        self._stop_event.set()
        if self._loop is not None:
            try:
                self._loop.call_soon_threadsafe(lambda: None)
            except RuntimeError:
                pass

    def run(self) -> None:
        self._loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self._loop)
        try:
            self._loop.run_until_complete(self._run_async())
        finally:
            self._loop.close()
            self._loop = None

    async def _run_async(self) -> None:
        url = build_stream_url(self._config.endpoint, self._config.api_key, self._config.config_id)
        while not self._stop_event.is_set():
            try:
                async with websockets.connect(url, max_size=2 * 1024 * 1024) as ws:
                    self._outbox = asyncio.Queue(maxsize=OUTBOX_MAX)
                    self._reconnect_attempts = 0
                    self._connected.set()
                    LOG.info("Connected to emotion service")
                    self._call(self._on_connected)
                    await self._session(ws)
            except Exception as exc:
                self._last_error = f"stream_failed: {exc}"
                self._report_error(exc)
            finally:
                was_connected = self._connected.is_set()
                self._connected.clear()
                self._outbox = None
                if was_connected:
                    self._call(self._on_disconnected)

            if self._stop_event.is_set():
                break
            delay = backoff_delay(
                self._reconnect_attempts,
                self._config.reconnect_base_seconds,
                self._config.reconnect_max_seconds,
            )
            self._reconnect_attempts += 1
            LOG.warning("Emotion service disconnected, reconnecting in %.1fs", delay)
            await self._sleep_unless_stopped(delay)

    async def _session(self, ws) -> None:
        tasks = [
            asyncio.ensure_future(self._sender(ws)),
            asyncio.ensure_future(self._receiver(ws)),
            asyncio.ensure_future(self._wait_stop()),
        ]
        try:
            done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
        for task in done:
            if not task.cancelled() and task.exception() is not None:
                raise task.exception()

    async def _sender(self, ws) -> None:
        outbox = self._outbox
        while True:
            message = await outbox.get()
            await ws.send(message)

    async def _receiver(self, ws) -> None:
        async for raw in ws:
            self._handle_message(raw)

    async def _wait_stop(self) -> None:
        while not self._stop_event.is_set():
            await asyncio.sleep(0.2)

    async def _sleep_unless_stopped(self, seconds: float) -> None:
        remaining = seconds
        while remaining > 0 and not self._stop_event.is_set():
            step = min(0.2, remaining)
            await asyncio.sleep(step)
            remaining -= step

    def _enqueue(self, message: str) -> None:
        outbox = self._outbox
        if outbox is None:
            return
        try:
            outbox.put_nowait(message)
        except asyncio.QueueFull:
            self._dropped_chunks += 1
            if self._dropped_chunks % 50 == 1:
                LOG.warning("Audio outbox full, dropped %d chunks so far", self._dropped_chunks)

    def _handle_message(self, raw: Union[str, bytes]) -> None:
        try:
            snapshots = parse_message(raw)
        except HumeServiceError as exc:
            self._last_error = str(exc)
            self._report_error(exc)
            return
        if self._on_emotion is None:
            return
        for snapshot in snapshots:
            try:
                self._on_emotion(snapshot)
            except Exception:
                LOG.exception("Emotion callback failed")

    def _report_error(self, exc: Exception) -> None:
        if self._on_error is None:
            LOG.error("Emotion service error: %s", exc)
            return
        try:
            self._on_error(exc)
        except Exception:
            LOG.exception("Error callback failed")

    @staticmethod
    def _call(fn: Optional[Callable[[], None]]) -> None:
        if fn is None:
            return
        try:
            fn()
        except Exception:
            LOG.exception("Connection callback failed")
