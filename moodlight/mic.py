from __future__ import annotations

"""Microphone capture delivering raw 16-bit PCM chunks."""

import logging
import threading
from typing import Callable, Optional

import numpy as np

try:
    import sounddevice as sd
except Exception:  # pragma: no cover - PortAudio missing, handled at runtime
    sd = None


LOG = logging.getLogger(__name__)


class MicrophoneError(RuntimeError):
    """Raised when the capture device cannot be opened."""


def pcm16_bytes(block: np.ndarray) -> bytes:
    """Return little-endian int16 bytes for a captured block."""
    if block.dtype != np.int16:
        block = np.clip(block, -1.0, 1.0)
        block = (block * 32767.0).astype(np.int16)
    return block.astype("<i2", copy=False).tobytes()


def rms_level(block: np.ndarray) -> float:
    """Root-mean-square level of an int16 block, normalized to 0..1."""
    if block.size == 0:
        return 0.0
    samples = block.astype(np.float64)
    if block.dtype == np.int16:
        samples /= 32768.0
    return float(np.sqrt(np.mean(samples * samples)))


class MicrophoneStream:
    """Open the input device and push PCM chunks to a callback."""

    def __init__(
        self,
        sample_rate: int = 16000,
        channels: int = 1,
        block_ms: int = 100,
        device: Optional[str] = None,
        on_chunk: Optional[Callable[[bytes], None]] = None,
    ) -> None:
        self._sample_rate = int(sample_rate)
        self._channels = int(channels)
        self._blocksize = max(1, int(self._sample_rate * block_ms / 1000))
        self._device = device
        self._on_chunk = on_chunk
        self._stream = None
        self._lock = threading.Lock()
        self._level = 0.0

    @property
    def level(self) -> float:
        """Most recent RMS level."""
        return self._level

    @property
    def running(self) -> bool:
        return self._stream is not None

    def start(self) -> None:
        """Open and start the input stream."""
        if sd is None:
            raise MicrophoneError(
                "Failed to initialize microphone capture. sounddevice/PortAudio is not available."
            )
        with self._lock:
            if self._stream is not None:
                return
            try:
                stream = sd.InputStream(
                    samplerate=self._sample_rate,
                    channels=self._channels,
                    dtype="int16",
                    blocksize=self._blocksize,
                    device=self._device,
                    callback=self._callback,
                )
                stream.start()
            except Exception as exc:
                raise MicrophoneError(
                    "Failed to initialize microphone capture. "
                    f"Ensure permissions are granted and a mic is connected. Details: {exc}"
                ) from exc
            self._stream = stream
        LOG.info("Microphone capture started (%d Hz, %d ch)", self._sample_rate, self._channels)

    def stop(self) -> None:
        """Stop capture. Safe to call more than once."""
        with self._lock:
            stream, self._stream = self._stream, None
        if stream is None:
            return
        try:
            stream.stop()
        finally:
            stream.close()

    def _callback(self, indata: np.ndarray, _frames: int, _time, status) -> None:
        if status:
            LOG.warning("Microphone stream status: %s", status)
        self._level = rms_level(indata)
        if self._on_chunk is None:
            return
        try:
            self._on_chunk(pcm16_bytes(indata))
        except Exception:
            LOG.exception("Audio chunk handler failed")
