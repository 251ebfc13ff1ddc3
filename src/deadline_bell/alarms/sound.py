# src/deadline_bell/alarms/sound.py

from __future__ import annotations

import logging
import sys
import threading
import time
import wave
from collections.abc import Callable
from pathlib import Path
from typing import Any

import numpy as np

from ..core.errors import AudioPlaybackFailed

logger = logging.getLogger(__name__)

SAMPLE_RATE = 44100
TONE_FREQUENCIES = (800.0, 1000.0, 1200.0)


def synthesize_alarm_tone(
    *,
    sample_rate: int = SAMPLE_RATE,
    duration: float = 1.0,
    frequencies: tuple[float, ...] = TONE_FREQUENCIES,
    start_gain: float = 0.3,
    end_gain: float = 0.01,
) -> np.ndarray:
    """Sawtooth chord with an exponential fade from start_gain to end_gain."""
    t = np.arange(int(sample_rate * duration), dtype=np.float64) / sample_rate
    envelope = start_gain * (end_gain / start_gain) ** (t / duration)
    chord = np.zeros_like(t)
    for freq in frequencies:
        phase = t * freq
        chord += 2.0 * (phase - np.floor(0.5 + phase))
    return np.clip(chord * envelope, -1.0, 1.0).astype(np.float32)


def load_wav(path: str | Path) -> tuple[np.ndarray, int]:
    """Read a PCM WAV file into float32 samples shaped (frames, channels)."""
    try:
        with wave.open(str(path), "rb") as w:
            channels = w.getnchannels()
            width = w.getsampwidth()
            rate = w.getframerate()
            raw = w.readframes(w.getnframes())
    except (OSError, EOFError, wave.Error) as e:
        raise AudioPlaybackFailed(f"cannot read {path}: {e}") from e

    if width == 1:
        samples = (np.frombuffer(raw, dtype=np.uint8).astype(np.float32) - 128.0) / 128.0
    elif width == 2:
        samples = np.frombuffer(raw, dtype="<i2").astype(np.float32) / 32768.0
    elif width == 4:
        samples = np.frombuffer(raw, dtype="<i4").astype(np.float32) / 2147483648.0
    else:
        raise AudioPlaybackFailed(f"unsupported sample width {width} in {path}")

    if samples.size == 0:
        raise AudioPlaybackFailed(f"{path} contains no audio")
    return samples.reshape(-1, channels), rate


def _terminal_bell() -> None:
    sys.stdout.write("\a")
    sys.stdout.flush()


class AlarmSound:
    """
    Repeating audible alert.

    Each attempt walks the fallback chain: primary WAV -> backup WAV ->
    synthesized tone -> terminal bell. Playback runs on a worker thread so the
    event loop is never blocked; stop() interrupts it.

    sounddevice is imported lazily: a machine without PortAudio still gets the
    terminal bell.
    """

    def __init__(
        self,
        *,
        enabled: bool = True,
        primary_path: str | Path | None = None,
        backup_path: str | Path | None = None,
        repeat_seconds: float = 2.0,
        backend: Any = None,
        bell: Callable[[], None] = _terminal_bell,
    ) -> None:
        self.enabled = bool(enabled)
        self._primary = Path(primary_path) if primary_path else None
        self._backup = Path(backup_path) if backup_path else None
        self._repeat_s = max(0.01, float(repeat_seconds))
        self._backend_mod = backend
        self._backend_error: str | None = None
        self._bell = bell

        self._stop = threading.Event()
        self._worker: threading.Thread | None = None

    # ---- SoundPort ----

    def start(self, duration_seconds: float) -> None:
        self.stop()
        if not self.enabled:
            return

        self._stop = threading.Event()
        stop = self._stop
        until = time.monotonic() + float(duration_seconds)

        def loop() -> None:
            while not stop.is_set() and time.monotonic() < until:
                self.play_once()
                stop.wait(self._repeat_s)

        self._worker = threading.Thread(target=loop, name="alarm-sound", daemon=True)
        self._worker.start()

    def stop(self) -> None:
        """Signal the worker and interrupt playback. Never waits for the thread."""
        self._stop.set()
        if self._backend_mod is not None:
            try:
                self._backend_mod.stop()
            except Exception:
                logger.debug("Sound backend stop failed.", exc_info=True)

    def join(self, timeout: float | None = None) -> None:
        """Wait for the last worker to exit (shutdown only; blocks the caller)."""
        worker = self._worker
        if worker is not None and worker is not threading.current_thread():
            worker.join(timeout=timeout)
        if worker is not None and not worker.is_alive():
            self._worker = None

    # ---- fallback chain ----

    def play_once(self) -> str:
        """Play one alert; returns the source that worked."""
        for label, path in (("primary", self._primary), ("backup", self._backup)):
            if path is None:
                continue
            try:
                samples, rate = load_wav(path)
                self._play(samples, rate)
                return label
            except AudioPlaybackFailed as e:
                logger.debug("Alarm sound %s failed: %s", label, e)

        try:
            self._play(synthesize_alarm_tone(), SAMPLE_RATE)
            return "tone"
        except AudioPlaybackFailed as e:
            logger.debug("Synthesized tone failed: %s", e)

        self._bell()
        return "bell"

    def _backend(self) -> Any:
        if self._backend_mod is not None:
            return self._backend_mod
        if self._backend_error is not None:
            raise AudioPlaybackFailed(self._backend_error)
        try:
            import sounddevice as sd
        except Exception as e:  # OSError when PortAudio is missing
            self._backend_error = f"sound device unavailable: {e!r}"
            logger.warning("Audio playback disabled: %s", self._backend_error)
            raise AudioPlaybackFailed(self._backend_error) from e
        self._backend_mod = sd
        return sd

    def _play(self, samples: np.ndarray, rate: int) -> None:
        backend = self._backend()
        try:
            backend.play(samples, rate)
            backend.wait()
        except Exception as e:
            raise AudioPlaybackFailed(f"playback failed: {e!r}") from e
