# tests/test_sound.py

from __future__ import annotations

import threading
import time
import wave
from pathlib import Path

import numpy as np
import pytest

from deadline_bell.alarms.sound import SAMPLE_RATE, AlarmSound, load_wav, synthesize_alarm_tone
from deadline_bell.core.errors import AudioPlaybackFailed


class FakeBackend:
    """Stands in for the sounddevice module."""

    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.played: list[tuple[int, int]] = []
        self.stops = 0

    def play(self, samples: np.ndarray, rate: int) -> None:
        if self.fail:
            raise RuntimeError("device busy")
        self.played.append((len(samples), rate))

    def wait(self) -> None:
        return None

    def stop(self) -> None:
        self.stops += 1


def _write_wav(path: Path, *, frames: int = 800, rate: int = 8000, channels: int = 1) -> Path:
    data = (np.sin(np.arange(frames * channels) / 5.0) * 10000).astype("<i2")
    with wave.open(str(path), "wb") as w:
        w.setnchannels(channels)
        w.setsampwidth(2)
        w.setframerate(rate)
        w.writeframes(data.tobytes())
    return path


def test_tone_shape_and_decay() -> None:
    tone = synthesize_alarm_tone()

    assert tone.dtype == np.float32
    assert tone.shape == (SAMPLE_RATE,)
    assert np.abs(tone).max() <= 1.0
    head = np.abs(tone[: SAMPLE_RATE // 10]).max()
    tail = np.abs(tone[-SAMPLE_RATE // 10 :]).max()
    assert tail < head / 10


def test_load_wav_reads_pcm(tmp_path: Path) -> None:
    samples, rate = load_wav(_write_wav(tmp_path / "a.wav", channels=2))

    assert rate == 8000
    assert samples.shape == (800, 2)
    assert np.abs(samples).max() <= 1.0


def test_load_wav_rejects_garbage(tmp_path: Path) -> None:
    bad = tmp_path / "bad.wav"
    bad.write_bytes(b"not a wav")
    with pytest.raises(AudioPlaybackFailed):
        load_wav(bad)
    with pytest.raises(AudioPlaybackFailed):
        load_wav(tmp_path / "missing.wav")


def test_primary_sound_plays_first(tmp_path: Path) -> None:
    backend = FakeBackend()
    sound = AlarmSound(primary_path=_write_wav(tmp_path / "p.wav"), backend=backend)

    assert sound.play_once() == "primary"
    assert backend.played == [(800, 8000)]


def test_broken_primary_falls_back_to_backup(tmp_path: Path) -> None:
    broken = tmp_path / "p.wav"
    broken.write_bytes(b"junk")
    sound = AlarmSound(
        primary_path=broken,
        backup_path=_write_wav(tmp_path / "b.wav", rate=16000),
        backend=FakeBackend(),
    )

    assert sound.play_once() == "backup"


def test_missing_files_fall_back_to_tone(tmp_path: Path) -> None:
    backend = FakeBackend()
    sound = AlarmSound(primary_path=tmp_path / "none.wav", backend=backend)

    assert sound.play_once() == "tone"
    assert backend.played == [(SAMPLE_RATE, SAMPLE_RATE)]


def test_dead_device_falls_back_to_bell() -> None:
    rings: list[bool] = []
    sound = AlarmSound(backend=FakeBackend(fail=True), bell=lambda: rings.append(True))

    assert sound.play_once() == "bell"
    assert rings == [True]


def test_disabled_sound_never_plays() -> None:
    backend = FakeBackend()
    sound = AlarmSound(enabled=False, backend=backend)

    sound.start(5.0)

    assert backend.played == []


def test_start_repeats_until_stopped() -> None:
    backend = FakeBackend()
    sound = AlarmSound(repeat_seconds=0.01, backend=backend)

    sound.start(5.0)
    deadline = time.monotonic() + 2.0
    while len(backend.played) < 2 and time.monotonic() < deadline:
        time.sleep(0.01)
    sound.stop()
    sound.join(1.0)
    played = len(backend.played)
    time.sleep(0.05)

    assert played >= 2
    assert len(backend.played) == played
    assert backend.stops >= 1


def test_stop_does_not_wait_for_playback() -> None:
    class StuckBackend(FakeBackend):
        def __init__(self) -> None:
            super().__init__()
            self.playing = threading.Event()
            self.release = threading.Event()

        def wait(self) -> None:
            self.playing.set()
            self.release.wait(timeout=5.0)

    backend = StuckBackend()
    sound = AlarmSound(repeat_seconds=0.01, backend=backend)
    sound.start(5.0)
    assert backend.playing.wait(timeout=2.0)

    started = time.monotonic()
    sound.stop()
    elapsed = time.monotonic() - started

    backend.release.set()
    sound.join(2.0)

    assert elapsed < 0.5
    assert len(backend.played) == 1
