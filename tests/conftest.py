# tests/conftest.py

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from types import SimpleNamespace

import pytest

from deadline_bell.alarms.alarm_store import AlarmStore
from deadline_bell.cli.bootstrap import AlarmRuntime, build_runtime
from deadline_bell.core.state import AppState
from deadline_bell.tasks.task_models import Priority, Task
from deadline_bell.tasks.task_store import TaskStore

from .fakes import Channels, FakeClock, FakeHaptics, FakeNotifier, FakeOverlay, FakeSound

# 2024-01-10 09:00 local time; the deadline examples below are relative to it.
BASE_NOW = datetime(2024, 1, 10, 9, 0).timestamp()


def ts(hour: int, minute: int, second: int = 0) -> float:
    return datetime(2024, 1, 10, hour, minute, second).timestamp()


def make_task(
    task_id: str = "t1",
    *,
    title: str = "Write report",
    deadline: float | None = None,
    offset: int = 15,
    completed: bool = False,
    created_at: float = BASE_NOW,
) -> Task:
    return Task(
        id=task_id,
        title=title,
        deadline=ts(10, 0) if deadline is None else deadline,
        priority=Priority.MEDIUM,
        reminder_offset_minutes=offset,
        created_at=created_at,
        completed=completed,
    )


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the alarm modules.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="deadline-bell-test",
        data_dir=tmp_path,
        tasks_db_path=tmp_path / "tasks.sqlite3",
        alarms_db_path=tmp_path / "alarms.sqlite3",
        poll_interval_seconds=10.0,
        helper_tick_seconds=60.0,
        snooze_seconds=300.0,
        auto_dismiss_seconds=30.0,
        stale_after_seconds=24 * 60 * 60.0,
        sound_repeat_seconds=2.0,
        sound_enabled=False,
        notifications_enabled=False,
        primary_sound_path=None,
        backup_sound_path=None,
        console_enabled=False,
    )


@pytest.fixture()
def state(settings: SimpleNamespace) -> AppState:
    """
    AppState wired with real SQLite stores: their correctness is part of
    what we want to test.
    """
    return AppState(
        settings=settings,
        task_store=TaskStore(settings.tasks_db_path),
        alarm_store=AlarmStore(settings.alarms_db_path),
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(BASE_NOW)


@pytest.fixture()
def channels() -> Channels:
    return Channels(
        notifier=FakeNotifier(),
        overlay=FakeOverlay(),
        sound=FakeSound(),
        haptics=FakeHaptics(),
    )


@pytest.fixture()
def runtime(state: AppState, channels: Channels, clock: FakeClock) -> AlarmRuntime:
    return build_runtime(
        state,
        notifier=channels.notifier,
        overlay=channels.overlay,
        sound=channels.sound,
        haptics=channels.haptics,
        clock=clock,
    )
