# tests/test_storage_fallback.py

from __future__ import annotations

import pytest

from deadline_bell.alarms.alarm_models import AlarmRecord
from deadline_bell.cli.bootstrap import AlarmRuntime
from deadline_bell.core.errors import StorageUnavailable
from deadline_bell.tasks import task_api

from .conftest import make_task, ts
from .fakes import Channels, FakeClock


def _broken(*args, **kwargs):
    raise StorageUnavailable("alarms.sqlite3: disk I/O error")


@pytest.mark.asyncio
async def test_alarm_write_failure_continues_in_memory(
    runtime: AlarmRuntime, channels: Channels, clock: FakeClock
) -> None:
    state = runtime.state
    state.alarm_store.put = _broken

    task = task_api.create_task(
        state, runtime.lifecycle, title="Pay rent", deadline=ts(10, 0), now=clock.now
    )

    assert [t.title for t in state.task_store.list_tasks()] == ["Pay rent"]
    assert task.id in state.wakeups
    assert state.alarm_store.in_memory
    assert state.alarm_store.get(task.id) is not None
    assert len(state.notices) == 1 and "Alarms cannot be saved to disk" in state.notices[0]

    clock.now = ts(9, 45)
    assert runtime.reconciler.reconcile("timer").fired == [task.id]
    assert channels.presentations == 1
    runtime.presenter.acknowledge()


def test_fallback_keeps_existing_records(runtime: AlarmRuntime, clock: FakeClock) -> None:
    state = runtime.state
    state.task_store.add_task(make_task("old"))
    state.alarm_store.put(
        AlarmRecord(task_id="old", reminder_fire_time=ts(9, 45), deadline=ts(10, 0), created_at=ts(8, 0))
    )
    state.alarm_store.put = _broken

    runtime.scheduler.schedule(make_task("new", deadline=ts(11, 0)))

    assert sorted(r.task_id for r in state.alarm_store.list_all()) == ["new", "old"]


def test_cancel_failure_still_retires_alarm(runtime: AlarmRuntime, clock: FakeClock) -> None:
    state = runtime.state
    task = task_api.create_task(
        state, runtime.lifecycle, title="Pay rent", deadline=ts(10, 0), now=clock.now
    )
    runtime.presenter.present(task)
    state.alarm_store.remove = _broken

    assert task_api.delete_task(state, runtime.lifecycle, task.id) is True

    assert runtime.presenter.active_task_id is None
    assert state.alarm_store.in_memory
    assert state.alarm_store.get(task.id) is None


def test_task_write_failure_continues_in_memory(runtime: AlarmRuntime, clock: FakeClock) -> None:
    state = runtime.state
    existing = make_task("existing", deadline=ts(12, 0))
    state.task_store.add_task(existing)
    state.task_store.add_task = _broken

    task = task_api.create_task(
        state, runtime.lifecycle, title="Pay rent", deadline=ts(10, 0), now=clock.now
    )

    assert state.task_store.in_memory
    assert sorted(t.id for t in state.task_store.list_tasks()) == sorted(["existing", task.id])
    assert state.pop_notices() == [
        f"Warning: Tasks cannot be saved to disk ({state.settings.tasks_db_path}). "
        "Changes will be lost when the app exits."
    ]
    assert state.notices == []


def test_failure_in_memory_store_propagates(runtime: AlarmRuntime) -> None:
    state = runtime.state
    state.alarm_store.put = _broken
    runtime.scheduler.schedule(make_task())

    state.alarm_store.put = _broken
    with pytest.raises(StorageUnavailable):
        runtime.scheduler.schedule(make_task())
