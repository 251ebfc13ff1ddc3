# tests/test_task_api.py

from __future__ import annotations

from datetime import datetime

import pytest

from deadline_bell.cli.bootstrap import AlarmRuntime
from deadline_bell.core.errors import TaskValidationError
from deadline_bell.tasks import task_api
from deadline_bell.tasks.task_models import Priority, TaskFilter

from .conftest import make_task, ts
from .fakes import FakeClock


def _untriggered(runtime: AlarmRuntime) -> list[str]:
    return [r.task_id for r in runtime.state.alarm_store.list_all() if not r.triggered]


def _create(runtime: AlarmRuntime, clock: FakeClock, **kwargs):
    params = {"title": "Write report", "deadline": ts(10, 0)}
    params.update(kwargs)
    return task_api.create_task(runtime.state, runtime.lifecycle, now=clock.now, **params)


def test_parse_deadline_is_local_time() -> None:
    assert task_api.parse_deadline("2024-01-10", "10:00") == datetime(2024, 1, 10, 10, 0).timestamp()
    assert task_api.format_deadline(ts(10, 0)) == "2024-01-10 10:00"


@pytest.mark.parametrize(("date", "time"), [("2024-13-01", "10:00"), ("tomorrow", "10:00"), ("2024-01-10", "25:00")])
def test_parse_deadline_rejects_garbage(date: str, time: str) -> None:
    with pytest.raises(TaskValidationError):
        task_api.parse_deadline(date, time)


def test_create_schedules_alarm(runtime: AlarmRuntime, clock: FakeClock) -> None:
    task = _create(runtime, clock, priority="HIGH", description="  q1 numbers ")

    assert task.priority is Priority.HIGH
    assert task.description == "q1 numbers"
    assert task.reminder_offset_minutes == 15
    assert runtime.state.task_store.get_task(task.id) == task
    record = runtime.state.alarm_store.get(task.id)
    assert record is not None and record.reminder_fire_time == ts(9, 45)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"title": "   "},
        {"deadline": ts(8, 0)},
        {"reminder_offset_minutes": -5},
        {"priority": "urgent"},
    ],
)
def test_create_validation(runtime: AlarmRuntime, clock: FakeClock, kwargs: dict) -> None:
    with pytest.raises(TaskValidationError):
        _create(runtime, clock, **kwargs)
    assert runtime.state.task_store.count_tasks() == 0
    assert runtime.state.alarm_store.list_all() == []


def test_edit_keeps_a_single_pending_alarm(runtime: AlarmRuntime, clock: FakeClock) -> None:
    task = _create(runtime, clock)

    task_api.update_task(runtime.state, runtime.lifecycle, task.id, deadline=ts(11, 0), now=clock.now)
    task_api.update_task(runtime.state, runtime.lifecycle, task.id, reminder_offset_minutes=30, now=clock.now)

    assert _untriggered(runtime) == [task.id]
    assert runtime.state.alarm_store.get(task.id).reminder_fire_time == ts(10, 30)


def test_edit_title_only_keeps_fire_time(runtime: AlarmRuntime, clock: FakeClock) -> None:
    task = _create(runtime, clock)
    updated = task_api.update_task(runtime.state, runtime.lifecycle, task.id, title="Send report", now=clock.now)

    assert updated.title == "Send report"
    assert runtime.state.alarm_store.get(task.id).reminder_fire_time == ts(9, 45)


def test_complete_and_reopen(runtime: AlarmRuntime, clock: FakeClock) -> None:
    task = _create(runtime, clock)

    done = task_api.toggle_completion(runtime.state, runtime.lifecycle, task.id, now=clock.now)
    assert done.completed and done.completed_at == clock.now
    assert runtime.state.alarm_store.get(task.id) is None

    reopened = task_api.toggle_completion(runtime.state, runtime.lifecycle, task.id, now=clock.now)
    assert not reopened.completed and reopened.completed_at is None
    assert _untriggered(runtime) == [task.id]


def test_delete_cancels_alarm(runtime: AlarmRuntime, clock: FakeClock) -> None:
    task = _create(runtime, clock)

    assert task_api.delete_task(runtime.state, runtime.lifecycle, task.id) is True
    assert task_api.delete_task(runtime.state, runtime.lifecycle, task.id) is False
    assert runtime.state.alarm_store.list_all() == []


def test_deleted_task_never_fires(runtime, channels, clock: FakeClock) -> None:
    task = _create(runtime, clock)
    task_api.delete_task(runtime.state, runtime.lifecycle, task.id)

    clock.now = ts(9, 50)
    runtime.reconciler.reconcile("poll")

    assert channels.presentations == 0


def test_clear_completed(runtime: AlarmRuntime, clock: FakeClock) -> None:
    a = _create(runtime, clock, title="a")
    b = _create(runtime, clock, title="b")
    task_api.toggle_completion(runtime.state, runtime.lifecycle, a.id, now=clock.now)

    assert task_api.clear_completed(runtime.state, runtime.lifecycle) == 1
    assert [t.id for t in task_api.list_tasks(runtime.state, now=clock.now)] == [b.id]


def test_list_filters_and_order(runtime: AlarmRuntime, clock: FakeClock) -> None:
    store = runtime.state.task_store
    store.add_task(make_task("late", deadline=ts(12, 0)))
    store.add_task(make_task("early", deadline=ts(10, 0)))
    store.add_task(make_task("done", deadline=ts(11, 0), completed=True))
    store.add_task(make_task("missed", deadline=ts(8, 0)))

    def ids(flt: TaskFilter) -> list[str]:
        return [t.id for t in task_api.list_tasks(runtime.state, flt, now=clock.now)]

    assert ids(TaskFilter.ALL) == ["missed", "early", "done", "late"]
    assert ids(TaskFilter.PENDING) == ["missed", "early", "late"]
    assert ids(TaskFilter.COMPLETED) == ["done"]
    assert ids(TaskFilter.OVERDUE) == ["missed"]


def test_find_task_by_prefix(runtime: AlarmRuntime) -> None:
    store = runtime.state.task_store
    store.add_task(make_task("abc123"))
    store.add_task(make_task("abd456"))

    assert task_api.find_task(runtime.state, "abc").id == "abc123"
    assert task_api.find_task(runtime.state, "abd456").id == "abd456"
    with pytest.raises(TaskValidationError, match="ambiguous"):
        task_api.find_task(runtime.state, "ab")
    with pytest.raises(TaskValidationError, match="unknown"):
        task_api.find_task(runtime.state, "zzz")
    with pytest.raises(TaskValidationError):
        task_api.find_task(runtime.state, "")
