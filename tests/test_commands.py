# tests/test_commands.py

from __future__ import annotations

from deadline_bell.cli.bootstrap import AlarmRuntime
from deadline_bell.cli.commands import CommandRegistry, registry

from .conftest import make_task, ts
from .fakes import Channels, FakeClock


def _only_task(runtime: AlarmRuntime):
    [task] = runtime.state.task_store.list_tasks()
    return task


def test_command_registry_unknown_and_non_command(runtime: AlarmRuntime) -> None:
    reg = CommandRegistry()
    assert reg.handle(runtime, "hello") is None
    assert "Unknown command" in (reg.handle(runtime, "/nope") or "")
    assert "Empty command" in (reg.handle(runtime, "/") or "")


def test_command_registry_routes_aliases(runtime: AlarmRuntime) -> None:
    reg = CommandRegistry()
    seen: list[list[str]] = []

    def handler(rt, args, emit):
        seen.append(args)
        return "ok"

    reg.register("ping", handler, "Ping.", aliases=["p"])

    assert reg.handle(runtime, '/P "a b" c') == "ok"
    assert seen == [["a b", "c"]]
    assert "/ping - Ping." in reg.build_help()


def test_bad_quoting_is_reported(runtime: AlarmRuntime) -> None:
    assert (registry.handle(runtime, '/add "unterminated') or "").startswith("Cannot parse command")


def test_add_list_done_delete(runtime: AlarmRuntime) -> None:
    reply = registry.handle(runtime, '/add "Pay rent" 2099-05-01 09:00 offset=30 priority=high desc="before noon"')
    assert reply is not None and reply.startswith("Task added:")

    task = _only_task(runtime)
    assert task.title == "Pay rent"
    assert task.reminder_offset_minutes == 30
    assert task.priority.value == "high"
    assert runtime.state.alarm_store.get(task.id) is not None

    listing = registry.handle(runtime, "/list pending") or ""
    assert "Pay rent" in listing and task.id[:8] in listing

    assert registry.handle(runtime, f"/done {task.id[:8]}") == "Task completed: Pay rent"
    assert runtime.state.alarm_store.get(task.id) is None
    assert registry.handle(runtime, f"/done {task.id[:8]}") == "Task reopened: Pay rent"
    assert runtime.state.alarm_store.get(task.id) is not None

    assert registry.handle(runtime, f"/rm {task.id[:8]}") == "Task deleted: Pay rent"
    assert runtime.state.task_store.list_tasks() == []
    assert runtime.state.alarm_store.list_all() == []


def test_add_rejects_invalid_input(runtime: AlarmRuntime) -> None:
    assert (registry.handle(runtime, '/add "x" 2099-05-01') or "").startswith("Usage")
    assert (registry.handle(runtime, '/add "x" 2099-05-01 9am') or "").startswith("Error:")
    assert (registry.handle(runtime, '/add "x" 2000-05-01 09:00') or "").startswith("Error:")
    assert (registry.handle(runtime, '/add "x" 2099-05-01 09:00 offset=soon') or "").startswith("Error:")
    assert (registry.handle(runtime, '/add "x" 2099-05-01 09:00 loud') or "").startswith("Error:")
    assert runtime.state.task_store.list_tasks() == []


def test_edit_moves_the_alarm(runtime: AlarmRuntime) -> None:
    registry.handle(runtime, '/add "Pay rent" 2099-05-01 09:00')
    task = _only_task(runtime)

    reply = registry.handle(runtime, f"/edit {task.id[:8]} time=10:30 title=Rent")

    assert reply is not None and reply.startswith("Task updated:")
    updated = _only_task(runtime)
    assert updated.title == "Rent"
    assert runtime.state.alarm_store.get(task.id).reminder_fire_time == updated.reminder_fire_time


def test_unknown_id_is_an_error(runtime: AlarmRuntime) -> None:
    assert registry.handle(runtime, "/done nope") == "Error: unknown task id: nope"


def test_list_filter_validation(runtime: AlarmRuntime) -> None:
    assert registry.handle(runtime, "/list") == "No tasks (all)."
    assert (registry.handle(runtime, "/list someday") or "").startswith("Usage")


def test_check_and_ack(runtime: AlarmRuntime, channels: Channels, clock: FakeClock) -> None:
    task = make_task()
    runtime.state.task_store.add_task(task)
    runtime.lifecycle.on_task_created(task)
    clock.now = ts(9, 46)

    assert registry.handle(runtime, "/check") == "Checked alarms: fired=1 suppressed=0 cleaned=1"
    assert channels.presentations == 1

    assert registry.handle(runtime, "/ack") == "Alarm acknowledged."
    assert registry.handle(runtime, "/ack") == "No active alarm."
    assert registry.handle(runtime, "/snooze") == "Nothing to snooze."


def test_away_and_back_reconcile(runtime: AlarmRuntime, channels: Channels, clock: FakeClock) -> None:
    task = make_task()
    runtime.state.task_store.add_task(task)
    runtime.lifecycle.on_task_created(task)

    registry.handle(runtime, "/away")
    clock.now = ts(9, 50)

    assert registry.handle(runtime, "/back") == "Welcome back. Alarms fired while checking: 1."
    assert channels.presentations == 1


def test_test_alarm_uses_every_channel(runtime: AlarmRuntime, channels: Channels) -> None:
    assert registry.handle(runtime, "/test-alarm") == "Test alarm fired. Use /ack to stop it."
    assert channels.presentations == 1
    assert len(channels.sound.starts) == 1
    assert len(channels.notifier.shown) == 1


def test_status_reports_storage(runtime: AlarmRuntime) -> None:
    reply = registry.handle(runtime, "/status") or ""
    assert "storage: disk" in reply
    assert "System notifications: ON" in reply


def test_test_alarm_does_not_replace_a_real_alarm(
    runtime: AlarmRuntime, channels: Channels, clock: FakeClock
) -> None:
    task = make_task()
    runtime.state.task_store.add_task(task)
    runtime.lifecycle.on_task_created(task)
    clock.now = ts(9, 45)
    runtime.reconciler.reconcile("poll")

    assert registry.handle(runtime, "/test-alarm") == "An alarm is active. Use /ack or /snooze first."
    assert runtime.presenter.active_task_id == "t1"
    assert channels.presentations == 1
