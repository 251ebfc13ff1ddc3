# src/deadline_bell/cli/commands.py

from __future__ import annotations

import logging
import shlex
import time
from collections.abc import Callable

from ..core.errors import DeadlineBellError, TaskValidationError
from ..tasks import task_api
from ..tasks.task_models import Priority, Task, TaskFilter
from .bootstrap import AlarmRuntime

CommandEmitter = Callable[[str], None]
CommandHandler = Callable[[AlarmRuntime, list[str], CommandEmitter | None], str]

logger = logging.getLogger(__name__)

SHORT_ID_LEN = 8


class CommandRegistry:
    """Simple slash-command registry used by the console connector (/help, /add, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        runtime: AlarmRuntime,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        try:
            parts = shlex.split(line[1:])
        except ValueError as e:
            return f"Cannot parse command: {e}"
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            return handler(runtime, args, emit)
        except TaskValidationError as e:
            return f"Error: {e}"
        except DeadlineBellError as e:
            logger.warning("Command /%s failed: %s", name, e)
            return f"Error: {e}"

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _short(task_id: str) -> str:
    return task_id[:SHORT_ID_LEN]


def format_task(task: Task, now: float) -> str:
    box = "x" if task.completed else " "
    flag = " (OVERDUE)" if task.is_overdue(now) else ""
    line = (
        f"{_short(task.id)} [{box}] {task_api.format_deadline(task.deadline)} "
        f"{task.priority.value:<6} {task.title}{flag}"
    )
    if task.description:
        line += f"\n           {task.description}"
    return line


def _parse_options(args: list[str]) -> dict[str, str]:
    opts: dict[str, str] = {}
    for arg in args:
        key, sep, value = arg.partition("=")
        if not sep:
            raise TaskValidationError(f"expected key=value, got {arg!r}")
        opts[key.strip().lower()] = value
    return opts


def _parse_offset(raw: str) -> int:
    try:
        return int(raw)
    except ValueError as e:
        raise TaskValidationError(f"offset must be a whole number of minutes, got {raw!r}") from e


def cmd_help(runtime: AlarmRuntime, args: list[str], emit: CommandEmitter | None = None) -> str:
    return registry.build_help()


def cmd_status(runtime: AlarmRuntime, args: list[str], emit: CommandEmitter | None = None) -> str:
    state = runtime.state
    records = state.alarm_store.list_all()
    pending = sum(1 for r in records if not r.triggered)
    storage = "memory only" if getattr(state.task_store, "in_memory", False) else "disk"
    notif = "ON" if runtime.presenter.notifications_available else "OFF (overlay + sound only)"
    return (
        "Status:\n"
        f"  Tasks: {len(state.task_store.list_tasks())} (storage: {storage})\n"
        f"  Pending alarms: {pending}, armed wake-ups: {len(state.wakeups)}, "
        f"snoozed: {len(state.snoozes)}\n"
        f"  System notifications: {notif}\n"
        f"  Visible: {'yes' if runtime.visibility.visible else 'no'}"
    )


def cmd_add(runtime: AlarmRuntime, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /add "title" YYYY-MM-DD HH:MM [offset=15] [priority=medium] [desc="..."]
    """
    if len(args) < 3:
        return 'Usage: /add "title" YYYY-MM-DD HH:MM [offset=15] [priority=low|medium|high] [desc="..."]'

    title, date_s, time_s = args[:3]
    opts = _parse_options(args[3:])
    task = task_api.create_task(
        runtime.state,
        runtime.lifecycle,
        title=title,
        deadline=task_api.parse_deadline(date_s, time_s),
        priority=opts.get("priority", Priority.MEDIUM),
        reminder_offset_minutes=_parse_offset(opts.get("offset", "15")),
        description=opts.get("desc", ""),
    )
    return f"Task added: {format_task(task, time.time())}"


def cmd_edit(runtime: AlarmRuntime, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /edit <id> [title=...] [date=YYYY-MM-DD] [time=HH:MM] [offset=N] [priority=...] [desc=...]
    """
    if len(args) < 2:
        return "Usage: /edit <id> title=... date=YYYY-MM-DD time=HH:MM offset=N priority=... desc=..."

    task = task_api.find_task(runtime.state, args[0])
    opts = _parse_options(args[1:])

    deadline = None
    if "date" in opts or "time" in opts:
        current = task_api.format_deadline(task.deadline).split(" ")
        deadline = task_api.parse_deadline(opts.get("date", current[0]), opts.get("time", current[1]))

    updated = task_api.update_task(
        runtime.state,
        runtime.lifecycle,
        task.id,
        title=opts.get("title"),
        description=opts.get("desc"),
        deadline=deadline,
        priority=opts.get("priority"),
        reminder_offset_minutes=_parse_offset(opts["offset"]) if "offset" in opts else None,
    )
    return f"Task updated: {format_task(updated, time.time())}"


def cmd_done(runtime: AlarmRuntime, args: list[str], emit: CommandEmitter | None = None) -> str:
    if not args:
        return "Usage: /done <id>"
    task = task_api.find_task(runtime.state, args[0])
    updated = task_api.toggle_completion(runtime.state, runtime.lifecycle, task.id)
    if updated.completed:
        return f"Task completed: {updated.title}"
    return f"Task reopened: {updated.title}"


def cmd_delete(runtime: AlarmRuntime, args: list[str], emit: CommandEmitter | None = None) -> str:
    if not args:
        return "Usage: /delete <id>"
    task = task_api.find_task(runtime.state, args[0])
    task_api.delete_task(runtime.state, runtime.lifecycle, task.id)
    return f"Task deleted: {task.title}"


def cmd_clear(runtime: AlarmRuntime, args: list[str], emit: CommandEmitter | None = None) -> str:
    removed = task_api.clear_completed(runtime.state, runtime.lifecycle)
    if not removed:
        return "No completed tasks to clear."
    return f"Cleared {removed} completed task(s)."


def cmd_list(runtime: AlarmRuntime, args: list[str], emit: CommandEmitter | None = None) -> str:
    raw = args[0].lower() if args else TaskFilter.ALL.value
    try:
        flt = TaskFilter(raw)
    except ValueError:
        return "Usage: /list [all|pending|completed|overdue]"

    now = time.time()
    tasks = task_api.list_tasks(runtime.state, flt, now=now)
    if not tasks:
        return f"No tasks ({flt.value})."
    return "\n".join([f"Tasks ({flt.value}):"] + [format_task(t, now) for t in tasks])


def cmd_ack(runtime: AlarmRuntime, args: list[str], emit: CommandEmitter | None = None) -> str:
    task_id = runtime.presenter.acknowledge()
    if task_id is None:
        return "No active alarm."
    return "Alarm acknowledged."


def cmd_snooze(runtime: AlarmRuntime, args: list[str], emit: CommandEmitter | None = None) -> str:
    task_id = task_api.find_task(runtime.state, args[0]).id if args else None
    if not runtime.presenter.snooze(task_id):
        return "Nothing to snooze."
    minutes = runtime.state.setting("snooze_seconds", 300.0) / 60
    return f"Alarm snoozed for {minutes:g} minute(s)."


def cmd_away(runtime: AlarmRuntime, args: list[str], emit: CommandEmitter | None = None) -> str:
    runtime.visibility.set_visible(False)
    return "Marked as away. Use /back to return."


def cmd_back(runtime: AlarmRuntime, args: list[str], emit: CommandEmitter | None = None) -> str:
    result = runtime.visibility.set_visible(True)
    fired = len(result.fired) if result else 0
    return f"Welcome back. Alarms fired while checking: {fired}."


def cmd_check(runtime: AlarmRuntime, args: list[str], emit: CommandEmitter | None = None) -> str:
    result = runtime.reconciler.reconcile("manual")
    return (
        f"Checked alarms: fired={len(result.fired)} suppressed={len(result.suppressed)} "
        f"cleaned={result.removed_stale}"
    )


def cmd_test_alarm(runtime: AlarmRuntime, args: list[str], emit: CommandEmitter | None = None) -> str:
    if runtime.presenter.active_task_id is not None:
        return "An alarm is active. Use /ack or /snooze first."
    now = time.time()
    runtime.presenter.present(
        Task(
            id="test_alarm",
            title="Test alarm",
            description="Checks that every alarm channel works",
            deadline=now,
            priority=Priority.HIGH,
            reminder_offset_minutes=0,
            created_at=now,
        )
    )
    return "Test alarm fired. Use /ack to stop it."


def cmd_test_sound(runtime: AlarmRuntime, args: list[str], emit: CommandEmitter | None = None) -> str:
    runtime.sound.start(3.0)
    return "Playing the alarm sound for 3 seconds."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show storage, alarm and notification status.")
registry.register(
    "add",
    cmd_add,
    help_text='Add a task: /add "title" YYYY-MM-DD HH:MM [offset=15] [priority=medium] [desc="..."]',
)
registry.register("edit", cmd_edit, help_text="Edit a task: /edit <id> key=value ...")
registry.register("done", cmd_done, help_text="Toggle completion: /done <id>.")
registry.register("delete", cmd_delete, help_text="Delete a task: /delete <id>.", aliases=["rm"])
registry.register("clear", cmd_clear, help_text="Delete all completed tasks.")
registry.register("list", cmd_list, help_text="List tasks: /list [all|pending|completed|overdue].", aliases=["ls"])
registry.register("ack", cmd_ack, help_text="Acknowledge the active alarm.", aliases=["ok"])
registry.register("snooze", cmd_snooze, help_text="Snooze the active alarm (or /snooze <id>).")
registry.register("away", cmd_away, help_text="Mark the app as hidden.")
registry.register("back", cmd_back, help_text="Mark the app as visible and check alarms.")
registry.register("check", cmd_check, help_text="Check alarms now.")
registry.register("test-alarm", cmd_test_alarm, help_text="Fire a test alarm on every channel.")
registry.register("test-sound", cmd_test_sound, help_text="Play the alarm sound.")
