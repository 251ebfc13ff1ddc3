# src/deadline_bell/tasks/task_api.py

from __future__ import annotations

"""
Task CRUD helpers used by the connectors.

Every mutation is persisted first and then reported to the alarm
lifecycle hooks, which decide what happens to the task's alarm.
"""

import logging
import time
import uuid
from dataclasses import replace
from datetime import datetime
from typing import Any, Protocol

from ..core.errors import StorageUnavailable, TaskValidationError
from ..core.state import AppState
from .task_models import Priority, Task, TaskFilter

logger = logging.getLogger(__name__)

DEADLINE_FORMAT = "%Y-%m-%d %H:%M"


class TaskLifecycleHooks(Protocol):
    def on_task_created(self, task: Task) -> None: ...
    def on_task_updated(self, task: Task) -> None: ...
    def on_task_completed(self, task_id: str) -> None: ...
    def on_task_reopened(self, task: Task) -> None: ...
    def on_task_deleted(self, task_id: str) -> None: ...


def parse_deadline(date_str: str, time_str: str) -> float:
    """Parse local "YYYY-MM-DD" + "HH:MM" into an epoch timestamp."""
    try:
        dt = datetime.strptime(f"{date_str.strip()} {time_str.strip()}", DEADLINE_FORMAT)
    except ValueError as e:
        raise TaskValidationError(
            f"invalid deadline {date_str!r} {time_str!r}; expected YYYY-MM-DD HH:MM"
        ) from e
    return dt.astimezone().timestamp()


def format_deadline(ts: float) -> str:
    return datetime.fromtimestamp(ts).astimezone().strftime(DEADLINE_FORMAT)


def _parse_priority(raw: str | Priority) -> Priority:
    try:
        return Priority(str(raw).strip().lower())
    except ValueError as e:
        allowed = ", ".join(p.value for p in Priority)
        raise TaskValidationError(f"priority must be one of: {allowed}") from e


def _validate(task: Task, now: float) -> None:
    if not task.title.strip():
        raise TaskValidationError("title is required")
    if task.reminder_offset_minutes < 0:
        raise TaskValidationError("reminder offset must be zero or positive")
    if not task.completed and task.deadline <= now:
        raise TaskValidationError("deadline must be in the future")


def _write(state: AppState, op: str, *args: object) -> Any:
    try:
        return getattr(state.task_store, op)(*args)
    except StorageUnavailable as e:
        store = state.fall_back_to_memory("task_store", "Tasks", e)
        return getattr(store, op)(*args)


def _require(state: AppState, task_id: str) -> Task:
    task = state.task_store.get_task(task_id)
    if task is None:
        raise TaskValidationError(f"unknown task id: {task_id}")
    return task


def create_task(
    state: AppState,
    hooks: TaskLifecycleHooks,
    *,
    title: str,
    deadline: float,
    priority: str | Priority = Priority.MEDIUM,
    reminder_offset_minutes: int = 15,
    description: str = "",
    now: float | None = None,
) -> Task:
    if now is None:
        now = time.time()

    task = Task(
        id=uuid.uuid4().hex,
        title=(title or "").strip(),
        description=(description or "").strip(),
        deadline=float(deadline),
        priority=_parse_priority(priority),
        reminder_offset_minutes=int(reminder_offset_minutes),
        created_at=now,
    )
    _validate(task, now)

    _write(state, "add_task", task)
    hooks.on_task_created(task)
    logger.info("Task created id=%s title=%r", task.id, task.title)
    return task


def update_task(
    state: AppState,
    hooks: TaskLifecycleHooks,
    task_id: str,
    *,
    title: str | None = None,
    description: str | None = None,
    deadline: float | None = None,
    priority: str | Priority | None = None,
    reminder_offset_minutes: int | None = None,
    now: float | None = None,
) -> Task:
    if now is None:
        now = time.time()

    current = _require(state, task_id)
    updated = replace(
        current,
        title=current.title if title is None else title.strip(),
        description=current.description if description is None else description.strip(),
        deadline=current.deadline if deadline is None else float(deadline),
        priority=current.priority if priority is None else _parse_priority(priority),
        reminder_offset_minutes=(
            current.reminder_offset_minutes
            if reminder_offset_minutes is None
            else int(reminder_offset_minutes)
        ),
    )
    _validate(updated, now)

    _write(state, "save_task", updated)
    hooks.on_task_updated(updated)
    logger.info("Task updated id=%s", updated.id)
    return updated


def toggle_completion(
    state: AppState,
    hooks: TaskLifecycleHooks,
    task_id: str,
    *,
    now: float | None = None,
) -> Task:
    if now is None:
        now = time.time()

    current = _require(state, task_id)
    if current.completed:
        task = replace(current, completed=False, completed_at=None)
        _write(state, "save_task", task)
        hooks.on_task_reopened(task)
        logger.info("Task reopened id=%s", task.id)
    else:
        task = replace(current, completed=True, completed_at=now)
        _write(state, "save_task", task)
        hooks.on_task_completed(task.id)
        logger.info("Task completed id=%s", task.id)
    return task


def delete_task(state: AppState, hooks: TaskLifecycleHooks, task_id: str) -> bool:
    removed = _write(state, "delete_task", task_id)
    if removed:
        hooks.on_task_deleted(task_id)
        logger.info("Task deleted id=%s", task_id)
    return removed


def clear_completed(state: AppState, hooks: TaskLifecycleHooks) -> int:
    removed = 0
    for task in state.task_store.list_tasks():
        if task.completed and delete_task(state, hooks, task.id):
            removed += 1
    return removed


def list_tasks(
    state: AppState,
    task_filter: TaskFilter | str = TaskFilter.ALL,
    *,
    now: float | None = None,
) -> list[Task]:
    """Filtered view of the task collection, ordered by deadline."""
    if now is None:
        now = time.time()
    flt = TaskFilter(task_filter)

    tasks = state.task_store.list_tasks()
    if flt == TaskFilter.PENDING:
        tasks = [t for t in tasks if not t.completed]
    elif flt == TaskFilter.COMPLETED:
        tasks = [t for t in tasks if t.completed]
    elif flt == TaskFilter.OVERDUE:
        tasks = [t for t in tasks if t.is_overdue(now)]

    tasks.sort(key=lambda t: (t.deadline, t.created_at))
    return tasks


def find_task(state: AppState, id_prefix: str) -> Task:
    """Resolve a full id or an unambiguous id prefix (the console shows short ids)."""
    id_prefix = (id_prefix or "").strip()
    if not id_prefix:
        raise TaskValidationError("task id is required")

    exact = state.task_store.get_task(id_prefix)
    if exact is not None:
        return exact

    matches = [t for t in state.task_store.list_tasks() if t.id.startswith(id_prefix)]
    if len(matches) == 1:
        return matches[0]
    if not matches:
        raise TaskValidationError(f"unknown task id: {id_prefix}")
    raise TaskValidationError(f"ambiguous task id: {id_prefix}")
