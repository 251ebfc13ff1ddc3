# src/deadline_bell/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The alarm pipeline depends on Protocols instead of concrete implementations.
This keeps storage and the presentation channels (system notification,
overlay, sound, haptics) swappable and makes testing easier.
"""

from dataclasses import dataclass, field
from typing import Any, Protocol


@dataclass(slots=True, frozen=True)
class NotificationAction:
    action: str
    title: str


@dataclass(slots=True, frozen=True)
class NotificationPayload:
    """What the presenter wants a system notification to show."""

    title: str
    body: str
    tag: str
    actions: tuple[NotificationAction, ...] = field(default_factory=tuple)
    require_interaction: bool = True


class TaskRepo(Protocol):
    in_memory: bool

    def get_task(self, task_id: str) -> Any | None: ...
    def list_tasks(self) -> list[Any]: ...
    def add_task(self, task: Any) -> None: ...
    def save_task(self, task: Any) -> None: ...
    def delete_task(self, task_id: str) -> bool: ...
    def clone_to_memory(self) -> TaskRepo: ...


class AlarmRepo(Protocol):
    in_memory: bool

    def put(self, record: Any) -> None: ...
    def get(self, task_id: str) -> Any | None: ...
    def list_all(self) -> list[Any]: ...
    def mark_triggered(self, task_id: str) -> bool: ...
    def remove(self, task_id: str) -> bool: ...
    def remove_stale(self, now: float, max_age: float) -> int: ...
    def clone_to_memory(self) -> AlarmRepo: ...


class NotificationPort(Protocol):
    """System/platform notification. Raises NotificationPermissionDenied when unavailable."""

    def show(self, payload: NotificationPayload) -> None: ...
    def close(self, tag: str) -> None: ...


class OverlayPort(Protocol):
    """Foreground visual alarm with "acknowledge" and "snooze" actions."""

    def show(self, task: Any, message: str) -> None: ...
    def close(self) -> None: ...


class SoundPort(Protocol):
    def start(self, duration_seconds: float) -> None: ...
    def stop(self) -> None: ...


class HapticPort(Protocol):
    def vibrate(self) -> bool: ...
