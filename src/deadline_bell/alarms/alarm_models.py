# src/deadline_bell/alarms/alarm_models.py

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(slots=True)
class AlarmRecord:
    """
    Durable record for one pending/fired reminder.

    task_id is a weak reference: the task must be looked up again before firing.
    deadline is only used to compose the alarm message.
    """

    task_id: str
    reminder_fire_time: float
    deadline: float
    created_at: float
    triggered: bool = False

    def is_due(self, now: float) -> bool:
        return not self.triggered and now >= self.reminder_fire_time


@dataclass(slots=True)
class ReconcileResult:
    source: str
    fired: list[str] = field(default_factory=list)
    suppressed: list[str] = field(default_factory=list)
    removed_stale: int = 0
