# src/deadline_bell/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class Priority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def from_db(cls, raw: str | None) -> Priority:
        if not raw:
            return cls.MEDIUM
        try:
            return cls(raw)
        except ValueError:
            return cls.MEDIUM


class TaskFilter(StrEnum):
    ALL = "all"
    PENDING = "pending"
    COMPLETED = "completed"
    OVERDUE = "overdue"


@dataclass(slots=True)
class Task:
    id: str
    title: str
    deadline: float
    priority: Priority
    reminder_offset_minutes: int
    created_at: float

    description: str = ""
    completed: bool = False
    completed_at: float | None = None

    @property
    def reminder_fire_time(self) -> float:
        return self.deadline - self.reminder_offset_minutes * 60

    def is_overdue(self, now: float) -> bool:
        return not self.completed and self.deadline < now
