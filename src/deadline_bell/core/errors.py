# src/deadline_bell/core/errors.py

from __future__ import annotations


class DeadlineBellError(Exception):
    """Base class for application errors."""


class StorageUnavailable(DeadlineBellError):
    """Persistence read/write failed. Callers degrade to in-memory storage."""


class AudioPlaybackFailed(DeadlineBellError):
    """A sound source could not be played."""


class NotificationPermissionDenied(DeadlineBellError):
    """System notifications are disabled or no notification backend exists."""


class StaleTaskReference(DeadlineBellError):
    """An alarm record points to a task that was deleted or completed."""

    def __init__(self, task_id: str, reason: str) -> None:
        super().__init__(f"task {task_id} is {reason}")
        self.task_id = task_id
        self.reason = reason


class TaskValidationError(DeadlineBellError):
    """User input for a task is invalid."""
