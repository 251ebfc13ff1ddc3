# src/deadline_bell/alarms/lifecycle.py

from __future__ import annotations

import logging

from ..tasks.task_models import Task
from .alarm_scheduler import AlarmScheduler
from .presenter import AlarmPresenter

logger = logging.getLogger(__name__)


class AlarmLifecycle:
    """
    Boundary between the task CRUD layer and the alarm core.

    The CRUD layer reports what happened to a task; this class decides
    whether that means scheduling or cancelling the task's alarm.
    """

    def __init__(self, scheduler: AlarmScheduler, presenter: AlarmPresenter) -> None:
        self._scheduler = scheduler
        self._presenter = presenter

    def on_task_created(self, task: Task) -> None:
        self._scheduler.schedule(task)

    def on_task_updated(self, task: Task) -> None:
        # schedule() cancels for completed tasks and supersedes any older record.
        self._scheduler.schedule(task)

    def on_task_completed(self, task_id: str) -> None:
        self._retire(task_id)

    def on_task_reopened(self, task: Task) -> None:
        self._scheduler.schedule(task)

    def on_task_deleted(self, task_id: str) -> None:
        self._retire(task_id)

    def _retire(self, task_id: str) -> None:
        self._presenter.cancel_snooze(task_id)
        self._presenter.dismiss(task_id)
        self._scheduler.cancel(task_id)
        logger.debug("Alarm retired task_id=%s", task_id)
