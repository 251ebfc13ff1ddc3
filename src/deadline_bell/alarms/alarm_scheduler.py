# src/deadline_bell/alarms/alarm_scheduler.py

from __future__ import annotations

"""
Alarm scheduler.

Turns a task into (at most) one durable AlarmRecord plus an in-memory
deadline wake-up. The wake-up does not fire anything by itself: it only
asks the reconciler to look at the store, which stays the single source
of truth.
"""

import asyncio
import logging
import time
from collections.abc import Callable
from typing import Any

from ..core.errors import StorageUnavailable
from ..core.state import AppState
from ..tasks.task_models import Task
from .alarm_models import AlarmRecord

logger = logging.getLogger(__name__)

WakeupCallback = Callable[[str], object]


def running_loop() -> asyncio.AbstractEventLoop | None:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


class AlarmScheduler:
    def __init__(
        self,
        state: AppState,
        *,
        on_wakeup: WakeupCallback | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._state = state
        self._on_wakeup = on_wakeup
        self._clock = clock

    def schedule(self, task: Task) -> AlarmRecord | None:
        """
        (Re)schedule the alarm for a task.

        The previous wake-up is dropped and the durable record is replaced in a
        single upsert, with no suspension point in between, so the old and the
        new alarm can never both be pending.

        Returns None when the task is completed or its fire time already lapsed;
        in that case any previous record for the task is removed.
        """
        if task.completed:
            self.cancel(task.id)
            return None

        now = self._clock()
        fire_at = task.reminder_fire_time

        self._clear_wakeup(task.id)

        if fire_at <= now:
            self._store("remove", task.id)
            logger.info(
                "Alarm not scheduled task_id=%s: fire time already passed (%.0fs ago)",
                task.id,
                now - fire_at,
            )
            return None

        record = AlarmRecord(
            task_id=task.id,
            reminder_fire_time=fire_at,
            deadline=task.deadline,
            created_at=now,
        )
        self._store("put", record)
        self._arm(task.id, fire_at, now)
        logger.info("Alarm scheduled task_id=%s in %.0fs", task.id, fire_at - now)
        return record

    def cancel(self, task_id: str) -> None:
        """Drop the in-memory wake-up and remove the durable record in the same step."""
        self._clear_wakeup(task_id)
        if self._store("remove", task_id):
            logger.info("Alarm cancelled task_id=%s", task_id)

    def restore(self) -> int:
        """
        Re-arm wake-ups after a restart.

        Untriggered records that still match their task keep their original
        created_at; records whose fire time already passed are left for the
        reconciler. Returns the number of wake-ups armed.
        """
        now = self._clock()
        armed = 0
        for task in self._state.task_store.list_tasks():
            if task.completed:
                self.cancel(task.id)
                continue

            record = self._state.alarm_store.get(task.id)
            if (
                record is not None
                and not record.triggered
                and record.reminder_fire_time == task.reminder_fire_time
            ):
                self._clear_wakeup(task.id)
                if self._arm(task.id, record.reminder_fire_time, now):
                    armed += 1
                continue

            if self.schedule(task) is not None and task.id in self._state.wakeups:
                armed += 1

        logger.info("Alarm wake-ups restored: %d", armed)
        return armed

    def has_wakeup(self, task_id: str) -> bool:
        return task_id in self._state.wakeups

    def _store(self, op: str, *args: object) -> Any:
        """
        Run a write on the alarm store. When the durable store fails, the
        session continues on an in-memory copy so the alarm still fires.
        """
        try:
            return getattr(self._state.alarm_store, op)(*args)
        except StorageUnavailable as e:
            store = self._state.fall_back_to_memory("alarm_store", "Alarms", e)
            return getattr(store, op)(*args)

    # ---- wake-up handles ----

    def _arm(self, task_id: str, fire_at: float, now: float) -> bool:
        loop = running_loop()
        if loop is None:
            logger.debug("No running loop; task_id=%s relies on polling only", task_id)
            return False
        delay = max(0.0, fire_at - now)
        self._state.wakeups[task_id] = loop.call_later(delay, self._fire_wakeup, task_id, fire_at)
        return True

    def _clear_wakeup(self, task_id: str) -> None:
        handle = self._state.wakeups.pop(task_id, None)
        if handle is not None:
            handle.cancel()

    def _fire_wakeup(self, task_id: str, fire_at: float) -> None:
        self._state.wakeups.pop(task_id, None)
        now = self._clock()
        if now < fire_at:
            # loop timers run on the monotonic clock and may land a hair early
            self._arm(task_id, fire_at, now)
            return
        if self._on_wakeup is None:
            return
        try:
            self._on_wakeup("timer")
        except Exception:
            logger.exception("Wake-up callback failed task_id=%s", task_id)
