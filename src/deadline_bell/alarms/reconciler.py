# src/deadline_bell/alarms/reconciler.py

from __future__ import annotations

"""
Alarm reconciler.

One idempotent routine, many callers:
- the deadline wake-up armed by the scheduler ("timer")
- a hidden -> visible transition ("visibility")
- the periodic poll ("poll")
- a checkAlarms message relayed by the liveness helper ("helper")

Every pass reads the durable store. A due record is claimed with
AlarmStore.mark_triggered() before the presenter is invoked, and nothing
in between awaits, so a nested or repeated pass sees triggered=True and
skips it.
"""

import asyncio
import logging
import time
from collections.abc import Callable
from typing import Protocol

from ..core.errors import StaleTaskReference, StorageUnavailable
from ..core.state import AppState
from ..tasks.task_models import Task
from .alarm_models import AlarmRecord, ReconcileResult

logger = logging.getLogger(__name__)

DEFAULT_STALE_AFTER_SECONDS = 24 * 60 * 60.0


class AlarmTrigger(Protocol):
    def present(self, task: Task) -> None: ...


class AlarmReconciler:
    def __init__(
        self,
        state: AppState,
        presenter: AlarmTrigger,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._state = state
        self._presenter = presenter
        self._clock = clock

    def reconcile(self, source: str = "manual") -> ReconcileResult:
        result = ReconcileResult(source=source)
        now = self._clock()
        store = self._state.alarm_store

        try:
            records = store.list_all()
        except StorageUnavailable:
            logger.warning("Reconcile(%s) skipped: alarm store unavailable", source)
            return result

        for record in records:
            if not record.is_due(now):
                continue
            try:
                self._process_due(record, result)
            except StorageUnavailable:
                logger.warning("Reconcile(%s) could not claim task_id=%s", source, record.task_id)

        try:
            result.removed_stale = store.remove_stale(
                now, self._state.setting("stale_after_seconds", DEFAULT_STALE_AFTER_SECONDS)
            )
        except StorageUnavailable:
            logger.warning("Alarm GC skipped: alarm store unavailable")

        if result.fired or result.suppressed:
            logger.info(
                "Reconcile(%s) fired=%s suppressed=%s removed=%d",
                source,
                result.fired,
                result.suppressed,
                result.removed_stale,
            )
        return result

    def _process_due(self, record: AlarmRecord, result: ReconcileResult) -> None:
        store = self._state.alarm_store
        try:
            task = self._live_task(record.task_id)
        except StaleTaskReference as e:
            if store.mark_triggered(record.task_id):
                result.suppressed.append(record.task_id)
                logger.debug("Alarm suppressed: %s", e)
            return

        # Claim first. Only the pass that flips the flag may present.
        if not store.mark_triggered(record.task_id):
            return

        handle = self._state.wakeups.pop(record.task_id, None)
        if handle is not None:
            handle.cancel()

        result.fired.append(task.id)
        try:
            self._presenter.present(task)
        except Exception:
            logger.exception("Presenter failed task_id=%s", task.id)

    def _live_task(self, task_id: str) -> Task:
        task = self._state.task_store.get_task(task_id)
        if task is None:
            raise StaleTaskReference(task_id, "deleted")
        if task.completed:
            raise StaleTaskReference(task_id, "completed")
        return task


class VisibilityWatcher:
    """Reconciles whenever the app goes from hidden to visible."""

    def __init__(self, reconciler: AlarmReconciler, *, visible: bool = True) -> None:
        self._reconciler = reconciler
        self.visible = visible

    def set_visible(self, visible: bool) -> ReconcileResult | None:
        was_visible = self.visible
        self.visible = bool(visible)
        if self.visible and not was_visible:
            logger.debug("App became visible; reconciling")
            return self._reconciler.reconcile("visibility")
        return None


async def run_alarm_poller(
    reconciler: AlarmReconciler,
    *,
    interval_seconds: float = 10.0,
) -> None:
    """
    Periodic reconciliation loop.

    To stop the poller, cancel the coroutine/task.
    """
    sleep_s = max(0.01, float(interval_seconds))
    while True:
        try:
            reconciler.reconcile("poll")
        except Exception:
            logger.exception("Alarm poll failed")
        await asyncio.sleep(sleep_s)
