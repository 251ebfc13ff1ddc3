# src/deadline_bell/alarms/presenter.py

from __future__ import annotations

"""
Alarm trigger / presenter.

Drives the user-facing side effects of a due alarm. Each channel is
best-effort and isolated: a failing notification backend, sound device or
overlay never prevents the remaining channels from firing.
"""

import asyncio
import logging
import math
import time
from collections.abc import Callable
from dataclasses import dataclass

from ..core.errors import NotificationPermissionDenied
from ..core.ports import (
    HapticPort,
    NotificationAction,
    NotificationPayload,
    NotificationPort,
    OverlayPort,
    SoundPort,
)
from ..core.state import AppState
from ..tasks.task_models import Task
from .alarm_scheduler import running_loop

logger = logging.getLogger(__name__)

SNOOZE_ACTION = "snooze"
DISMISS_ACTION = "dismiss"
TAG_PREFIX = "alarm_"
NOTIFICATION_TITLE = "TASK ALARM"


def notification_tag(task_id: str) -> str:
    return f"{TAG_PREFIX}{task_id}"


def task_id_from_tag(tag: str) -> str:
    return tag.removeprefix(TAG_PREFIX)


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _plural(n: int, word: str) -> str:
    return f"{n} {word}" if n == 1 else f"{n} {word}s"


def snooze_minutes(snooze_seconds: float) -> int:
    return max(1, round(snooze_seconds / 60))


def compose_message(task: Task, now: float) -> str:
    """Countdown-aware alarm text: due now / N minutes left / N hours left."""
    minutes_left = _round_half_up((task.deadline - now) / 60)
    if minutes_left <= 0:
        return f"DEADLINE NOW: {task.title}"
    if minutes_left < 60:
        return f"ALARM: {_plural(minutes_left, 'minute')} left - {task.title}"
    hours_left = _round_half_up(minutes_left / 60)
    return f"ALARM: {_plural(hours_left, 'hour')} left - {task.title}"


@dataclass(slots=True)
class ActiveAlarm:
    task_id: str
    message: str
    tag: str
    dismiss_handle: asyncio.TimerHandle | None


class AlarmPresenter:
    def __init__(
        self,
        state: AppState,
        *,
        notifier: NotificationPort | None,
        overlay: OverlayPort,
        sound: SoundPort,
        haptics: HapticPort,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._state = state
        self._notifier = notifier
        self._overlay = overlay
        self._sound = sound
        self._haptics = haptics
        self._clock = clock

        self._active: ActiveAlarm | None = None
        self._notifications_denied = notifier is None

    @property
    def active_task_id(self) -> str | None:
        return self._active.task_id if self._active else None

    @property
    def notifications_available(self) -> bool:
        return not self._notifications_denied

    def present(self, task: Task) -> None:
        message = compose_message(task, self._clock())
        tag = notification_tag(task.id)
        auto_dismiss_s = self._state.setting("auto_dismiss_seconds", 30.0)

        # A new alarm replaces whatever is on screen.
        self._close_active()

        logger.info("Alarm presented task_id=%s: %s", task.id, message)

        self._run_channel("notification", self._show_notification, task, message, tag)
        self._run_channel("sound", self._sound.start, auto_dismiss_s)
        self._run_channel("overlay", self._overlay.show, task, message)
        self._run_channel("haptics", self._vibrate)

        handle = None
        loop = running_loop()
        if loop is not None:
            handle = loop.call_later(auto_dismiss_s, self._auto_dismiss, task.id)
        self._active = ActiveAlarm(task_id=task.id, message=message, tag=tag, dismiss_handle=handle)

    def acknowledge(self) -> str | None:
        """User confirmed the alarm: stop sound, close overlay and notification."""
        task_id = self.active_task_id
        self._close_active()
        return task_id

    def dismiss(self, task_id: str) -> None:
        """Close the presentation only if it belongs to task_id."""
        if self.active_task_id == task_id:
            self._close_active()

    def snooze(self, task_id: str | None = None) -> bool:
        """
        Close the current presentation and re-present the task once after the
        snooze delay. No durable record is written: a snooze does not survive a
        restart.
        """
        task_id = task_id or self.active_task_id
        if not task_id:
            return False

        task = self._state.task_store.get_task(task_id)
        if task is None or task.completed:
            logger.info("Snooze ignored task_id=%s: task is gone or completed", task_id)
            return False

        self._close_active()
        self.cancel_snooze(task_id)

        loop = running_loop()
        if loop is None:
            logger.warning("Snooze requested without a running loop task_id=%s", task_id)
            return False

        delay = self._state.setting("snooze_seconds", 300.0)
        self._state.snoozes[task_id] = loop.call_later(delay, self._fire_snooze, task_id)
        logger.info("Alarm snoozed task_id=%s for %.0fs", task_id, delay)
        return True

    def cancel_snooze(self, task_id: str) -> None:
        handle = self._state.snoozes.pop(task_id, None)
        if handle is not None:
            handle.cancel()

    # ---- internals ----

    def _fire_snooze(self, task_id: str) -> None:
        self._state.snoozes.pop(task_id, None)
        task = self._state.task_store.get_task(task_id)
        if task is None or task.completed:
            logger.info("Snoozed alarm dropped task_id=%s", task_id)
            return
        self.present(task)

    def _auto_dismiss(self, task_id: str) -> None:
        if self.active_task_id == task_id:
            logger.info("Alarm auto-dismissed task_id=%s", task_id)
            self._close_active()

    def _close_active(self) -> None:
        active, self._active = self._active, None
        if active is None:
            return
        if active.dismiss_handle is not None:
            active.dismiss_handle.cancel()
        self._run_channel("sound", self._sound.stop)
        self._run_channel("overlay", self._overlay.close)
        if self._notifier is not None and not self._notifications_denied:
            self._run_channel("notification", self._notifier.close, active.tag)

    def _show_notification(self, task: Task, message: str, tag: str) -> None:
        if self._notifier is None or self._notifications_denied:
            return
        minutes = snooze_minutes(self._state.setting("snooze_seconds", 300.0))
        payload = NotificationPayload(
            title=NOTIFICATION_TITLE,
            body=message,
            tag=tag,
            actions=(
                NotificationAction(SNOOZE_ACTION, f"Snooze {minutes} min"),
                NotificationAction(DISMISS_ACTION, "Dismiss"),
            ),
        )
        try:
            self._notifier.show(payload)
        except NotificationPermissionDenied as e:
            self._notifications_denied = True
            logger.warning("System notifications unavailable (%s); using overlay and sound only", e)

    def _vibrate(self) -> None:
        if not self._haptics.vibrate():
            logger.debug("Haptics not supported")

    @staticmethod
    def _run_channel(name: str, fn: Callable[..., object], *args: object) -> None:
        try:
            fn(*args)
        except Exception:
            logger.exception("Alarm channel %s failed", name)
