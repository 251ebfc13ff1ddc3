# src/deadline_bell/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- opens the durable stores (falling back to in-memory storage with a user notice),
- wires scheduler, reconciler, presenter, lifecycle hooks and the liveness helper.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from ..alarms.alarm_scheduler import AlarmScheduler
from ..alarms.alarm_store import AlarmStore
from ..alarms.lifecycle import AlarmLifecycle
from ..alarms.notifier import ConsoleOverlay, DesktopNotifier, NoHaptics
from ..alarms.presenter import AlarmPresenter, snooze_minutes
from ..alarms.reconciler import AlarmReconciler, VisibilityWatcher, run_alarm_poller
from ..alarms.sound import AlarmSound
from ..config import get_settings
from ..core.errors import StorageUnavailable
from ..core.ports import HapticPort, NotificationPort, OverlayPort, SoundPort
from ..core.sqlite_db import MEMORY_PATH
from ..core.state import AppState, storage_notice
from ..tasks.task_store import TaskStore
from ..worker.channel import ForegroundEndpoint, run_foreground_listener
from ..worker.liveness import LivenessHelper

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    with contextlib.suppress(OSError):
        settings.data_dir.mkdir(parents=True, exist_ok=True)


def _open_store(factory: Callable[[Any], Any], path: Any, label: str, notices: list[str]) -> Any:
    try:
        return factory(path)
    except StorageUnavailable as e:
        logger.warning("%s storage unavailable (%s); using in-memory storage", label, e)
        notices.append(storage_notice(label, path))
        return factory(MEMORY_PATH)


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    notices: list[str] = []
    task_store = _open_store(TaskStore, settings.tasks_db_path, "Tasks", notices)
    alarm_store = _open_store(AlarmStore, settings.alarms_db_path, "Alarms", notices)

    return AppState(
        settings=settings,
        task_store=task_store,
        alarm_store=alarm_store,
        notices=notices,
    )


@dataclass
class AlarmRuntime:
    """Everything the connectors need to drive the alarm subsystem."""

    state: AppState
    scheduler: AlarmScheduler
    reconciler: AlarmReconciler
    presenter: AlarmPresenter
    lifecycle: AlarmLifecycle
    visibility: VisibilityWatcher
    helper: LivenessHelper
    sound: SoundPort

    _tasks: list[asyncio.Task] = field(default_factory=list)
    _endpoint: ForegroundEndpoint | None = None

    async def start(self, *, on_focus: Callable[[], None] | None = None) -> None:
        """Restore wake-ups, run a first pass and start poller, listener and helper."""
        settings = self.state.settings

        self.scheduler.restore()
        self.reconciler.reconcile("startup")

        self._tasks.append(
            asyncio.create_task(
                run_alarm_poller(
                    self.reconciler,
                    interval_seconds=float(getattr(settings, "poll_interval_seconds", 10.0)),
                ),
                name="alarm-poller",
            )
        )

        self._endpoint = ForegroundEndpoint(asyncio.get_running_loop())
        self._tasks.append(
            asyncio.create_task(
                run_foreground_listener(
                    self._endpoint,
                    reconciler=self.reconciler,
                    presenter=self.presenter,
                    on_focus=on_focus,
                ),
                name="helper-listener",
            )
        )
        self.helper.attach(self._endpoint)
        self.helper.start()

    async def stop(self) -> None:
        if self._endpoint is not None:
            self.helper.detach(self._endpoint)
            self._endpoint = None
        await asyncio.to_thread(self.helper.stop)

        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._tasks.clear()

        self.presenter.acknowledge()
        join_sound = getattr(self.sound, "join", None)
        if join_sound is not None:
            await asyncio.to_thread(join_sound, 1.0)
        for handle in list(self.state.wakeups.values()) + list(self.state.snoozes.values()):
            handle.cancel()
        self.state.wakeups.clear()
        self.state.snoozes.clear()


def build_runtime(
    state: AppState,
    *,
    notifier: NotificationPort | None = None,
    overlay: OverlayPort | None = None,
    sound: SoundPort | None = None,
    haptics: HapticPort | None = None,
    clock: Callable[[], float] = time.time,
    out: Callable[[str], Any] = print,
) -> AlarmRuntime:
    settings = state.settings

    if notifier is None:
        notifier = DesktopNotifier(
            enabled=bool(getattr(settings, "notifications_enabled", True)),
            app_name=str(getattr(settings, "app_name", "deadline-bell")),
        )
    if sound is None:
        sound = AlarmSound(
            enabled=bool(getattr(settings, "sound_enabled", True)),
            primary_path=getattr(settings, "primary_sound_path", None),
            backup_path=getattr(settings, "backup_sound_path", None),
            repeat_seconds=float(getattr(settings, "sound_repeat_seconds", 2.0)),
        )

    snooze_s = float(getattr(settings, "snooze_seconds", 300.0))
    presenter = AlarmPresenter(
        state,
        notifier=notifier,
        overlay=overlay or ConsoleOverlay(out, snooze_minutes=snooze_minutes(snooze_s)),
        sound=sound,
        haptics=haptics or NoHaptics(),
        clock=clock,
    )
    reconciler = AlarmReconciler(state, presenter, clock=clock)
    scheduler = AlarmScheduler(state, on_wakeup=reconciler.reconcile, clock=clock)

    helper = LivenessHelper(
        tick_seconds=float(getattr(settings, "helper_tick_seconds", 60.0)),
        close_notification=notifier.close,
    )
    if isinstance(notifier, DesktopNotifier):
        notifier.set_interaction_handler(helper.handle_notification_click)

    return AlarmRuntime(
        state=state,
        scheduler=scheduler,
        reconciler=reconciler,
        presenter=presenter,
        lifecycle=AlarmLifecycle(scheduler, presenter),
        visibility=VisibilityWatcher(reconciler),
        helper=helper,
        sound=sound,
    )
