# src/deadline_bell/worker/channel.py

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from typing import Any

from ..alarms.presenter import AlarmPresenter
from ..alarms.reconciler import AlarmReconciler

logger = logging.getLogger(__name__)

HelperMessage = dict[str, Any]

CHECK_ALARMS = "checkAlarms"
SNOOZE = "snooze"
FOCUS = "focus"


def check_alarms_message(timestamp: float | None = None) -> HelperMessage:
    return {"action": CHECK_ALARMS, "timestamp": time.time() if timestamp is None else timestamp}


def snooze_message(task_id: str) -> HelperMessage:
    return {"action": SNOOZE, "taskId": task_id}


def focus_message() -> HelperMessage:
    return {"action": FOCUS}


class ForegroundEndpoint:
    """
    Foreground inbox for helper messages.

    post_message() may be called from any thread; messages are handed over to
    the event loop that owns the endpoint.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop
        self._inbox: asyncio.Queue[HelperMessage] = asyncio.Queue()

    def post_message(self, message: HelperMessage) -> None:
        try:
            self._loop.call_soon_threadsafe(self._inbox.put_nowait, dict(message))
        except RuntimeError:
            logger.debug("Foreground loop closed; dropped message %r", message)

    async def receive(self) -> HelperMessage:
        return await self._inbox.get()


def handle_helper_message(
    message: HelperMessage,
    *,
    reconciler: AlarmReconciler,
    presenter: AlarmPresenter,
    on_focus: Callable[[], None] | None = None,
) -> None:
    action = message.get("action")
    if action == CHECK_ALARMS:
        reconciler.reconcile("helper")
    elif action == SNOOZE:
        task_id = message.get("taskId")
        if task_id:
            presenter.snooze(str(task_id))
    elif action == FOCUS:
        if on_focus is not None:
            on_focus()
    else:
        logger.info("Unknown helper message: %r", message)


async def run_foreground_listener(
    endpoint: ForegroundEndpoint,
    *,
    reconciler: AlarmReconciler,
    presenter: AlarmPresenter,
    on_focus: Callable[[], None] | None = None,
) -> None:
    """Dispatch helper messages until cancelled."""
    while True:
        message = await endpoint.receive()
        try:
            handle_helper_message(
                message, reconciler=reconciler, presenter=presenter, on_focus=on_focus
            )
        except Exception:
            logger.exception("Helper message handling failed: %r", message)
