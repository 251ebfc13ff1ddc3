# src/deadline_bell/worker/liveness.py

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from typing import Protocol

from ..alarms.presenter import DISMISS_ACTION, SNOOZE_ACTION, task_id_from_tag
from .channel import HelperMessage, check_alarms_message, focus_message, snooze_message

logger = logging.getLogger(__name__)


class ForegroundClient(Protocol):
    def post_message(self, message: HelperMessage) -> None: ...


class LivenessHelper:
    """
    Background helper with its own lifecycle.

    - every tick: ask each attached foreground to reconcile (no-op when none
      is attached, since only the foreground can fire alarms)
    - notification clicks: "snooze" is relayed (or queued until a foreground
      attaches), "dismiss" only closes, anything else focuses or opens the app
    """

    def __init__(
        self,
        *,
        tick_seconds: float = 60.0,
        close_notification: Callable[[str], None] | None = None,
        open_app: Callable[[], None] | None = None,
    ) -> None:
        self._tick_s = max(0.01, float(tick_seconds))
        self._close_notification = close_notification
        self._open_app = open_app

        self._clients: list[ForegroundClient] = []
        self._queued_snoozes: list[str] = []
        self._lock = threading.Lock()

        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    # ---- foreground registry ----

    def attach(self, client: ForegroundClient) -> None:
        with self._lock:
            self._clients.append(client)
            queued, self._queued_snoozes = self._queued_snoozes, []
        for task_id in queued:
            logger.info("Delivering queued snooze task_id=%s", task_id)
            self._post(client, snooze_message(task_id))

    def detach(self, client: ForegroundClient) -> None:
        with self._lock:
            if client in self._clients:
                self._clients.remove(client)

    @property
    def client_count(self) -> int:
        with self._lock:
            return len(self._clients)

    @property
    def queued_snoozes(self) -> list[str]:
        with self._lock:
            return list(self._queued_snoozes)

    # ---- periodic check ----

    def tick(self) -> int:
        """Ask every foreground to reconcile. Returns how many were asked."""
        with self._lock:
            clients = list(self._clients)
        if not clients:
            logger.debug("No foreground attached; alarms will be checked when the app returns")
            return 0
        message = check_alarms_message()
        for client in clients:
            self._post(client, message)
        return len(clients)

    def start(self) -> None:
        if self._thread is not None:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="liveness-helper", daemon=True)
        self._thread.start()
        logger.info("Liveness helper started (tick=%.0fs)", self._tick_s)

    def stop(self) -> None:
        self._stop.set()
        thread, self._thread = self._thread, None
        if thread is not None:
            thread.join(timeout=2.0)
            logger.info("Liveness helper stopped")

    def _run(self) -> None:
        while not self._stop.wait(self._tick_s):
            try:
                self.tick()
            except Exception:
                logger.exception("Liveness tick failed")

    # ---- notification interactions ----

    def handle_notification_click(self, tag: str, action: str) -> None:
        task_id = task_id_from_tag(tag)

        if action == DISMISS_ACTION:
            self._close(tag)
            return

        if action == SNOOZE_ACTION:
            with self._lock:
                target = self._clients[0] if self._clients else None
                if target is None and task_id not in self._queued_snoozes:
                    self._queued_snoozes.append(task_id)
            if target is not None:
                self._post(target, snooze_message(task_id))
            else:
                logger.info("Snooze queued until a foreground attaches task_id=%s", task_id)
            self._close(tag)
            return

        with self._lock:
            target = self._clients[0] if self._clients else None
        if target is not None:
            self._post(target, focus_message())
        elif self._open_app is not None:
            try:
                self._open_app()
            except Exception:
                logger.exception("Opening the app failed")
        else:
            logger.info("Notification clicked but no foreground is running tag=%s", tag)
        self._close(tag)

    def _close(self, tag: str) -> None:
        if self._close_notification is None:
            return
        try:
            self._close_notification(tag)
        except Exception:
            logger.debug("Closing notification failed tag=%s", tag, exc_info=True)

    @staticmethod
    def _post(client: ForegroundClient, message: HelperMessage) -> None:
        try:
            client.post_message(message)
        except Exception:
            logger.exception("Posting %r to foreground failed", message.get("action"))
