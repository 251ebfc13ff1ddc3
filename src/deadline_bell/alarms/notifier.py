# src/deadline_bell/alarms/notifier.py

from __future__ import annotations

"""
Concrete presentation channels for a desktop terminal session.

- DesktopNotifier: system notifications via notify-send (Linux, with
  snooze/dismiss actions) or osascript (macOS, no actions)
- ConsoleOverlay: the foreground "visual alarm" printed into the console
- NoHaptics: desktops cannot vibrate
"""

import json
import logging
import shutil
import subprocess
import sys
import threading
from collections.abc import Callable
from typing import Any

from ..core.errors import NotificationPermissionDenied
from ..core.ports import NotificationPayload

logger = logging.getLogger(__name__)

DEFAULT_ACTION = "default"

InteractionHandler = Callable[[str, str], None]
# (notification tag, action id) -> None


class DesktopNotifier:
    def __init__(
        self,
        *,
        enabled: bool = True,
        app_name: str = "deadline-bell",
        on_interaction: InteractionHandler | None = None,
        platform: str = sys.platform,
        which: Callable[[str], str | None] = shutil.which,
    ) -> None:
        self._enabled = enabled
        self._app_name = app_name
        self._on_interaction = on_interaction
        self._platform = platform
        self._which = which

        self._procs: dict[str, subprocess.Popen[str]] = {}
        self._closed: set[subprocess.Popen[str]] = set()
        self._lock = threading.Lock()

    def set_interaction_handler(self, handler: InteractionHandler | None) -> None:
        self._on_interaction = handler

    def show(self, payload: NotificationPayload) -> None:
        if not self._enabled:
            raise NotificationPermissionDenied("notifications disabled in settings")

        if self._platform == "darwin" and self._which("osascript"):
            self._show_osascript(payload)
            return

        notify_send = self._which("notify-send")
        if notify_send:
            self._show_notify_send(notify_send, payload)
            return

        raise NotificationPermissionDenied("no notification backend (notify-send/osascript) found")

    def close(self, tag: str) -> None:
        with self._lock:
            proc = self._procs.pop(tag, None)
            if proc is not None:
                self._closed.add(proc)
        if proc is not None and proc.poll() is None:
            proc.terminate()

    def _show_osascript(self, payload: NotificationPayload) -> None:
        script = (
            f"display notification {json.dumps(payload.body)} "
            f"with title {json.dumps(payload.title)} sound name \"Ping\""
        )
        subprocess.Popen(
            ["osascript", "-e", script],
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )

    def _show_notify_send(self, binary: str, payload: NotificationPayload) -> None:
        argv = [
            binary,
            "--app-name",
            self._app_name,
            "--urgency",
            "critical" if payload.require_interaction else "normal",
            "--wait",
            f"--action={DEFAULT_ACTION}=Open",
        ]
        argv += [f"--action={a.action}={a.title}" for a in payload.actions]
        argv += [payload.title, payload.body]

        self.close(payload.tag)
        proc = subprocess.Popen(
            argv,
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
            text=True,
        )
        with self._lock:
            self._procs[payload.tag] = proc

        threading.Thread(
            target=self._wait_for_action,
            args=(payload.tag, proc),
            name=f"notify-{payload.tag}",
            daemon=True,
        ).start()

    def _wait_for_action(self, tag: str, proc: subprocess.Popen[str]) -> None:
        try:
            out, _ = proc.communicate()
        except Exception:
            logger.debug("notify-send wait failed tag=%s", tag, exc_info=True)
            return

        with self._lock:
            if proc in self._closed:
                self._closed.discard(proc)
                return
            if self._procs.get(tag) is proc:
                del self._procs[tag]

        action = (out or "").strip()
        if not action or self._on_interaction is None:
            return
        try:
            self._on_interaction(tag, action)
        except Exception:
            logger.exception("Notification interaction handler failed tag=%s", tag)


class ConsoleOverlay:
    """Prints the visual alarm with its two actions (/ack, /snooze)."""

    def __init__(self, out: Callable[[str], Any] = print, *, snooze_minutes: int = 5) -> None:
        self._out = out
        self._snooze_minutes = snooze_minutes
        self.showing: str | None = None

    def show(self, task: Any, message: str) -> None:
        self.showing = str(getattr(task, "id", ""))
        bar = "!" * 60
        unit = "minute" if self._snooze_minutes == 1 else "minutes"
        self._out(
            f"\n{bar}\n"
            f"  TASK ALARM!\n"
            f"  {message}\n"
            f"  /ack    - OK, got it\n"
            f"  /snooze - remind me again in {self._snooze_minutes} {unit}\n"
            f"{bar}"
        )

    def close(self) -> None:
        if self.showing is None:
            return
        self.showing = None
        self._out("[ALARM] closed.")


class NoHaptics:
    def vibrate(self) -> bool:
        return False
