# src/deadline_bell/core/state.py

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

from .errors import StorageUnavailable
from .ports import AlarmRepo, TaskRepo

logger = logging.getLogger(__name__)


def storage_notice(label: str, path: object) -> str:
    return (
        f"Warning: {label} cannot be saved to disk ({path}). "
        "Changes will be lost when the app exits."
    )


@dataclass
class AppState:
    """
    Explicit application context.

    Owns the Task collection, the durable alarm store and the in-memory
    wake-up handles. Scheduler, reconciler and presenter hold a reference
    to it instead of reading process-wide globals.
    """

    settings: object

    task_store: TaskRepo
    alarm_store: AlarmRepo

    # taskId -> pending deadline wake-up
    wakeups: dict[str, asyncio.TimerHandle] = field(default_factory=dict)
    # taskId -> pending snooze re-fire
    snoozes: dict[str, asyncio.TimerHandle] = field(default_factory=dict)

    # User-facing warnings not yet shown by the console (e.g. storage fallback).
    notices: list[str] = field(default_factory=list)

    def setting(self, name: str, default: float) -> float:
        return float(getattr(self.settings, name, default))

    def pop_notices(self) -> list[str]:
        notices, self.notices = self.notices, []
        return notices

    def fall_back_to_memory(self, attr: str, label: str, error: StorageUnavailable) -> Any:
        """
        Replace a failing durable store ("task_store" or "alarm_store") with an
        in-memory copy for the rest of the session and queue a user notice.

        Re-raises the error when the store already is in memory.
        """
        store = getattr(self, attr)
        if getattr(store, "in_memory", False):
            raise error

        logger.warning("%s storage failed (%s); continuing in memory", label, error)
        replacement = store.clone_to_memory()
        setattr(self, attr, replacement)
        self.notices.append(storage_notice(label, getattr(store, "path", attr)))
        return replacement
