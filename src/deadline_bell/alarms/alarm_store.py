# src/deadline_bell/alarms/alarm_store.py

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

from ..core.errors import StorageUnavailable
from ..core.sqlite_db import MEMORY_PATH, SqliteDatabase
from .alarm_models import AlarmRecord

logger = logging.getLogger(__name__)


class AlarmStore:
    """
    Durable alarm store: one row per task id.

    - put() upserts by task id, so a new record always supersedes the old one
    - mark_triggered() is a conditional UPDATE and doubles as a claim:
      only the caller that flips the flag gets True
    - malformed rows are deleted when encountered
    """

    def __init__(self, db_path: str | Path = "alarms.sqlite3") -> None:
        self._db = SqliteDatabase(db_path)
        self._ensure_schema()
        logger.info("AlarmStore ready db=%s", self._db.path)

    @property
    def path(self) -> str:
        return self._db.path

    @property
    def in_memory(self) -> bool:
        return self._db.in_memory

    def close(self) -> None:
        self._db.close()

    def _ensure_schema(self) -> None:
        with self._db.connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS alarms (
                    task_id TEXT PRIMARY KEY,
                    reminder_fire_time REAL NOT NULL,
                    deadline REAL NOT NULL,
                    triggered INTEGER NOT NULL DEFAULT 0,
                    created_at REAL NOT NULL
                )
                """
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_alarms_due ON alarms(triggered, reminder_fire_time)"
            )
            conn.commit()

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> AlarmRecord:
        task_id = str(row["task_id"] or "").strip()
        if not task_id:
            raise ValueError("empty task_id")
        return AlarmRecord(
            task_id=task_id,
            reminder_fire_time=float(row["reminder_fire_time"]),
            deadline=float(row["deadline"]),
            triggered=bool(int(row["triggered"])),
            created_at=float(row["created_at"]),
        )

    def put(self, record: AlarmRecord) -> None:
        with self._db.connect() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO alarms(task_id, reminder_fire_time, deadline, triggered, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    record.task_id,
                    float(record.reminder_fire_time),
                    float(record.deadline),
                    1 if record.triggered else 0,
                    float(record.created_at),
                ),
            )
            conn.commit()
        logger.debug(
            "Alarm stored task_id=%s fire_at=%s", record.task_id, record.reminder_fire_time
        )

    def get(self, task_id: str) -> AlarmRecord | None:
        with self._db.connect() as conn:
            row = conn.execute("SELECT * FROM alarms WHERE task_id = ?", (str(task_id),)).fetchone()
            if row is None:
                return None
            try:
                return self._row_to_record(row)
            except (TypeError, ValueError):
                logger.warning("Deleting corrupt alarm row task_id=%r", row["task_id"])
                conn.execute("DELETE FROM alarms WHERE task_id IS ?", (row["task_id"],))
                conn.commit()
                return None

    def list_all(self) -> list[AlarmRecord]:
        out: list[AlarmRecord] = []
        corrupt: list[object] = []
        with self._db.connect() as conn:
            for row in conn.execute("SELECT * FROM alarms ORDER BY reminder_fire_time ASC"):
                try:
                    out.append(self._row_to_record(row))
                except (TypeError, ValueError):
                    corrupt.append(row["task_id"])

            if corrupt:
                logger.warning("Deleting %d corrupt alarm row(s): %r", len(corrupt), corrupt)
                conn.executemany(
                    "DELETE FROM alarms WHERE task_id IS ?", [(key,) for key in corrupt]
                )
                conn.commit()
        return out

    def clone_to_memory(self) -> AlarmStore:
        """In-memory copy of whatever can still be read from this store."""
        clone = AlarmStore(MEMORY_PATH)
        try:
            records = self.list_all()
        except StorageUnavailable:
            records = []
        for record in records:
            clone.put(record)
        return clone

    def mark_triggered(self, task_id: str) -> bool:
        """
        Flip triggered 0 -> 1.

        Returns True only for the call that performed the flip; repeated calls
        (or calls for a missing record) are a no-op returning False.
        """
        with self._db.connect() as conn:
            cur = conn.execute(
                "UPDATE alarms SET triggered = 1 WHERE task_id = ? AND triggered = 0",
                (str(task_id),),
            )
            conn.commit()
            return cur.rowcount == 1

    def remove(self, task_id: str) -> bool:
        with self._db.connect() as conn:
            cur = conn.execute("DELETE FROM alarms WHERE task_id = ?", (str(task_id),))
            conn.commit()
            return cur.rowcount == 1

    def remove_stale(self, now: float, max_age: float) -> int:
        """Delete triggered records and records whose fire time is older than now - max_age."""
        cutoff = float(now) - float(max_age)
        with self._db.connect() as conn:
            cur = conn.execute(
                """
                DELETE FROM alarms
                WHERE triggered != 0
                   OR reminder_fire_time < ?
                   OR typeof(reminder_fire_time) NOT IN ('real', 'integer')
                """,
                (cutoff,),
            )
            conn.commit()
            removed = int(cur.rowcount)
        if removed:
            logger.debug("Alarm GC removed=%d cutoff=%s", removed, cutoff)
        return removed
