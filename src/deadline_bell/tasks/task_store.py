# src/deadline_bell/tasks/task_store.py

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

from ..core.errors import StorageUnavailable
from ..core.sqlite_db import MEMORY_PATH, SqliteDatabase
from .task_models import Priority, Task

logger = logging.getLogger(__name__)


class TaskStore:
    """
    SQLite task collection keyed by task id.

    The schema is intentionally simple and migration-safe:
    - create table if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Display order is computed by callers; the table keeps no ordering.
    """

    def __init__(self, db_path: str | Path = "tasks.sqlite3") -> None:
        self._db = SqliteDatabase(db_path)
        self._ensure_schema()
        logger.info("TaskStore ready db=%s total=%s", self._db.path, self.count_tasks())

    @property
    def path(self) -> str:
        return self._db.path

    @property
    def in_memory(self) -> bool:
        return self._db.in_memory

    def close(self) -> None:
        self._db.close()

    # ---- low-level helpers ----

    def _ensure_schema(self) -> None:
        with self._db.connect() as conn:
            cur = conn.cursor()
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id TEXT PRIMARY KEY,
                    title TEXT NOT NULL,
                    description TEXT NOT NULL DEFAULT '',
                    deadline REAL NOT NULL,
                    priority TEXT NOT NULL DEFAULT 'medium',
                    reminder_offset_minutes INTEGER NOT NULL DEFAULT 0,
                    completed INTEGER NOT NULL DEFAULT 0,
                    completed_at REAL,
                    created_at REAL NOT NULL
                )
                """
            )

            cur.execute("PRAGMA table_info(tasks)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE tasks ADD COLUMN {name} {decl}")
                logger.info("TaskStore migration: added column %s", name)

            add_col("description", "TEXT NOT NULL DEFAULT ''")
            add_col("priority", "TEXT NOT NULL DEFAULT 'medium'")
            add_col("reminder_offset_minutes", "INTEGER NOT NULL DEFAULT 0")
            add_col("completed", "INTEGER NOT NULL DEFAULT 0")
            add_col("completed_at", "REAL")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_deadline ON tasks(completed, deadline)")
            conn.commit()

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        return Task(
            id=str(row["id"]),
            title=str(row["title"] or ""),
            description=str(row["description"] or ""),
            deadline=float(row["deadline"]),
            priority=Priority.from_db(row["priority"]),
            reminder_offset_minutes=max(0, int(row["reminder_offset_minutes"] or 0)),
            completed=bool(row["completed"]),
            completed_at=float(row["completed_at"]) if row["completed_at"] is not None else None,
            created_at=float(row["created_at"] or 0.0),
        )

    @staticmethod
    def _task_params(task: Task) -> tuple:
        return (
            task.title,
            task.description,
            float(task.deadline),
            task.priority.value,
            int(task.reminder_offset_minutes),
            1 if task.completed else 0,
            task.completed_at,
            float(task.created_at),
            task.id,
        )

    # ---- public API ----

    def count_tasks(self) -> int:
        with self._db.connect() as conn:
            (n,) = conn.execute("SELECT COUNT(*) FROM tasks").fetchone()
            return int(n)

    def add_task(self, task: Task) -> None:
        with self._db.connect() as conn:
            conn.execute(
                """
                INSERT INTO tasks(
                    title, description, deadline, priority, reminder_offset_minutes,
                    completed, completed_at, created_at, id
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                self._task_params(task),
            )
            conn.commit()
        logger.debug("Task added id=%s deadline=%s", task.id, task.deadline)

    def save_task(self, task: Task) -> None:
        with self._db.connect() as conn:
            conn.execute(
                """
                UPDATE tasks
                SET title = ?, description = ?, deadline = ?, priority = ?,
                    reminder_offset_minutes = ?, completed = ?, completed_at = ?,
                    created_at = ?
                WHERE id = ?
                """,
                self._task_params(task),
            )
            conn.commit()

    def get_task(self, task_id: str) -> Task | None:
        with self._db.connect() as conn:
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (str(task_id),)).fetchone()
            return self._row_to_task(row) if row else None

    def list_tasks(self) -> list[Task]:
        with self._db.connect() as conn:
            rows = conn.execute("SELECT * FROM tasks").fetchall()
            return [self._row_to_task(r) for r in rows]

    def delete_task(self, task_id: str) -> bool:
        with self._db.connect() as conn:
            cur = conn.execute("DELETE FROM tasks WHERE id = ?", (str(task_id),))
            conn.commit()
            return cur.rowcount == 1

    def clone_to_memory(self) -> TaskStore:
        """In-memory copy of whatever can still be read from this store."""
        clone = TaskStore(MEMORY_PATH)
        try:
            tasks = self.list_tasks()
        except StorageUnavailable:
            tasks = []
        for task in tasks:
            clone.add_task(task)
        return clone
