# src/deadline_bell/core/sqlite_db.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
import threading
from collections.abc import Iterator
from pathlib import Path

from .errors import StorageUnavailable

logger = logging.getLogger(__name__)

MEMORY_PATH = ":memory:"


class SqliteDatabase:
    """
    Thin SQLite access helper shared by the stores.

    - file databases: each call opens its own short-lived connection
    - ":memory:" databases: one shared connection (otherwise data would vanish
      between calls), guarded by a lock
    - every sqlite3.Error surfaces as StorageUnavailable
    """

    def __init__(self, db_path: str | Path) -> None:
        self._path = str(db_path)
        self._shared: sqlite3.Connection | None = None
        self._lock = threading.RLock()

        if not self.in_memory:
            try:
                Path(self._path).parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise StorageUnavailable(f"cannot create directory for {self._path}: {e}") from e

    @property
    def path(self) -> str:
        return self._path

    @property
    def in_memory(self) -> bool:
        return self._path == MEMORY_PATH

    def _open(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._path, timeout=30.0, check_same_thread=not self.in_memory)
        conn.row_factory = sqlite3.Row
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    @contextlib.contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        try:
            if self.in_memory:
                with self._lock:
                    if self._shared is None:
                        self._shared = self._open()
                    yield self._shared
            else:
                conn = self._open()
                try:
                    yield conn
                finally:
                    conn.close()
        except sqlite3.Error as e:
            logger.warning("SQLite error on %s: %s", self._path, e)
            raise StorageUnavailable(f"{self._path}: {e}") from e

    def close(self) -> None:
        with self._lock:
            if self._shared is not None:
                self._shared.close()
                self._shared = None
