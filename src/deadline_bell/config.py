# src/deadline_bell/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- Every component accepts an injected settings object, so tests can pass
  a plain namespace instead of reading the environment.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "BELL"

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


def _env_optional_path(name: str) -> Path | None:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Connector / channel switches ----
    console_enabled: bool
    sound_enabled: bool
    notifications_enabled: bool

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    tasks_db_path: Path
    alarms_db_path: Path

    # ---- Alarm timing ----
    poll_interval_seconds: float
    helper_tick_seconds: float
    snooze_seconds: float
    auto_dismiss_seconds: float
    stale_after_seconds: float
    sound_repeat_seconds: float

    # ---- Sound sources ----
    primary_sound_path: Path | None
    backup_sound_path: Path | None

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "deadline-bell") or "deadline-bell"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/deadline_bell"))

        return Settings(
            app_name=app_name,
            log_level=log_level,
            console_enabled=_env_bool(_k("CONSOLE_ENABLED"), True),
            sound_enabled=_env_bool(_k("SOUND_ENABLED"), True),
            notifications_enabled=_env_bool(_k("NOTIFICATIONS_ENABLED"), True),
            data_dir=data_dir,
            tasks_db_path=_env_path(_k("TASKS_DB_PATH"), data_dir / "tasks.sqlite3"),
            alarms_db_path=_env_path(_k("ALARMS_DB_PATH"), data_dir / "alarms.sqlite3"),
            poll_interval_seconds=_env_float(_k("POLL_INTERVAL_SECONDS"), 10.0),
            helper_tick_seconds=_env_float(_k("HELPER_TICK_SECONDS"), 60.0),
            snooze_seconds=_env_float(_k("SNOOZE_SECONDS"), 5 * 60.0),
            auto_dismiss_seconds=_env_float(_k("AUTO_DISMISS_SECONDS"), 30.0),
            stale_after_seconds=_env_float(_k("STALE_AFTER_SECONDS"), 24 * 60 * 60.0),
            sound_repeat_seconds=_env_float(_k("SOUND_REPEAT_SECONDS"), 2.0),
            primary_sound_path=_env_optional_path(_k("PRIMARY_SOUND")),
            backup_sound_path=_env_optional_path(_k("BACKUP_SOUND")),
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
