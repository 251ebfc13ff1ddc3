# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is read from BELL_* environment variables, optionally
from a local .env file (gitignored; real env vars always win).

Booleans accept 1/true/yes/y/on. Unparsable numbers fall back to the default.
"""

ENV_VARS = {
    # App / logging
    "BELL_APP_NAME": "App name shown in notifications and the console (default: deadline-bell).",
    "BELL_LOG_LEVEL": "Console logging level (default: INFO). The log file always gets DEBUG.",
    # Switches
    "BELL_CONSOLE_ENABLED": "Run the interactive console (true/false, default: true).",
    "BELL_SOUND_ENABLED": "Play the audible alarm (true/false, default: true).",
    "BELL_NOTIFICATIONS_ENABLED": "Show system notifications (true/false, default: true).",
    # Paths (gitignored)
    "BELL_DATA_DIR": "Local data directory (default: .local/deadline_bell).",
    "BELL_TASKS_DB_PATH": "Task collection SQLite path (default: <data_dir>/tasks.sqlite3).",
    "BELL_ALARMS_DB_PATH": "Alarm record SQLite path (default: <data_dir>/alarms.sqlite3).",
    # Sound sources
    "BELL_PRIMARY_SOUND": "Optional WAV played first when an alarm rings.",
    "BELL_BACKUP_SOUND": "Optional WAV used when the primary one cannot be played.",
    # Alarm timing (seconds)
    "BELL_POLL_INTERVAL_SECONDS": "How often the foreground re-checks due alarms (default: 10).",
    "BELL_HELPER_TICK_SECONDS": "How often the background helper asks for a check (default: 60).",
    "BELL_SNOOZE_SECONDS": "Snooze delay (default: 300).",
    "BELL_AUTO_DISMISS_SECONDS": "Unattended alarms are closed after this long (default: 30).",
    "BELL_STALE_AFTER_SECONDS": "Alarm records older than this are cleaned up (default: 86400).",
    "BELL_SOUND_REPEAT_SECONDS": "Pause between sound repetitions while ringing (default: 2).",
}
