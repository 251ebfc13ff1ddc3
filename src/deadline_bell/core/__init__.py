"""
Core building blocks shared by the task and alarm subsystems.

Components:
- errors.py: error kinds raised across the app
- ports.py: Protocol interfaces the core depends on
- sqlite_db.py: SQLite connection helper used by the stores
- state.py: AppState, the explicit application context
"""
