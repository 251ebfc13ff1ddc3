"""
Task subsystem.

Components:
- task_models.py: data structures (Task, Priority, TaskFilter)
- task_store.py: SQLite-backed task collection
- task_api.py: CRUD helpers that notify the alarm lifecycle hooks
"""
