"""Deadline Bell: a local task manager that rings alarms before deadlines."""

__version__ = "0.1.0"
