"""
Alarm subsystem.

Components:
- alarm_models.py: AlarmRecord and reconciliation results
- alarm_store.py: durable alarm records keyed by task id
- alarm_scheduler.py: computes fire times, writes records, arms wake-ups
- reconciler.py: the single gate deciding whether a due alarm fires
- presenter.py: notification, sound, overlay and haptic side effects + snooze
- lifecycle.py: task lifecycle hooks called by the CRUD layer
- notifier.py / sound.py: concrete presentation channels
"""
