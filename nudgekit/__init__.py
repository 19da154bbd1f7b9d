"""
nudgekit - local notification scheduling engine

Daily re-engagement nudges and user reminders on top of a pluggable
notification dispatcher.
"""
from .engine import NotificationEngine
from .dispatcher import (
    LocalDispatcher,
    NotificationDispatcher,
    NotificationError,
    PermissionDenied,
    DispatcherFailure,
)
from .scheduler import InvalidSchedule, Reminder, compute_daily_slots
from .storage import PersistenceFailure, SQLiteKeyValueStore

__version__ = "0.1.0"

__all__ = [
    "NotificationEngine",
    "LocalDispatcher",
    "NotificationDispatcher",
    "NotificationError",
    "PermissionDenied",
    "DispatcherFailure",
    "InvalidSchedule",
    "PersistenceFailure",
    "Reminder",
    "SQLiteKeyValueStore",
    "compute_daily_slots",
]
