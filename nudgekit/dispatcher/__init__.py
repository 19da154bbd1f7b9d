"""
nudgekit - Notification Dispatchers

Boundary to the host notification subsystem.
"""
from .base import (
    NotificationDispatcher,
    NotificationError,
    PermissionDenied,
    DispatcherFailure,
    NotificationNotFound,
)
from .models import (
    NotificationCategory,
    NotificationPriority,
    NotificationContent,
    NotificationChannel,
    ScheduledNotification,
    DeliveredNotification,
    NotificationResponse,
    Subscription,
)
from .local import LocalDispatcher

__all__ = [
    # Base
    "NotificationDispatcher",
    "NotificationError",
    "PermissionDenied",
    "DispatcherFailure",
    "NotificationNotFound",
    # Models
    "NotificationCategory",
    "NotificationPriority",
    "NotificationContent",
    "NotificationChannel",
    "ScheduledNotification",
    "DeliveredNotification",
    "NotificationResponse",
    "Subscription",
    # Implementations
    "LocalDispatcher",
]
