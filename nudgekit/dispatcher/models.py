"""
nudgekit - Dispatcher Models

Data classes exchanged with the notification dispatcher.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional


class NotificationCategory(str, Enum):
    """What kind of notification this is."""
    REMINDER = "reminder"
    ENGAGEMENT_AM = "engagement_am"
    ENGAGEMENT_PM = "engagement_pm"


class NotificationPriority(str, Enum):
    """Host delivery priority."""
    DEFAULT = "default"
    HIGH = "high"


@dataclass
class NotificationContent:
    """What the user sees, plus data carried through to delivery."""
    title: str
    body: str
    category: NotificationCategory
    data: Dict[str, Any] = field(default_factory=dict)
    sound: bool = True
    priority: NotificationPriority = NotificationPriority.DEFAULT

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "body": self.body,
            "category": self.category.value,
            "data": self.data,
            "sound": self.sound,
            "priority": self.priority.value,
        }


@dataclass
class ScheduledNotification:
    """One pending trigger, as reported by the dispatcher."""
    id: str
    trigger_at: datetime
    content: NotificationContent
    channel_id: Optional[str] = None

    @property
    def category(self) -> NotificationCategory:
        return self.content.category

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "trigger_at": self.trigger_at.isoformat(),
            "channel_id": self.channel_id,
            **self.content.to_dict(),
        }


@dataclass
class NotificationChannel:
    """Android notification channel definition."""
    id: str
    name: str
    importance: str = "high"
    vibration_pattern: List[int] = field(default_factory=list)
    light_color: Optional[str] = None
    sound: Optional[str] = "default"


@dataclass
class DeliveredNotification:
    """A notification that fired while the app was in the foreground."""
    notification: ScheduledNotification
    delivered_at: datetime


@dataclass
class NotificationResponse:
    """The user interacted with a delivered notification."""
    notification: ScheduledNotification
    action_id: str = "default"


@dataclass
class Subscription:
    """
    Listener registration handle.

    Call remove() on teardown; calling it twice is harmless.
    """
    _remove: Optional[Callable[[], None]] = field(default=None, repr=False)

    @property
    def active(self) -> bool:
        return self._remove is not None

    def remove(self) -> None:
        if self._remove is not None:
            self._remove()
            self._remove = None
