"""
API Models (Pydantic)

Request/Response schemas for the shell bridge.
"""

from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from ..dispatcher.models import ScheduledNotification
from ..scheduler.models import EngagementResult, Reminder


# =============================================================================
# Reminders
# =============================================================================

class ReminderCreate(BaseModel):
    """Schedule a notification for a reminder."""
    id: int
    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None
    scheduled_for: datetime
    profile_name: Optional[str] = None

    def to_reminder(self) -> Reminder:
        scheduled_for = self.scheduled_for
        if scheduled_for.tzinfo is not None:
            # Engine works in naive local wall-clock time
            scheduled_for = scheduled_for.astimezone().replace(tzinfo=None)
        return Reminder(
            id=self.id,
            title=self.title,
            description=self.description,
            scheduled_for=scheduled_for,
            profile_name=self.profile_name,
        )


class ReminderScheduled(BaseModel):
    notification_id: str
    reminder_id: int


# =============================================================================
# Notifications
# =============================================================================

class NotificationOut(BaseModel):
    id: str
    trigger_at: datetime
    category: str
    title: str
    body: str
    data: Dict[str, Any] = Field(default_factory=dict)
    channel_id: Optional[str] = None

    @classmethod
    def from_scheduled(cls, notification: ScheduledNotification) -> "NotificationOut":
        return cls(
            id=notification.id,
            trigger_at=notification.trigger_at,
            category=notification.category.value,
            title=notification.content.title,
            body=notification.content.body,
            data=notification.content.data,
            channel_id=notification.channel_id,
        )


class NotificationList(BaseModel):
    notifications: List[NotificationOut]
    total: int


class CancelResult(BaseModel):
    success: bool


# =============================================================================
# Engagement
# =============================================================================

class EngagementStatus(BaseModel):
    enabled: bool
    state: str
    scheduled_ids: List[str] = Field(default_factory=list)
    scheduled_for_date: Optional[date] = None


class EngagementRun(BaseModel):
    scheduled: bool
    already_scheduled: bool = False
    reason: Optional[str] = None
    scheduled_ids: List[str] = Field(default_factory=list)
    scheduled_for_date: Optional[date] = None

    @classmethod
    def from_result(cls, result: EngagementResult) -> "EngagementRun":
        record = result.record
        return cls(
            scheduled=result.scheduled,
            already_scheduled=result.already_scheduled,
            reason=result.reason,
            scheduled_ids=list(record.scheduled_ids) if record else [],
            scheduled_for_date=record.scheduled_for_date if record else None,
        )
