"""
nudgekit - Scheduler Models

Data classes for engagement records and reminders.
"""
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from ..dispatcher.base import NotificationError


class InvalidSchedule(NotificationError):
    """Requested trigger time is at or before now."""
    def __init__(self, scheduled_for: datetime, now: datetime):
        super().__init__(
            f"Cannot schedule notification for past time {scheduled_for.isoformat()} "
            f"(now {now.isoformat()})"
        )
        self.scheduled_for = scheduled_for
        self.now = now


class EngagementState(str, Enum):
    """Engagement scheduler state."""
    UNINITIALIZED = "uninitialized"
    IDLE = "idle"
    SCHEDULED = "scheduled"
    DISABLED = "disabled"


@dataclass
class EngagementScheduleRecord:
    """
    The day's engagement plan.

    `scheduled_ids` holds 0-2 notification ids, AM slot first.
    A record is valid only for `scheduled_for_date`.
    """
    scheduled_ids: List[str]
    scheduled_for_date: date

    def is_valid_for(self, day: date) -> bool:
        return self.scheduled_for_date == day

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scheduled_ids": list(self.scheduled_ids),
            "scheduled_for_date": self.scheduled_for_date.isoformat(),
        }


@dataclass
class EngagementResult:
    """Outcome of an ensure_scheduled_for_today() pass."""
    scheduled: bool
    record: Optional[EngagementScheduleRecord] = None
    already_scheduled: bool = False
    reason: Optional[str] = None

    @classmethod
    def done(cls, record: EngagementScheduleRecord) -> "EngagementResult":
        return cls(scheduled=True, record=record)

    @classmethod
    def unchanged(cls, record: EngagementScheduleRecord) -> "EngagementResult":
        return cls(scheduled=True, record=record, already_scheduled=True)

    @classmethod
    def skipped(cls, reason: str) -> "EngagementResult":
        return cls(scheduled=False, reason=reason)


@dataclass
class Reminder:
    """
    Caller-owned reminder.

    The engine derives one notification per reminder and does not persist it.
    """
    id: int
    title: str
    scheduled_for: datetime
    description: Optional[str] = None
    profile_name: Optional[str] = None

    def notification_body(self) -> str:
        if self.description:
            return self.description
        if self.profile_name:
            return f"Reminder about {self.profile_name}"
        return "You have a reminder"
