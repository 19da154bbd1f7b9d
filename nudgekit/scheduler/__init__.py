"""
nudgekit - Scheduler

Decides when engagement nudges and reminders fire.
"""
from .models import (
    EngagementResult,
    EngagementScheduleRecord,
    EngagementState,
    InvalidSchedule,
    Reminder,
)
from .timewindow import (
    AM_WINDOW,
    PM_WINDOW,
    DailySlots,
    SlotKind,
    TimeWindow,
    compute_daily_slots,
)
from .messages import ENGAGEMENT_MESSAGES, EngagementMessage
from .engagement import EngagementScheduler
from .reminders import ReminderScheduler

__all__ = [
    "EngagementResult",
    "EngagementScheduleRecord",
    "EngagementState",
    "InvalidSchedule",
    "Reminder",
    "AM_WINDOW",
    "PM_WINDOW",
    "DailySlots",
    "SlotKind",
    "TimeWindow",
    "compute_daily_slots",
    "ENGAGEMENT_MESSAGES",
    "EngagementMessage",
    "EngagementScheduler",
    "ReminderScheduler",
]
