"""
nudgekit - Reminder Scheduler

One notification per caller-owned reminder. Nothing is persisted here: the
caller keeps the returned id if it wants to cancel or reschedule later.
"""
import asyncio
from datetime import datetime, timedelta
from typing import Callable, Optional

from .models import InvalidSchedule, Reminder
from ..config.logging import get_logger, log_error, log_schedule_event
from ..config.settings import ReminderSettings
from ..dispatcher.base import DispatcherFailure, NotificationDispatcher, PermissionDenied
from ..dispatcher.models import (
    NotificationCategory,
    NotificationContent,
    NotificationPriority,
)

logger = get_logger("scheduler.reminders")

REMINDER_TYPE = "reminder"


class ReminderScheduler:
    """
    Reminder Scheduler - user-authored reminders.

    Operations:
        - schedule_reminder(): Arm one notification, returns its id
        - cancel(): Best-effort cancel of one id
        - cancel_all(): Best-effort cancel of everything pending
    """

    def __init__(
        self,
        dispatcher: NotificationDispatcher,
        config: Optional[ReminderSettings] = None,
        clock: Callable[[], datetime] = datetime.now,
        lock: Optional[asyncio.Lock] = None,
        channel_id: Optional[str] = None,
    ):
        self._dispatcher = dispatcher
        self._config = config or ReminderSettings()
        self._clock = clock
        self._lock = lock or asyncio.Lock()
        self._channel_id = channel_id

    @property
    def min_buffer(self) -> timedelta:
        return timedelta(seconds=self._config.min_buffer_seconds)

    def effective_trigger(self, scheduled_for: datetime, now: datetime) -> datetime:
        """
        Trigger time after validation and lead-time buffering.

        Raises:
            InvalidSchedule: scheduled_for is at or before now
        """
        if scheduled_for <= now:
            raise InvalidSchedule(scheduled_for, now)
        if scheduled_for - now < self.min_buffer:
            logger.debug(
                f"Trigger {scheduled_for.isoformat()} is under {self.min_buffer} away, "
                f"moving to now + buffer"
            )
            return now + self.min_buffer
        return scheduled_for

    async def schedule_reminder(self, reminder: Reminder) -> str:
        """
        Schedule a notification for a reminder.

        Args:
            reminder: Reminder with an absolute scheduled_for time

        Returns:
            Notification id

        Raises:
            InvalidSchedule: scheduled_for is at or before now
            PermissionDenied: notifications are not permitted
            DispatcherFailure: the host refused the notification
        """
        async with self._lock:
            now = self._clock()
            try:
                trigger_at = self.effective_trigger(reminder.scheduled_for, now)
            except InvalidSchedule:
                logger.warning(
                    f"Cannot schedule reminder {reminder.id} for past time "
                    f"{reminder.scheduled_for.isoformat()}"
                )
                raise

            try:
                granted = await self._dispatcher.request_permission()
            except Exception as e:
                log_error(logger, e, f"permission request for reminder {reminder.id}")
                raise DispatcherFailure(str(e)) from e
            if not granted:
                raise PermissionDenied("Notification permission not granted")

            content = NotificationContent(
                title=reminder.title,
                body=reminder.notification_body(),
                category=NotificationCategory.REMINDER,
                data={"reminderId": reminder.id, "type": REMINDER_TYPE},
                sound=True,
                priority=NotificationPriority.HIGH,
            )

            try:
                notification_id = await self._dispatcher.schedule(
                    content, trigger_at, channel_id=self._channel_id
                )
            except (PermissionDenied, DispatcherFailure) as e:
                log_error(logger, e, f"scheduling reminder {reminder.id}")
                raise
            except Exception as e:
                log_error(logger, e, f"scheduling reminder {reminder.id}")
                raise DispatcherFailure(str(e)) from e

            log_schedule_event(
                logger, "scheduled", notification_id, NotificationCategory.REMINDER.value,
                trigger_at, reminder_id=reminder.id,
            )

            if self._config.verify_after_schedule:
                await self._verify_pending(notification_id)

            return notification_id

    async def cancel(self, notification_id: str) -> bool:
        """Cancel one notification. Failures are logged, never raised."""
        try:
            await self._dispatcher.cancel(notification_id)
        except Exception as e:
            logger.warning(f"Failed to cancel notification {notification_id}: {e}")
            return False
        log_schedule_event(logger, "cancelled", notification_id, "any")
        return True

    async def cancel_all(self) -> bool:
        """Cancel every pending notification. Failures are logged, never raised."""
        async with self._lock:
            try:
                await self._dispatcher.cancel_all()
            except Exception as e:
                log_error(logger, e, "cancelling all notifications")
                return False
            logger.info("Cancelled all scheduled notifications")
            return True

    async def _verify_pending(self, notification_id: str) -> None:
        """Warn when the host silently dropped what was just scheduled."""
        try:
            pending = await self._dispatcher.list_scheduled()
        except Exception as e:
            logger.warning(f"Could not list scheduled notifications: {e}")
            return
        if not any(n.id == notification_id for n in pending):
            logger.warning(
                f"Notification {notification_id} is not pending after scheduling "
                f"({len(pending)} pending); the host may not support scheduled delivery"
            )
