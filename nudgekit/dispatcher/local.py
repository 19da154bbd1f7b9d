"""
Local Notification Dispatcher using APScheduler

Arms notifications as one-shot DateTrigger jobs on an in-process
AsyncIOScheduler. On fire, the notification is handed to a presenter
callable and, while the app is in the foreground, to received listeners.
"""

import inspect
import logging
import uuid
from collections import OrderedDict
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from apscheduler.events import EVENT_JOB_MISSED, JobExecutionEvent
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger

from .base import (
    DispatcherFailure,
    NotificationDispatcher,
    NotificationNotFound,
    PermissionDenied,
)
from .models import (
    DeliveredNotification,
    NotificationChannel,
    NotificationContent,
    NotificationResponse,
    ScheduledNotification,
)

logger = logging.getLogger(__name__)

PermissionHandler = Callable[[], Union[bool, Awaitable[bool]]]
Presenter = Callable[[ScheduledNotification], Any]

# Recently delivered notifications kept for tap handling
MAX_DELIVERED_HISTORY = 100


def _log_presenter(notification: ScheduledNotification) -> None:
    logger.info(
        f"[notification] {notification.content.title} - {notification.content.body}"
    )


class LocalDispatcher(NotificationDispatcher):
    """
    In-process dispatcher backed by APScheduler.

    Args:
        scheduler: AsyncIOScheduler to arm jobs on (created if omitted)
        platform: Host platform name; channels are only kept on "android"
        permission_handler: Called on request_permission(); may be async
        presenter: Called with each notification when it fires
        misfire_grace_seconds: How late a job may still fire after a stall
    """

    name = "local"

    def __init__(
        self,
        scheduler: Optional[AsyncIOScheduler] = None,
        platform: str = "desktop",
        permission_handler: Optional[PermissionHandler] = None,
        presenter: Optional[Presenter] = None,
        misfire_grace_seconds: int = 60,
    ):
        super().__init__()
        self._scheduler = scheduler or AsyncIOScheduler()
        self.platform = platform
        self._permission_handler = permission_handler
        self._presenter = presenter or _log_presenter
        self._misfire_grace_seconds = misfire_grace_seconds

        self._permission_granted = False
        self._channels: Dict[str, NotificationChannel] = {}
        self._pending: Dict[str, ScheduledNotification] = {}
        self._delivered: "OrderedDict[str, ScheduledNotification]" = OrderedDict()
        self.in_foreground = True

        self._scheduler.add_listener(self._on_job_missed, EVENT_JOB_MISSED)

    @property
    def supports_channels(self) -> bool:
        return self.platform == "android"

    @property
    def channels(self) -> Dict[str, NotificationChannel]:
        return dict(self._channels)

    @property
    def running(self) -> bool:
        return self._scheduler.running

    def start(self) -> None:
        """Start the underlying scheduler. Needs a running event loop."""
        if not self._scheduler.running:
            self._scheduler.start()
            logger.info("Local notification scheduler started")

    async def close(self) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("Local notification scheduler stopped")

    # ==================== PERMISSION / CHANNELS ====================

    async def request_permission(self) -> bool:
        if self._permission_granted:
            return True

        if self._permission_handler is None:
            granted = True
        else:
            result = self._permission_handler()
            if inspect.isawaitable(result):
                result = await result
            granted = bool(result)

        self._permission_granted = granted
        if not granted:
            logger.warning("Notification permission not granted")
        return granted

    async def configure_channel(self, channel: NotificationChannel) -> None:
        if not self.supports_channels:
            logger.debug(f"Ignoring channel {channel.id} on {self.platform}")
            return
        self._channels[channel.id] = channel
        logger.info(f"Configured notification channel {channel.id}")

    # ==================== SCHEDULING ====================

    async def schedule(
        self,
        content: NotificationContent,
        trigger_at: datetime,
        channel_id: Optional[str] = None,
    ) -> str:
        if not self._permission_granted:
            raise PermissionDenied("Notification permission was never granted")

        if not self.supports_channels:
            channel_id = None

        self.start()
        notification_id = uuid.uuid4().hex
        notification = ScheduledNotification(
            id=notification_id,
            trigger_at=trigger_at,
            content=content,
            channel_id=channel_id,
        )

        try:
            self._scheduler.add_job(
                self._deliver,
                DateTrigger(run_date=trigger_at),
                args=[notification_id],
                id=notification_id,
                misfire_grace_time=self._misfire_grace_seconds,
                replace_existing=True,
            )
        except (ValueError, LookupError) as e:
            raise DispatcherFailure(f"Failed to arm notification: {e}") from e

        self._pending[notification_id] = notification
        return notification_id

    async def cancel(self, notification_id: str) -> None:
        if self._pending.pop(notification_id, None) is None:
            raise NotificationNotFound(notification_id)
        try:
            self._scheduler.remove_job(notification_id)
        except JobLookupError:
            # Fired between the pop and the removal
            pass

    async def cancel_all(self) -> None:
        for notification_id in list(self._pending):
            self._pending.pop(notification_id, None)
            try:
                self._scheduler.remove_job(notification_id)
            except JobLookupError:
                pass

    async def list_scheduled(self) -> List[ScheduledNotification]:
        return sorted(self._pending.values(), key=lambda n: n.trigger_at)

    # ==================== DELIVERY ====================

    def _on_job_missed(self, event: JobExecutionEvent) -> None:
        """APScheduler drops jobs missed past the grace time; forget them too."""
        notification = self._pending.pop(event.job_id, None)
        if notification is not None:
            logger.warning(
                f"Notification {event.job_id} missed its trigger at "
                f"{notification.trigger_at.isoformat()} and was dropped"
            )

    async def _deliver(self, notification_id: str) -> None:
        """Job callback: present the notification and notify listeners."""
        notification = self._pending.pop(notification_id, None)
        if notification is None:
            return

        self._delivered[notification_id] = notification
        while len(self._delivered) > MAX_DELIVERED_HISTORY:
            self._delivered.popitem(last=False)

        result = self._presenter(notification)
        if inspect.isawaitable(result):
            await result

        if self.in_foreground:
            await self.emit_received(
                DeliveredNotification(notification=notification, delivered_at=datetime.now())
            )

    async def handle_tap(self, notification_id: str, action_id: str = "default") -> None:
        """
        Report that the user tapped a delivered notification.

        Raises:
            NotificationNotFound: id was never delivered (or aged out)
        """
        notification = self._delivered.get(notification_id)
        if notification is None:
            raise NotificationNotFound(notification_id)
        await self.emit_response(
            NotificationResponse(notification=notification, action_id=action_id)
        )
