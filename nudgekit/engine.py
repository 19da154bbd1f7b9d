"""
nudgekit - Notification Engine

Single owned entry point for the application shell. Construct one per process
and pass it to callers; call init() on startup and shutdown() on teardown.
"""
import asyncio
import random
from datetime import datetime
from typing import Callable, List, Optional

from .config.logging import get_logger, log_error
from .config.settings import Settings, settings as default_settings
from .dispatcher.base import NotificationDispatcher, PermissionDenied, ReceivedListener, ResponseListener
from .dispatcher.models import NotificationChannel, ScheduledNotification, Subscription
from .scheduler.engagement import EngagementScheduler
from .scheduler.models import EngagementResult, EngagementState, Reminder
from .scheduler.reminders import ReminderScheduler
from .storage import KeyValueStore

logger = get_logger("engine")


class NotificationEngine:
    """
    Notification scheduling engine.

    Wires one dispatcher and one key-value store into the engagement and
    reminder schedulers. Every mutating operation is serialized through a
    single asyncio.Lock.

    Usage:
        engine = NotificationEngine(LocalDispatcher(), SQLiteKeyValueStore())
        await engine.init()
        await engine.restore_from_persistence()
        await engine.ensure_scheduled_for_today()
    """

    def __init__(
        self,
        dispatcher: NotificationDispatcher,
        store: KeyValueStore,
        settings: Optional[Settings] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._dispatcher = dispatcher
        self._store = store
        self._settings = settings or default_settings
        self._lock = asyncio.Lock()
        self._initialized = False

        channel_id = self._settings.channel.id
        self.engagement = EngagementScheduler(
            dispatcher,
            store,
            config=self._settings.engagement,
            rng=rng,
            clock=clock,
            lock=self._lock,
            channel_id=channel_id,
        )
        self.reminders = ReminderScheduler(
            dispatcher,
            config=self._settings.reminders,
            clock=clock,
            lock=self._lock,
            channel_id=channel_id,
        )

    @property
    def dispatcher(self) -> NotificationDispatcher:
        return self._dispatcher

    @property
    def store(self) -> KeyValueStore:
        return self._store

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def engagement_state(self) -> EngagementState:
        return self.engagement.state

    # ==================== LIFECYCLE ====================

    async def init(self) -> bool:
        """
        Request permission and configure the notification channel.

        Returns:
            True once notifications are usable
        """
        if self._initialized:
            return True

        try:
            granted = await self._dispatcher.request_permission()
            if not granted:
                logger.warning("Push notification permissions not granted")
                return False

            channel = self._settings.channel
            await self._dispatcher.configure_channel(NotificationChannel(
                id=channel.id,
                name=channel.name,
                importance=channel.importance,
                vibration_pattern=list(channel.vibration_pattern),
                light_color=channel.light_color,
                sound=channel.sound,
            ))
        except Exception as e:
            log_error(logger, e, "notification engine init")
            return False

        self._initialized = True
        logger.info("Notification engine initialized")
        return True

    async def shutdown(self) -> None:
        """Release the dispatcher."""
        await self._dispatcher.close()
        self._initialized = False

    # ==================== ENGAGEMENT ====================

    async def restore_from_persistence(self):
        return await self.engagement.restore_from_persistence()

    async def ensure_scheduled_for_today(self) -> EngagementResult:
        if not self._initialized and not await self.init():
            logger.warning("Cannot schedule engagement notifications - engine not initialized")
            return EngagementResult.skipped("not_initialized")
        return await self.engagement.ensure_scheduled_for_today()

    async def disable(self) -> None:
        await self.engagement.disable()

    # ==================== REMINDERS ====================

    async def schedule_reminder(self, reminder: Reminder) -> str:
        if not self._initialized and not await self.init():
            raise PermissionDenied("Notifications not initialized")
        return await self.reminders.schedule_reminder(reminder)

    async def cancel(self, notification_id: str) -> bool:
        return await self.reminders.cancel(notification_id)

    async def cancel_all(self) -> bool:
        return await self.reminders.cancel_all()

    async def list_scheduled(self) -> List[ScheduledNotification]:
        """Pending notifications; empty on failure."""
        try:
            return await self._dispatcher.list_scheduled()
        except Exception as e:
            log_error(logger, e, "listing scheduled notifications")
            return []

    # ==================== LISTENERS ====================

    def on_response(self, callback: ResponseListener) -> Subscription:
        return self._dispatcher.on_response(callback)

    def on_received_foreground(self, callback: ReceivedListener) -> Subscription:
        return self._dispatcher.on_received_foreground(callback)
