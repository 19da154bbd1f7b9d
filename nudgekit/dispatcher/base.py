"""
Base Notification Dispatcher

Abstract boundary to the host notification subsystem.
Each backend (in-process APScheduler, mobile bridge, ...) implements this interface.
"""

import inspect
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from .models import (
    DeliveredNotification,
    NotificationChannel,
    NotificationContent,
    NotificationResponse,
    ScheduledNotification,
    Subscription,
)

logger = logging.getLogger(__name__)

ResponseListener = Callable[[NotificationResponse], Any]
ReceivedListener = Callable[[DeliveredNotification], Any]


class NotificationError(Exception):
    """Base exception for notification errors."""
    pass


class PermissionDenied(NotificationError):
    """Notification permission was never granted."""
    pass


class DispatcherFailure(NotificationError):
    """The host failed to schedule, cancel or list notifications."""
    pass


class NotificationNotFound(DispatcherFailure):
    """No pending notification with this id."""
    def __init__(self, notification_id: str):
        super().__init__(f"Notification {notification_id} is not pending")
        self.notification_id = notification_id


class NotificationDispatcher(ABC):
    """
    Abstract base class for notification dispatchers.

    A dispatcher arms and fires local notifications:
    - Permission handling
    - Scheduling at an absolute local time
    - Cancellation and listing of pending triggers
    - Delivery and tap listeners

    Usage:
        dispatcher = LocalDispatcher()
        if await dispatcher.request_permission():
            notification_id = await dispatcher.schedule(content, trigger_at)
    """

    name: str = "base"
    supports_channels: bool = False

    def __init__(self):
        self._response_listeners: Dict[int, ResponseListener] = {}
        self._received_listeners: Dict[int, ReceivedListener] = {}
        self._next_listener_id = 0

    @abstractmethod
    async def request_permission(self) -> bool:
        """
        Ask the host for notification permission.

        Returns:
            True if granted (immediately or previously)
        """
        pass

    async def configure_channel(self, channel: NotificationChannel) -> None:
        """Register a notification channel. No-op where channels do not exist."""
        return None

    @abstractmethod
    async def schedule(
        self,
        content: NotificationContent,
        trigger_at: datetime,
        channel_id: Optional[str] = None,
    ) -> str:
        """
        Arm a notification.

        Args:
            content: Title, body and data
            trigger_at: Naive local time to fire at
            channel_id: Channel to post on (Android)

        Returns:
            Opaque notification id

        Raises:
            PermissionDenied: permission was never granted
            DispatcherFailure: the host rejected the request
        """
        pass

    @abstractmethod
    async def cancel(self, notification_id: str) -> None:
        """
        Cancel one pending notification.

        Raises:
            NotificationNotFound: id is not pending
        """
        pass

    @abstractmethod
    async def cancel_all(self) -> None:
        """Cancel every pending notification."""
        pass

    @abstractmethod
    async def list_scheduled(self) -> List[ScheduledNotification]:
        """Return pending notifications ordered by trigger time."""
        pass

    async def close(self) -> None:
        """Release host resources."""
        return None

    # ==================== LISTENERS ====================

    def on_response(self, callback: ResponseListener) -> Subscription:
        """Register a listener for taps on delivered notifications."""
        return self._subscribe(self._response_listeners, callback)

    def on_received_foreground(self, callback: ReceivedListener) -> Subscription:
        """Register a listener for notifications delivered while in the foreground."""
        return self._subscribe(self._received_listeners, callback)

    @property
    def listener_count(self) -> int:
        return len(self._response_listeners) + len(self._received_listeners)

    def _subscribe(self, registry: Dict[int, Callable], callback: Callable) -> Subscription:
        listener_id = self._next_listener_id
        self._next_listener_id += 1
        registry[listener_id] = callback
        return Subscription(lambda: registry.pop(listener_id, None))

    async def _emit(self, registry: Dict[int, Callable], event: Any) -> None:
        """Call every listener; a failing listener does not stop the others."""
        for callback in list(registry.values()):
            try:
                result = callback(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Notification listener {callback!r} failed: {e}", exc_info=True)

    async def emit_response(self, response: NotificationResponse) -> None:
        await self._emit(self._response_listeners, response)

    async def emit_received(self, delivered: DeliveredNotification) -> None:
        await self._emit(self._received_listeners, delivered)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name}>"
