"""
Shared pytest fixtures for the nudgekit test suite.
"""
import random
from datetime import datetime, timedelta
from typing import Dict, List, Optional

import pytest

from nudgekit.config.settings import Settings
from nudgekit.dispatcher import (
    DispatcherFailure,
    NotificationDispatcher,
    NotificationNotFound,
    PermissionDenied,
    ScheduledNotification,
)
from nudgekit.engine import NotificationEngine
from nudgekit.storage import Database, KeyValueStore, PersistenceFailure, SQLiteKeyValueStore


class FakeDispatcher(NotificationDispatcher):
    """In-memory dispatcher that records every call."""

    name = "fake"

    def __init__(self, granted: bool = True):
        super().__init__()
        self.granted = granted
        self.pending: Dict[str, ScheduledNotification] = {}
        self.schedule_calls: List[ScheduledNotification] = []
        self.cancel_calls: List[str] = []
        self.channels = []
        self.permission_requests = 0
        self.fail_schedule_after: Optional[int] = None
        self.fail_cancel = False
        self.fail_list = False
        self.closed = False
        self._counter = 0

    async def request_permission(self) -> bool:
        self.permission_requests += 1
        return self.granted

    async def configure_channel(self, channel) -> None:
        self.channels.append(channel)

    async def schedule(self, content, trigger_at, channel_id=None) -> str:
        if not self.granted:
            raise PermissionDenied("not granted")
        if self.fail_schedule_after is not None and len(self.schedule_calls) >= self.fail_schedule_after:
            raise DispatcherFailure("host rejected notification")
        self._counter += 1
        notification = ScheduledNotification(
            id=f"n{self._counter}",
            trigger_at=trigger_at,
            content=content,
            channel_id=channel_id,
        )
        self.schedule_calls.append(notification)
        self.pending[notification.id] = notification
        return notification.id

    async def cancel(self, notification_id: str) -> None:
        self.cancel_calls.append(notification_id)
        if self.fail_cancel:
            raise DispatcherFailure("host error")
        if self.pending.pop(notification_id, None) is None:
            raise NotificationNotFound(notification_id)

    async def cancel_all(self) -> None:
        if self.fail_cancel:
            raise DispatcherFailure("host error")
        self.pending.clear()

    async def list_scheduled(self) -> List[ScheduledNotification]:
        if self.fail_list:
            raise DispatcherFailure("host error")
        return sorted(self.pending.values(), key=lambda n: n.trigger_at)

    async def close(self) -> None:
        self.closed = True


class FakeClock:
    """Settable clock returning naive local datetimes."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class BrokenStore(KeyValueStore):
    """Store whose every operation fails."""

    def get(self, key):
        raise PersistenceFailure("disk unavailable")

    def set(self, key, value):
        raise PersistenceFailure("disk unavailable")

    def remove(self, key):
        raise PersistenceFailure("disk unavailable")


@pytest.fixture
def db(tmp_path):
    """Fresh database for each test."""
    return Database(tmp_path / "test.sqlite3")


@pytest.fixture
def store(db):
    return SQLiteKeyValueStore(db)


@pytest.fixture
def dispatcher():
    return FakeDispatcher()


@pytest.fixture
def clock():
    """Monday 2026-10-19, 09:00 local."""
    return FakeClock(datetime(2026, 10, 19, 9, 0))


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def engine(dispatcher, store, clock, rng):
    return NotificationEngine(dispatcher, store, settings=Settings(), rng=rng, clock=clock)
