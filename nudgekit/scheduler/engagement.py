"""
nudgekit - Engagement Scheduler

Keeps at most one pair of re-engagement notifications (AM + PM) armed per
calendar day. The plan for the day is persisted so that a restarted process
can still find and cancel what an earlier process scheduled.

State machine:
    UNINITIALIZED --restore--> IDLE / SCHEDULED
    any           --ensure---> SCHEDULED (or unchanged on failure)
    any           --disable--> DISABLED

Failures are logged and reported through EngagementResult; nothing here raises
to the caller, since engagement is a background best-effort feature.
"""
import asyncio
import random
from datetime import date, datetime, timedelta
from typing import Callable, List, Optional

from .messages import pick_message
from .models import EngagementResult, EngagementScheduleRecord, EngagementState
from .timewindow import SlotKind, TimeWindow, compute_daily_slots
from ..config.logging import get_logger, log_error, log_schedule_event
from ..config.settings import EngagementSettings
from ..dispatcher.base import NotificationDispatcher, PermissionDenied
from ..dispatcher.models import (
    NotificationCategory,
    NotificationContent,
    NotificationPriority,
)
from ..storage import KeyValueStore, PersistenceFailure, from_json, to_json

logger = get_logger("scheduler.engagement")

IDS_KEY = "engagement_notification_ids"
DATE_KEY = "engagement_notification_date"

ENGAGEMENT_TYPE = "random_app_engagement"

_CATEGORY_BY_SLOT = {
    SlotKind.AM: NotificationCategory.ENGAGEMENT_AM,
    SlotKind.PM: NotificationCategory.ENGAGEMENT_PM,
}


class EngagementScheduler:
    """
    Engagement Scheduler - daily re-engagement nudges.

    Operations:
        - restore_from_persistence(): Load persisted ids without rescheduling
        - ensure_scheduled_for_today(): Idempotent daily scheduling pass
        - disable(): Cancel everything and forget the record
    """

    def __init__(
        self,
        dispatcher: NotificationDispatcher,
        store: KeyValueStore,
        config: Optional[EngagementSettings] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = datetime.now,
        lock: Optional[asyncio.Lock] = None,
        channel_id: Optional[str] = None,
    ):
        """
        Initialize EngagementScheduler.

        Args:
            dispatcher: Notification dispatcher
            store: Durable key-value store for the day's record
            config: Windows and spacing (defaults from EngagementSettings)
            rng: Random source for slots and messages
            clock: Returns the current naive local time
            lock: Lock shared with other mutating operations on the engine
            channel_id: Notification channel for scheduled nudges
        """
        self._dispatcher = dispatcher
        self._store = store
        self._config = config or EngagementSettings()
        self._rng = rng or random.Random()
        self._clock = clock
        self._lock = lock or asyncio.Lock()
        self._channel_id = channel_id

        self._state = EngagementState.UNINITIALIZED
        self._record: Optional[EngagementScheduleRecord] = None

    @property
    def state(self) -> EngagementState:
        return self._state

    @property
    def record(self) -> Optional[EngagementScheduleRecord]:
        return self._record

    @property
    def scheduled_ids(self) -> List[str]:
        return list(self._record.scheduled_ids) if self._record else []

    # ==================== OPERATIONS ====================

    async def restore_from_persistence(self) -> Optional[EngagementScheduleRecord]:
        """
        Load the persisted record into memory. Nothing is (re)scheduled.

        Returns:
            The restored record or None
        """
        async with self._lock:
            record = self._load_record()
            if record is not None:
                self._record = record

            if self._record is not None and self._record.is_valid_for(self._clock().date()):
                self._state = EngagementState.SCHEDULED
            elif self._state == EngagementState.UNINITIALIZED:
                self._state = EngagementState.IDLE

            logger.info(f"Restored engagement ids: {self.scheduled_ids}")
            return self._record

    async def ensure_scheduled_for_today(self) -> EngagementResult:
        """
        Schedule today's engagement notifications unless already done.

        A record dated today counts as done even with fewer than two ids:
        a slot may legitimately be absent.
        """
        async with self._lock:
            now = self._clock()
            today = now.date()

            record = self._record or self._load_record()
            if record is not None and record.is_valid_for(today):
                self._record = record
                self._state = EngagementState.SCHEDULED
                logger.debug(f"Engagement already scheduled for {today}: {record.scheduled_ids}")
                return EngagementResult.unchanged(record)

            try:
                granted = await self._dispatcher.request_permission()
            except Exception as e:
                log_error(logger, e, "engagement permission request")
                granted = False
            if not granted:
                logger.warning("Cannot schedule engagement notifications - permission not granted")
                return EngagementResult.skipped("permission_denied")

            if record is not None:
                await self._cancel_ids(record.scheduled_ids)
                self._record = None
                self._clear_persisted()

            slots = compute_daily_slots(
                now,
                rng=self._rng,
                am_window=TimeWindow(self._config.am_start_hour, self._config.am_end_hour),
                pm_window=TimeWindow(self._config.pm_start_hour, self._config.pm_end_hour),
                min_lead=timedelta(minutes=self._config.min_lead_minutes),
                min_spacing=timedelta(minutes=self._config.min_spacing_minutes),
                roll_closed_windows=self._config.roll_closed_windows,
            )

            scheduled_ids: List[str] = []
            for kind, trigger_at in slots.ordered():
                try:
                    notification_id = await self._dispatcher.schedule(
                        self._build_content(kind),
                        trigger_at,
                        channel_id=self._channel_id,
                    )
                except Exception as e:
                    log_error(logger, e, f"scheduling {kind.value} engagement notification")
                    await self._cancel_ids(scheduled_ids)
                    self._state = EngagementState.IDLE
                    reason = "permission_denied" if isinstance(e, PermissionDenied) else "dispatcher_failure"
                    return EngagementResult.skipped(reason)

                scheduled_ids.append(notification_id)
                log_schedule_event(
                    logger, "scheduled", notification_id, _CATEGORY_BY_SLOT[kind].value, trigger_at
                )

            self._record = EngagementScheduleRecord(scheduled_ids, today)
            self._persist(self._record)
            self._state = EngagementState.SCHEDULED
            return EngagementResult.done(self._record)

    async def disable(self) -> None:
        """
        Cancel every known engagement notification and forget the record.

        Ids come from memory first, then from persistence, so notifications
        scheduled by an earlier process are cancelled too.
        """
        async with self._lock:
            ids = self.scheduled_ids
            persisted = self._load_record()
            if persisted is not None:
                ids.extend(i for i in persisted.scheduled_ids if i not in ids)

            await self._cancel_ids(ids)
            self._clear_persisted()
            self._record = None
            self._state = EngagementState.DISABLED
            logger.info(f"Engagement notifications disabled ({len(ids)} cancelled)")

    # ==================== HELPERS ====================

    def _build_content(self, kind: SlotKind) -> NotificationContent:
        message = pick_message(self._rng)
        return NotificationContent(
            title=message.title,
            body=message.body,
            category=_CATEGORY_BY_SLOT[kind],
            data={"type": ENGAGEMENT_TYPE, "slot": kind.value},
            sound=True,
            priority=NotificationPriority.DEFAULT,
        )

    async def _cancel_ids(self, ids: List[str]) -> None:
        """Best-effort cancel; a missing id is as good as cancelled."""
        for notification_id in ids:
            try:
                await self._dispatcher.cancel(notification_id)
                log_schedule_event(logger, "cancelled", notification_id, "engagement")
            except Exception as e:
                logger.warning(f"Failed to cancel engagement notification {notification_id}: {e}")

    def _load_record(self) -> Optional[EngagementScheduleRecord]:
        try:
            raw_ids = self._store.get(IDS_KEY)
            raw_date = self._store.get(DATE_KEY)
        except PersistenceFailure as e:
            log_error(logger, e, "loading engagement record")
            return None

        if raw_ids is None:
            return None

        try:
            ids = [str(i) for i in (from_json(raw_ids) or [])]
            day = date.fromisoformat(raw_date) if raw_date else date.min
        except (ValueError, TypeError) as e:
            logger.warning(f"Discarding malformed engagement record: {e}")
            return EngagementScheduleRecord([], date.min)
        return EngagementScheduleRecord(ids, day)

    def _persist(self, record: EngagementScheduleRecord) -> None:
        try:
            self._store.set_many({
                IDS_KEY: to_json(record.scheduled_ids),
                DATE_KEY: record.scheduled_for_date.isoformat(),
            })
        except PersistenceFailure as e:
            # Notifications are armed; keep the in-memory record
            log_error(logger, e, "persisting engagement record")

    def _clear_persisted(self) -> None:
        try:
            self._store.remove_many([IDS_KEY, DATE_KEY])
        except PersistenceFailure as e:
            log_error(logger, e, "clearing engagement record")

