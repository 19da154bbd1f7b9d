"""
Notifications API

Endpoints:
- POST   /reminders                  - Schedule a reminder notification
- GET    /notifications              - Pending notifications
- DELETE /notifications/{id}         - Cancel one (best-effort)
- DELETE /notifications              - Cancel all (best-effort)
"""

from fastapi import APIRouter, Depends

from .deps import get_engine
from .models import CancelResult, NotificationList, NotificationOut, ReminderCreate, ReminderScheduled
from ..engine import NotificationEngine

router = APIRouter(tags=["notifications"])


@router.post("/reminders", response_model=ReminderScheduled, status_code=201)
async def schedule_reminder(
    data: ReminderCreate,
    engine: NotificationEngine = Depends(get_engine),
):
    """
    Schedule a reminder.

    Past times are rejected with 422; times less than the buffer away are
    moved to now + buffer.
    """
    notification_id = await engine.schedule_reminder(data.to_reminder())
    return ReminderScheduled(notification_id=notification_id, reminder_id=data.id)


@router.get("/notifications", response_model=NotificationList)
async def list_notifications(engine: NotificationEngine = Depends(get_engine)):
    pending = await engine.list_scheduled()
    return NotificationList(
        notifications=[NotificationOut.from_scheduled(n) for n in pending],
        total=len(pending),
    )


@router.delete("/notifications/{notification_id}", response_model=CancelResult)
async def cancel_notification(
    notification_id: str,
    engine: NotificationEngine = Depends(get_engine),
):
    return CancelResult(success=await engine.cancel(notification_id))


@router.delete("/notifications", response_model=CancelResult)
async def cancel_all_notifications(engine: NotificationEngine = Depends(get_engine)):
    return CancelResult(success=await engine.cancel_all())
