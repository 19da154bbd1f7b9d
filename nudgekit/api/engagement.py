"""
Engagement API

Endpoints:
- GET  /engagement          - Current engagement status
- POST /engagement/ensure   - Run today's scheduling pass (app foreground)
- POST /engagement/enable   - Turn nudges on and schedule today
- POST /engagement/disable  - Turn nudges off and cancel everything
"""

from fastapi import APIRouter, Depends

from .deps import get_engine, is_engagement_enabled, set_engagement_enabled
from .models import EngagementRun, EngagementStatus
from ..engine import NotificationEngine

router = APIRouter(prefix="/engagement", tags=["engagement"])


def _status(engine: NotificationEngine) -> EngagementStatus:
    record = engine.engagement.record
    return EngagementStatus(
        enabled=is_engagement_enabled(engine.store),
        state=engine.engagement_state.value,
        scheduled_ids=list(record.scheduled_ids) if record else [],
        scheduled_for_date=record.scheduled_for_date if record else None,
    )


@router.get("", response_model=EngagementStatus)
async def get_status(engine: NotificationEngine = Depends(get_engine)):
    return _status(engine)


@router.post("/ensure", response_model=EngagementRun)
async def ensure_scheduled(engine: NotificationEngine = Depends(get_engine)):
    """Idempotent: a second call on the same day changes nothing."""
    if not is_engagement_enabled(engine.store):
        return EngagementRun(scheduled=False, reason="disabled")
    result = await engine.ensure_scheduled_for_today()
    return EngagementRun.from_result(result)


@router.post("/enable", response_model=EngagementRun)
async def enable(engine: NotificationEngine = Depends(get_engine)):
    set_engagement_enabled(engine.store, True)
    result = await engine.ensure_scheduled_for_today()
    return EngagementRun.from_result(result)


@router.post("/disable", response_model=EngagementStatus)
async def disable(engine: NotificationEngine = Depends(get_engine)):
    set_engagement_enabled(engine.store, False)
    await engine.disable()
    return _status(engine)
