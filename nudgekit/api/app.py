"""
FastAPI Application

Local bridge between the application shell and the notification engine.
"""

import os
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from .deps import build_engine, is_engagement_enabled
from .engagement import router as engagement_router
from .notifications import router as notifications_router
from ..config.logging import get_logger
from ..dispatcher.base import DispatcherFailure, PermissionDenied
from ..dispatcher.models import DeliveredNotification, NotificationResponse
from ..engine import NotificationEngine
from ..scheduler.engagement import ENGAGEMENT_TYPE
from ..scheduler.models import InvalidSchedule

logger = get_logger("api")


# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every incoming HTTP request with method, path, status and duration."""

    async def dispatch(self, request: Request, call_next) -> Response:
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = round((time.perf_counter() - start) * 1000, 1)

        logger.info(
            "%s %s -> %d [%.1fms]",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
            extra={"extra_data": {
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            }}
        )
        return response


# ---------------------------------------------------------------------------
# Delivery listeners
# ---------------------------------------------------------------------------


def _on_response(response: NotificationResponse) -> None:
    data = response.notification.content.data
    if data.get("type") == ENGAGEMENT_TYPE:
        logger.info("Engagement notification tapped")
    elif data.get("reminderId") is not None:
        logger.info(f"Reminder notification tapped: {data['reminderId']}")


def _on_received(delivered: DeliveredNotification) -> None:
    logger.info(
        f"Notification received while app is open: {delivered.notification.id}",
        extra={"extra_data": delivered.notification.content.data},
    )


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    engine: NotificationEngine = app.state.engine

    await engine.init()

    if is_engagement_enabled(engine.store):
        await engine.restore_from_persistence()
        await engine.ensure_scheduled_for_today()

    subscriptions = [
        engine.on_response(_on_response),
        engine.on_received_foreground(_on_received),
    ]

    yield

    for subscription in subscriptions:
        subscription.remove()
    await engine.shutdown()


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------


def create_app(engine: Optional[NotificationEngine] = None) -> FastAPI:
    """Create FastAPI application."""

    app = FastAPI(
        title="nudgekit",
        description="Local notification scheduling engine",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.engine = engine or build_engine()

    app.add_middleware(RequestLoggingMiddleware)

    app.include_router(engagement_router, prefix="/api")
    app.include_router(notifications_router, prefix="/api")

    @app.get("/health")
    async def health():
        current: NotificationEngine = app.state.engine
        return {
            "status": "ok" if current.initialized else "degraded",
            "engagement": current.engagement_state.value,
        }

    @app.exception_handler(InvalidSchedule)
    async def invalid_schedule_handler(request: Request, exc: InvalidSchedule):
        return JSONResponse(status_code=422, content={"success": False, "error": str(exc)})

    @app.exception_handler(PermissionDenied)
    async def permission_denied_handler(request: Request, exc: PermissionDenied):
        return JSONResponse(status_code=403, content={"success": False, "error": str(exc)})

    @app.exception_handler(DispatcherFailure)
    async def dispatcher_failure_handler(request: Request, exc: DispatcherFailure):
        logger.error("Dispatcher failure: %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=502, content={"success": False, "error": str(exc)})

    return app


if __name__ == "__main__":
    import uvicorn

    port = int(os.environ.get("PORT", 8000))
    uvicorn.run(
        "nudgekit.api.app:create_app",
        factory=True,
        host="127.0.0.1",
        port=port,
    )
