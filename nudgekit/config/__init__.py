"""
nudgekit - Configuration
"""
from .settings import (
    Settings,
    DatabaseSettings,
    EngagementSettings,
    ReminderSettings,
    ChannelSettings,
    DispatcherSettings,
    settings,
)
from .logging import (
    setup_logging,
    get_logger,
    log_schedule_event,
    log_error,
    JSONFormatter,
    ColoredFormatter,
)

__all__ = [
    "Settings",
    "DatabaseSettings",
    "EngagementSettings",
    "ReminderSettings",
    "ChannelSettings",
    "DispatcherSettings",
    "settings",
    # Logging
    "setup_logging",
    "get_logger",
    "log_schedule_event",
    "log_error",
    "JSONFormatter",
    "ColoredFormatter",
]
