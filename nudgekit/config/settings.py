"""
nudgekit - Configuration Settings
"""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List


@dataclass
class DatabaseSettings:
    """Database configuration."""
    path: Path = field(
        default_factory=lambda: Path(os.environ.get("NUDGEKIT_DB_PATH", "data/nudgekit.sqlite3"))
    )
    wal_mode: bool = True
    busy_timeout_ms: int = 5000


@dataclass
class EngagementSettings:
    """Daily re-engagement windows (local wall-clock hours)."""
    am_start_hour: int = 10
    am_end_hour: int = 13
    pm_start_hour: int = 14
    pm_end_hour: int = 20
    min_lead_minutes: int = 5
    min_spacing_minutes: int = 30
    # False: a window that already closed today stays empty instead of rolling to tomorrow
    roll_closed_windows: bool = True


@dataclass
class ReminderSettings:
    """Reminder scheduling configuration."""
    min_buffer_seconds: int = 10
    verify_after_schedule: bool = True


@dataclass
class ChannelSettings:
    """Android notification channel. Ignored on other platforms."""
    id: str = "reminders"
    name: str = "Reminders"
    importance: str = "high"
    vibration_pattern: List[int] = field(default_factory=lambda: [0, 250, 250, 250])
    light_color: str = "#FF231F7C"
    sound: str = "default"


@dataclass
class DispatcherSettings:
    """Local dispatcher configuration."""
    platform: str = field(default_factory=lambda: os.environ.get("NUDGEKIT_PLATFORM", "desktop"))
    misfire_grace_seconds: int = 60


@dataclass
class Settings:
    """Main settings container."""
    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    engagement: EngagementSettings = field(default_factory=EngagementSettings)
    reminders: ReminderSettings = field(default_factory=ReminderSettings)
    channel: ChannelSettings = field(default_factory=ChannelSettings)
    dispatcher: DispatcherSettings = field(default_factory=DispatcherSettings)


# Global settings instance
settings = Settings()
