"""
API Dependencies

Database, store and engine injection.
"""

from typing import Optional

from fastapi import Request

from ..config.settings import settings
from ..dispatcher.local import LocalDispatcher
from ..engine import NotificationEngine
from ..storage import Database, KeyValueStore, PersistenceFailure, SQLiteKeyValueStore
from ..config.logging import get_logger

logger = get_logger("api.deps")

# Shell flag written by the settings screen
ENGAGEMENT_ENABLED_KEY = "notifications_random_enabled"


# =============================================================================
# Database
# =============================================================================

_db: Optional[Database] = None


def get_db() -> Database:
    """Get database instance."""
    global _db
    if _db is None:
        _db = Database(settings.database.path)
    return _db


# =============================================================================
# Engine
# =============================================================================

def build_engine() -> NotificationEngine:
    """Create the process-wide engine from settings."""
    dispatcher = LocalDispatcher(
        platform=settings.dispatcher.platform,
        misfire_grace_seconds=settings.dispatcher.misfire_grace_seconds,
    )
    return NotificationEngine(dispatcher, SQLiteKeyValueStore(get_db()), settings=settings)


def get_engine(request: Request) -> NotificationEngine:
    """Engine owned by the running app."""
    return request.app.state.engine


# =============================================================================
# Engagement flag
# =============================================================================

def is_engagement_enabled(store: KeyValueStore) -> bool:
    try:
        return store.get(ENGAGEMENT_ENABLED_KEY) == "true"
    except PersistenceFailure as e:
        logger.error(f"Failed to read engagement flag: {e}")
        return False


def set_engagement_enabled(store: KeyValueStore, enabled: bool) -> None:
    try:
        store.set(ENGAGEMENT_ENABLED_KEY, "true" if enabled else "false")
    except PersistenceFailure as e:
        logger.error(f"Failed to write engagement flag: {e}")
