"""
nudgekit - Database Module

Thread-safe SQLite database with thread-local connections.
"""
import os
import sqlite3
import logging
import threading
import json
from datetime import datetime, date
from pathlib import Path
from typing import Any, Optional, Union
from contextlib import contextmanager

from .schema import init_schema

_db_logger = logging.getLogger("nudgekit.database")


class Database:
    """
    Thread-safe SQLite database manager.

    Uses thread-local connections for safety.
    NOT a singleton - create instances as needed, but typically use one per app.
    """

    def __init__(self, db_path: Optional[Union[str, Path]] = None):
        """
        Initialize database.

        Args:
            db_path: Path to database file. If None, uses default from settings.
        """
        if db_path is None:
            from ..config.settings import settings
            db_path = settings.database.path
            self._wal_mode = settings.database.wal_mode
            self._busy_timeout_ms = settings.database.busy_timeout_ms
        else:
            self._wal_mode = True
            self._busy_timeout_ms = 5000

        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

        self._local = threading.local()

        conn = self._get_connection()
        self._startup_integrity_check(conn)
        init_schema(self._get_connection())

    def _startup_integrity_check(self, conn: sqlite3.Connection) -> None:
        """Run integrity check once at startup. Destroy and recreate only if corrupt."""
        try:
            result = conn.execute("PRAGMA integrity_check").fetchone()
            if result[0] != "ok":
                raise sqlite3.DatabaseError("integrity_check returned: " + result[0])
        except sqlite3.DatabaseError as e:
            _db_logger.warning(
                "Database corruption detected at %s: %s. Removing and recreating.",
                self._db_path, e
            )
            conn.close()
            self._local.connection = None
            for ext in ('', '-shm', '-wal'):
                path = str(self._db_path) + ext
                if os.path.exists(path):
                    os.remove(path)
            self._get_connection()

    def _in_transaction(self) -> bool:
        """Check if currently in a transaction."""
        return getattr(self._local, 'in_transaction', False)

    def _get_connection(self) -> sqlite3.Connection:
        """Get thread-local connection."""
        if getattr(self._local, 'connection', None) is None:
            conn = sqlite3.connect(
                str(self._db_path),
                check_same_thread=False,
                timeout=self._busy_timeout_ms / 1000.0,
            )
            conn.row_factory = sqlite3.Row

            journal_mode = "WAL" if self._wal_mode else "DELETE"
            conn.execute(f"PRAGMA journal_mode = {journal_mode}")
            conn.execute(f"PRAGMA busy_timeout = {self._busy_timeout_ms}")
            conn.execute("PRAGMA synchronous = NORMAL")

            self._local.connection = conn

        return self._local.connection

    def execute(
        self,
        sql: str,
        params: tuple = (),
    ) -> int:
        """
        Execute SQL and return last row id.

        Args:
            sql: SQL statement
            params: Query parameters

        Returns:
            Last inserted row ID
        """
        conn = self._get_connection()
        cursor = conn.execute(sql, params)
        if not self._in_transaction():
            conn.commit()
        return cursor.lastrowid

    def fetch_one(
        self,
        sql: str,
        params: tuple = (),
    ) -> Optional[sqlite3.Row]:
        """Fetch single row."""
        conn = self._get_connection()
        cursor = conn.execute(sql, params)
        return cursor.fetchone()

    def fetch_value(
        self,
        sql: str,
        params: tuple = (),
        default: Any = None,
    ) -> Any:
        """
        Fetch single value from first column of first row.

        Args:
            sql: SQL query
            params: Query parameters
            default: Default value if no result

        Returns:
            Value or default
        """
        row = self.fetch_one(sql, params)
        if row is None:
            return default
        return row[0]

    @contextmanager
    def transaction(self):
        """
        Context manager for transactions.

        Usage:
            with db.transaction():
                db.execute(...)
                db.execute(...)
        """
        conn = self._get_connection()
        self._local.in_transaction = True
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            self._local.in_transaction = False

    def close(self) -> None:
        """Close current thread's connection."""
        if getattr(self._local, 'connection', None) is not None:
            self._local.connection.close()
            self._local.connection = None


# JSON helpers

def to_json(obj: Any) -> str:
    """
    Convert object to JSON string.

    Handles datetime objects.
    """
    def default(o):
        if isinstance(o, (datetime, date)):
            return o.isoformat()
        raise TypeError(f"Object of type {type(o)} is not JSON serializable")

    return json.dumps(obj, default=default, ensure_ascii=False)


def from_json(s: Optional[str]) -> Any:
    """
    Parse JSON string.

    Returns None for None or empty string.
    """
    if not s:
        return None
    return json.loads(s)


def now_iso() -> str:
    """Get current UTC time as ISO string."""
    from datetime import timezone
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")
