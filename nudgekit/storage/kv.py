"""
nudgekit - Key-Value Store

Durable string key-value storage on top of the SQLite database.
Used for the persisted engagement schedule and shell flags.
"""
import sqlite3
from abc import ABC, abstractmethod
from typing import Dict, Iterable, Optional

from .database import Database, now_iso


class PersistenceFailure(Exception):
    """Storage read or write failed."""
    pass


class KeyValueStore(ABC):
    """
    Abstract durable key-value store.

    Values are plain strings; callers encode structured data themselves.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the stored value or None if absent."""
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value."""
        pass

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete key. Missing keys are ignored."""
        pass

    def set_many(self, items: Dict[str, str]) -> None:
        """Store several keys. Default implementation is not atomic."""
        for key, value in items.items():
            self.set(key, value)

    def remove_many(self, keys: Iterable[str]) -> None:
        """Delete several keys."""
        for key in keys:
            self.remove(key)


class SQLiteKeyValueStore(KeyValueStore):
    """
    KeyValueStore backed by the kv_store table.

    sqlite3 errors are raised as PersistenceFailure.
    """

    def __init__(self, db: Optional[Database] = None):
        self._db = db

    @property
    def db(self) -> Database:
        """Get database instance (lazy init)."""
        if self._db is None:
            self._db = Database()
        return self._db

    def get(self, key: str) -> Optional[str]:
        try:
            return self.db.fetch_value(
                "SELECT value FROM kv_store WHERE key = ?",
                (key,),
            )
        except sqlite3.Error as e:
            raise PersistenceFailure(f"Failed to read {key!r}: {e}") from e

    def set(self, key: str, value: str) -> None:
        try:
            self._upsert(key, value)
        except sqlite3.Error as e:
            raise PersistenceFailure(f"Failed to write {key!r}: {e}") from e

    def remove(self, key: str) -> None:
        try:
            self.db.execute("DELETE FROM kv_store WHERE key = ?", (key,))
        except sqlite3.Error as e:
            raise PersistenceFailure(f"Failed to remove {key!r}: {e}") from e

    def set_many(self, items: Dict[str, str]) -> None:
        """Store several keys in one transaction."""
        try:
            with self.db.transaction():
                for key, value in items.items():
                    self._upsert(key, value)
        except sqlite3.Error as e:
            raise PersistenceFailure(f"Failed to write {sorted(items)}: {e}") from e

    def remove_many(self, keys: Iterable[str]) -> None:
        """Delete several keys in one transaction."""
        keys = list(keys)
        try:
            with self.db.transaction():
                for key in keys:
                    self.db.execute("DELETE FROM kv_store WHERE key = ?", (key,))
        except sqlite3.Error as e:
            raise PersistenceFailure(f"Failed to remove {keys}: {e}") from e

    def _upsert(self, key: str, value: str) -> None:
        self.db.execute(
            """INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)
               ON CONFLICT(key) DO UPDATE SET value = excluded.value,
                                              updated_at = excluded.updated_at""",
            (key, value, now_iso()),
        )
