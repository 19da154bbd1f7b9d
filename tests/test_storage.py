"""
Tests for the storage layer

Run with: pytest -q
"""
import json
from datetime import datetime, date

import pytest

from nudgekit.storage import (
    Database,
    PersistenceFailure,
    SQLiteKeyValueStore,
    from_json,
    now_iso,
    to_json,
)


class TestDatabase:
    """Tests for Database class."""

    def test_database_creation(self, db):
        name = db.fetch_value(
            "SELECT name FROM sqlite_master WHERE type = 'table' AND name = 'kv_store'"
        )

        assert name == "kv_store"

    def test_creates_parent_directory(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "kv.sqlite3"

        Database(path)

        assert path.exists()

    def test_fetch_value_default(self, db):
        value = db.fetch_value(
            "SELECT value FROM kv_store WHERE key = ?", ("nope",), default="fallback"
        )

        assert value == "fallback"

    def test_transaction_rollback(self, db):
        with pytest.raises(RuntimeError):
            with db.transaction():
                db.execute(
                    "INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)",
                    ("a", "1", now_iso()),
                )
                raise RuntimeError("abort")

        assert db.fetch_one("SELECT * FROM kv_store WHERE key = 'a'") is None


class TestKeyValueStore:

    def test_get_missing(self, store):
        assert store.get("missing") is None

    def test_set_get(self, store):
        store.set("flag", "true")

        assert store.get("flag") == "true"

    def test_overwrite(self, store):
        store.set("flag", "true")
        store.set("flag", "false")

        assert store.get("flag") == "false"

    def test_remove(self, store):
        store.set("flag", "true")
        store.remove("flag")
        store.remove("flag")

        assert store.get("flag") is None

    def test_set_many_and_remove_many(self, store):
        store.set_many({"a": "1", "b": "2"})

        assert store.get("a") == "1"
        assert store.get("b") == "2"

        store.remove_many(["a", "b"])

        assert store.get("a") is None
        assert store.get("b") is None

    def test_survives_reopen(self, tmp_path):
        path = tmp_path / "kv.sqlite3"
        SQLiteKeyValueStore(Database(path)).set("engagement_notification_date", "2026-10-19")

        reopened = SQLiteKeyValueStore(Database(path))

        assert reopened.get("engagement_notification_date") == "2026-10-19"

    def test_sqlite_errors_become_persistence_failure(self, db, store):
        db.execute("DROP TABLE kv_store")

        with pytest.raises(PersistenceFailure):
            store.get("a")
        with pytest.raises(PersistenceFailure):
            store.set("a", "1")
        with pytest.raises(PersistenceFailure):
            store.set_many({"a": "1"})
        with pytest.raises(PersistenceFailure):
            store.remove_many(["a"])


class TestJsonHelpers:

    def test_to_json_handles_dates(self):
        data = {"when": datetime(2026, 10, 19, 9, 30), "day": date(2026, 10, 19)}

        assert json.loads(to_json(data)) == {
            "when": "2026-10-19T09:30:00",
            "day": "2026-10-19",
        }

    def test_from_json_empty(self):
        assert from_json(None) is None
        assert from_json("") is None

    def test_from_json_list(self):
        assert from_json('["a", "b"]') == ["a", "b"]

    def test_now_iso_is_utc(self):
        assert now_iso().endswith("Z")
