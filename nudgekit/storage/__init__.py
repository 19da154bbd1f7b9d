"""
nudgekit - Storage Layer

Provides the SQLite database and durable key-value storage.
"""
from .database import Database, to_json, from_json, now_iso
from .kv import KeyValueStore, SQLiteKeyValueStore, PersistenceFailure
from .schema import init_schema, SCHEMA_SQL

__all__ = [
    # Database
    "Database",
    "to_json",
    "from_json",
    "now_iso",
    # Key-value
    "KeyValueStore",
    "SQLiteKeyValueStore",
    "PersistenceFailure",
    # Schema
    "init_schema",
    "SCHEMA_SQL",
]
