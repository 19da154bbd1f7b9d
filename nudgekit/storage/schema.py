"""
nudgekit - Database Schema

Core tables:
- kv_store: durable key-value pairs (persisted engagement schedule, shell flags)
"""
import sqlite3

SCHEMA_SQL = """
-- Key-value table
CREATE TABLE IF NOT EXISTS kv_store (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT DEFAULT (datetime('now'))
);
"""


def init_schema(conn: sqlite3.Connection) -> None:
    """Create tables if they do not exist."""
    conn.executescript(SCHEMA_SQL)
    conn.commit()
