"""Schema management for the local profile store."""

from __future__ import annotations

import logging
from typing import Any

import sqlalchemy

logger = logging.getLogger(__name__)

PROFILE_TABLE = "connection_profiles"
EVENT_TABLE = "event_log"

_CREATE_PROFILE_TABLE = f"""
CREATE TABLE IF NOT EXISTS {PROFILE_TABLE} (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    driver TEXT,
    server TEXT,
    port TEXT,
    database TEXT,
    username TEXT,
    password TEXT,
    connection_string TEXT,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
)
"""

_CREATE_EVENT_TABLE = f"""
CREATE TABLE IF NOT EXISTS {EVENT_TABLE} (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    level TEXT NOT NULL,
    message TEXT NOT NULL,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
)
"""

# Columns added after the first release of the store.
LATE_COLUMNS = {
    "dsn": "TEXT",
    "params": "TEXT",
    "simulated": "INTEGER DEFAULT 0",
}


def _existing_columns(conn: Any, table: str) -> set[str]:
    rows = conn.execute(sqlalchemy.text(f"PRAGMA table_info({table})"))
    return {row[1] for row in rows}


def ensure_schema(engine: Any) -> None:
    """Create the store tables and add any missing late columns."""
    with engine.begin() as conn:
        conn.execute(sqlalchemy.text(_CREATE_PROFILE_TABLE))
        conn.execute(sqlalchemy.text(_CREATE_EVENT_TABLE))

        columns = _existing_columns(conn, PROFILE_TABLE)
        for name, ddl in LATE_COLUMNS.items():
            if name not in columns:
                logger.info(f"Adding column {name} to {PROFILE_TABLE}")
                conn.execute(
                    sqlalchemy.text(f"ALTER TABLE {PROFILE_TABLE} ADD COLUMN {name} {ddl}")
                )


__all__ = ["ensure_schema", "PROFILE_TABLE", "EVENT_TABLE", "LATE_COLUMNS"]
