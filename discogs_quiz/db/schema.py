"""
SQLite schema for locally persisted Discogs credentials.

One row per local user id.  Re-authentication overwrites the row
(``INSERT ... ON CONFLICT DO UPDATE``); sign-out deletes it.
"""

from __future__ import annotations

import logging
import sqlite3

logger = logging.getLogger(__name__)

_DDL_DISCOGS_TOKENS = """
CREATE TABLE IF NOT EXISTS discogs_tokens (
    user_id       TEXT    PRIMARY KEY,
    token         TEXT    NOT NULL,
    token_secret  TEXT    NOT NULL,
    username      TEXT    NOT NULL DEFAULT 'unknown',
    updated_at    TEXT    NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now'))
)
"""

ALL_TABLE_NAMES: list[str] = ["discogs_tokens"]


def apply_schema(conn: sqlite3.Connection) -> None:
    """Create all tables if missing.  Safe to call on every connection."""
    conn.execute(_DDL_DISCOGS_TOKENS)
    logger.debug("Schema verified: %s", ", ".join(ALL_TABLE_NAMES))


def get_existing_tables(conn: sqlite3.Connection) -> list[str]:
    """Return table names present in the database, sorted."""
    rows = conn.execute(
        "SELECT name FROM sqlite_master WHERE type = 'table' ORDER BY name;"
    ).fetchall()
    return [row[0] for row in rows]
