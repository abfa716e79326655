"""
SQLite connection management for the local token database.

``get_connection()`` is a context manager that:
  - Creates the database file and parent directories on first use.
  - Applies the schema (idempotent) so callers never see a missing table.
  - Enables WAL mode and a busy timeout for the single-writer model.
  - Uses ``sqlite3.Row`` so rows behave like dicts.
  - Commits on clean exit, rolls back on exception, always closes.

Usage::

    from discogs_quiz.db.connection import get_connection

    with get_connection("data/db/discogs_tokens.db") as conn:
        conn.execute("SELECT * FROM discogs_tokens")
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from discogs_quiz.db.schema import apply_schema

logger = logging.getLogger(__name__)


@contextmanager
def get_connection(
    db_path: str,
    wal_mode: bool = True,
    busy_timeout_ms: int = 5000,
) -> Generator[sqlite3.Connection, None, None]:
    """Yield a configured SQLite connection with the schema applied.

    Args:
        db_path: Database file path, or ``":memory:"``.
        wal_mode: Enable WAL journaling (ignored for ``":memory:"``).
        busy_timeout_ms: Milliseconds to wait on a locked database.

    Yields:
        An open ``sqlite3.Connection``.

    Raises:
        sqlite3.OperationalError: If the database cannot be opened or is locked.
    """
    in_memory = db_path == ":memory:"
    if not in_memory:
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(db_path, timeout=busy_timeout_ms / 1000)
    conn.row_factory = sqlite3.Row

    try:
        conn.execute(f"PRAGMA busy_timeout = {busy_timeout_ms};")
        if wal_mode and not in_memory:
            conn.execute("PRAGMA journal_mode = WAL;")
        apply_schema(conn)

        yield conn
        conn.commit()

    except Exception:
        conn.rollback()
        raise

    finally:
        conn.close()
