"""
SQLite-backed ``TokenStore``.

``TokenRepository`` holds the SQL for the ``discogs_tokens`` table and works
on a caller-owned connection.  ``SqliteTokenStore`` adapts it to the
``TokenStore`` contract by opening one short-lived connection per call, which
matches the single-local-writer-per-user model.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Optional

from discogs_quiz.db.connection import get_connection
from discogs_quiz.db.repositories.base import BaseRepository
from discogs_quiz.models.tokens import OAuthTokenSet

logger = logging.getLogger(__name__)


class TokenRepository(BaseRepository):
    """Read/write access to the ``discogs_tokens`` table."""

    def get(self, user_id: str) -> Optional[OAuthTokenSet]:
        row = self.fetchone(
            "SELECT token, token_secret, username FROM discogs_tokens WHERE user_id = ?;",
            (user_id,),
        )
        return _row_to_tokens(row) if row else None

    def upsert(self, user_id: str, tokens: OAuthTokenSet) -> None:
        """Insert or wholesale-replace the token set for ``user_id``."""
        self.execute(
            """
            INSERT INTO discogs_tokens (user_id, token, token_secret, username)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(user_id) DO UPDATE SET
                token        = excluded.token,
                token_secret = excluded.token_secret,
                username     = excluded.username,
                updated_at   = strftime('%Y-%m-%dT%H:%M:%SZ', 'now');
            """,
            (user_id, tokens.token, tokens.token_secret, tokens.username),
        )

    def delete(self, user_id: str) -> int:
        """Delete the token set for ``user_id``; returns rows removed (0 or 1)."""
        return self.execute(
            "DELETE FROM discogs_tokens WHERE user_id = ?;", (user_id,)
        ).rowcount


class SqliteTokenStore:
    """``TokenStore`` persisted in a local SQLite file.

    Usage::

        store = SqliteTokenStore(config.storage.token_db_path)
        store.set("alice", tokens)
        store.get("alice")
    """

    def __init__(
        self,
        db_path: str,
        wal_mode: bool = True,
        busy_timeout_ms: int = 5000,
    ) -> None:
        if db_path == ":memory:":
            raise ValueError(
                "SqliteTokenStore opens a connection per call; use a file path "
                "or InMemoryTokenStore."
            )
        self.db_path = db_path
        self.wal_mode = wal_mode
        self.busy_timeout_ms = busy_timeout_ms

    def _connect(self):
        return get_connection(
            self.db_path, wal_mode=self.wal_mode, busy_timeout_ms=self.busy_timeout_ms
        )

    def get(self, user_id: str) -> Optional[OAuthTokenSet]:
        with self._connect() as conn:
            return TokenRepository(conn).get(user_id)

    def set(self, user_id: str, tokens: OAuthTokenSet) -> None:
        with self._connect() as conn:
            TokenRepository(conn).upsert(user_id, tokens)
        logger.info("Stored Discogs tokens for user=%s (username=%s)", user_id, tokens.username)

    def clear(self, user_id: str) -> None:
        with self._connect() as conn:
            removed = TokenRepository(conn).delete(user_id)
        if removed:
            logger.info("Cleared Discogs tokens for user=%s", user_id)


def _row_to_tokens(row: sqlite3.Row) -> OAuthTokenSet:
    return OAuthTokenSet(
        token=row["token"],
        token_secret=row["token_secret"],
        username=row["username"],
    )
