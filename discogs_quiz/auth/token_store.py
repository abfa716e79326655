"""
Token persistence contract.

``TokenStore`` is the only interface the auth flow and fetchers depend on::

    get(user_id)          -> OAuthTokenSet | None
    set(user_id, tokens)  -> None      (replaces any previous set wholesale)
    clear(user_id)        -> None      (no-op when nothing is stored)

Entries never leak across user ids.  Implementations:

  InMemoryTokenStore  — process-local dict (tests, one-shot CLI runs)
  SqliteTokenStore    — ``discogs_quiz.db.repositories.token_repo``
"""

from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

from discogs_quiz.models.tokens import OAuthTokenSet


@runtime_checkable
class TokenStore(Protocol):
    """Per-user credential persistence."""

    def get(self, user_id: str) -> Optional[OAuthTokenSet]: ...

    def set(self, user_id: str, tokens: OAuthTokenSet) -> None: ...

    def clear(self, user_id: str) -> None: ...


class InMemoryTokenStore:
    """Dict-backed ``TokenStore``; contents vanish with the process."""

    def __init__(self) -> None:
        self._tokens: dict[str, OAuthTokenSet] = {}

    def get(self, user_id: str) -> Optional[OAuthTokenSet]:
        return self._tokens.get(user_id)

    def set(self, user_id: str, tokens: OAuthTokenSet) -> None:
        self._tokens[user_id] = tokens

    def clear(self, user_id: str) -> None:
        self._tokens.pop(user_id, None)

    def __len__(self) -> int:
        return len(self._tokens)
