"""
OAuth credential model.

``OAuthTokenSet`` is the only thing a ``TokenStore`` persists.  It is replaced
wholesale on re-authentication and deleted on sign-out; callers never patch
individual fields.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, field_validator


class OAuthTokenSet(BaseModel):
    """Discogs access credentials for one local user.

    Attributes:
        token: OAuth access token.
        token_secret: OAuth access token secret (never logged).
        username: Canonical Discogs username, or ``"unknown"`` when the
            identity lookup failed and the exchange response carried none.
    """

    model_config = ConfigDict(frozen=True)

    token: str
    token_secret: str
    username: str = "unknown"

    @field_validator("token", "token_secret")
    @classmethod
    def validate_not_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("OAuth token fields must not be empty.")
        return v

    def __repr__(self) -> str:
        return f"OAuthTokenSet(token='{self.token[:4]}…', username='{self.username}')"
