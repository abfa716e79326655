"""
Error taxonomy for the Discogs quiz recommender.

Every failure the library raises derives from ``DiscogsQuizError`` so the CLI
can report it with a single ``except`` clause.  Two outcomes are deliberately
*not* exceptions:

  - "No match" after broadening  → ``BroadenResult.is_no_match``
  - A collection fetch that stopped early → ``CollectionResult.complete``

Identity lookups during authorization and per-release detail fetches log and
swallow their failures instead of raising.
"""

from __future__ import annotations

from typing import Optional


class DiscogsQuizError(RuntimeError):
    """Base class for all errors raised by ``discogs_quiz``."""


class ConfigError(DiscogsQuizError):
    """Consumer credentials or endpoint settings are missing or unusable.

    Raised before any network call is attempted.
    """


class ProtocolError(DiscogsQuizError):
    """A token endpoint answered with a body missing required OAuth fields."""


class Unauthenticated(DiscogsQuizError):
    """No stored Discogs credentials exist for the requested user.

    Attributes:
        user_id: The local user id that has no token set.
    """

    def __init__(self, user_id: str) -> None:
        self.user_id = user_id
        super().__init__(
            f"Not authenticated with Discogs for user '{user_id}'. "
            "Run 'discogs-quiz login' first."
        )


class InvalidCallback(DiscogsQuizError):
    """The OAuth callback URL lacks ``oauth_token``/``oauth_verifier``,
    does not belong to the pending request, or was already used."""


class NetworkError(DiscogsQuizError):
    """Transport failure or non-2xx response from Discogs or the relay.

    Retry by restarting the affected leg or operation.

    Attributes:
        status_code: HTTP status when a response was received, else ``None``.
    """

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        self.status_code = status_code
        super().__init__(message)
