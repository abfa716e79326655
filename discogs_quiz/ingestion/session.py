"""
Discogs HTTP session — the explicit context object shared by the auth flow
and the fetchers.

A ``DiscogsSession`` bundles everything a Discogs call needs:

  - ``config``       — ``DiscogsConfig`` (endpoints, user agent, timeout)
  - ``signer``       — ``OAuthSigner`` for the configured consumer
  - ``token_store``  — per-user ``TokenStore``
  - ``http``         — one ``httpx.Client`` (injectable; tests pass a client
                       built on ``httpx.MockTransport``)

There is no module-level state: two sessions for two consumers can coexist.

Error mapping (all raised from ``send()``):
  httpx.HTTPStatusError → NetworkError(status_code=...)
  httpx.HTTPError       → NetworkError
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from discogs_quiz.auth.signer import OAuthSigner
from discogs_quiz.auth.token_store import TokenStore
from discogs_quiz.config import DiscogsConfig
from discogs_quiz.errors import NetworkError, ProtocolError, Unauthenticated
from discogs_quiz.models.tokens import OAuthTokenSet

logger = logging.getLogger(__name__)


class DiscogsSession:
    """Authenticated access to the Discogs API for any stored user.

    Usage::

        with DiscogsSession(config.discogs, SqliteTokenStore(path)) as session:
            data = session.get_json("alice", "/releases/249504")

    Raises:
        ConfigError: At construction when consumer credentials are missing,
            before any network call.
    """

    def __init__(
        self,
        config: DiscogsConfig,
        token_store: TokenStore,
        client: Optional[httpx.Client] = None,
        signer: Optional[OAuthSigner] = None,
    ) -> None:
        config.require_credentials()
        self.config = config
        self.token_store = token_store
        self.signer = signer or OAuthSigner(config.consumer_key, config.consumer_secret)
        self._owns_client = client is None
        self.http = client or httpx.Client(timeout=config.timeout_s)

    def __enter__(self) -> "DiscogsSession":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        """Close the HTTP client if this session created it."""
        if self._owns_client:
            self.http.close()

    # ── Credentials ───────────────────────────────────────────────────────────

    def require_tokens(self, user_id: str) -> OAuthTokenSet:
        """Stored tokens for ``user_id``.

        Raises:
            Unauthenticated: If nothing is stored for ``user_id``.
        """
        tokens = self.token_store.get(user_id)
        if tokens is None:
            raise Unauthenticated(user_id)
        return tokens

    # ── Transport ─────────────────────────────────────────────────────────────

    def send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Issue one request and raise ``NetworkError`` on any failure.

        The configured ``User-Agent`` is always sent.  Non-2xx responses are
        failures.
        """
        headers = {"User-Agent": self.config.user_agent, **kwargs.pop("headers", {})}
        try:
            resp = self.http.request(method, url, headers=headers, **kwargs)
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            raise NetworkError(
                f"{method} {_path_of(url)} returned HTTP {status}", status_code=status
            ) from exc
        except httpx.HTTPError as exc:
            raise NetworkError(
                f"{method} {_path_of(url)} failed: {exc.__class__.__name__}"
            ) from exc
        return resp

    def get_json(
        self,
        user_id: str,
        endpoint: str,
        params: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        """Signed GET against ``base_url + endpoint`` returning a JSON object.

        Args:
            user_id: Local user whose stored tokens sign the request.
            endpoint: Path beginning with ``/``.
            params: Query parameters.

        Raises:
            Unauthenticated: No stored tokens for ``user_id``.
            NetworkError: Transport failure or non-2xx status.
            ProtocolError: Body is not a JSON object.
        """
        tokens = self.require_tokens(user_id)
        return self.get_json_with(tokens, endpoint, params)

    def get_json_with(
        self,
        tokens: OAuthTokenSet,
        endpoint: str,
        params: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        """Like ``get_json()`` but signs with an explicit token set."""
        header = self.signer.sign(token=tokens.token, token_secret=tokens.token_secret)
        resp = self.send(
            "GET",
            f"{self.config.base_url}{endpoint}",
            params=params,
            headers={"Authorization": header},
        )
        try:
            data = resp.json()
        except ValueError as exc:
            raise ProtocolError(f"GET {endpoint} returned a non-JSON body") from exc
        if not isinstance(data, dict):
            raise ProtocolError(f"GET {endpoint} returned {type(data).__name__}, not an object")
        return data


def _path_of(url: str) -> str:
    """URL without its query string, for error messages and logs."""
    return url.split("?", 1)[0]
