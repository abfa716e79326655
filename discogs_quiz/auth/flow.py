"""
Three-legged OAuth 1.0a authorization against Discogs.

State machine (``AuthState``)::

    idle ─► requesting_token ─► awaiting_user_authorization
                                        │
          ┌─────────────────────────────┘
          ▼
    exchanging_token ─► fetching_identity ─► authenticated

    error  ◄── reachable from every non-terminal state (cause kept in .error)

Legs
----
1. ``begin(user_id)``  — request token (signed with consumer credentials
   only), returns a single-use ``PendingAuthorization`` carrying the
   authorization URL.
2. The caller (or ``authenticate()`` via an ``AuthorizationAgent``) sends the
   user to that URL and eventually receives the callback URL.  This may never
   happen; the caller owns any timeout.
3. ``complete(pending, callback_url)`` — validates the callback, exchanges
   the request token + verifier for an access token, resolves the username
   (best-effort), persists the ``OAuthTokenSet`` and returns it.

Retry policy: a network failure in any leg is immediately fatal for that
attempt.  A ``PendingAuthorization`` is consumed by the first ``complete()``
call, successful or not, so a retry always starts again at ``begin()``.

Relay: when ``DiscogsConfig.proxy_url`` is set, the two token legs are
POSTed to the relay as ``{"action": ..., "authHeader": ...}`` instead of to
Discogs directly (for hosts where direct cross-origin calls are blocked).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Optional, Protocol
from urllib.parse import parse_qsl, quote, urlsplit

from discogs_quiz.errors import (
    DiscogsQuizError,
    InvalidCallback,
    ProtocolError,
)
from discogs_quiz.ingestion.session import DiscogsSession
from discogs_quiz.models.tokens import OAuthTokenSet

logger = logging.getLogger(__name__)

UNKNOWN_USERNAME = "unknown"


class AuthState(StrEnum):
    """Position of an ``AuthFlowController`` in the handshake."""

    IDLE = "idle"
    REQUESTING_TOKEN = "requesting_token"
    AWAITING_USER_AUTHORIZATION = "awaiting_user_authorization"
    EXCHANGING_TOKEN = "exchanging_token"
    FETCHING_IDENTITY = "fetching_identity"
    AUTHENTICATED = "authenticated"
    ERROR = "error"


_ALLOWED_TRANSITIONS: dict[AuthState, frozenset[AuthState]] = {
    AuthState.IDLE: frozenset({
        AuthState.REQUESTING_TOKEN,
        AuthState.EXCHANGING_TOKEN,     # completing a handle begun elsewhere
        AuthState.ERROR,
    }),
    AuthState.REQUESTING_TOKEN: frozenset({
        AuthState.AWAITING_USER_AUTHORIZATION,
        AuthState.ERROR,
    }),
    AuthState.AWAITING_USER_AUTHORIZATION: frozenset({
        AuthState.EXCHANGING_TOKEN,
        AuthState.REQUESTING_TOKEN,     # abandoned handle, fresh attempt
        AuthState.ERROR,
    }),
    AuthState.EXCHANGING_TOKEN: frozenset({
        AuthState.FETCHING_IDENTITY,
        AuthState.ERROR,
    }),
    AuthState.FETCHING_IDENTITY: frozenset({
        AuthState.AUTHENTICATED,
        AuthState.ERROR,               # persisting the tokens failed
    }),
    AuthState.AUTHENTICATED: frozenset({
        AuthState.REQUESTING_TOKEN,
        AuthState.EXCHANGING_TOKEN,
        AuthState.ERROR,
    }),
    AuthState.ERROR: frozenset({
        AuthState.REQUESTING_TOKEN,
        AuthState.EXCHANGING_TOKEN,
        AuthState.ERROR,
    }),
}


class AuthorizationAgent(Protocol):
    """Sends the user to ``authorize_url`` and returns the callback URL.

    Typically a browser round-trip; may block indefinitely.
    """

    def __call__(self, authorize_url: str) -> str: ...


@dataclass
class PendingAuthorization:
    """Single-use handle for an in-flight authorization.

    Attributes:
        user_id: Local user the resulting tokens will be stored under.
        request_token: Temporary token embedded in ``authorize_url``.
        request_token_secret: Secret paired with ``request_token``.
        authorize_url: Where the user must approve access.
        consumed: Set by the first ``complete()`` call.
    """

    user_id: str
    request_token: str
    request_token_secret: str = field(repr=False)
    authorize_url: str
    consumed: bool = False


# ── Parsing helpers ───────────────────────────────────────────────────────────

def parse_token_response(body: str) -> dict[str, str]:
    """Decode a ``key=value&key=value`` token-endpoint body."""
    return dict(parse_qsl(body.strip(), keep_blank_values=True))


def parse_callback_url(callback_url: str) -> tuple[str, str]:
    """Extract ``(oauth_token, oauth_verifier)`` from a callback URL.

    Raises:
        InvalidCallback: If the URL has no query string or either parameter is
            missing or empty.
    """
    query = urlsplit(callback_url).query
    if not query:
        raise InvalidCallback("Callback URL has no query string.")
    params = dict(parse_qsl(query, keep_blank_values=True))
    token = params.get("oauth_token")
    verifier = params.get("oauth_verifier")
    if not token or not verifier:
        raise InvalidCallback(
            "Callback URL must contain both oauth_token and oauth_verifier."
        )
    return token, verifier


# ── Controller ────────────────────────────────────────────────────────────────

class AuthFlowController:
    """Runs the Discogs OAuth 1.0a handshake and persists the result.

    Attributes:
        session: Shared ``DiscogsSession`` (config, signer, store, HTTP).
        state: Current ``AuthState``.
        error: The exception that moved the controller into ``ERROR``.
        history: Every state entered, in order (starts with ``IDLE``).
    """

    def __init__(self, session: DiscogsSession) -> None:
        self.session = session
        self.state = AuthState.IDLE
        self.error: Optional[Exception] = None
        self.history: list[AuthState] = [AuthState.IDLE]

    # ── State bookkeeping ─────────────────────────────────────────────────────

    def _enter(self, new_state: AuthState) -> None:
        if new_state not in _ALLOWED_TRANSITIONS[self.state]:
            raise RuntimeError(
                f"Illegal auth transition {self.state.value} -> {new_state.value}"
            )
        logger.debug("Auth flow: %s -> %s", self.state.value, new_state.value)
        self.state = new_state
        self.history.append(new_state)
        if new_state is not AuthState.ERROR:
            self.error = None

    def _fail(self, exc: Exception) -> None:
        logger.error("Auth flow failed during %s: %s", self.state.value, exc)
        self._enter(AuthState.ERROR)
        self.error = exc

    # ── Legs ──────────────────────────────────────────────────────────────────

    def begin(self, user_id: str) -> PendingAuthorization:
        """Obtain a request token and build the authorization URL.

        Raises:
            NetworkError: Request-token call failed (transport or status).
            ProtocolError: Response lacked ``oauth_token``/``oauth_token_secret``.
        """
        self._enter(AuthState.REQUESTING_TOKEN)
        cfg = self.session.config
        try:
            header = self.session.signer.sign(oauth_callback=cfg.callback_url)
            body = self._post_token_leg(
                "request_token",
                cfg.request_token_url,
                header,
                params={"oauth_callback": cfg.callback_url},
            )
            data = parse_token_response(body)
            token = data.get("oauth_token")
            secret = data.get("oauth_token_secret")
            if not token or not secret:
                raise ProtocolError(
                    "Request-token response is missing oauth_token or oauth_token_secret."
                )
        except DiscogsQuizError as exc:
            self._fail(exc)
            raise

        pending = PendingAuthorization(
            user_id=user_id,
            request_token=token,
            request_token_secret=secret,
            authorize_url=f"{cfg.authorize_url}?oauth_token={quote(token, safe='')}",
        )
        self._enter(AuthState.AWAITING_USER_AUTHORIZATION)
        logger.info("Request token obtained for user=%s; awaiting authorization", user_id)
        return pending

    def complete(
        self, pending: PendingAuthorization, callback_url: str
    ) -> OAuthTokenSet:
        """Finish the handshake from the authorization callback.

        Raises:
            InvalidCallback: Missing ``oauth_token``/``oauth_verifier``, a token
                that does not belong to ``pending``, or a reused handle.
            NetworkError: Access-token exchange failed.
            ProtocolError: Exchange response lacked the access token pair.
            Exception: Whatever ``TokenStore.set()`` raises (e.g. a locked
                SQLite database); the controller is left in ``ERROR``.
        """
        try:
            if pending.consumed:
                raise InvalidCallback(
                    "This authorization attempt was already used; start a new one."
                )
            callback_token, verifier = parse_callback_url(callback_url)
            if callback_token != pending.request_token:
                raise InvalidCallback(
                    "Callback oauth_token does not match the pending request token."
                )
        except InvalidCallback as exc:
            self._fail(exc)
            raise

        pending.consumed = True
        self._enter(AuthState.EXCHANGING_TOKEN)
        try:
            header = self.session.signer.sign(
                token=pending.request_token,
                token_secret=pending.request_token_secret,
                oauth_verifier=verifier,
            )
            body = self._post_token_leg(
                "access_token", self.session.config.access_token_url, header
            )
            data = parse_token_response(body)
            access_token = data.get("oauth_token")
            access_secret = data.get("oauth_token_secret")
            if not access_token or not access_secret:
                raise ProtocolError(
                    "Access-token response is missing oauth_token or oauth_token_secret."
                )
        except DiscogsQuizError as exc:
            self._fail(exc)
            raise

        self._enter(AuthState.FETCHING_IDENTITY)
        try:
            provisional = OAuthTokenSet(
                token=access_token,
                token_secret=access_secret,
                username=data.get("username") or UNKNOWN_USERNAME,
            )
            tokens = provisional.model_copy(
                update={"username": self._resolve_username(provisional)}
            )
            self.session.token_store.set(pending.user_id, tokens)
        except Exception as exc:
            self._fail(exc)
            raise

        self._enter(AuthState.AUTHENTICATED)
        logger.info(
            "Authenticated user=%s as Discogs username=%s", pending.user_id, tokens.username
        )
        return tokens

    def authenticate(self, user_id: str, agent: AuthorizationAgent) -> OAuthTokenSet:
        """Run all legs, delegating the browser step to ``agent``."""
        pending = self.begin(user_id)
        callback_url = agent(pending.authorize_url)
        return self.complete(pending, callback_url)

    def sign_out(self, user_id: str) -> None:
        """Forget stored tokens for ``user_id``."""
        self.session.token_store.clear(user_id)

    # ── Internals ─────────────────────────────────────────────────────────────

    def _post_token_leg(
        self,
        action: str,
        url: str,
        header: str,
        params: Optional[dict[str, str]] = None,
    ) -> str:
        """POST one token leg directly or via the relay; return the body text."""
        proxy_url = self.session.config.proxy_url
        if proxy_url:
            resp = self.session.send(
                "POST",
                proxy_url,
                json={"action": action, "authHeader": header},
            )
        else:
            resp = self.session.send(
                "POST", url, params=params, headers={"Authorization": header}
            )
        return resp.text

    def _resolve_username(self, tokens: OAuthTokenSet) -> str:
        """Canonical username from ``/oauth/identity``; best-effort.

        Any failure is logged and the exchange-response username (or
        ``"unknown"``) is kept.
        """
        try:
            identity = self.session.get_json_with(tokens, "/oauth/identity")
        except DiscogsQuizError as exc:
            logger.warning(
                "Identity lookup failed (%s); using username=%s", exc, tokens.username
            )
            return tokens.username
        username = identity.get("username")
        if not username:
            logger.warning("Identity response had no username; using %s", tokens.username)
            return tokens.username
        return str(username)
