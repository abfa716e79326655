"""
OAuth 1.0a PLAINTEXT request signing for the Discogs API.

PLAINTEXT signature::

    oauth_signature = quote(consumer_secret) + "&" + quote(token_secret or "")

The consumer secret and token secret therefore travel inside the
``Authorization`` header verbatim.  This is only acceptable over TLS, which is
enforced by ``DiscogsConfig`` (non-https endpoints fail config validation);
the signer itself does not look at transports.

Header layout::

    OAuth oauth_consumer_key="...", oauth_nonce="...", oauth_signature="...", ...

Keys and values are percent-encoded (RFC 3986 unreserved set) and the pairs
are sorted by encoded key so headers are reproducible in tests.
"""

from __future__ import annotations

import secrets
import time
from typing import Callable, Optional
from urllib.parse import quote, unquote

from discogs_quiz.errors import ConfigError

SIGNATURE_METHOD = "PLAINTEXT"
NONCE_BYTES = 16   # → 32 hex chars


def percent_encode(value: str) -> str:
    """RFC 3986 percent-encoding: everything but ``A-Za-z0-9-._~`` is escaped."""
    return quote(str(value), safe="~")


def authorization_header(params: dict[str, str]) -> str:
    """Render OAuth parameters as an ``Authorization`` header value.

    Every key and value is percent-encoded, entries are sorted by encoded key
    ascending and joined as ``k="v"`` pairs separated by ``", "``.

    Args:
        params: OAuth parameter name → value.

    Returns:
        ``'OAuth k1="v1", k2="v2", ...'``
    """
    encoded = sorted(
        (percent_encode(k), percent_encode(v)) for k, v in params.items()
    )
    return "OAuth " + ", ".join(f'{k}="{v}"' for k, v in encoded)


def parse_authorization_header(header: str) -> dict[str, str]:
    """Inverse of ``authorization_header()``: decode a header back to params.

    Raises:
        ValueError: If ``header`` does not start with ``"OAuth "`` or a pair
            is not of the form ``k="v"``.
    """
    if not header.startswith("OAuth "):
        raise ValueError("Authorization header must start with 'OAuth '.")
    body = header[len("OAuth "):]
    params: dict[str, str] = {}
    if not body:
        return params
    for pair in body.split(", "):
        key, sep, quoted = pair.partition("=")
        if not sep or len(quoted) < 2 or quoted[0] != '"' or quoted[-1] != '"':
            raise ValueError(f"Malformed OAuth header pair: {pair!r}")
        params[unquote(key)] = unquote(quoted[1:-1])
    return params


class OAuthSigner:
    """Builds PLAINTEXT-signed ``Authorization`` headers for one consumer.

    Usage::

        signer = OAuthSigner(config.discogs.consumer_key,
                             config.discogs.consumer_secret)
        header = signer.sign(token=tokens.token, token_secret=tokens.token_secret)

    Attributes:
        consumer_key: Discogs application consumer key.
        clock: Callable returning epoch seconds; injectable for tests.
    """

    def __init__(
        self,
        consumer_key: str,
        consumer_secret: str,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not consumer_key or not consumer_secret:
            raise ConfigError(
                "OAuthSigner requires both a consumer key and a consumer secret."
            )
        self.consumer_key = consumer_key
        self._consumer_secret = consumer_secret
        self.clock = clock

    def __repr__(self) -> str:
        return f"OAuthSigner(consumer_key='{self.consumer_key}')"

    @staticmethod
    def nonce() -> str:
        """Fresh 32-char hex nonce from the OS CSPRNG; never cached or reused."""
        return secrets.token_hex(NONCE_BYTES)

    def timestamp(self) -> str:
        """Integer seconds since the epoch, as a decimal string."""
        return str(int(self.clock()))

    def signature(self, token_secret: Optional[str] = None) -> str:
        """PLAINTEXT signature for the consumer secret plus ``token_secret``."""
        return (
            f"{percent_encode(self._consumer_secret)}&"
            f"{percent_encode(token_secret or '')}"
        )

    def oauth_params(
        self,
        token: Optional[str] = None,
        token_secret: Optional[str] = None,
        **extra: str,
    ) -> dict[str, str]:
        """Full OAuth parameter set for one request, signature included.

        A new nonce and timestamp are drawn on every call, so retries never
        reuse a nonce.

        Args:
            token: Request or access token; omitted on the request-token leg.
            token_secret: Secret paired with ``token``.
            **extra: Additional ``oauth_*`` parameters such as
                ``oauth_callback`` or ``oauth_verifier``.
        """
        params: dict[str, str] = {
            "oauth_consumer_key": self.consumer_key,
            "oauth_nonce": self.nonce(),
            "oauth_signature_method": SIGNATURE_METHOD,
            "oauth_timestamp": self.timestamp(),
        }
        if token:
            params["oauth_token"] = token
        params.update({k: v for k, v in extra.items() if v is not None})
        params["oauth_signature"] = self.signature(token_secret)
        return params

    def sign(
        self,
        token: Optional[str] = None,
        token_secret: Optional[str] = None,
        **extra: str,
    ) -> str:
        """Return a ready-to-send ``Authorization`` header value."""
        return authorization_header(self.oauth_params(token, token_secret, **extra))
