"""
Tests for discogs_quiz/auth/flow.py.

What we test
------------
parse_token_response() / parse_callback_url():
  - Form-encoded bodies decode to dicts.
  - Callback URLs missing oauth_token or oauth_verifier raise InvalidCallback.
AuthFlowController:
  - Happy path walks idle → … → authenticated and persists tokens.
  - Request-token leg signs with consumer credentials only.
  - Access-token leg signs with request-token secret + verifier.
  - Missing oauth_token_secret in a token response → ProtocolError, state error.
  - Network failure in a leg → NetworkError, state error, cause recorded.
  - A token store that fails to persist moves the flow to error; begin()
    still works afterwards.
  - Identity failure falls back to the exchange username, then "unknown".
  - Callback token mismatch and reused handles raise InvalidCallback.
  - Relay mode POSTs {"action", "authHeader"} JSON to the proxy URL.
  - Missing consumer credentials fail before any request.
  - sign_out() clears stored tokens.
"""

from __future__ import annotations

import json
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest

from discogs_quiz.auth.flow import (
    AuthFlowController,
    AuthState,
    parse_callback_url,
    parse_token_response,
)
from discogs_quiz.auth.signer import parse_authorization_header
from discogs_quiz.auth.token_store import InMemoryTokenStore
from discogs_quiz.config import DiscogsConfig
from discogs_quiz.errors import (
    ConfigError,
    InvalidCallback,
    NetworkError,
    ProtocolError,
)
from discogs_quiz.ingestion.session import DiscogsSession

USER_ID = "alice"


class FakeDiscogs:
    """Minimal stand-in for the three OAuth endpoints plus identity."""

    def __init__(
        self,
        request_body: str = "oauth_token=rtok&oauth_token_secret=rsec&oauth_callback_confirmed=true",
        access_body: str = "oauth_token=atok&oauth_token_secret=asec",
        identity_status: int = 200,
        identity_body: dict | None = None,
        fail_path: str | None = None,
    ) -> None:
        self.request_body = request_body
        self.access_body = access_body
        self.identity_status = identity_status
        self.identity_body = identity_body if identity_body is not None else {"username": "alice_dg"}
        self.fail_path = fail_path
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path == self.fail_path:
            raise httpx.ConnectError("boom", request=request)
        if path == "/oauth/request_token":
            return httpx.Response(200, text=self.request_body)
        if path == "/oauth/access_token":
            return httpx.Response(200, text=self.access_body)
        if path == "/oauth/identity":
            return httpx.Response(self.identity_status, json=self.identity_body)
        return httpx.Response(404)

    def oauth_params(self, index: int) -> dict[str, str]:
        return parse_authorization_header(self.requests[index].headers["Authorization"])


def _callback(token: str = "rtok", verifier: str = "ver") -> str:
    return f"discogsquizapp://oauth/callback?oauth_token={token}&oauth_verifier={verifier}"


# ── Parsing helpers ───────────────────────────────────────────────────────────

class TestParsing:
    def test_token_response(self):
        assert parse_token_response("a=1&b=x%20y\n") == {"a": "1", "b": "x y"}

    def test_callback_ok(self):
        assert parse_callback_url(_callback()) == ("rtok", "ver")

    @pytest.mark.parametrize(
        "url",
        [
            "discogsquizapp://oauth/callback",
            "discogsquizapp://oauth/callback?oauth_token=rtok",
            "discogsquizapp://oauth/callback?oauth_verifier=ver",
            "discogsquizapp://oauth/callback?oauth_token=&oauth_verifier=ver",
        ],
    )
    def test_callback_missing_params(self, url):
        with pytest.raises(InvalidCallback):
            parse_callback_url(url)


# ── Controller ────────────────────────────────────────────────────────────────

class TestHappyPath:
    def test_full_flow(self, make_session, token_store):
        fake = FakeDiscogs()
        controller = AuthFlowController(make_session(fake))

        pending = controller.begin(USER_ID)
        assert controller.state is AuthState.AWAITING_USER_AUTHORIZATION
        assert pending.authorize_url == "https://www.discogs.com/oauth/authorize?oauth_token=rtok"

        tokens = controller.complete(pending, _callback())

        assert tokens.token == "atok"
        assert tokens.token_secret == "asec"
        assert tokens.username == "alice_dg"
        assert token_store.get(USER_ID) == tokens
        assert controller.state is AuthState.AUTHENTICATED
        assert controller.history == [
            AuthState.IDLE,
            AuthState.REQUESTING_TOKEN,
            AuthState.AWAITING_USER_AUTHORIZATION,
            AuthState.EXCHANGING_TOKEN,
            AuthState.FETCHING_IDENTITY,
            AuthState.AUTHENTICATED,
        ]

    def test_request_leg_signed_with_consumer_only(self, make_session):
        fake = FakeDiscogs()
        AuthFlowController(make_session(fake)).begin(USER_ID)
        params = fake.oauth_params(0)
        assert fake.requests[0].method == "POST"
        assert params["oauth_signature"] == "csecret&"
        assert params["oauth_callback"] == "discogsquizapp://oauth/callback"
        assert "oauth_token" not in params

    def test_access_leg_signed_with_request_secret_and_verifier(self, make_session):
        fake = FakeDiscogs()
        controller = AuthFlowController(make_session(fake))
        controller.complete(controller.begin(USER_ID), _callback(verifier="v123"))
        params = fake.oauth_params(1)
        assert params["oauth_token"] == "rtok"
        assert params["oauth_verifier"] == "v123"
        assert params["oauth_signature"] == "csecret&rsec"

    def test_identity_call_signed_with_access_token(self, make_session):
        fake = FakeDiscogs()
        controller = AuthFlowController(make_session(fake))
        controller.complete(controller.begin(USER_ID), _callback())
        assert fake.requests[2].url.path == "/oauth/identity"
        assert fake.oauth_params(2)["oauth_signature"] == "csecret&asec"
        assert fake.requests[2].headers["User-Agent"] == "DiscogsQuizApp/1.0"

    def test_authenticate_uses_agent(self, make_session):
        seen: list[str] = []

        def agent(url: str) -> str:
            seen.append(url)
            return _callback()

        tokens = AuthFlowController(make_session(FakeDiscogs())).authenticate(USER_ID, agent)
        assert seen == ["https://www.discogs.com/oauth/authorize?oauth_token=rtok"]
        assert tokens.username == "alice_dg"


class TestIdentityFallback:
    def test_falls_back_to_exchange_username(self, make_session):
        fake = FakeDiscogs(
            access_body="oauth_token=atok&oauth_token_secret=asec&username=from_exchange",
            identity_status=500,
        )
        controller = AuthFlowController(make_session(fake))
        tokens = controller.complete(controller.begin(USER_ID), _callback())
        assert tokens.username == "from_exchange"
        assert controller.state is AuthState.AUTHENTICATED

    def test_falls_back_to_unknown(self, make_session, token_store):
        fake = FakeDiscogs(fail_path="/oauth/identity")
        controller = AuthFlowController(make_session(fake))
        tokens = controller.complete(controller.begin(USER_ID), _callback())
        assert tokens.username == "unknown"
        assert token_store.get(USER_ID).username == "unknown"

    def test_identity_without_username(self, make_session):
        fake = FakeDiscogs(identity_body={"id": 1})
        controller = AuthFlowController(make_session(fake))
        assert controller.complete(controller.begin(USER_ID), _callback()).username == "unknown"


class TestFailures:
    def test_request_token_missing_secret(self, make_session):
        fake = FakeDiscogs(request_body="oauth_token=rtok")
        controller = AuthFlowController(make_session(fake))
        with pytest.raises(ProtocolError):
            controller.begin(USER_ID)
        assert controller.state is AuthState.ERROR
        assert isinstance(controller.error, ProtocolError)

    def test_access_token_missing_secret(self, make_session, token_store):
        fake = FakeDiscogs(access_body="oauth_token=atok")
        controller = AuthFlowController(make_session(fake))
        pending = controller.begin(USER_ID)
        with pytest.raises(ProtocolError):
            controller.complete(pending, _callback())
        assert controller.state is AuthState.ERROR
        assert token_store.get(USER_ID) is None

    def test_network_failure_on_request_leg(self, make_session):
        fake = FakeDiscogs(fail_path="/oauth/request_token")
        controller = AuthFlowController(make_session(fake))
        with pytest.raises(NetworkError):
            controller.begin(USER_ID)
        assert controller.state is AuthState.ERROR
        assert len(fake.requests) == 1

    def test_http_error_status_on_access_leg(self, make_session):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/oauth/request_token":
                return httpx.Response(200, text="oauth_token=rtok&oauth_token_secret=rsec")
            return httpx.Response(401, text="invalid verifier")

        controller = AuthFlowController(make_session(handler))
        pending = controller.begin(USER_ID)
        with pytest.raises(NetworkError) as exc_info:
            controller.complete(pending, _callback())
        assert exc_info.value.status_code == 401

    def test_callback_token_mismatch(self, make_session):
        fake = FakeDiscogs()
        controller = AuthFlowController(make_session(fake))
        pending = controller.begin(USER_ID)
        with pytest.raises(InvalidCallback, match="does not match"):
            controller.complete(pending, _callback(token="other"))
        assert controller.state is AuthState.ERROR
        assert len(fake.requests) == 1

    def test_missing_verifier(self, make_session):
        controller = AuthFlowController(make_session(FakeDiscogs()))
        pending = controller.begin(USER_ID)
        with pytest.raises(InvalidCallback):
            controller.complete(pending, "discogsquizapp://oauth/callback?oauth_token=rtok")

    def test_handle_is_single_use(self, make_session):
        fake = FakeDiscogs(access_body="oauth_token=atok")
        controller = AuthFlowController(make_session(fake))
        pending = controller.begin(USER_ID)
        with pytest.raises(ProtocolError):
            controller.complete(pending, _callback())
        with pytest.raises(InvalidCallback, match="already used"):
            controller.complete(pending, _callback())

    def test_retry_after_error_starts_fresh(self, make_session):
        fake = FakeDiscogs(request_body="oauth_token=rtok")
        controller = AuthFlowController(make_session(fake))
        with pytest.raises(ProtocolError):
            controller.begin(USER_ID)
        fake.request_body = "oauth_token=rtok&oauth_token_secret=rsec"
        pending = controller.begin(USER_ID)
        assert controller.state is AuthState.AWAITING_USER_AUTHORIZATION
        assert controller.error is None
        assert pending.request_token == "rtok"

    def test_store_failure_moves_to_error_and_allows_retry(self, make_session):
        class LockedStore(InMemoryTokenStore):
            def set(self, user_id, tokens):
                raise OSError("database is locked")

        controller = AuthFlowController(make_session(FakeDiscogs(), store=LockedStore()))
        pending = controller.begin(USER_ID)
        with pytest.raises(OSError, match="locked"):
            controller.complete(pending, _callback())
        assert controller.state is AuthState.ERROR
        assert isinstance(controller.error, OSError)
        assert controller.history[-2:] == [AuthState.FETCHING_IDENTITY, AuthState.ERROR]

        controller.begin(USER_ID)
        assert controller.state is AuthState.AWAITING_USER_AUTHORIZATION

    def test_missing_consumer_credentials_before_network(self, token_store):
        calls: list[httpx.Request] = []
        client = httpx.Client(
            transport=httpx.MockTransport(lambda r: calls.append(r) or httpx.Response(200))
        )
        with pytest.raises(ConfigError):
            DiscogsSession(DiscogsConfig(), token_store, client=client)
        assert calls == []


class TestRelay:
    def test_legs_go_through_relay(self, make_session):
        config = DiscogsConfig(
            consumer_key="ckey",
            consumer_secret="csecret",
            proxy_url="https://relay.example/api/discogs-oauth",
        )
        fake = FakeDiscogs()

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "relay.example":
                fake.requests.append(request)
                action = json.loads(request.content)["action"]
                body = fake.request_body if action == "request_token" else fake.access_body
                return httpx.Response(200, text=body)
            return fake(request)

        controller = AuthFlowController(make_session(handler, config=config))
        tokens = controller.complete(controller.begin(USER_ID), _callback())

        relay_calls = [r for r in fake.requests if r.url.host == "relay.example"]
        assert [json.loads(r.content)["action"] for r in relay_calls] == [
            "request_token",
            "access_token",
        ]
        header = json.loads(relay_calls[1].content)["authHeader"]
        assert parse_authorization_header(header)["oauth_verifier"] == "ver"
        assert tokens.username == "alice_dg"


class TestSignOut:
    def test_clears_tokens(self, make_session, stored_tokens):
        AuthFlowController(make_session(FakeDiscogs())).sign_out(USER_ID)
        assert stored_tokens.get(USER_ID) is None

    def test_authorize_url_encodes_token(self, make_session):
        fake = FakeDiscogs(request_body="oauth_token=a%2Fb&oauth_token_secret=s")
        pending = AuthFlowController(make_session(fake)).begin(USER_ID)
        query = parse_qs(urlsplit(pending.authorize_url).query)
        assert query["oauth_token"] == ["a/b"]
