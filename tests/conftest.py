"""
Shared pytest fixtures for the Discogs quiz test suite.

Provides:
  - ``discogs_config``: A ``DiscogsConfig`` with consumer credentials set.
  - ``token_store`` / ``stored_tokens``: An in-memory store, optionally
    pre-loaded with tokens for user ``"alice"``.
  - ``make_session``: Builds a ``DiscogsSession`` whose HTTP client runs on
    ``httpx.MockTransport`` with a caller-supplied handler.
  - ``make_item`` / ``release_payload``: Collection item and API payload
    factories.

No fixture touches the network.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

import httpx
import pytest

from discogs_quiz.auth.token_store import InMemoryTokenStore
from discogs_quiz.config import DiscogsConfig
from discogs_quiz.ingestion.session import DiscogsSession
from discogs_quiz.models.collection import CollectionItem
from discogs_quiz.models.tokens import OAuthTokenSet

USER_ID = "alice"


# ── Logging isolation ─────────────────────────────────────────────────────────

@pytest.fixture(autouse=True)
def restore_root_logger():
    """Undo ``configure_logging()`` calls made by a test (CLI commands, logging tests)."""
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in saved_handlers:
            handler.close()
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)


# ── Config & credentials ──────────────────────────────────────────────────────

@pytest.fixture
def discogs_config() -> DiscogsConfig:
    """Discogs config with test consumer credentials and default endpoints."""
    return DiscogsConfig(consumer_key="ckey", consumer_secret="csecret")


@pytest.fixture
def token_store() -> InMemoryTokenStore:
    return InMemoryTokenStore()


@pytest.fixture
def access_tokens() -> OAuthTokenSet:
    return OAuthTokenSet(token="atoken", token_secret="asecret", username="alice_dg")


@pytest.fixture
def stored_tokens(token_store, access_tokens) -> InMemoryTokenStore:
    """``token_store`` with tokens saved for ``USER_ID``."""
    token_store.set(USER_ID, access_tokens)
    return token_store


# ── HTTP ──────────────────────────────────────────────────────────────────────

Handler = Callable[[httpx.Request], httpx.Response]


@pytest.fixture
def make_session(discogs_config, token_store):
    """Factory: ``make_session(handler, config=None, store=None) -> DiscogsSession``.

    Every request the session makes is routed to ``handler``.
    """
    sessions: list[DiscogsSession] = []

    def _make(
        handler: Handler,
        config: Optional[DiscogsConfig] = None,
        store=None,
    ) -> DiscogsSession:
        client = httpx.Client(transport=httpx.MockTransport(handler))
        session = DiscogsSession(
            config or discogs_config,
            store if store is not None else token_store,
            client=client,
        )
        sessions.append(session)
        return session

    yield _make
    for session in sessions:
        session.http.close()


# ── Domain object factories ───────────────────────────────────────────────────

def _item_payload(
    release_id: int,
    title: str = "Untitled",
    genres: Optional[list[str]] = None,
    styles: Optional[list[str]] = None,
    year: int = 0,
    formats: Optional[list[str]] = None,
    rating: int = 0,
    date_added: Optional[str] = None,
    artist: str = "Some Artist",
    cover_image: str = "",
) -> dict[str, Any]:
    return {
        "id": release_id,
        "instance_id": release_id * 10,
        "date_added": date_added,
        "rating": rating,
        "basic_information": {
            "id": release_id,
            "title": title,
            "year": year,
            "thumb": f"https://img.example/{release_id}-150.jpg" if cover_image else "",
            "cover_image": cover_image,
            "formats": [{"name": f, "qty": "1"} for f in (formats or ["Vinyl"])],
            "labels": [{"name": "Label", "catno": f"CAT-{release_id}"}],
            "artists": [{"name": artist, "id": release_id + 1000}],
            "genres": genres or [],
            "styles": styles or [],
        },
    }


@pytest.fixture
def item_payload() -> Callable[..., dict[str, Any]]:
    """Factory returning a raw collection entry dict (as Discogs sends it)."""
    return _item_payload


@pytest.fixture
def make_item() -> Callable[..., CollectionItem]:
    """Factory returning a validated ``CollectionItem``.

    Accepts the same keyword arguments as ``item_payload``.
    """
    def _make(release_id: int, **kwargs: Any) -> CollectionItem:
        return CollectionItem.model_validate(_item_payload(release_id, **kwargs))

    return _make


@pytest.fixture
def release_payload() -> Callable[..., dict[str, Any]]:
    """Factory returning a ``/releases/{id}`` body."""
    def _make(release_id: int, title: str = "Release") -> dict[str, Any]:
        return {
            "id": release_id,
            "title": title,
            "artists": [{"name": "Some Artist", "id": 1}],
            "year": 1997,
            "genres": ["Rock"],
            "styles": None,
            "tracklist": [{"position": "A1", "title": "Intro", "duration": "1:02", "type_": "track"}],
            "images": [{"type": "primary", "uri": "https://img.example/full.jpg"}],
        }

    return _make
