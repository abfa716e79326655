"""
Tests for discogs_quiz/pipeline/recommend.py.

What we test
------------
RecommendPipeline.run():
  - Stored tokens: fetches collection, details for the top candidates only,
    returns status ok with a recommendation built from fetched details.
  - details.top_n caps the number of detail requests.
  - Detail bodies for a different release id are dropped and the pick falls
    back to the collection entry.
  - Empty collection → status empty_collection, no detail requests.
  - No candidates even after broadening → status no_match.
  - No tokens and no agent → Unauthenticated; with an agent the OAuth flow
    runs first and the tokens are stored.
  - A partial collection is still used and flagged incomplete.
  - on_progress is forwarded to the detail fetcher.
"""

from __future__ import annotations

import random
from datetime import datetime, timezone

import httpx
import pytest

from discogs_quiz.config import AppConfig, DetailsConfig
from discogs_quiz.errors import Unauthenticated
from discogs_quiz.ingestion.releases import ReleaseDetailFetcher
from discogs_quiz.models.quiz import QuizAnswers
from discogs_quiz.pipeline.recommend import RecommendPipeline, RunStatus
from discogs_quiz.recommendations.filtering import BroadenStep


NOW = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)
ANSWERS = QuizAnswers(mood="relaxed", tempo="slow", genres=["Jazz"], decade="any", format="both")


class FakeApi:
    """Collection listing + release details + OAuth endpoints."""

    def __init__(
        self,
        collection: list[dict],
        fail_page: int | None = None,
        served_ids: dict[int, int] | None = None,
    ) -> None:
        self.collection = collection
        self.fail_page = fail_page
        self.served_ids = served_ids or {}
        self.requests: list[httpx.Request] = []

    @property
    def release_requests(self) -> list[int]:
        return [
            int(r.url.path.rsplit("/", 1)[1])
            for r in self.requests
            if r.url.path.startswith("/releases/")
        ]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path.endswith("/collection/folders/0/releases"):
            page = int(request.url.params["page"])
            if page == self.fail_page:
                return httpx.Response(500)
            per_page = int(request.url.params["per_page"])
            chunk = self.collection[(page - 1) * per_page: page * per_page]
            pages = max(1, -(-len(self.collection) // per_page))
            return httpx.Response(
                200, json={"releases": chunk, "pagination": {"page": page, "pages": pages}}
            )
        if path.startswith("/releases/"):
            release_id = int(path.rsplit("/", 1)[1])
            release_id = self.served_ids.get(release_id, release_id)
            return httpx.Response(
                200,
                json={"id": release_id, "title": f"Detailed {release_id}", "tracklist": [{"title": "T1"}]},
            )
        if path == "/oauth/request_token":
            return httpx.Response(200, text="oauth_token=rtok&oauth_token_secret=rsec")
        if path == "/oauth/access_token":
            return httpx.Response(200, text="oauth_token=atok&oauth_token_secret=asec")
        if path == "/oauth/identity":
            return httpx.Response(200, json={"username": "alice_dg"})
        return httpx.Response(404)


@pytest.fixture
def app_config(discogs_config) -> AppConfig:
    return AppConfig(discogs=discogs_config, details=DetailsConfig(min_interval_s=1.1, top_n=2))


def _pipeline(app_config, session, seed: int = 0) -> RecommendPipeline:
    fetcher = ReleaseDetailFetcher(
        session, app_config.details, clock=lambda: 0.0, sleep=lambda s: None
    )
    return RecommendPipeline(
        app_config, session, detail_fetcher=fetcher, rng=random.Random(seed), now=NOW
    )


def _jazz_collection(item_payload, n: int = 3) -> list[dict]:
    return [item_payload(i, genres=["Jazz"], styles=["Smooth Jazz"], formats=["LP"]) for i in range(1, n + 1)]


class TestRun:
    def test_ok(self, app_config, make_session, stored_tokens, item_payload):
        api = FakeApi(_jazz_collection(item_payload, 3))
        result = _pipeline(app_config, make_session(api)).run("alice", ANSWERS)

        assert result.status is RunStatus.OK
        assert result.collection_size == 3
        assert result.collection_complete
        assert result.candidate_count == 3
        assert result.broaden_step is BroadenStep.NONE
        rec = result.recommendation
        assert rec is not None
        assert rec.release_data.id == rec.collection_item.release_id

    def test_details_only_for_top_n(self, app_config, make_session, stored_tokens, item_payload):
        api = FakeApi(_jazz_collection(item_payload, 5))
        result = _pipeline(app_config, make_session(api)).run("alice", ANSWERS)
        assert api.release_requests == [1, 2]
        assert result.details_fetched == 2

    def test_detailed_pick_uses_fetched_data(self, app_config, make_session, stored_tokens, item_payload):
        api = FakeApi(_jazz_collection(item_payload, 1))
        result = _pipeline(app_config, make_session(api)).run("alice", ANSWERS)
        assert result.recommendation.release_data.title == "Detailed 1"

    def test_detail_for_wrong_release_is_ignored(
        self, app_config, make_session, stored_tokens, item_payload
    ):
        api = FakeApi(_jazz_collection(item_payload, 1), served_ids={1: 9999})
        result = _pipeline(app_config, make_session(api)).run("alice", ANSWERS)
        assert result.status is RunStatus.OK
        assert result.details_fetched == 0
        rec = result.recommendation
        assert rec.release_data.id == 1
        assert rec.release_data.title == "Untitled"

    def test_progress_forwarded(self, app_config, make_session, stored_tokens, item_payload):
        api = FakeApi(_jazz_collection(item_payload, 3))
        events = []
        _pipeline(app_config, make_session(api)).run(
            "alice", ANSWERS, on_progress=lambda c, t: events.append((c, t))
        )
        assert events == [(1, 2), (2, 2)]

    def test_empty_collection(self, app_config, make_session, stored_tokens):
        api = FakeApi([])
        result = _pipeline(app_config, make_session(api)).run("alice", ANSWERS)
        assert result.status is RunStatus.EMPTY_COLLECTION
        assert result.recommendation is None
        assert api.release_requests == []

    def test_zero_scores_no_match(self, app_config, make_session, stored_tokens, item_payload):
        answers = QuizAnswers(
            mood="aggressive", tempo="fast", genres=["Metal"], decade="1990s", format="single"
        )
        api = FakeApi([item_payload(1, genres=["Folk"], year=1970, formats=["LP"])])
        result = _pipeline(app_config, make_session(api)).run("alice", answers)
        assert result.status is RunStatus.NO_MATCH
        assert result.broaden_step is BroadenStep.DROPPED_DECADE
        assert result.recommendation is None

    def test_partial_collection_flagged(self, app_config, make_session, stored_tokens, item_payload):
        collection = _jazz_collection(item_payload, 150)
        api = FakeApi(collection, fail_page=2)
        result = _pipeline(app_config, make_session(api)).run("alice", ANSWERS)
        assert result.status is RunStatus.OK
        assert result.collection_size == 100
        assert not result.collection_complete


class TestAuthentication:
    def test_no_tokens_no_agent(self, app_config, make_session, item_payload):
        api = FakeApi(_jazz_collection(item_payload))
        with pytest.raises(Unauthenticated):
            _pipeline(app_config, make_session(api)).run("alice", ANSWERS)
        assert api.requests == []

    def test_agent_runs_oauth_first(self, app_config, make_session, token_store, item_payload):
        api = FakeApi(_jazz_collection(item_payload))
        agent_calls = []

        def agent(url: str) -> str:
            agent_calls.append(url)
            return "discogsquizapp://oauth/callback?oauth_token=rtok&oauth_verifier=v"

        result = _pipeline(app_config, make_session(api)).run("alice", ANSWERS, agent=agent)

        assert result.status is RunStatus.OK
        assert len(agent_calls) == 1
        assert token_store.get("alice").username == "alice_dg"
        listing = [r for r in api.requests if "collection" in r.url.path][0]
        assert listing.url.path == "/users/alice_dg/collection/folders/0/releases"
