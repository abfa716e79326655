"""
RecommendPipeline — one quiz run from stored credentials to a single album.

Flow
----
  1. No stored tokens → authenticate through the supplied agent
     (no agent → ``Unauthenticated``).
  2. Fetch the whole collection.  Empty → status ``empty_collection``.
     A partial collection (page error) is used as-is and flagged.
  3. Strict filter; if nothing passes, broaden.  Still nothing → ``no_match``.
  4. Fetch release details for the first ``details.top_n`` candidates only.
  5. Rank + pick among the candidates → ``ok`` (or ``no_match`` when every
     candidate scores 0).

Statuses are outcomes; only configuration, auth and callback problems raise.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Optional

from discogs_quiz.auth.flow import AuthFlowController, AuthorizationAgent
from discogs_quiz.config import AppConfig
from discogs_quiz.errors import Unauthenticated
from discogs_quiz.ingestion.collection import CollectionFetcher
from discogs_quiz.ingestion.releases import ProgressCallback, ReleaseDetailFetcher
from discogs_quiz.ingestion.session import DiscogsSession
from discogs_quiz.models.quiz import QuizAnswers
from discogs_quiz.models.recommendation import Recommendation
from discogs_quiz.recommendations.criteria import to_filter_criteria
from discogs_quiz.recommendations.filtering import BroadenStep, select_candidates
from discogs_quiz.recommendations.ranker import recommend

logger = logging.getLogger(__name__)


class RunStatus(StrEnum):
    OK = "ok"
    NO_MATCH = "no_match"
    EMPTY_COLLECTION = "empty_collection"


@dataclass
class RecommendRunResult:
    """Outcome of one pipeline run.

    Attributes:
        status: ``ok``, ``no_match`` or ``empty_collection``.
        recommendation: The pick when ``status`` is ``ok``.
        collection_size: Items fetched (possibly a partial collection).
        collection_complete: ``False`` when pagination stopped on an error.
        candidate_count: Items left after filtering/broadening.
        broaden_step: Which relaxation produced the candidates.
        details_fetched: Release detail lookups that succeeded.
    """

    status: RunStatus
    recommendation: Optional[Recommendation] = None
    collection_size: int = 0
    collection_complete: bool = True
    candidate_count: int = 0
    broaden_step: BroadenStep = BroadenStep.NONE
    details_fetched: int = 0


class RecommendPipeline:
    """Wires authentication, fetching and the engine for one user.

    Usage::

        with DiscogsSession(config.discogs, store) as session:
            result = RecommendPipeline(config, session).run("alice", answers)
    """

    def __init__(
        self,
        config: AppConfig,
        session: DiscogsSession,
        collection_fetcher: Optional[CollectionFetcher] = None,
        detail_fetcher: Optional[ReleaseDetailFetcher] = None,
        rng: Optional[random.Random] = None,
        now: Optional[datetime] = None,
    ) -> None:
        self.config = config
        self.session = session
        self.collection_fetcher = collection_fetcher or CollectionFetcher(
            session, config.collection
        )
        self.detail_fetcher = detail_fetcher or ReleaseDetailFetcher(
            session, config.details
        )
        self.rng = rng
        self.now = now

    def ensure_authenticated(
        self, user_id: str, agent: Optional[AuthorizationAgent] = None
    ) -> None:
        """Run the OAuth flow if ``user_id`` has no stored tokens.

        Raises:
            Unauthenticated: Tokens missing and no ``agent`` to obtain them.
        """
        if self.session.token_store.get(user_id) is not None:
            return
        if agent is None:
            raise Unauthenticated(user_id)
        logger.info("No stored tokens for user=%s; starting authorization", user_id)
        AuthFlowController(self.session).authenticate(user_id, agent)

    def run(
        self,
        user_id: str,
        answers: QuizAnswers,
        agent: Optional[AuthorizationAgent] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> RecommendRunResult:
        """Produce one recommendation for ``user_id``."""
        self.ensure_authenticated(user_id, agent)

        collection = self.collection_fetcher.fetch_all(user_id)
        if not collection.items:
            logger.info("Collection for user=%s is empty", user_id)
            return RecommendRunResult(
                status=RunStatus.EMPTY_COLLECTION,
                collection_complete=collection.complete,
            )

        criteria = to_filter_criteria(answers)
        candidates = select_candidates(collection.items, criteria)
        if candidates.is_no_match:
            return RecommendRunResult(
                status=RunStatus.NO_MATCH,
                collection_size=len(collection),
                collection_complete=collection.complete,
                broaden_step=candidates.step,
            )

        top_ids = [item.release_id for item in candidates.items[: self.config.details.top_n]]
        details = self.detail_fetcher.fetch_details(user_id, top_ids, on_progress)

        pick = recommend(
            candidates.items,
            answers,
            release_data_map=details,
            rng=self.rng,
            now=self.now,
            margin=self.config.recommend.close_match_margin,
        )
        status = RunStatus.OK if pick is not None else RunStatus.NO_MATCH
        logger.info(
            "Recommend run for user=%s: status=%s candidates=%d step=%s",
            user_id, status.value, len(candidates.items), candidates.step.value,
        )
        return RecommendRunResult(
            status=status,
            recommendation=pick,
            collection_size=len(collection),
            collection_complete=collection.complete,
            candidate_count=len(candidates.items),
            broaden_step=candidates.step,
            details_fetched=len(details),
        )
