"""
Release detail lookups, strictly serial and rate-spaced.

Discogs allows roughly 60 authenticated requests per minute.  Consecutive
request *starts* are kept at least ``DetailsConfig.min_interval_s`` apart
(1.1 s by default, about 55/minute).  The clock and sleep functions are
injectable so tests run instantly and can assert the spacing.

Two ways to consume a batch:

  - ``fetch_details(user_id, ids, on_progress)`` → ``dict[id, ReleaseData]``,
    calling ``on_progress(completed, total)`` after every attempt.
  - ``iter_progress(user_id, ids)`` → lazy generator of ``DetailProgress``,
    one event per attempt.

A failed id is logged and omitted; the batch always continues.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from typing import Callable, Optional

from pydantic import ValidationError

from discogs_quiz.config import DetailsConfig
from discogs_quiz.errors import DiscogsQuizError, ProtocolError
from discogs_quiz.ingestion.session import DiscogsSession
from discogs_quiz.models.release import ReleaseData
from discogs_quiz.models.tokens import OAuthTokenSet

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


@dataclass(frozen=True)
class DetailProgress:
    """One attempt in a detail batch.

    Attributes:
        completed: Attempts finished so far, including this one.
        total: Number of ids in the batch.
        release_id: The id just attempted.
        release: Fetched data, or ``None`` if the attempt failed.
    """

    completed: int
    total: int
    release_id: int
    release: Optional[ReleaseData]

    @property
    def ok(self) -> bool:
        return self.release is not None


class ReleaseDetailFetcher:
    """Serial ``/releases/{id}`` fetcher with minimum request spacing."""

    def __init__(
        self,
        session: DiscogsSession,
        config: Optional[DetailsConfig] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.session = session
        self.config = config or DetailsConfig()
        self.clock = clock
        self.sleep = sleep
        self._last_start: Optional[float] = None

    def _wait_for_slot(self) -> None:
        if self._last_start is not None:
            remaining = self.config.min_interval_s - (self.clock() - self._last_start)
            if remaining > 0:
                self.sleep(remaining)
        self._last_start = self.clock()

    def _fetch_with(self, tokens: OAuthTokenSet, release_id: int) -> ReleaseData:
        self._wait_for_slot()
        data = self.session.get_json_with(tokens, f"/releases/{int(release_id)}")
        release = ReleaseData.from_api(data)
        if release.id != release_id:
            raise ProtocolError(
                f"/releases/{release_id} returned release id {release.id}"
            )
        return release

    def fetch_release(self, user_id: str, release_id: int) -> ReleaseData:
        """Fetch one release.

        Raises:
            Unauthenticated: No stored tokens for ``user_id``.
            NetworkError: Transport failure or non-2xx status.
            ProtocolError: Body is not a JSON object, or describes a different
                release than ``release_id``.
        """
        tokens = self.session.require_tokens(user_id)
        return self._fetch_with(tokens, release_id)

    def iter_progress(
        self, user_id: str, release_ids: Sequence[int]
    ) -> Iterator[DetailProgress]:
        """Yield one ``DetailProgress`` per id, fetching lazily.

        Raises:
            Unauthenticated: On first iteration when no tokens are stored.
        """
        tokens = self.session.require_tokens(user_id)
        total = len(release_ids)
        for completed, release_id in enumerate(release_ids, start=1):
            try:
                release: Optional[ReleaseData] = self._fetch_with(tokens, release_id)
            except (DiscogsQuizError, ValidationError) as exc:
                logger.warning("Release %s detail fetch failed: %s", release_id, exc)
                release = None
            yield DetailProgress(
                completed=completed,
                total=total,
                release_id=release_id,
                release=release,
            )

    def fetch_details(
        self,
        user_id: str,
        release_ids: Sequence[int],
        on_progress: Optional[ProgressCallback] = None,
    ) -> dict[int, ReleaseData]:
        """Fetch a batch; failed ids are absent from the returned map."""
        results: dict[int, ReleaseData] = {}
        for event in self.iter_progress(user_id, release_ids):
            if event.release is not None:
                results[event.release_id] = event.release
            if on_progress is not None:
                on_progress(event.completed, event.total)
        logger.info(
            "Fetched details for %d of %d releases", len(results), len(release_ids)
        )
        return results
