"""
Ranking and final selection.

Usage flow
----------
1. rank_items(collection, criteria, now)
   -> list[ScoredItem]  sorted by (score desc, rating desc, date_added desc);
                        remaining ties keep collection order (stable sort).

2. recommend(collection, answers, release_data_map, rng, now)
   -> Recommendation | None
      - top score 0 → None ("no recommendation", not an error)
      - every item within ``margin`` points of the top is a close match
      - more than one close match → ``rng.choice``; otherwise the top item
      - release data comes from ``release_data_map`` or is synthesized from
        the item's basic information

Randomness is always injected (``random.Random``); nothing here touches the
module-level ``random`` state.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from discogs_quiz.models.collection import CollectionItem
from discogs_quiz.models.quiz import QuizAnswers
from discogs_quiz.models.recommendation import Recommendation
from discogs_quiz.models.release import ReleaseData
from discogs_quiz.recommendations.criteria import FilterCriteria, to_filter_criteria
from discogs_quiz.recommendations.scorer import score_item

logger = logging.getLogger(__name__)

CLOSE_MATCH_MARGIN = 5

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass
class ScoredItem:
    """A collection item with its score and reasons."""

    item: CollectionItem
    score: int
    reasons: list[str]


def _added_sort_key(item: CollectionItem) -> datetime:
    added = item.date_added
    if added is None:
        return _EPOCH
    if added.tzinfo is None:
        return added.replace(tzinfo=timezone.utc)
    return added


def rank_items(
    collection: list[CollectionItem],
    criteria: FilterCriteria,
    now: Optional[datetime] = None,
) -> list[ScoredItem]:
    """Score every item and return them best-first."""
    now = now or datetime.now(timezone.utc)
    scored = []
    for item in collection:
        result = score_item(item, criteria, now)
        scored.append(ScoredItem(item=item, score=result.score, reasons=result.reasons))

    # Python's sort is stable, so chained sorts apply keys from least to most
    # significant.
    scored.sort(key=lambda s: _added_sort_key(s.item), reverse=True)
    scored.sort(key=lambda s: s.item.rating, reverse=True)
    scored.sort(key=lambda s: s.score, reverse=True)
    return scored


def close_matches(
    ranked: list[ScoredItem], margin: int = CLOSE_MATCH_MARGIN
) -> list[ScoredItem]:
    """Leading run of ``ranked`` within ``margin`` points of the top score."""
    if not ranked:
        return []
    top = ranked[0].score
    return [s for s in ranked if top - s.score <= margin]


def recommend(
    collection: list[CollectionItem],
    answers: QuizAnswers,
    release_data_map: Optional[dict[int, ReleaseData]] = None,
    rng: Optional[random.Random] = None,
    now: Optional[datetime] = None,
    margin: int = CLOSE_MATCH_MARGIN,
) -> Optional[Recommendation]:
    """Pick one album from ``collection`` for ``answers``.

    Args:
        collection: Candidate items (usually the filtered/broadened set).
        answers: The listener's quiz answers.
        release_data_map: Extended metadata keyed by release id.  Entries
            whose own id differs from their key are ignored.
        rng: Random source for the close-match pick; a fresh unseeded
            ``random.Random`` when omitted.
        now: Reference time for recency scoring.
        margin: Close-match window in points.

    Returns:
        A ``Recommendation``, or ``None`` when the collection is empty or the
        best score is 0.
    """
    if not collection:
        return None

    ranked = rank_items(collection, to_filter_criteria(answers), now)
    if ranked[0].score == 0:
        logger.info("Top score is 0 across %d items; no recommendation", len(ranked))
        return None

    candidates = close_matches(ranked, margin)
    if len(candidates) > 1:
        chosen = (rng or random.Random()).choice(candidates)
    else:
        chosen = ranked[0]
    logger.debug(
        "Chose release %d (score=%d) from %d close matches",
        chosen.item.release_id, chosen.score, len(candidates),
    )

    release_data = (release_data_map or {}).get(chosen.item.release_id)
    if release_data is None or release_data.id != chosen.item.release_id:
        release_data = ReleaseData.from_basic_information(chosen.item.basic_information)

    return Recommendation(
        collection_item=chosen.item,
        release_data=release_data,
        match_score=chosen.score,
        reasons=list(chosen.reasons),
    )
