"""
Collection filtering and progressive broadening.

``filter_collection`` keeps an item when

    format matches  AND  (genre OR decade OR mood/tempo matches)

The OR across the three qualitative predicates is intentionally permissive;
precision comes from scoring.

``broaden_filters`` is only used after ``filter_collection`` came back empty.
It relaxes one constraint at a time, cumulatively, and stops at the first
non-empty result:

    1. DROPPED_FORMAT   format → BOTH
    2. DROPPED_DECADE   decade → none
    3. DROPPED_GENRES   genres → ()

If all three relaxations still match nothing the result is ``NO_MATCH``.
That is an outcome, not an error.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum

from discogs_quiz.models.collection import CollectionItem
from discogs_quiz.recommendations.criteria import FilterCriteria
from discogs_quiz.recommendations.matching import (
    matches_decade,
    matches_format,
    matches_genre,
    matches_mood_tempo,
)
from discogs_quiz.taxonomy.preferences import FormatPreference

logger = logging.getLogger(__name__)


class BroadenStep(StrEnum):
    """Which relaxation produced the candidate set."""

    NONE = "none"
    DROPPED_FORMAT = "dropped_format"
    DROPPED_DECADE = "dropped_decade"
    DROPPED_GENRES = "dropped_genres"
    NO_MATCH = "no_match"


@dataclass
class BroadenResult:
    """Candidates after broadening.

    Attributes:
        items: Matching items in collection order (empty on ``NO_MATCH``).
        step: The relaxation that produced ``items``.
        criteria: The relaxed criteria that were applied last.
    """

    items: list[CollectionItem]
    step: BroadenStep
    criteria: FilterCriteria

    @property
    def is_no_match(self) -> bool:
        return self.step is BroadenStep.NO_MATCH


def passes_filters(item: CollectionItem, criteria: FilterCriteria) -> bool:
    if not matches_format(item, criteria.format):
        return False
    return (
        matches_genre(item, criteria.genres)
        or matches_decade(item, criteria.decade)
        or matches_mood_tempo(item, criteria.keywords)
    )


def filter_collection(
    collection: list[CollectionItem], criteria: FilterCriteria
) -> list[CollectionItem]:
    """Items passing ``passes_filters``, in collection order."""
    return [item for item in collection if passes_filters(item, criteria)]


def broaden_filters(
    collection: list[CollectionItem], criteria: FilterCriteria
) -> BroadenResult:
    """Relax format, then decade, then genres until something matches."""
    relaxations = (
        (BroadenStep.DROPPED_FORMAT, {"format": FormatPreference.BOTH}),
        (BroadenStep.DROPPED_DECADE, {"decade": None}),
        (BroadenStep.DROPPED_GENRES, {"genres": ()}),
    )
    relaxed = criteria
    for step, update in relaxations:
        relaxed = relaxed.model_copy(update=update)
        items = filter_collection(collection, relaxed)
        if items:
            logger.info("Broadened filters (%s): %d candidates", step.value, len(items))
            return BroadenResult(items=items, step=step, criteria=relaxed)

    logger.info("No candidates after broadening %d items", len(collection))
    return BroadenResult(items=[], step=BroadenStep.NO_MATCH, criteria=relaxed)


def select_candidates(
    collection: list[CollectionItem], criteria: FilterCriteria
) -> BroadenResult:
    """Strict filter first; broaden only when it yields nothing."""
    items = filter_collection(collection, criteria)
    if items:
        return BroadenResult(items=items, step=BroadenStep.NONE, criteria=criteria)
    return broaden_filters(collection, criteria)
