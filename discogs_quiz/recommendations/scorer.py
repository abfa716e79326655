"""
Additive match scoring for one collection item.

Components (evaluated in this order; each satisfied one appends a reason)
--------------------------------------------------------------------------
    genre       +30   any requested genre in genres/styles (or no genres asked)
    decade      +25   year in range; only when a decade was chosen
    mood/tempo  +25   any keyword in genres/styles/title (or no keywords)
    format      +10   format preference satisfied
    rated       +10   user rating > 0
    recency     +10   added < 30 days ago
                 +5   added < 90 days ago

The nominal range is 0–100 but the sum is NOT clamped: an item matching
everything, rated, and added last week scores 110.  Consumers that display a
percentage clamp on their side.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from discogs_quiz.models.collection import CollectionItem
from discogs_quiz.recommendations.criteria import FilterCriteria
from discogs_quiz.recommendations.matching import (
    matches_decade,
    matches_format,
    matches_genre,
    matches_mood_tempo,
)

GENRE_POINTS = 30
DECADE_POINTS = 25
MOOD_TEMPO_POINTS = 25
FORMAT_POINTS = 10
RATED_POINTS = 10
RECENT_POINTS = 10
SOMEWHAT_RECENT_POINTS = 5

RECENT_DAYS = 30
SOMEWHAT_RECENT_DAYS = 90


@dataclass
class ItemScore:
    """Score breakdown for one item.

    Attributes:
        score: Sum of satisfied components (unclamped).
        reasons: One human-readable string per satisfied component.
    """

    score: int = 0
    reasons: list[str] = field(default_factory=list)

    def add(self, points: int, reason: str) -> None:
        self.score += points
        self.reasons.append(reason)


def days_since_added(item: CollectionItem, now: datetime) -> Optional[float]:
    """Fractional days between ``date_added`` and ``now``; ``None`` if unknown.

    Naive datetimes on either side are taken as UTC.
    """
    if item.date_added is None:
        return None
    added = item.date_added
    if added.tzinfo is None:
        added = added.replace(tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return (now - added).total_seconds() / 86400.0


def score_item(
    item: CollectionItem,
    criteria: FilterCriteria,
    now: Optional[datetime] = None,
) -> ItemScore:
    """Score ``item`` against ``criteria``.

    Args:
        item: Collection entry to score.
        criteria: Output of ``to_filter_criteria()``.
        now: Reference time for the recency bonus; defaults to current UTC.
    """
    now = now or datetime.now(timezone.utc)
    result = ItemScore()

    if matches_genre(item, criteria.genres):
        result.add(GENRE_POINTS, "matches your preferred genres")

    if criteria.decade is not None and matches_decade(item, criteria.decade):
        result.add(
            DECADE_POINTS, f"from your preferred decade ({criteria.decade.min}s)"
        )

    if matches_mood_tempo(item, criteria.keywords):
        result.add(MOOD_TEMPO_POINTS, "matches your mood and tempo preferences")

    if matches_format(item, criteria.format):
        result.add(
            FORMAT_POINTS, f"matches your format preference ({criteria.format.value})"
        )

    if item.rating > 0:
        result.add(RATED_POINTS, "you have rated this release")

    days = days_since_added(item, now)
    if days is not None:
        if days < RECENT_DAYS:
            result.add(RECENT_POINTS, "recently added to your collection")
        elif days < SOMEWHAT_RECENT_DAYS:
            result.add(
                SOMEWHAT_RECENT_POINTS, "added to your collection in the last few months"
            )

    return result
