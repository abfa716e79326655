"""
Search and sort helpers for listing a collection.

Sort keys
---------
    title       A→Z (case-insensitive)
    artist      first credited artist A→Z
    year        newest first (unknown year 0 sorts last)
    date_added  newest first (default; missing dates sort last)
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import StrEnum

from discogs_quiz.models.collection import CollectionItem


class SortKey(StrEnum):
    TITLE = "title"
    ARTIST = "artist"
    YEAR = "year"
    DATE_ADDED = "date_added"


def first_artist(item: CollectionItem) -> str:
    artists = item.basic_information.artists
    return artists[0].name if artists else ""


def search_collection(items: list[CollectionItem], query: str) -> list[CollectionItem]:
    """Items whose title, first artist or genres contain ``query``.

    A blank query returns ``items`` unchanged.
    """
    needle = query.strip().lower()
    if not needle:
        return list(items)
    hits = []
    for item in items:
        info = item.basic_information
        haystacks = (info.title, first_artist(item), " ".join(info.genres))
        if any(needle in h.lower() for h in haystacks):
            hits.append(item)
    return hits


def sort_collection(
    items: list[CollectionItem], sort_by: SortKey | str = SortKey.DATE_ADDED
) -> list[CollectionItem]:
    """Return a sorted copy of ``items``.

    Raises:
        ValueError: If ``sort_by`` is not a ``SortKey`` value.
    """
    key = SortKey(sort_by)
    if key is SortKey.TITLE:
        return sorted(items, key=lambda i: i.basic_information.title.lower())
    if key is SortKey.ARTIST:
        return sorted(items, key=lambda i: first_artist(i).lower())
    if key is SortKey.YEAR:
        return sorted(items, key=lambda i: i.basic_information.year, reverse=True)

    epoch = datetime(1970, 1, 1, tzinfo=timezone.utc)

    def added(item: CollectionItem) -> datetime:
        if item.date_added is None:
            return epoch
        if item.date_added.tzinfo is None:
            return item.date_added.replace(tzinfo=timezone.utc)
        return item.date_added

    return sorted(items, key=added, reverse=True)
