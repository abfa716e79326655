"""
Per-item predicates used by filtering and scoring.

All comparisons are case-insensitive substring checks over the item's embedded
``basic_information``; extended release data is never consulted.

Format markers (on lowercased format names):
    single : ``single`` or ``7"``
    album  : ``album``, ``lp`` or ``12"``

An item with neither marker is ``FormatKind.AMBIGUOUS_ALBUM`` and satisfies an
album preference.  An item carrying both markers satisfies both preferences.
"""

from __future__ import annotations

from typing import Optional

from discogs_quiz.models.collection import CollectionItem
from discogs_quiz.recommendations.criteria import YearRange
from discogs_quiz.taxonomy.preferences import FormatKind, FormatPreference

_SINGLE_MARKERS = ("single", '7"')
_ALBUM_MARKERS = ("album", "lp", '12"')


def _format_names(item: CollectionItem) -> list[str]:
    return [f.name.lower() for f in item.basic_information.formats]


def _has_marker(names: list[str], markers: tuple[str, ...]) -> bool:
    return any(marker in name for name in names for marker in markers)


def classify_format(item: CollectionItem) -> FormatKind:
    """Classify an item's format names.

    Album markers win over single markers; no marker at all defaults to
    ``AMBIGUOUS_ALBUM``.
    """
    names = _format_names(item)
    if _has_marker(names, _ALBUM_MARKERS):
        return FormatKind.ALBUM
    if _has_marker(names, _SINGLE_MARKERS):
        return FormatKind.SINGLE
    return FormatKind.AMBIGUOUS_ALBUM


def matches_format(item: CollectionItem, preference: FormatPreference) -> bool:
    """Apply ``preference`` to ``classify_format(item)``.

    Anything not classified ``SINGLE`` counts as an album.  A single preference
    also accepts an album-classified item that carries a single marker.
    """
    if preference is FormatPreference.BOTH:
        return True
    kind = classify_format(item)
    if preference is FormatPreference.ALBUM:
        return kind is not FormatKind.SINGLE
    return kind is FormatKind.SINGLE or _has_marker(_format_names(item), _SINGLE_MARKERS)


def matches_genre(item: CollectionItem, genres: tuple[str, ...]) -> bool:
    """True when any requested genre is a substring of any item genre or style.

    ``"Rock"`` therefore matches ``"Rock"``, ``"Punk Rock"`` and ``"Rock & Roll"``.
    """
    if not genres:
        return True
    info = item.basic_information
    item_tags = [tag.lower() for tag in (*info.genres, *info.styles)]
    return any(genre.lower() in tag for genre in genres for tag in item_tags)


def matches_decade(item: CollectionItem, decade: Optional[YearRange]) -> bool:
    if decade is None:
        return True
    return item.basic_information.year in decade


def matches_mood_tempo(item: CollectionItem, keywords: tuple[str, ...]) -> bool:
    """True when any keyword occurs in the genres + styles + title text."""
    if not keywords:
        return True
    info = item.basic_information
    text = " ".join((*info.genres, *info.styles, info.title)).lower()
    return any(keyword.lower() in text for keyword in keywords)
