"""
Tests for discogs_quiz/recommendations/matching.py.

What we test
------------
classify_format():
  - LP / Album / 12" → ALBUM; Single / 7" → SINGLE; neither → AMBIGUOUS_ALBUM.
matches_format():
  - BOTH always matches.
  - SINGLE needs a single marker; ALBUM accepts album markers or no single marker.
  - An item carrying both markers satisfies both preferences.
  - Album/single decisions come from classify_format().
matches_genre():
  - Case-insensitive substring of genres or styles; empty request → True.
matches_decade():
  - Inclusive range; None → True; unknown year 0 never in range.
matches_mood_tempo():
  - Keyword in genres, styles or title; empty keywords → True.
"""

from __future__ import annotations

import pytest

from discogs_quiz.recommendations.criteria import YearRange
from discogs_quiz.recommendations import matching
from discogs_quiz.recommendations.matching import (
    classify_format,
    matches_decade,
    matches_format,
    matches_genre,
    matches_mood_tempo,
)
from discogs_quiz.taxonomy.preferences import FormatKind, FormatPreference


class TestClassifyFormat:
    @pytest.mark.parametrize(
        "formats,kind",
        [
            (["LP"], FormatKind.ALBUM),
            (["Album"], FormatKind.ALBUM),
            (['12" Vinyl'], FormatKind.ALBUM),
            (["Single"], FormatKind.SINGLE),
            (['7"'], FormatKind.SINGLE),
            (["Vinyl"], FormatKind.AMBIGUOUS_ALBUM),
            (["CD"], FormatKind.AMBIGUOUS_ALBUM),
            (["Single", "LP"], FormatKind.ALBUM),
        ],
    )
    def test_classification(self, make_item, formats, kind):
        assert classify_format(make_item(1, formats=formats)) is kind


class TestMatchesFormat:
    def test_both(self, make_item):
        assert matches_format(make_item(1, formats=['7"']), FormatPreference.BOTH)

    def test_single(self, make_item):
        assert matches_format(make_item(1, formats=["Single"]), FormatPreference.SINGLE)
        assert not matches_format(make_item(2, formats=["LP"]), FormatPreference.SINGLE)
        assert not matches_format(make_item(3, formats=["Vinyl"]), FormatPreference.SINGLE)

    def test_album(self, make_item):
        assert matches_format(make_item(1, formats=["LP"]), FormatPreference.ALBUM)
        assert matches_format(make_item(2, formats=["Vinyl"]), FormatPreference.ALBUM)
        assert not matches_format(make_item(3, formats=['7"']), FormatPreference.ALBUM)

    def test_both_markers(self, make_item):
        item = make_item(1, formats=["Single", "Album"])
        assert matches_format(item, FormatPreference.SINGLE)
        assert matches_format(item, FormatPreference.ALBUM)

    @pytest.mark.parametrize(
        "kind,album_ok",
        [
            (FormatKind.ALBUM, True),
            (FormatKind.AMBIGUOUS_ALBUM, True),
            (FormatKind.SINGLE, False),
        ],
    )
    def test_album_preference_follows_classification(
        self, make_item, monkeypatch, kind, album_ok
    ):
        monkeypatch.setattr(matching, "classify_format", lambda item: kind)
        item = make_item(1, formats=["Vinyl"])
        assert matches_format(item, FormatPreference.ALBUM) is album_ok
        assert matches_format(item, FormatPreference.SINGLE) is not album_ok


class TestMatchesGenre:
    def test_empty_request(self, make_item):
        assert matches_genre(make_item(1), ())

    def test_genre_case_insensitive(self, make_item):
        assert matches_genre(make_item(1, genres=["Rock"]), ("rock",))

    def test_style_substring(self, make_item):
        assert matches_genre(make_item(1, styles=["Punk Rock"]), ("Rock",))

    def test_no_match(self, make_item):
        assert not matches_genre(make_item(1, genres=["Jazz"]), ("Rock", "Metal"))


class TestMatchesDecade:
    def test_none(self, make_item):
        assert matches_decade(make_item(1, year=0), None)

    def test_bounds(self, make_item):
        r = YearRange(min=1990, max=1999)
        assert matches_decade(make_item(1, year=1990), r)
        assert matches_decade(make_item(2, year=1999), r)
        assert not matches_decade(make_item(3, year=2000), r)
        assert not matches_decade(make_item(4, year=0), r)


class TestMatchesMoodTempo:
    def test_empty_keywords(self, make_item):
        assert matches_mood_tempo(make_item(1), ())

    def test_style_hit(self, make_item):
        assert matches_mood_tempo(make_item(1, styles=["Thrash"]), ("thrash",))

    def test_title_hit(self, make_item):
        assert matches_mood_tempo(make_item(1, title="Dance Floor Hits"), ("dance",))

    def test_multiword_keyword(self, make_item):
        assert matches_mood_tempo(make_item(1, styles=["New Age"]), ("new age",))

    def test_artist_not_searched(self, make_item):
        assert not matches_mood_tempo(make_item(1, artist="Metallica"), ("metal",))
