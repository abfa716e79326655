"""
Quiz answers → filter criteria.

The mapping is a set of fixed lookup tables:

    decade  → inclusive ``YearRange`` (``Decade.ANY`` → no constraint)
    mood    → keyword tuple matched against genres, styles and title
    tempo   → keyword tuple matched the same way

Unrecognised mood or tempo values map to an empty keyword tuple, which makes
the mood/tempo predicate vacuously true instead of rejecting the request.
Genres and format pass through unchanged.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, model_validator

from discogs_quiz.models.quiz import QuizAnswers
from discogs_quiz.taxonomy.preferences import Decade, FormatPreference, Mood, Tempo


class YearRange(BaseModel):
    """Inclusive year bounds."""

    model_config = ConfigDict(frozen=True)

    min: int
    max: int

    @model_validator(mode="after")
    def validate_order(self) -> "YearRange":
        if self.min > self.max:
            raise ValueError(f"YearRange min ({self.min}) must be <= max ({self.max}).")
        return self

    def __contains__(self, year: int) -> bool:
        return self.min <= year <= self.max


DECADE_RANGES: dict[Decade, YearRange] = {
    Decade.D1960S: YearRange(min=1960, max=1969),
    Decade.D1970S: YearRange(min=1970, max=1979),
    Decade.D1980S: YearRange(min=1980, max=1989),
    Decade.D1990S: YearRange(min=1990, max=1999),
    Decade.D2000S: YearRange(min=2000, max=2009),
    Decade.D2010S: YearRange(min=2010, max=2019),
    Decade.D2020S: YearRange(min=2020, max=2029),
}

MOOD_KEYWORDS: dict[str, tuple[str, ...]] = {
    Mood.ENERGETIC:   ("energetic", "upbeat", "dance", "electronic", "rock", "punk"),
    Mood.RELAXED:     ("ambient", "chill", "jazz", "lounge", "smooth", "soft"),
    Mood.MELANCHOLIC: ("sad", "melancholic", "depressive", "dark", "gothic", "doom"),
    Mood.HAPPY:       ("happy", "upbeat", "pop", "cheerful", "bright"),
    Mood.AGGRESSIVE:  ("aggressive", "metal", "hardcore", "punk", "thrash"),
    Mood.PEACEFUL:    ("ambient", "meditation", "new age", "calm", "peaceful"),
}

TEMPO_KEYWORDS: dict[str, tuple[str, ...]] = {
    Tempo.SLOW:      ("slow", "ballad", "ambient", "downtempo"),
    Tempo.MEDIUM:    ("moderate", "mid-tempo"),
    Tempo.FAST:      ("fast", "upbeat", "dance", "techno"),
    Tempo.VERY_FAST: ("very fast", "hardcore", "speed", "thrash"),
}


class FilterCriteria(BaseModel):
    """Matching constraints derived from one ``QuizAnswers``.

    Attributes:
        genres: Requested genres; empty means no genre constraint.
        decade: Inclusive year range, or ``None`` for no decade constraint.
        mood_keywords: Keywords for the chosen mood (may be empty).
        tempo_keywords: Keywords for the chosen tempo (may be empty).
        format: Format preference; ``BOTH`` means no format constraint.
    """

    model_config = ConfigDict(frozen=True)

    genres: tuple[str, ...] = ()
    decade: Optional[YearRange] = None
    mood_keywords: tuple[str, ...] = ()
    tempo_keywords: tuple[str, ...] = ()
    format: FormatPreference = FormatPreference.BOTH

    @property
    def keywords(self) -> tuple[str, ...]:
        """Mood keywords followed by tempo keywords."""
        return self.mood_keywords + self.tempo_keywords


def to_filter_criteria(answers: QuizAnswers) -> FilterCriteria:
    """Map quiz answers onto ``FilterCriteria`` via the fixed tables.

    Example::

        >>> c = to_filter_criteria(QuizAnswers(mood="aggressive", tempo="fast",
        ...                                    genres=["Rock"], decade="1990s"))
        >>> c.decade
        YearRange(min=1990, max=1999)
    """
    return FilterCriteria(
        genres=answers.genres,
        decade=DECADE_RANGES.get(answers.decade),
        mood_keywords=MOOD_KEYWORDS.get(answers.mood, ()),
        tempo_keywords=TEMPO_KEYWORDS.get(answers.tempo, ()),
        format=answers.format,
    )
