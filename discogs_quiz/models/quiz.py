"""
Quiz answer model — the listener's preferences for one recommendation request.

Decade and format are validated strictly against the taxonomy.  Mood and tempo
are accepted as free strings: values outside the taxonomy simply map to empty
keyword sets in ``to_filter_criteria()`` rather than failing the request.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, field_validator

from discogs_quiz.taxonomy.preferences import Decade, FormatPreference, Language


class QuizAnswers(BaseModel):
    """Immutable set of quiz answers.

    Attributes:
        mood: Mood value, normally a ``Mood`` member.
        tempo: Tempo value, normally a ``Tempo`` member.
        genres: Requested genres (may be empty = no genre preference).
        decade: Release decade or ``Decade.ANY``.
        format: Album / single / both.
        language: Recorded but not used for matching.
    """

    model_config = ConfigDict(frozen=True)

    mood: str
    tempo: str
    genres: tuple[str, ...] = ()
    decade: Decade = Decade.ANY
    format: FormatPreference = FormatPreference.BOTH
    language: Language = Language.ALL

    @field_validator("mood", "tempo")
    @classmethod
    def normalize_keyword(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("genres", mode="before")
    @classmethod
    def drop_blank_genres(cls, v):
        if v is None:
            return ()
        return tuple(g.strip() for g in v if g and g.strip())
