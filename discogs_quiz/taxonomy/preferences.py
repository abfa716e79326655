"""
Preference taxonomy for the listening quiz.

Six dimensions describe every quiz answer:
  - ``Mood``             — how the listener wants to feel.
  - ``Tempo``            — how fast the music should move.
  - ``Decade``           — when the release came out (or ``ANY``).
  - ``FormatPreference`` — album, single, or either.
  - ``Language``         — collected for completeness; not used by scoring.
  - ``QUIZ_GENRES``      — genre chips offered by the quiz (free-form strings
                           are also accepted).

``FormatKind`` is the classification of a *release's* format, as opposed to
the listener's preference.

This module has NO imports from any other ``discogs_quiz`` package.
"""

from enum import StrEnum


class Mood(StrEnum):
    """How the listener wants the record to feel."""

    ENERGETIC = "energetic"
    RELAXED = "relaxed"
    MELANCHOLIC = "melancholic"
    HAPPY = "happy"
    AGGRESSIVE = "aggressive"
    PEACEFUL = "peaceful"


class Tempo(StrEnum):
    """Preferred pace."""

    SLOW = "slow"
    MEDIUM = "medium"
    FAST = "fast"
    VERY_FAST = "very-fast"


class Decade(StrEnum):
    """Release decade; ``ANY`` removes the year constraint entirely."""

    D1960S = "1960s"
    D1970S = "1970s"
    D1980S = "1980s"
    D1990S = "1990s"
    D2000S = "2000s"
    D2010S = "2010s"
    D2020S = "2020s"
    ANY = "any"


class FormatPreference(StrEnum):
    """Which release formats the listener will accept."""

    ALBUM = "album"
    SINGLE = "single"
    BOTH = "both"


class Language(StrEnum):
    """Preferred lyric language. Discogs exposes no language field, so this
    answer is recorded but never filters or scores."""

    ENGLISH = "english"
    SPANISH = "spanish"
    FRENCH = "french"
    GERMAN = "german"
    ITALIAN = "italian"
    PORTUGUESE = "portuguese"
    JAPANESE = "japanese"
    KOREAN = "korean"
    CHINESE = "chinese"
    ALL = "all"


class FormatKind(StrEnum):
    """Classification of a release's physical/digital format names."""

    ALBUM = "album"
    """Format names mention album, LP, or 12"."""

    SINGLE = "single"
    """Format names mention single or 7" and nothing album-like."""

    AMBIGUOUS_ALBUM = "ambiguous_album"
    """Neither signal present; treated as an album."""


QUIZ_GENRES: tuple[str, ...] = (
    "Rock", "Jazz", "Electronic", "Hip Hop", "Classical", "Pop",
    "Metal", "Folk", "Blues", "Country", "Reggae", "Punk",
    "R&B", "Soul", "Funk", "Disco", "Alternative", "Indie",
)
