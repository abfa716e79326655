"""
Discogs collection models.

``CollectionItem`` mirrors one entry of
``GET /users/{username}/collection/folders/{folder_id}/releases``.  Only the
fields the recommender reads are modelled; unknown keys are ignored so API
additions never break parsing.  ``null`` list fields are coerced to ``[]``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator


def _none_to_empty(v):
    return [] if v is None else v


class ReleaseFormat(BaseModel):
    """One physical/digital format entry, e.g. ``{"name": "Vinyl", "qty": "1"}``."""

    model_config = ConfigDict(frozen=True)

    name: str = ""
    qty: str = ""
    descriptions: list[str] = []

    @field_validator("descriptions", mode="before")
    @classmethod
    def coerce_lists(cls, v):
        return _none_to_empty(v)


class ReleaseLabel(BaseModel):
    """Label and catalog number."""

    model_config = ConfigDict(frozen=True)

    name: str = ""
    catno: str = ""


class CollectionArtist(BaseModel):
    """Artist credit as embedded in collection ``basic_information``."""

    model_config = ConfigDict(frozen=True)

    name: str = ""
    anv: str = ""
    join: str = ""
    role: str = ""
    tracks: str = ""
    id: int = 0
    resource_url: str = ""


class BasicInformation(BaseModel):
    """Release metadata embedded in every collection entry.

    Attributes:
        id: Discogs release id (the key for ``/releases/{id}``).
        year: Release year; ``0`` when unknown.
        cover_image: Full-size cover URL (may be empty).
        thumb: Thumbnail URL (may be empty).
    """

    model_config = ConfigDict(frozen=True)

    id: int
    master_id: Optional[int] = None
    master_url: Optional[str] = None
    resource_url: str = ""
    thumb: str = ""
    cover_image: str = ""
    title: str = ""
    year: int = 0
    formats: list[ReleaseFormat] = []
    labels: list[ReleaseLabel] = []
    artists: list[CollectionArtist] = []
    genres: list[str] = []
    styles: list[str] = []

    @field_validator("formats", "labels", "artists", "genres", "styles", mode="before")
    @classmethod
    def coerce_lists(cls, v):
        return _none_to_empty(v)

    @field_validator("year", mode="before")
    @classmethod
    def coerce_year(cls, v) -> int:
        return v or 0


class CollectionItem(BaseModel):
    """One release instance in a user's collection.

    ``id`` equals ``basic_information.id``; ``instance_id`` distinguishes
    multiple copies of the same release.

    Attributes:
        date_added: When the user added this copy; ``None`` when absent.
        rating: User rating 0–5 (0 = unrated).
    """

    model_config = ConfigDict(frozen=True)

    id: int
    instance_id: int = 0
    date_added: Optional[datetime] = None
    rating: int = 0
    basic_information: BasicInformation

    @field_validator("date_added", mode="before")
    @classmethod
    def blank_date_is_none(cls, v):
        return v or None

    @field_validator("rating", mode="before")
    @classmethod
    def coerce_rating(cls, v) -> int:
        return v or 0

    @property
    def release_id(self) -> int:
        """Catalog id used to look up extended ``ReleaseData``."""
        return self.basic_information.id
