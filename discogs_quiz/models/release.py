"""
Extended release metadata from ``GET /releases/{id}``.

``ReleaseData.from_api()`` applies the explicit defaults the recommender relies
on: ``year`` 0 and empty lists for every list field that is absent or null.
``ReleaseData.from_basic_information()`` builds the minimal projection used
when no extended metadata was fetched for a release.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from discogs_quiz.models.collection import (
    BasicInformation,
    ReleaseFormat,
    ReleaseLabel,
    _none_to_empty,
)


class ReleaseArtist(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = ""
    id: int = 0


class Track(BaseModel):
    model_config = ConfigDict(frozen=True)

    position: str = ""
    title: str = ""
    duration: str = ""
    type_: str = "track"


class ReleaseImage(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: str = "primary"
    uri: str = ""
    resource_url: str = ""
    uri150: str = ""
    width: int = 0
    height: int = 0


class ReleaseData(BaseModel):
    """Extended metadata for one Discogs release.

    Attributes:
        id: Discogs release id.
        tracklist: Ordered tracks; empty for synthesized projections.
        images: Cover and other images; primary first when Discogs sends one.
        notes: Free-text release notes, if any.
    """

    model_config = ConfigDict(frozen=True)

    id: int
    title: str = ""
    artists: list[ReleaseArtist] = []
    year: int = 0
    genres: list[str] = []
    styles: list[str] = []
    tracklist: list[Track] = []
    images: list[ReleaseImage] = []
    formats: list[ReleaseFormat] = []
    labels: list[ReleaseLabel] = []
    notes: Optional[str] = None

    @field_validator(
        "artists", "genres", "styles", "tracklist", "images", "formats", "labels",
        mode="before",
    )
    @classmethod
    def coerce_lists(cls, v):
        return _none_to_empty(v)

    @field_validator("year", mode="before")
    @classmethod
    def coerce_year(cls, v) -> int:
        return v or 0

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "ReleaseData":
        """Map a ``/releases/{id}`` JSON body onto ``ReleaseData``."""
        return cls.model_validate(data)

    @classmethod
    def from_basic_information(cls, info: BasicInformation) -> "ReleaseData":
        """Minimal projection from collection ``basic_information``.

        Carries a single 500x500 ``primary`` image when a cover exists and an
        empty tracklist.
        """
        images = []
        if info.cover_image:
            images.append(
                ReleaseImage(
                    type="primary",
                    uri=info.cover_image,
                    resource_url=info.cover_image,
                    uri150=info.thumb,
                    width=500,
                    height=500,
                )
            )
        return cls(
            id=info.id,
            title=info.title,
            artists=[ReleaseArtist(name=a.name, id=a.id) for a in info.artists],
            year=info.year,
            genres=list(info.genres),
            styles=list(info.styles),
            tracklist=[],
            images=images,
            formats=list(info.formats),
            labels=list(info.labels),
        )
