"""
Recommendation output model.

A ``Recommendation`` couples the chosen collection entry with its (fetched or
synthesized) release metadata.  The release id on both sides must agree.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, model_validator

from discogs_quiz.models.collection import CollectionItem
from discogs_quiz.models.release import ReleaseData


class Recommendation(BaseModel):
    """The single album picked for a quiz run.

    Attributes:
        collection_item: The chosen entry from the user's collection.
        release_data: Extended metadata for the same release id.
        match_score: Additive score; nominally 0–100 but not clamped.
        reasons: One explanation per satisfied scoring component.
    """

    model_config = ConfigDict(frozen=True)

    collection_item: CollectionItem
    release_data: ReleaseData
    match_score: int
    reasons: list[str]

    @model_validator(mode="after")
    def validate_consistency(self) -> "Recommendation":
        if self.release_data.id != self.collection_item.release_id:
            raise ValueError(
                f"release_data.id ({self.release_data.id}) must equal the "
                f"collection item's release id ({self.collection_item.release_id})."
            )
        if self.match_score > 0 and not self.reasons:
            raise ValueError("reasons must not be empty when match_score > 0.")
        return self
