"""Song catalog models.

Songs are owned by the song store and are read-only to the engine.  An
:class:`AboutnessProfile` is attached one-to-one by the offline backfill
job and is never modified by the runtime retrieval path.
All models use frozen config to enforce immutability.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class AboutnessConfidence(str, Enum):  # noqa: UP042
    """Self-assessed fit of a generated aboutness description."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class AboutnessProfile(BaseModel):
    """Generated "emotions" and "moments" profile for one song.

    Both texts are stored without their trailing confidence tag; the
    confidence lives in its own field.  Vectors are produced by the same
    embedding model that embeds runtime queries.
    """

    model_config = ConfigDict(frozen=True)

    song_id: str
    emotions_text: str
    emotions_vector: list[float] = Field(default_factory=list)
    emotions_confidence: AboutnessConfidence = AboutnessConfidence.LOW
    moments_text: str
    moments_vector: list[float] = Field(default_factory=list)
    moments_confidence: AboutnessConfidence = AboutnessConfidence.LOW
    provider: str = Field(description="LLM provider that generated the texts.")
    generation_model: str = Field(description="LLM model that generated the texts.")
    version: int = Field(default=1, ge=1, description="Generation version tag.")
    updated_at: datetime | None = None


class Song(BaseModel):
    """A catalog song with its metadata embedding.

    ``decade`` is derived from ``year`` when not supplied explicitly
    (1987 -> 1980).
    """

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    artist: str
    year: int | None = None
    decade: int | None = None
    popularity: float = Field(default=0.0, ge=0.0, le=100.0)
    tags: list[str] = Field(default_factory=list)
    phrases: list[str] = Field(default_factory=list)
    embedding: list[float] | None = None
    aboutness: AboutnessProfile | None = None

    @model_validator(mode="before")
    @classmethod
    def _derive_decade(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("decade") is None and data.get("year"):
            data = {**data, "decade": (int(data["year"]) // 10) * 10}
        return data
