"""Embedding service diagnostics model."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class EmbeddingStatus(BaseModel):
    """Snapshot of the embedding service's provider chain."""

    model_config = ConfigDict(frozen=True)

    primary_provider: str
    fallback_provider: str | None = None
    model: str
    dimensions: int
    available: bool
    state: str
    initialized: bool
