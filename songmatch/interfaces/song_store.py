"""Abstract base class for the song catalog store.

The engine only reads songs and runs nearest-neighbour queries; the one
write path is :meth:`ISongStore.upsert_aboutness`, used exclusively by the
offline backfill job.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from songmatch.models.song import AboutnessProfile, Song


@dataclass(frozen=True)
class Neighbor:
    """One nearest-neighbour hit.

    ``distance`` is cosine distance (``1 - similarity``), so callers convert
    back with ``1 - distance``.
    """

    song_id: str
    distance: float


# Concrete implementation: SQLiteSongStore (songmatch/providers/song_store/)
class ISongStore(ABC):
    """Contract for song catalog storage and vector lookups."""

    @abstractmethod
    async def initialize(self) -> None:
        """Create tables/indices if they do not exist."""

    @abstractmethod
    async def get_song(self, song_id: str) -> Song | None:
        """Fetch one song (with metadata vector and aboutness) by id."""

    @abstractmethod
    async def get_songs(self, song_ids: list[str]) -> list[Song]:
        """Fetch several songs; unknown ids are skipped, order follows *song_ids*."""

    @abstractmethod
    async def get_aboutness(self, song_id: str) -> AboutnessProfile | None:
        """Fetch the aboutness profile of one song, if any."""

    @abstractmethod
    async def knn_metadata(self, vector: list[float], k: int) -> list[Neighbor]:
        """Return the *k* songs whose metadata vectors are closest to *vector*."""

    @abstractmethod
    async def knn_emotions(self, vector: list[float], k: int) -> list[Neighbor]:
        """Return the *k* songs whose "emotions" vectors are closest to *vector*."""

    @abstractmethod
    async def moment_distances(
        self, vector: list[float], song_ids: list[str]
    ) -> dict[str, float]:
        """Return "moments" cosine distances for exactly *song_ids*.

        Songs without a moments vector are absent from the result.
        """

    @abstractmethod
    async def phrase_index(self) -> dict[str, list[str]]:
        """Return every indexed phrase (lowercased) mapped to its song ids."""

    @abstractmethod
    async def get_popular(self, limit: int) -> list[Song]:
        """Return the *limit* most popular songs."""

    @abstractmethod
    async def list_song_ids(
        self,
        after: str | None = None,
        limit: int = 100,
        ids: list[str] | None = None,
    ) -> list[str]:
        """Page through song ids in ascending order, starting after *after*.

        When *ids* is given, pages through exactly those ids instead (unknown
        ids are not filtered out here).
        """

    @abstractmethod
    async def aboutness_versions(self, song_ids: list[str]) -> dict[str, int]:
        """Return the stored aboutness version for each song that has a row."""

    @abstractmethod
    async def upsert_aboutness(self, profile: AboutnessProfile) -> None:
        """Insert or replace the aboutness row of one song."""

    @abstractmethod
    async def vector_dimensions(self) -> set[int]:
        """Return every distinct dimension among stored vectors."""
