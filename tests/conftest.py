"""Shared pytest fixtures for the songmatch test suite."""

from __future__ import annotations

import asyncio
import hashlib
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

from songmatch.interfaces.embedding_provider import IEmbeddingProvider
from songmatch.interfaces.llm_provider import ILLMProvider
from songmatch.models.song import AboutnessConfidence, AboutnessProfile, Song
from songmatch.providers.song_store.sqlite_song_store import SQLiteSongStore
from songmatch.utils.errors import EmbeddingProviderUnavailableError

DIM = 4


# ---------------------------------------------------------------------------
# Fake providers
# ---------------------------------------------------------------------------


class FakeEmbeddingProvider(IEmbeddingProvider):
    """In-memory embedding provider with scripted vectors.

    Texts listed in *vectors* get that vector; anything else gets a
    deterministic pseudo-random vector derived from its sha256.
    """

    def __init__(
        self,
        name: str = "fake",
        dimension: int = DIM,
        vectors: dict[str, list[float]] | None = None,
        available: bool = True,
        fail: bool = False,
    ) -> None:
        self.name = name
        self.dimension = dimension
        self.vectors = vectors or {}
        self.available = available
        self.fail = fail
        self.init_calls = 0
        self.embed_calls: list[list[str]] = []

    async def initialize(self) -> None:
        self.init_calls += 1
        await asyncio.sleep(0)

    async def embed(self, texts: list[str]) -> list[list[float]]:
        if self.fail:
            raise EmbeddingProviderUnavailableError(message="boom", provider_name=self.name)
        self.embed_calls.append(list(texts))
        return [self.vector_for(text) for text in texts]

    async def embed_single(self, text: str) -> list[float]:
        return (await self.embed([text]))[0]

    def vector_for(self, text: str) -> list[float]:
        if text in self.vectors:
            return list(self.vectors[text])
        digest = hashlib.sha256(text.encode()).digest()
        return [digest[i % len(digest)] / 255.0 - 0.5 for i in range(self.dimension)]

    def get_model(self) -> str:
        return f"{self.name}-model"

    def get_dimension(self) -> int:
        return self.dimension

    def get_provider_name(self) -> str:
        return self.name

    async def is_available(self) -> bool:
        return self.available


@pytest.fixture
def fake_embedder() -> FakeEmbeddingProvider:
    return FakeEmbeddingProvider()


@pytest.fixture
def mock_llm_provider() -> ILLMProvider:
    """Mock ILLMProvider; set ``complete.side_effect`` for scripted replies."""
    mock = MagicMock(spec=ILLMProvider)
    mock.get_provider_name.return_value = "mock-llm"
    mock.get_model.return_value = "mock-model"
    mock.is_available.return_value = True
    mock.validate_credentials = AsyncMock(return_value=True)
    mock.complete = AsyncMock(return_value="")
    return mock


# ---------------------------------------------------------------------------
# Sample data
# ---------------------------------------------------------------------------


def make_song(song_id: str, **overrides) -> Song:
    defaults = {
        "id": song_id,
        "title": f"Title {song_id}",
        "artist": f"Artist {song_id}",
        "year": 1990,
        "popularity": 50.0,
        "tags": [],
        "phrases": [],
        "embedding": [1.0, 0.0, 0.0, 0.0],
    }
    defaults.update(overrides)
    return Song(**defaults)


def make_aboutness(song_id: str, emotions: list[float], moments: list[float], **overrides) -> AboutnessProfile:
    defaults = {
        "song_id": song_id,
        "emotions_text": f"Emotions of {song_id}",
        "emotions_vector": emotions,
        "emotions_confidence": AboutnessConfidence.MEDIUM,
        "moments_text": f"Moments of {song_id}",
        "moments_vector": moments,
        "moments_confidence": AboutnessConfidence.HIGH,
        "provider": "openai",
        "generation_model": "gpt-4o-mini",
        "version": 2,
    }
    defaults.update(overrides)
    return AboutnessProfile(**defaults)


SAMPLE_SONGS = [
    make_song(
        "s1",
        title="Happy",
        artist="Pharrell Williams",
        year=2013,
        popularity=90.0,
        tags=["joy", "summer"],
        phrases=["happy", "clap along"],
        embedding=[1.0, 0.0, 0.0, 0.0],
    ),
    make_song(
        "s2",
        title="Purple Rain",
        artist="Prince",
        year=1984,
        popularity=80.0,
        tags=["sadness", "rain"],
        phrases=["purple rain"],
        embedding=[0.0, 1.0, 0.0, 0.0],
    ),
    make_song(
        "s3",
        title="Empire State of Mind",
        artist="Jay-Z",
        year=2009,
        popularity=85.0,
        tags=["confidence", "new york"],
        phrases=["new york", "concrete jungle"],
        embedding=[0.0, 0.0, 1.0, 0.0],
    ),
    make_song(
        "s4",
        title="Walking on Sunshine",
        artist="Katrina and the Waves",
        year=1985,
        popularity=70.0,
        tags=["joy", "sunny"],
        phrases=["walking on sunshine"],
        embedding=[0.7, 0.7, 0.0, 0.0],
    ),
]


@pytest_asyncio.fixture
async def song_store(tmp_path: Path) -> SQLiteSongStore:
    """An initialized, empty store in a temp directory."""
    store = SQLiteSongStore(db_path=tmp_path / "songs.db")
    await store.initialize()
    return store


@pytest_asyncio.fixture
async def seeded_store(song_store: SQLiteSongStore) -> SQLiteSongStore:
    """Store seeded with ``SAMPLE_SONGS``; s1 and s2 have aboutness rows."""
    for song in SAMPLE_SONGS:
        await song_store.upsert_song(song)
    await song_store.upsert_aboutness(make_aboutness("s1", [0.0, 0.0, 0.0, 1.0], [0.0, 0.0, 0.0, 1.0]))
    await song_store.upsert_aboutness(make_aboutness("s2", [0.0, 1.0, 0.0, 0.0], [1.0, 0.0, 0.0, 0.0]))
    return song_store
