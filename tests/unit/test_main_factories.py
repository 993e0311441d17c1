"""Unit tests for the composition root in songmatch.main."""

from __future__ import annotations

from pathlib import Path

import pytest

from songmatch.config.settings import Settings
from songmatch.main import build_embedding_service, build_engine, verify_vector_dimensions
from songmatch.services.embedding_service import EmbeddingService
from songmatch.utils.errors import ConfigurationError, DimensionMismatchError
from tests.conftest import SAMPLE_SONGS, FakeEmbeddingProvider


def _settings(**overrides) -> Settings:
    defaults = {"openai_api_key": "", "openai_base_url": "", "three_signal_enabled": False}
    defaults.update(overrides)
    return Settings(_env_file=None, **defaults)


def _config(tmp_path: Path, **sections) -> dict:
    return {"song_store": {"db_path": str(tmp_path / "songs.db")}, **sections}


class TestBuildEmbeddingService:
    def test_local_primary(self) -> None:
        service = build_embedding_service(_settings())
        assert service.get_active_model() == "sentence-transformers/all-MiniLM-L6-v2"
        assert service.get_active_dimensions() == 384

    def test_openai_primary(self) -> None:
        service = build_embedding_service(
            _settings(embedding_primary_provider="openai", embedding_fallback_provider="")
        )
        assert service.get_active_model() == "text-embedding-3-small"
        assert service.get_active_dimensions() == 1536

    def test_unknown_provider(self) -> None:
        with pytest.raises(ConfigurationError, match="cohere"):
            build_embedding_service(_settings(embedding_primary_provider="cohere"))

    def test_empty_chain(self) -> None:
        with pytest.raises(ConfigurationError):
            build_embedding_service(
                _settings(embedding_primary_provider="", embedding_fallback_provider="")
            )


class TestBuildEngine:
    def test_wires_components(self, tmp_path: Path) -> None:
        engine = build_engine(_settings(), _config(tmp_path, ranking={"weights": {"semantic": 0.6}}))

        assert engine.song_store.db_path == tmp_path / "songs.db"
        assert engine.reranker.get_weights().semantic == 0.6
        assert engine.reranker.get_weights().keyword == 0.30
        assert not engine.matching_service.three_signal_active
        assert not engine.generator.is_available()

    def test_three_signal_from_config(self, tmp_path: Path) -> None:
        engine = build_engine(_settings(), _config(tmp_path, three_signal={"enabled": True}))
        assert engine.matching_service.three_signal_active

    @pytest.mark.parametrize(
        "sections",
        [
            {"ranking": {"weights": {"semantic": -1}}},
            {"ranking": {"weights": {"semantik": 0.9}}},
            {"content_filter": {"allow_explicitt": True}},
            {"three_signal": {"top_n_meta": 0}},
            {"keyword": {"fuzzy_threshold": 150}},
            {"matching": {"three_signal_enabled": True}},
        ],
    )
    def test_invalid_sections(self, tmp_path: Path, sections: dict) -> None:
        with pytest.raises(ConfigurationError, match="Invalid configuration"):
            build_engine(_settings(), _config(tmp_path, **sections))


class TestVerifyVectorDimensions:
    @pytest.mark.asyncio
    async def test_matching_dimensions(self, tmp_path: Path) -> None:
        engine = build_engine(_settings(), _config(tmp_path))
        engine.embedding_service = EmbeddingService(FakeEmbeddingProvider())
        await engine.song_store.initialize()
        for song in SAMPLE_SONGS:
            await engine.song_store.upsert_song(song)

        assert await verify_vector_dimensions(engine) == {4}

    @pytest.mark.asyncio
    async def test_empty_store(self, tmp_path: Path) -> None:
        engine = build_engine(_settings(), _config(tmp_path))
        await engine.song_store.initialize()
        assert await verify_vector_dimensions(engine) == set()

    @pytest.mark.asyncio
    async def test_mismatch_is_fatal(self, tmp_path: Path) -> None:
        # The default local model produces 384-dimensional vectors.
        engine = build_engine(_settings(), _config(tmp_path))
        await engine.song_store.initialize()
        await engine.song_store.upsert_song(SAMPLE_SONGS[0])

        with pytest.raises(DimensionMismatchError) as exc_info:
            await verify_vector_dimensions(engine)
        assert exc_info.value.provider_name == "song_store"
