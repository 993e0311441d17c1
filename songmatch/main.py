"""songmatch composition root.

Wires providers, matchers and services together via constructor injection.
Configuration comes from ``.env`` (``Settings``) and ``config/config.yaml``
(``load_config``); nothing here reads module-level state, so tests and the
CLI can build as many engines as they need.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from songmatch.config.loader import load_config
from songmatch.config.settings import Settings
from songmatch.interfaces.embedding_provider import IEmbeddingProvider
from songmatch.models.content import ContentFilterConfig
from songmatch.models.ranking import ScoringWeights, ThreeSignalConfig
from songmatch.providers.cache.memory_cache import MemoryCacheProvider
from songmatch.providers.embedding.fastembed_embedding_provider import FastEmbedEmbeddingProvider
from songmatch.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from songmatch.providers.llm.openai_provider import OpenAILLMProvider
from songmatch.providers.song_store.sqlite_song_store import SQLiteSongStore
from songmatch.services.aboutness_backfill import AboutnessBackfillJob
from songmatch.services.aboutness_generator import AboutnessGenerator
from songmatch.services.content_filter import ContentFilter
from songmatch.services.embedding_service import EmbeddingService
from songmatch.services.matchers.entities import EntityConfig, EntityExtractor
from songmatch.services.matchers.keyword import KeywordConfig, KeywordMatcher
from songmatch.services.matchers.mood import MoodClassifier, MoodConfig
from songmatch.services.reranker import MAX_RESULTS, Reranker
from songmatch.services.semantic_retrieval import DEFAULT_KNN_SIZE, SemanticRetriever
from songmatch.services.song_matching_service import MatchingConfig, SongMatchingService
from songmatch.services.three_signal_retrieval import ThreeSignalRetriever
from songmatch.utils.errors import ConfigurationError
from songmatch.utils.logging import get_logger

_logger = get_logger(__name__)

_EMBEDDING_PROVIDERS = ("local", "openai")


@dataclass
class Engine:
    """Every long-lived component of one engine instance."""

    settings: Settings
    config: dict[str, Any]
    song_store: SQLiteSongStore
    embedding_service: EmbeddingService
    content_filter: ContentFilter
    reranker: Reranker
    matching_service: SongMatchingService
    generator: AboutnessGenerator
    backfill_job: AboutnessBackfillJob


# ---------------------------------------------------------------------------
# Provider selection
# ---------------------------------------------------------------------------


def _build_embedding_provider(name: str, app_settings: Settings) -> IEmbeddingProvider:
    """Instantiate the embedding provider called *name* ("local" or "openai")."""
    if name == "local":
        return FastEmbedEmbeddingProvider(model_name=app_settings.local_embedding_model)
    if name == "openai":
        return OpenAIEmbeddingProvider(settings=app_settings)
    raise ConfigurationError(
        message=f"Unknown embedding provider {name!r}; expected one of {_EMBEDDING_PROVIDERS}"
    )


def build_embedding_service(app_settings: Settings) -> EmbeddingService:
    """Primary/fallback chain from settings, with a TTL cache for query vectors."""
    chain = app_settings.get_embedding_providers()
    if not chain:
        raise ConfigurationError(message="No embedding provider configured")
    primary = _build_embedding_provider(chain[0], app_settings)
    fallback = _build_embedding_provider(chain[1], app_settings) if len(chain) > 1 else None
    cache = MemoryCacheProvider(
        max_size=app_settings.query_cache_size,
        ttl=app_settings.query_cache_ttl,
    )
    return EmbeddingService(primary=primary, fallback=fallback, cache=cache)


def _section(config: dict[str, Any], key: str) -> dict[str, Any]:
    return config.get(key) or {}


# ---------------------------------------------------------------------------
# Full DI assembly
# ---------------------------------------------------------------------------


def build_engine(
    app_settings: Settings | None = None,
    config: dict[str, Any] | None = None,
) -> Engine:
    """Construct every provider and service for one engine.

    Raises
    ------
    ConfigurationError
        If a config section fails validation or names an unknown provider.
    """
    app_settings = app_settings or Settings()
    config = config if config is not None else load_config(settings=app_settings)

    ranking = _section(config, "ranking")
    try:
        weights = ScoringWeights(**(ranking.get("weights") or {}))
        three_signal_config = ThreeSignalConfig(**_section(config, "three_signal"))
        filter_config = ContentFilterConfig(**_section(config, "content_filter"))
        keyword_config = KeywordConfig(**_section(config, "keyword"))
        mood_config = MoodConfig(**_section(config, "mood"))
        entity_config = EntityConfig(**_section(config, "entities"))
        matching_config = MatchingConfig(
            **_section(config, "matching"),
            three_signal_enabled=three_signal_config.enabled,
        )
    except (ValidationError, TypeError) as exc:
        raise ConfigurationError(message=f"Invalid configuration: {exc}") from exc

    song_store = SQLiteSongStore(
        db_path=_section(config, "song_store").get("db_path", app_settings.song_db_path)
    )
    embedding_service = build_embedding_service(app_settings)
    content_filter = ContentFilter(config=filter_config)
    reranker = Reranker(weights=weights, max_results=ranking.get("max_results", MAX_RESULTS))

    semantic_retriever = SemanticRetriever(
        embedding_service=embedding_service,
        song_store=song_store,
        knn_size=_section(config, "semantic").get("knn_size", DEFAULT_KNN_SIZE),
    )
    three_signal_retriever = ThreeSignalRetriever(
        embedding_service=embedding_service,
        song_store=song_store,
        config=three_signal_config,
    )
    matching_service = SongMatchingService(
        song_store=song_store,
        keyword_matcher=KeywordMatcher(song_store, content_filter, keyword_config),
        semantic_retriever=semantic_retriever,
        content_filter=content_filter,
        reranker=reranker,
        mood_classifier=MoodClassifier(mood_config),
        entity_extractor=EntityExtractor(entity_config),
        three_signal_retriever=three_signal_retriever,
        config=matching_config,
    )

    generator = AboutnessGenerator(
        llm_provider=OpenAILLMProvider(settings=app_settings),
        temperature=_section(config, "aboutness").get("temperature", 0.7),
    )
    backfill_job = AboutnessBackfillJob(
        song_store=song_store,
        generator=generator,
        embedding_service=embedding_service,
    )

    _logger.info(
        "engine_built",
        embedding_providers=app_settings.get_embedding_providers(),
        three_signal=matching_config.three_signal_enabled,
        db_path=str(song_store.db_path),
    )
    return Engine(
        settings=app_settings,
        config=config,
        song_store=song_store,
        embedding_service=embedding_service,
        content_filter=content_filter,
        reranker=reranker,
        matching_service=matching_service,
        generator=generator,
        backfill_job=backfill_job,
    )


async def verify_vector_dimensions(engine: Engine) -> set[int]:
    """Assert that every stored vector matches the index embedding dimension.

    A mismatch would leave songs unreachable by vector search, so it is a
    startup failure rather than a warning.

    Raises
    ------
    DimensionMismatchError
        If any stored vector has a different dimension.
    """
    dimensions = await engine.song_store.vector_dimensions()
    for dimension in sorted(dimensions):
        engine.embedding_service.assert_dimensions(dimension, source="song_store")
    _logger.info(
        "vector_dimensions_verified",
        stored=sorted(dimensions),
        index=engine.embedding_service.get_index_dimensions(),
    )
    return dimensions


async def start_engine(engine: Engine) -> Engine:
    """Create tables, initialize embedding providers and verify stored vectors."""
    await engine.song_store.initialize()
    await engine.embedding_service.initialize()
    await verify_vector_dimensions(engine)
    return engine
