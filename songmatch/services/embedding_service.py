"""Embedding service with primary/fallback provider chain.

Wraps one primary and an optional fallback :class:`IEmbeddingProvider`
behind the same capability set.  Each ``embed`` call walks an explicit
three-state machine::

    PRIMARY --(unavailable or raised)--> FALLBACK --(unavailable or raised)--> FAILED

and raises :class:`AllProvidersFailedError` on reaching FAILED.  Zero
vectors are never returned in place of an error.

Initialization is lazy and single-flight: the first caller starts provider
setup and concurrent callers await the same in-flight task.  The service is
an explicitly constructed instance injected where needed (see
``songmatch.main.build_engine``), not a module-level singleton.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from enum import Enum

from songmatch.interfaces.cache_provider import ICacheProvider
from songmatch.interfaces.embedding_provider import IEmbeddingProvider
from songmatch.models.embedding import EmbeddingStatus
from songmatch.utils.errors import AllProvidersFailedError, DimensionMismatchError
from songmatch.utils.logging import get_logger

logger = get_logger(__name__)


class ProviderState(str, Enum):  # noqa: UP042
    """Position in the fallback chain."""

    PRIMARY = "primary"
    FALLBACK = "fallback"
    FAILED = "failed"


_TRANSITIONS: dict[ProviderState, ProviderState] = {
    ProviderState.PRIMARY: ProviderState.FALLBACK,
    ProviderState.FALLBACK: ProviderState.FAILED,
}


class EmbeddingService:
    """Turns text into vectors through a primary provider with automatic fallback."""

    def __init__(
        self,
        primary: IEmbeddingProvider,
        fallback: IEmbeddingProvider | None = None,
        cache: ICacheProvider | None = None,
    ) -> None:
        self._primary = primary
        self._fallback = fallback
        self._cache = cache
        self._active: IEmbeddingProvider | None = None
        self._state = ProviderState.PRIMARY
        self._initialized = False
        self._init_task: asyncio.Task | None = None

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Set up the providers once; concurrent callers share one in-flight task."""
        if self._initialized:
            return
        if self._init_task is None:
            self._init_task = asyncio.ensure_future(self._initialize_providers())
        await asyncio.shield(self._init_task)

    async def _initialize_providers(self) -> None:
        # A provider that fails to initialize stays in the chain: embed()
        # probes is_available() per call, so a transient failure can recover.
        for state in (ProviderState.PRIMARY, ProviderState.FALLBACK):
            provider = self._provider_for(state)
            if provider is None:
                continue
            try:
                await provider.initialize()
                logger.info(
                    "embedding_provider_initialized",
                    role=state.value,
                    provider=provider.get_provider_name(),
                    model=provider.get_model(),
                    dimensions=provider.get_dimension(),
                )
            except Exception as exc:  # noqa: BLE001
                logger.warning(
                    "embedding_provider_init_failed",
                    role=state.value,
                    provider=provider.get_provider_name(),
                    error=str(exc),
                )
        self._initialized = True

    # ------------------------------------------------------------------
    # Embedding
    # ------------------------------------------------------------------

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Embed *texts*, falling back to the secondary provider when needed.

        Raises
        ------
        AllProvidersFailedError
            Tagged with the last provider that was tried.
        """
        if not texts:
            return []
        await self.initialize()

        state = ProviderState.PRIMARY
        last_provider: str | None = None
        while state is not ProviderState.FAILED:
            provider = self._provider_for(state)
            if provider is not None:
                last_provider = provider.get_provider_name()
                vectors = await self._try_provider(provider, state, texts)
                if vectors is not None:
                    self._state = state
                    self._active = provider
                    return vectors
            state = _TRANSITIONS[state]

        self._state = ProviderState.FAILED
        logger.error("embedding_all_providers_failed", provider=last_provider, count=len(texts))
        raise AllProvidersFailedError(provider_name=last_provider)

    async def _try_provider(
        self,
        provider: IEmbeddingProvider,
        state: ProviderState,
        texts: list[str],
    ) -> list[list[float]] | None:
        """Return vectors from *provider*, or None if it is unavailable or fails."""
        name = provider.get_provider_name()
        try:
            if not await provider.is_available():
                logger.warning("embedding_provider_unavailable", role=state.value, provider=name)
                return None
            return await provider.embed(texts)
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "embedding_provider_failed",
                role=state.value,
                provider=name,
                error=str(exc),
            )
            return None

    async def embed_single(self, text: str) -> list[float]:
        """Embed one text, consulting the query cache first when one is injected."""
        cache_key = f"embedding:{self.get_active_model()}:{text}"
        if self._cache is not None:
            cached = await self._cache.get(cache_key)
            if cached is not None:
                return list(cached)

        vector = (await self.embed([text]))[0]
        if self._cache is not None:
            await self._cache.set(cache_key, list(vector))
        return vector

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def _provider_for(self, state: ProviderState) -> IEmbeddingProvider | None:
        if state is ProviderState.PRIMARY:
            return self._primary
        if state is ProviderState.FALLBACK:
            return self._fallback
        return None

    def get_active_model(self) -> str:
        return (self._active or self._primary).get_model()

    def get_active_dimensions(self) -> int:
        """Dimension of the provider that served the last request (primary before any)."""
        return (self._active or self._primary).get_dimension()

    def get_index_dimensions(self) -> int:
        """Dimension the catalog is indexed in: always the primary provider's.

        Unlike :meth:`get_active_dimensions` this does not move when the
        fallback serves a request.
        """
        return self._primary.get_dimension()

    def assert_dimensions(self, vector_or_dim: Sequence[float] | int, source: str) -> None:
        """Raise :class:`DimensionMismatchError` if *vector_or_dim* is off the index dimension.

        Vectors produced by a fallback with a different dimension fail here,
        so they are never written to or searched against the catalog.
        *source* names what is being checked (e.g. ``"song_store"``) and is
        used as the error's provider tag.
        """
        actual = vector_or_dim if isinstance(vector_or_dim, int) else len(vector_or_dim)
        expected = self.get_index_dimensions()
        if actual != expected:
            raise DimensionMismatchError(
                message=(
                    f"{source} has {actual}-dimensional vectors but "
                    f"{self._primary.get_model()} indexes {expected}"
                ),
                provider_name=source,
                expected=expected,
                actual=actual,
            )

    @property
    def state(self) -> ProviderState:
        return self._state

    async def get_status(self) -> EmbeddingStatus:
        """Probe the active provider and report the chain configuration."""
        provider = self._active or self._primary
        try:
            available = await provider.is_available()
        except Exception:  # noqa: BLE001
            available = False
        return EmbeddingStatus(
            primary_provider=self._primary.get_provider_name(),
            fallback_provider=self._fallback.get_provider_name() if self._fallback else None,
            model=provider.get_model(),
            dimensions=provider.get_dimension(),
            available=available,
            state=self._state.value,
            initialized=self._initialized,
        )
