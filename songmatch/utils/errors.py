"""Custom exception hierarchy for songmatch.

All application exceptions inherit from :class:`SongMatchError`, which
carries an optional ``provider_name`` so error handlers can identify which
component (e.g. "openai", "local", "sqlite") caused the failure.

    SongMatchError  (base -- catch-all)
    +-- DimensionMismatchError            (vector shape preconditions)
    +-- EmbeddingProviderUnavailableError (one embedding backend down)
    +-- AllProvidersFailedError           (primary and fallback both failed)
    +-- InvalidGenerationOutputError      (aboutness text fails the output contract)
    +-- ContentAnalysisError              (content filter internal failure)
    +-- LLMError                          (any LLM API call failure)
    +-- RateLimitError                    (provider rate-limit exceeded)
    +-- SongStoreError                    (song store unreachable / query failed)
    +-- ConfigurationError                (startup / invalid config)

Callers handle errors at the level they care about: the embedding service
falls back on ``EmbeddingProviderUnavailableError``, the aboutness generator
waits on ``RateLimitError``, and the matching service only lets
``SongStoreError`` and ``DimensionMismatchError`` escape to its caller.
"""


class SongMatchError(Exception):
    """Base exception for all songmatch errors.

    The ``__str__`` method prefixes the provider name in brackets for
    structured log output, e.g. ``[openai] API error``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Vector errors
# ---------------------------------------------------------------------------

class DimensionMismatchError(SongMatchError):
    """Raised when two vectors (or a vector and a model) disagree on dimension."""

    def __init__(
        self,
        message: str | None = None,
        provider_name: str | None = None,
        expected: int | None = None,
        actual: int | None = None,
    ) -> None:
        self.expected = expected
        self.actual = actual
        if message is None:
            message = f"Vector dimension mismatch: expected {expected}, got {actual}"
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Embedding errors
# ---------------------------------------------------------------------------

class EmbeddingProviderUnavailableError(SongMatchError):
    """Raised when a single embedding provider cannot serve a request.

    The embedding service catches this to move on to the fallback provider.
    """

    def __init__(
        self,
        message: str = "Embedding provider is unavailable",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class AllProvidersFailedError(SongMatchError):
    """Raised when the primary and the fallback embedding providers both failed."""

    def __init__(
        self,
        message: str = "All embedding providers failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Generation / content errors
# ---------------------------------------------------------------------------

class InvalidGenerationOutputError(SongMatchError):
    """Raised when generated aboutness text violates the output contract."""

    def __init__(
        self,
        message: str = "Generated text failed validation",
        provider_name: str | None = None,
        reason: str | None = None,
    ) -> None:
        self.reason = reason
        super().__init__(message=message, provider_name=provider_name)


class ContentAnalysisError(SongMatchError):
    """Raised inside the content filter; never escapes its public methods."""

    def __init__(
        self,
        message: str = "Content analysis failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class LLMError(SongMatchError):
    """Raised when an LLM API call fails or returns an unusable response."""

    def __init__(
        self,
        message: str = "LLM API call failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class RateLimitError(SongMatchError):
    """Raised when an API rate limit is exceeded.

    The aboutness generator waits and retries when this is caught.
    """

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Storage / configuration errors
# ---------------------------------------------------------------------------

class SongStoreError(SongMatchError):
    """Raised when the song store is unreachable or a query fails."""

    def __init__(
        self,
        message: str = "Song store operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ConfigurationError(SongMatchError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
