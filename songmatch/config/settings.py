"""Application settings loaded from environment variables via pydantic-settings.

Two sources, in priority order:

  1. **Environment variables** -- e.g. ``OPENAI_API_KEY=sk-abc123``
  2. **.env file** -- key=value lines in the project root ``.env``

Field ``openai_api_key`` maps to env var ``OPENAI_API_KEY``.  Defaults apply
when neither source sets a field.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """songmatch settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === OpenAI (remote embeddings + aboutness generation) ===
    # Empty string = "not configured"; the remote embedding provider then
    # reports itself unavailable and the service falls back.
    openai_api_key: str = ""
    openai_base_url: str = ""
    openai_embedding_model: str = ""  # default text-embedding-3-small
    openai_text_model: str = ""  # default gpt-4o-mini

    # === Embeddings ===
    embedding_primary_provider: str = "local"  # "local" | "openai"
    embedding_fallback_provider: str = "openai"  # "local" | "openai" | "" (none)
    local_embedding_model: str = "sentence-transformers/all-MiniLM-L6-v2"
    # 0 = use the model's native dimension.  Must match stored vectors.
    embedding_dimensions: int = 0
    query_cache_size: int = 1000
    query_cache_ttl: int = 3600

    # === Song store ===
    song_db_path: str = "data/songs.db"

    # === Retrieval ===
    three_signal_enabled: bool = False
    aboutness_version: int = 2

    # === App Config ===
    app_env: str = "development"
    log_level: str = "INFO"

    def get_embedding_providers(self) -> list[str]:
        """Return the configured provider chain, primary first, without duplicates."""
        chain: list[str] = []
        for name in (self.embedding_primary_provider, self.embedding_fallback_provider):
            if name and name not in chain:
                chain.append(name)
        return chain
