"""YAML configuration loader with environment variable overrides.

Configuration is loaded in layers (later layers override earlier):

  1. config/config.yaml  -- static defaults checked into the repo
  2. .env file           -- local developer overrides (not committed)
  3. Environment vars    -- set at deploy time

``_deep_merge`` does recursive dict merging:

    base = {"ranking": {"max_results": 20}}
    overrides = {"ranking": {"weights": {"semantic": 0.5}}}
    result = {"ranking": {"max_results": 20, "weights": {"semantic": 0.5}}}
"""

from pathlib import Path

import yaml

from songmatch.config.settings import Settings


def load_config(path: str = "config/config.yaml", settings: Settings | None = None) -> dict:
    """Load YAML config and merge with environment-based Settings.

    Environment variables (via Settings) override YAML values where keys overlap.

    Args:
        path: Path to the YAML configuration file.
        settings: Settings instance to merge; a fresh one is built when omitted.

    Returns:
        Fully resolved configuration dictionary.
    """
    config_path = Path(path)
    if config_path.exists():
        with open(config_path) as f:
            yaml_config = yaml.safe_load(f) or {}
    else:
        yaml_config = {}

    settings = settings or Settings()
    env_overrides = {
        "embedding": {
            "primary_provider": settings.embedding_primary_provider,
            "fallback_provider": settings.embedding_fallback_provider,
            "local_model": settings.local_embedding_model,
            "dimensions": settings.embedding_dimensions,
        },
        "song_store": {
            "db_path": settings.song_db_path,
        },
        "aboutness": {
            "version": settings.aboutness_version,
        },
        "logging": {
            "level": settings.log_level,
        },
    }
    # The flag only overrides YAML when it is switched on in the environment.
    if settings.three_signal_enabled:
        env_overrides["three_signal"] = {"enabled": True}

    _deep_merge(yaml_config, env_overrides)
    return yaml_config


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
