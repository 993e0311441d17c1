"""Configuration module -- exports Settings and load_config."""

from songmatch.config.loader import load_config
from songmatch.config.settings import Settings

__all__ = ["Settings", "load_config"]
