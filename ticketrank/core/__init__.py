"""Configuration and logging primitives."""

from .config import ProviderConfig, RankingConfig, Settings, get_settings

__all__ = ["ProviderConfig", "RankingConfig", "Settings", "get_settings"]
