"""Configuration module: exports Settings and the YAML-aware loaders."""

from src.config.loader import load_config, load_settings
from src.config.settings import SUPPORTED_CONTENT_TYPES, Settings

__all__ = ["SUPPORTED_CONTENT_TYPES", "Settings", "load_config", "load_settings"]
