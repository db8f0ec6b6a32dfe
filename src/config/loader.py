"""YAML configuration loader with environment variable overrides.

Configuration is layered (later layers win):

  1. config/config.yaml  - static defaults checked into the repo
  2. .env file           - local developer overrides (not committed)
  3. Environment vars    - set at deploy time

The YAML file groups keys by section (``generation``, ``pipeline``, ...).
Section keys map one-to-one onto :class:`Settings` field names, so
``pipeline.chunk_size`` in YAML and ``CHUNK_SIZE`` in the environment set the
same value.
"""

from pathlib import Path
from typing import Any

import yaml

from src.config.settings import Settings

_DEFAULT_CONFIG_PATH = "config/config.yaml"


def _read_yaml(path: str) -> dict[str, Any]:
    config_path = Path(path)
    if not config_path.exists():
        return {}
    with open(config_path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _flatten_sections(yaml_config: dict[str, Any]) -> dict[str, Any]:
    """Collapse ``{section: {key: value}}`` into ``{key: value}`` for known fields."""
    known = set(Settings.model_fields)
    flat: dict[str, Any] = {}
    for section, values in yaml_config.items():
        if isinstance(values, dict):
            for key, value in values.items():
                if key in known:
                    flat[key] = value
        elif section in known:
            flat[section] = values
    return flat


def load_settings(path: str = _DEFAULT_CONFIG_PATH) -> Settings:
    """Build :class:`Settings` from YAML defaults overlaid by env/.env values.

    Args:
        path: Path to the YAML configuration file.  A missing file is not
              an error; environment values and field defaults still apply.
    """
    yaml_values = _flatten_sections(_read_yaml(path))
    env_settings = Settings()
    # Fields set by the environment or .env beat the YAML defaults.
    env_values = env_settings.model_dump(include=env_settings.model_fields_set)
    return Settings(**{**yaml_values, **env_values})


def load_config(path: str = _DEFAULT_CONFIG_PATH) -> dict:
    """Load YAML config and merge it with environment-based Settings.

    Returns:
        Fully resolved configuration dictionary, grouped by section.
    """
    yaml_config = _read_yaml(path)
    settings = load_settings(path)
    env_overrides = {
        "app": {
            "host": settings.app_host,
            "port": settings.app_port,
            "env": settings.app_env,
        },
        "generation": {
            "available_providers": settings.get_available_llm_providers(),
            "temperature": settings.generation_temperature,
            "max_tokens": settings.generation_max_tokens,
            "max_retries": settings.generation_max_retries,
        },
        "pipeline": {
            "chunk_size": settings.chunk_size,
            "chunk_pause_seconds": settings.chunk_pause_seconds,
            "min_text_length": settings.min_text_length,
            "max_upload_bytes": settings.max_upload_bytes,
        },
        "logging": {
            "level": settings.log_level,
        },
    }

    _deep_merge(yaml_config, env_overrides)
    return yaml_config


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
