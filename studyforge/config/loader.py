# studyforge/config/loader.py
"""
Configuration loading with auto-creation of defaults.

Uses platformdirs for cross-platform config directory management. The
STUDYFORGE_CONFIG environment variable points at an alternative file.
"""

import logging
import os
from pathlib import Path

import yaml
from platformdirs import user_config_path

from .schema import StudyForgeConfig

logger = logging.getLogger(__name__)

APP_NAME = "studyforge"
CONFIG_ENV_VAR = "STUDYFORGE_CONFIG"


def get_config_dir() -> Path:
    """Get the studyforge config directory, creating it if needed."""
    return user_config_path(APP_NAME, ensure_exists=True)


def get_config_path() -> Path:
    """Get path to config file (env override first, then the user config dir)."""
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override)
    return get_config_dir() / "config.yaml"


def load_config(path: Path | None = None) -> StudyForgeConfig:
    """
    Load configuration from YAML file.

    If the config file doesn't exist, creates it with defaults.

    Args:
        path: Explicit config path (defaults to get_config_path())

    Returns:
        Validated StudyForgeConfig
    """
    config_path = path or get_config_path()

    if not config_path.exists():
        default_config = StudyForgeConfig()
        config_dict = default_config.model_dump(mode="json")

        config_path.parent.mkdir(parents=True, exist_ok=True)
        with config_path.open("w") as f:
            yaml.safe_dump(config_dict, f, default_flow_style=False, sort_keys=False)

        logger.info(f"Created default config at {config_path}")
        return default_config

    with config_path.open("r") as f:
        config_data = yaml.safe_load(f) or {}

    config = StudyForgeConfig(**config_data)
    logger.info(f"Loaded config from {config_path}")
    return config


def resolve_db_path(config: StudyForgeConfig) -> str:
    """Return the item database path, defaulting to the config directory."""
    if config.storage.db_path:
        return config.storage.db_path
    return str(get_config_dir() / "items.db")
