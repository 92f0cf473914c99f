"""Configuration loading from TOML files and environment variables."""

import os
import tomllib
from pathlib import Path
from typing import Any

from content_abilities.config.models import AbilitiesConfig, StoreConfig
from content_abilities.config.paths import get_config_path

DATABASE_URL_ENV = "CONTENT_ABILITIES_DATABASE_URL"


def _get_default_config_paths() -> list[Path]:
    """Get ordered list of default config file locations."""
    return [
        Path("config.toml"),  # Current directory
        get_config_path(),  # ~/.content-abilities/config.toml (or CONTENT_ABILITIES_HOME)
    ]


def _apply_env_overrides(config: dict[str, Any]) -> dict[str, Any]:
    """Let the environment override settings that differ per deployment."""
    if database_url := os.environ.get(DATABASE_URL_ENV):
        store = config.setdefault("store", {})
        store["database_url"] = database_url
    return config


def load_config(path: Path | None = None) -> AbilitiesConfig:
    """Load configuration from TOML file.

    Args:
        path: Explicit path to config file. If None, searches default locations.

    Returns:
        Validated AbilitiesConfig instance.

    Raises:
        FileNotFoundError: If no config file is found.
        ValueError: If config file is invalid.
    """
    config_path: Path | None = None

    default_paths = _get_default_config_paths()

    if path is not None:
        config_path = Path(path).expanduser()
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
    else:
        for default_path in default_paths:
            expanded = default_path.expanduser()
            if expanded.exists():
                config_path = expanded
                break

    if config_path is None:
        raise FileNotFoundError(
            f"No config file found. Searched: {', '.join(str(p) for p in default_paths)}"
        )

    with config_path.open("rb") as f:
        raw_config = tomllib.load(f)

    raw_config = _apply_env_overrides(raw_config)

    return AbilitiesConfig.model_validate(raw_config)


def get_default_config() -> AbilitiesConfig:
    """Get a default configuration for development/testing."""
    return AbilitiesConfig(store=StoreConfig(backend="memory"))
