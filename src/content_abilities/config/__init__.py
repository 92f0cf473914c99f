"""Configuration module."""

from content_abilities.config.loader import get_default_config, load_config
from content_abilities.config.models import (
    AbilitiesConfig,
    ConfigError,
    LoggingConfig,
    SiteConfig,
    StoreConfig,
    UserConfig,
)
from content_abilities.config.paths import (
    get_config_path,
    get_database_path,
    get_home,
    get_logs_path,
)

__all__ = [
    "AbilitiesConfig",
    "ConfigError",
    "LoggingConfig",
    "SiteConfig",
    "StoreConfig",
    "UserConfig",
    "get_config_path",
    "get_database_path",
    "get_default_config",
    "get_home",
    "get_logs_path",
    "load_config",
]
