"""Centralized path management.

All local state (config, SQLite database, logs) lives under one base
directory, overridable with the CONTENT_ABILITIES_HOME environment variable.

Default location: ~/.content-abilities
"""

import os
from functools import lru_cache
from pathlib import Path

ENV_VAR = "CONTENT_ABILITIES_HOME"


@lru_cache(maxsize=1)
def get_home() -> Path:
    """Get the base directory for all local data.

    Resolution order:
    1. CONTENT_ABILITIES_HOME environment variable (if set)
    2. ~/.content-abilities
    """
    if env_home := os.environ.get(ENV_VAR):
        return Path(env_home).expanduser().resolve()
    return Path.home() / ".content-abilities"


def get_config_path() -> Path:
    return get_home() / "config.toml"


def get_database_path() -> Path:
    return get_home() / "data" / "content.db"


def get_logs_path() -> Path:
    return get_home() / "logs"
