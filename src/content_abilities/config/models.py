"""Configuration models using Pydantic."""

import logging
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, model_validator

from content_abilities.config.paths import get_database_path

logger = logging.getLogger(__name__)


class SiteConfig(BaseModel):
    """Where the content is published; used to build post links."""

    url: str = "http://localhost"


class StoreConfig(BaseModel):
    """Content store backend.

    "memory" keeps everything in-process and is lost on exit; "sqlite" uses
    database_path unless database_url is set.
    """

    backend: Literal["memory", "sqlite"] = "sqlite"
    database_path: Path = Field(default_factory=get_database_path)
    database_url: str | None = None


class LoggingConfig(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_to_file: bool = False
    retention_days: int = Field(default=7, ge=1)


class UserConfig(BaseModel):
    """A named caller the CLI can act as."""

    id: int
    roles: list[str] = []
    # Extra primitive capabilities on top of the roles
    capabilities: list[str] = []


class ConfigError(Exception):
    """Configuration error."""

    pass


class AbilitiesConfig(BaseModel):
    """Root configuration model."""

    site: SiteConfig = Field(default_factory=SiteConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    # Role name -> primitive capabilities. Replaces a built-in role of the same name.
    roles: dict[str, list[str]] = Field(default_factory=dict)
    users: dict[str, UserConfig] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _validate_user_roles(self) -> "AbilitiesConfig":
        from content_abilities.content.capabilities import DEFAULT_ROLES

        known = set(DEFAULT_ROLES) | set(self.roles)
        for name, user in self.users.items():
            unknown = [role for role in user.roles if role not in known]
            if unknown:
                raise ValueError(
                    f"User '{name}' has unknown roles: {', '.join(sorted(unknown))}"
                )
        return self

    def get_user(self, name: str) -> UserConfig:
        """Get a configured user by name.

        Raises:
            ConfigError: If the user is not configured.
        """
        if name not in self.users:
            available = ", ".join(sorted(self.users)) or "none"
            raise ConfigError(f"Unknown user '{name}'. Available: {available}")
        return self.users[name]

    def list_users(self) -> list[str]:
        return sorted(self.users)
