"""CLI command modules."""

from content_abilities.cli.commands import abilities, config, database

__all__ = [
    "abilities",
    "config",
    "database",
]
