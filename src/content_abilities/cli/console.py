"""Shared console utilities for CLI commands."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import typer
from rich.console import Console

if TYPE_CHECKING:
    from content_abilities.config.models import AbilitiesConfig

# Shared console instance for all CLI commands
console = Console()


def error(msg: str) -> None:
    """Print an error message in red."""
    console.print(f"[red]{msg}[/red]")


def success(msg: str) -> None:
    """Print a success message in green."""
    console.print(f"[green]{msg}[/green]")


def dim(msg: str) -> None:
    """Print a dimmed message."""
    console.print(f"[dim]{msg}[/dim]")


def get_config(config_path: Path | None = None) -> AbilitiesConfig:
    """Load configuration, falling back to defaults when no file exists.

    An explicitly given path must exist.
    """
    from pydantic import ValidationError

    from content_abilities.config import load_config
    from content_abilities.config.models import AbilitiesConfig

    try:
        return load_config(config_path)
    except FileNotFoundError as e:
        if config_path is not None:
            error(str(e))
            raise typer.Exit(1) from None
        return AbilitiesConfig()
    except ValidationError as e:
        error("Configuration validation failed:")
        for err in e.errors():
            loc = ".".join(str(x) for x in err["loc"])
            console.print(f"  [yellow]{loc}[/yellow]: {err['msg']}")
        raise typer.Exit(1) from None
