"""Command line interface."""

from content_abilities.cli.app import app

__all__ = ["app"]
