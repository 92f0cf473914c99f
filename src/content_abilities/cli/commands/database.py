"""Database management commands."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated

import typer

from content_abilities.cli.console import console, error, get_config, success


def register(app: typer.Typer) -> None:
    """Register the db command group."""
    db_app = typer.Typer(help="Database management commands")

    @db_app.command("init")
    def db_init(
        config: Annotated[
            Path | None,
            typer.Option(
                "--config",
                "-c",
                help="Path to configuration file",
            ),
        ] = None,
    ) -> None:
        """Create the tables and the default category."""
        from content_abilities.content.sql import SQLContentStore
        from content_abilities.db import Database

        config_obj = get_config(config)
        if config_obj.store.backend != "sqlite":
            error("The configured store is not SQLite; nothing to initialize")
            raise typer.Exit(1)

        database = Database(
            database_url=config_obj.store.database_url,
            database_path=config_obj.store.database_path,
        )

        async def run() -> None:
            await database.connect()
            try:
                await SQLContentStore(database).initialize()
            finally:
                await database.disconnect()

        console.print(f"[bold]Initializing {database.url}...[/bold]")
        asyncio.run(run())
        success("Database initialized")

    @db_app.command("add-category")
    def db_add_category(
        name: Annotated[str, typer.Argument(help="Category name")],
        config: Annotated[
            Path | None,
            typer.Option(
                "--config",
                "-c",
                help="Path to configuration file",
            ),
        ] = None,
    ) -> None:
        """Create a post category."""
        from content_abilities.abilities.errors import StoreError
        from content_abilities.bootstrap import create_store
        from content_abilities.content.models import CATEGORY

        config_obj = get_config(config)

        async def run() -> int:
            store, database = await create_store(config_obj)
            try:
                term = await store.create_term(CATEGORY, name)
            finally:
                if database is not None:
                    await database.disconnect()
            return term.id

        try:
            term_id = asyncio.run(run())
        except StoreError as e:
            error(e.message)
            raise typer.Exit(1) from None
        success(f"Created category '{name}' (id {term_id})")

    app.add_typer(db_app, name="db")
