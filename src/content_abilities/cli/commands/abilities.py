"""Ability inspection and invocation commands."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Annotated, Any

import typer

from content_abilities.cli.console import console, dim, error, get_config

ConfigOption = Annotated[
    Path | None,
    typer.Option(
        "--config",
        "-c",
        help="Path to configuration file",
    ),
]


def _parse_input(raw: str | None) -> dict[str, Any] | None:
    if raw is None:
        return None
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        error(f"Invalid JSON input: {e}")
        raise typer.Exit(1) from None
    if not isinstance(data, dict):
        error("Input must be a JSON object")
        raise typer.Exit(1)
    return data


def register(app: typer.Typer) -> None:
    """Register the ability commands."""

    @app.command()
    def categories(config: ConfigOption = None) -> None:
        """List ability categories."""
        from rich.table import Table

        from content_abilities.bootstrap import create_runtime

        config_obj = get_config(config)

        async def run() -> None:
            runtime = await create_runtime(config_obj)
            try:
                table = Table(title="Categories")
                table.add_column("ID", style="cyan")
                table.add_column("Label", style="green")
                table.add_column("Description")
                for category in runtime.invoker.list_categories():
                    table.add_row(category.id, category.label, category.description)
                console.print(table)
            finally:
                await runtime.close()

        asyncio.run(run())

    @app.command("list")
    def list_abilities(
        category: Annotated[
            str | None,
            typer.Option("--category", help="Only abilities in this category"),
        ] = None,
        show_all: Annotated[
            bool,
            typer.Option("--all", "-a", help="Include private abilities"),
        ] = False,
        config: ConfigOption = None,
    ) -> None:
        """List registered abilities."""
        from rich.table import Table

        from content_abilities.abilities.types import Visibility
        from content_abilities.bootstrap import create_runtime

        config_obj = get_config(config)
        visibility = None if show_all else Visibility.PUBLIC

        async def run() -> None:
            runtime = await create_runtime(config_obj)
            try:
                abilities = runtime.invoker.list_abilities(
                    category=category, visibility=visibility
                )
            finally:
                await runtime.close()

            if not abilities:
                dim("No abilities found")
                return

            table = Table(title="Abilities")
            table.add_column("ID", style="cyan")
            table.add_column("Label", style="green")
            table.add_column("Read-only")
            table.add_column("Destructive")
            for ability in abilities:
                hints = ability["annotations"]
                table.add_row(
                    ability["id"],
                    ability["label"],
                    "yes" if hints["readOnlyHint"] else "no",
                    "yes" if hints["destructiveHint"] else "no",
                )
            console.print(table)

        asyncio.run(run())

    @app.command()
    def describe(
        ability_id: Annotated[str, typer.Argument(help="Ability ID, e.g. content/get-post")],
        config: ConfigOption = None,
    ) -> None:
        """Show an ability's description and schemas."""
        from content_abilities.abilities.errors import AbilityNotFound
        from content_abilities.bootstrap import create_runtime

        config_obj = get_config(config)

        async def run() -> dict[str, Any]:
            runtime = await create_runtime(config_obj)
            try:
                return runtime.registry.get(ability_id).to_dict()
            finally:
                await runtime.close()

        try:
            info = asyncio.run(run())
        except AbilityNotFound as e:
            error(e.message)
            raise typer.Exit(1) from None

        console.print(f"[bold]{info['label']}[/bold] [dim]({info['id']})[/dim]")
        console.print(info["description"])
        console.print()
        hints = ", ".join(f"{name}={value}" for name, value in info["annotations"].items())
        console.print(f"[cyan]Annotations:[/cyan] {hints}")
        console.print("[cyan]Input schema:[/cyan]")
        console.print_json(json.dumps(info["input_schema"]))
        console.print("[cyan]Output schema:[/cyan]")
        console.print_json(json.dumps(info["output_schema"]))

    @app.command()
    def invoke(
        ability_id: Annotated[str, typer.Argument(help="Ability ID, e.g. content/get-post")],
        input_json: Annotated[
            str | None,
            typer.Option("--input", "-i", help="Input as a JSON object"),
        ] = None,
        user: Annotated[
            str | None,
            typer.Option("--user", "-u", help="Configured user to act as"),
        ] = None,
        verbose: Annotated[
            bool,
            typer.Option("--verbose", "-v", help="Log at DEBUG level regardless of config"),
        ] = False,
        config: ConfigOption = None,
    ) -> None:
        """Invoke an ability and print the JSON result."""
        from content_abilities.bootstrap import caller_for_user, create_runtime
        from content_abilities.config import ConfigError
        from content_abilities.logging import configure_logging

        config_obj = get_config(config)
        configure_logging(
            level="DEBUG" if verbose else config_obj.logging.level,
            use_rich=True,
            log_to_file=config_obj.logging.log_to_file,
            retention_days=config_obj.logging.retention_days,
        )

        raw_input = _parse_input(input_json)
        try:
            caller = caller_for_user(config_obj, user)
        except ConfigError as e:
            error(str(e))
            raise typer.Exit(1) from None

        async def run() -> dict[str, Any]:
            runtime = await create_runtime(config_obj)
            try:
                result = await runtime.invoker.invoke(ability_id, raw_input, caller)
            finally:
                await runtime.close()
            return result.to_dict()

        payload = asyncio.run(run())
        console.print_json(json.dumps(payload, default=str))
        if not payload["ok"]:
            raise typer.Exit(1)
