"""Configuration management commands."""

from pathlib import Path
from typing import Annotated

import typer

from content_abilities.cli.console import console, error, success


def register(app: typer.Typer) -> None:
    """Register the config command."""

    @app.command()
    def config(
        ctx: typer.Context,
        action: Annotated[
            str | None,
            typer.Argument(help="Action: show, validate"),
        ] = None,
        path: Annotated[
            Path | None,
            typer.Option(
                "--path",
                "-p",
                help="Path to config file (default: $CONTENT_ABILITIES_HOME/config.toml)",
            ),
        ] = None,
    ) -> None:
        """Manage configuration."""
        if action is None:
            typer.echo(ctx.get_help())
            raise typer.Exit(0)

        from pydantic import ValidationError
        from rich.syntax import Syntax
        from rich.table import Table

        from content_abilities.config import load_config
        from content_abilities.config.paths import get_config_path

        expanded_path = path.expanduser() if path else get_config_path()

        if action == "show":
            if not expanded_path.exists():
                error(f"Config file not found: {expanded_path}")
                raise typer.Exit(1)

            content = expanded_path.read_text()
            syntax = Syntax(content, "toml", theme="monokai", line_numbers=True)
            console.print(f"[bold]Config file: {expanded_path}[/bold]\n")
            console.print(syntax)

        elif action == "validate":
            if not expanded_path.exists():
                error(f"Config file not found: {expanded_path}")
                raise typer.Exit(1)

            try:
                config_obj = load_config(expanded_path)
            except ValidationError as e:
                error("Configuration validation failed:")
                for err in e.errors():
                    loc = ".".join(str(x) for x in err["loc"])
                    console.print(f"  [yellow]{loc}[/yellow]: {err['msg']}")
                raise typer.Exit(1) from None
            except Exception as e:
                error(f"Failed to load config: {e}")
                raise typer.Exit(1) from None

            table = Table(title="Configuration Summary")
            table.add_column("Setting", style="cyan")
            table.add_column("Value", style="green")

            table.add_row("Site", config_obj.site.url)
            store = config_obj.store
            if store.backend == "memory":
                table.add_row("Store", "memory")
            else:
                table.add_row("Store", store.database_url or str(store.database_path))
            table.add_row("Log level", config_obj.logging.level)
            for name in sorted(config_obj.roles):
                table.add_row(f"Role '{name}'", ", ".join(config_obj.roles[name]))
            for name in config_obj.list_users():
                user = config_obj.users[name]
                table.add_row(f"User '{name}'", f"id={user.id} roles={', '.join(user.roles)}")

            console.print(table)
            success("Configuration is valid!")

        else:
            error(f"Unknown action: {action}")
            console.print("Valid actions: show, validate")
            raise typer.Exit(1)
