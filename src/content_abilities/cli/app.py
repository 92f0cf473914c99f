"""Main CLI application."""

import typer

from content_abilities.cli.commands import abilities, config, database

app = typer.Typer(
    name="content-abilities",
    help="Inspect and invoke content management abilities",
    no_args_is_help=True,
)

abilities.register(app)
config.register(app)
database.register(app)


if __name__ == "__main__":
    app()
