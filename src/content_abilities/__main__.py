from content_abilities.cli.app import app

app()
