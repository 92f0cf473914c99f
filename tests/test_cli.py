"""Tests for CLI commands."""

import json
import logging

import pytest

from content_abilities.cli.app import app


@pytest.fixture
def run(cli_runner, config_file, restore_root_logger):
    """Invoke the CLI against the temporary config file."""

    def invoke(*args: str):
        return cli_runner.invoke(app, [*args, "--config", str(config_file)])

    return invoke


class TestAbilityCommands:
    def test_categories(self, run):
        result = run("categories")
        assert result.exit_code == 0
        assert "content" in result.stdout
        assert "Content" in result.stdout

    def test_list(self, run):
        result = run("list")
        assert result.exit_code == 0
        for ability_id in (
            "content/create-post",
            "content/update-post",
            "content/get-post",
            "content/find-posts",
        ):
            assert ability_id in result.stdout

    def test_list_unknown_category(self, run):
        result = run("list", "--category", "media")
        assert result.exit_code == 0
        assert "No abilities found" in result.stdout

    def test_describe(self, run):
        result = run("describe", "content/get-post")
        assert result.exit_code == 0
        assert "Get Post" in result.stdout
        assert "readOnlyHint=True" in result.stdout
        assert '"required"' in result.stdout

    def test_describe_unknown(self, run):
        result = run("describe", "content/delete-post")
        assert result.exit_code == 1
        assert "not found" in result.stdout

    def test_invoke_create_then_get(self, run):
        created = run(
            "invoke", "content/create-post", "--user", "bob", "--input", '{"title": "From CLI"}'
        )
        assert created.exit_code == 0, created.stdout
        assert '"ok": true' in created.stdout

        fetched = run("invoke", "content/get-post", "--user", "alice", "--input", '{"id": 1}')
        assert fetched.exit_code == 0
        assert '"title": "From CLI"' in fetched.stdout
        assert '"status": "draft"' in fetched.stdout

    def test_invoke_denied(self, run):
        result = run("invoke", "content/create-post", "--input", '{"title": "Anon"}')
        assert result.exit_code == 1
        assert '"permission_denied"' in result.stdout
        assert '"stage": "validated"' in result.stdout

    def test_invoke_validation_error(self, run):
        result = run("invoke", "content/create-post", "--user", "bob", "--input", "{}")
        assert result.exit_code == 1
        assert '"missing_required_field"' in result.stdout

    def test_invoke_without_input(self, run):
        result = run("invoke", "content/find-posts", "--user", "bob")
        assert result.exit_code == 0
        assert '"output": []' in result.stdout

    def test_invoke_invalid_json(self, run):
        result = run("invoke", "content/get-post", "--input", "{id: 1}")
        assert result.exit_code == 1
        assert "Invalid JSON" in result.stdout

    def test_invoke_non_object_input(self, run):
        result = run("invoke", "content/get-post", "--input", json.dumps([1]))
        assert result.exit_code == 1
        assert "JSON object" in result.stdout

    def test_invoke_uses_configured_log_level(self, run, restore_root_logger):
        result = run("invoke", "content/find-posts", "--user", "bob")
        assert result.exit_code == 0
        assert restore_root_logger.level == logging.DEBUG

    def test_invoke_log_level_from_other_config(
        self, cli_runner, tmp_path, config_toml_content, restore_root_logger
    ):
        quiet = tmp_path / "quiet.toml"
        quiet.write_text(config_toml_content.replace('level = "DEBUG"', 'level = "ERROR"'))
        result = cli_runner.invoke(
            app, ["invoke", "content/find-posts", "--user", "bob", "--config", str(quiet)]
        )
        assert result.exit_code == 0
        assert restore_root_logger.level == logging.ERROR

    def test_invoke_unknown_user(self, run):
        result = run("invoke", "content/get-post", "--user", "mallory", "--input", '{"id": 1}')
        assert result.exit_code == 1
        assert "Unknown user" in result.stdout

    def test_missing_config_file(self, cli_runner, tmp_path):
        result = cli_runner.invoke(app, ["list", "--config", str(tmp_path / "nope.toml")])
        assert result.exit_code == 1
        assert "not found" in result.stdout


class TestConfigCommand:
    def test_show(self, cli_runner, config_file):
        result = cli_runner.invoke(app, ["config", "show", "--path", str(config_file)])
        assert result.exit_code == 0
        assert "[users.alice]" in result.stdout

    def test_show_missing_file(self, cli_runner, tmp_path):
        result = cli_runner.invoke(
            app, ["config", "show", "--path", str(tmp_path / "missing.toml")]
        )
        assert result.exit_code == 1
        assert "not found" in result.stdout

    def test_validate(self, cli_runner, config_file):
        result = cli_runner.invoke(app, ["config", "validate", "--path", str(config_file)])
        assert result.exit_code == 0
        assert "valid" in result.stdout.lower()
        assert "https://example.com" in result.stdout

    def test_validate_invalid_toml(self, cli_runner, tmp_path):
        invalid_file = tmp_path / "invalid.toml"
        invalid_file.write_text("not valid toml [[[")
        result = cli_runner.invoke(app, ["config", "validate", "--path", str(invalid_file)])
        assert result.exit_code == 1

    def test_validate_unknown_role(self, cli_runner, tmp_path):
        bad = tmp_path / "bad.toml"
        bad.write_text('[users.bob]\nid = 3\nroles = ["wizard"]\n')
        result = cli_runner.invoke(app, ["config", "validate", "--path", str(bad)])
        assert result.exit_code == 1
        assert "validation failed" in result.stdout.lower()

    def test_no_action_shows_help(self, cli_runner):
        result = cli_runner.invoke(app, ["config"])
        assert result.exit_code == 0
        assert "Manage configuration" in result.stdout

    def test_unknown_action(self, cli_runner):
        result = cli_runner.invoke(app, ["config", "unknown"])
        assert result.exit_code == 1
        assert "Unknown action" in result.stdout


class TestDbCommand:
    def test_init(self, run, tmp_path):
        result = run("db", "init")
        assert result.exit_code == 0
        assert "initialized" in result.stdout
        assert (tmp_path / "content.db").exists()

    def test_init_memory_backend(self, cli_runner, tmp_path):
        config_path = tmp_path / "memory.toml"
        config_path.write_text('[store]\nbackend = "memory"\n')
        result = cli_runner.invoke(app, ["db", "init", "--config", str(config_path)])
        assert result.exit_code == 1

    def test_add_category_then_use_it(self, run):
        added = run("db", "add-category", "News")
        assert added.exit_code == 0
        assert "id 2" in added.stdout

        duplicate = run("db", "add-category", "news")
        assert duplicate.exit_code == 1
        assert "already exists" in duplicate.stdout

        created = run(
            "invoke",
            "content/create-post",
            "--user",
            "alice",
            "--input",
            json.dumps({"title": "Filed", "categories": [2]}),
        )
        assert created.exit_code == 0, created.stdout
