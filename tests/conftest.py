"""Shared test fixtures and factories."""

from collections.abc import AsyncGenerator
from pathlib import Path
from typing import Any

import pytest

from content_abilities.abilities import (
    AbilityCategory,
    AbilityDefinition,
    AbilityInvoker,
    AbilityRegistry,
    CallerContext,
)
from content_abilities.bootstrap import create_registry
from content_abilities.content.capabilities import RoleCapabilityChecker
from content_abilities.content.memory import InMemoryContentStore
from content_abilities.content.models import PostFields
from content_abilities.content.sql import SQLContentStore
from content_abilities.db.engine import Database

ADMIN_ID = 1
EDITOR_ID = 2
AUTHOR_ID = 3
CONTRIBUTOR_ID = 4
SUBSCRIBER_ID = 5
OTHER_AUTHOR_ID = 6

# =============================================================================
# Caller Fixtures
# =============================================================================


def make_caller(user_id: int | None, *roles: str, **kwargs: Any) -> CallerContext:
    return CallerContext(user_id=user_id, roles=frozenset(roles), **kwargs)


@pytest.fixture
def admin() -> CallerContext:
    return make_caller(ADMIN_ID, "administrator")


@pytest.fixture
def editor() -> CallerContext:
    return make_caller(EDITOR_ID, "editor")


@pytest.fixture
def author() -> CallerContext:
    return make_caller(AUTHOR_ID, "author")


@pytest.fixture
def other_author() -> CallerContext:
    return make_caller(OTHER_AUTHOR_ID, "author")


@pytest.fixture
def contributor() -> CallerContext:
    return make_caller(CONTRIBUTOR_ID, "contributor")


@pytest.fixture
def subscriber() -> CallerContext:
    return make_caller(SUBSCRIBER_ID, "subscriber")


@pytest.fixture
def anonymous() -> CallerContext:
    return CallerContext.anonymous()


# =============================================================================
# Store Fixtures
# =============================================================================


WRITE_METHODS = ("create_post", "update_post", "set_tags", "create_term")


class CountingStore:
    """Wraps a store and records which methods were called."""

    def __init__(self, inner: InMemoryContentStore):
        self._inner = inner
        self.calls: list[str] = []

    def __getattr__(self, name: str) -> Any:
        attr = getattr(self._inner, name)
        if not callable(attr):
            return attr

        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            self.calls.append(name)
            return await attr(*args, **kwargs)

        return wrapper

    def writes(self) -> list[str]:
        return [name for name in self.calls if name in WRITE_METHODS]


@pytest.fixture
def memory_store() -> InMemoryContentStore:
    return InMemoryContentStore()


@pytest.fixture
def store(memory_store: InMemoryContentStore) -> CountingStore:
    return CountingStore(memory_store)


@pytest.fixture
def checker(store: CountingStore) -> RoleCapabilityChecker:
    return RoleCapabilityChecker(store)


@pytest.fixture
def registry(store: CountingStore, checker: RoleCapabilityChecker) -> AbilityRegistry:
    return create_registry(store, checker, site_url="https://example.com")


@pytest.fixture
def invoker(registry: AbilityRegistry) -> AbilityInvoker:
    return AbilityInvoker(registry)


async def add_post(
    store: Any,
    *,
    title: str = "Hello",
    content: str = "",
    status: str = "publish",
    author_id: int | None = AUTHOR_ID,
    post_type: str = "post",
    categories: list[int] | None = None,
) -> int:
    """Create a post directly in the store, bypassing abilities."""
    return await store.create_post(
        PostFields(
            type=post_type,
            title=title,
            content=content,
            status=status,
            author_id=author_id,
            categories=categories,
        )
    )


# =============================================================================
# Registry Helpers
# =============================================================================


def make_definition(**overrides: Any) -> AbilityDefinition:
    """A minimal valid definition in the "test" category."""

    async def execute(caller: CallerContext, input_data: dict[str, Any]) -> Any:
        return {"echo": input_data.get("value")}

    values: dict[str, Any] = {
        "id": "test/echo",
        "label": "Echo",
        "description": "Echo the input value.",
        "category": "test",
        "input_schema": {
            "type": "object",
            "properties": {"value": {"type": "string"}},
        },
        "output_schema": {
            "type": "object",
            "properties": {"echo": {"type": ["string", "null"]}},
        },
        "permission": lambda caller, input_data: True,
        "execute": execute,
    }
    values.update(overrides)
    return AbilityDefinition(**values)


@pytest.fixture
def test_registry() -> AbilityRegistry:
    """Unsealed registry with a "test" category and nothing else."""
    registry = AbilityRegistry()
    registry.register_category("test", "Test", "Abilities used by tests.")
    return registry


@pytest.fixture
def test_category(test_registry: AbilityRegistry) -> AbilityCategory:
    category = test_registry.get_category("test")
    assert category is not None
    return category


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture
async def database(tmp_path: Path) -> AsyncGenerator[Database, None]:
    """Create a temporary test database."""
    db = Database(database_path=tmp_path / "test.db")
    await db.connect()
    yield db
    await db.disconnect()


@pytest.fixture
async def sql_store(database: Database) -> SQLContentStore:
    store = SQLContentStore(database)
    await store.initialize()
    return store


# =============================================================================
# Configuration and CLI Fixtures
# =============================================================================


@pytest.fixture
def config_toml_content(tmp_path: Path) -> str:
    """Valid TOML config content using a temporary SQLite database."""
    return f"""
[site]
url = "https://example.com"

[store]
backend = "sqlite"
database_path = "{(tmp_path / "content.db").as_posix()}"

[logging]
level = "DEBUG"

[roles]
reviewer = ["read", "read_private_posts"]

[users.alice]
id = 1
roles = ["administrator"]

[users.bob]
id = 3
roles = ["author"]

[users.rita]
id = 7
roles = ["reviewer"]
"""


@pytest.fixture
def config_file(tmp_path: Path, config_toml_content: str) -> Path:
    """Create a temporary config file."""
    config_path = tmp_path / "config.toml"
    config_path.write_text(config_toml_content)
    return config_path


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the home directory at a temporary path for every test."""
    from content_abilities.config.paths import get_home

    home = tmp_path / "home"
    monkeypatch.setenv("CONTENT_ABILITIES_HOME", str(home))
    monkeypatch.delenv("CONTENT_ABILITIES_DATABASE_URL", raising=False)
    monkeypatch.delenv("CONTENT_ABILITIES_LOG_LEVEL", raising=False)
    get_home.cache_clear()
    yield home
    get_home.cache_clear()


@pytest.fixture
def cli_runner():
    """Create a Typer CLI test runner with colors disabled."""
    from typer.testing import CliRunner

    return CliRunner(env={"NO_COLOR": "1", "COLUMNS": "200"})


@pytest.fixture
def restore_root_logger():
    """Undo configure_logging() so later tests see pytest's handlers."""
    import logging

    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers = handlers
    root.setLevel(level)
