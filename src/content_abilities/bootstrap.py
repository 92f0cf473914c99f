"""Runtime bootstrap: build the store, checker, registry and invoker.

This is the only place abilities are registered. The registry is sealed
before it is handed out.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from content_abilities.abilities.invoker import AbilityInvoker, InvocationCallback
from content_abilities.abilities.registry import AbilityRegistry
from content_abilities.abilities.types import CallerContext
from content_abilities.config.models import AbilitiesConfig
from content_abilities.content.capabilities import RoleCapabilityChecker
from content_abilities.content.memory import InMemoryContentStore
from content_abilities.content.posts import PostAbilities, register_categories
from content_abilities.content.sql import SQLContentStore
from content_abilities.content.store import CapabilityChecker, ContentStore
from content_abilities.db.engine import Database

logger = logging.getLogger(__name__)


def register_content_abilities(
    registry: AbilityRegistry,
    store: ContentStore,
    checker: CapabilityChecker,
    site_url: str = "http://localhost",
) -> None:
    register_categories(registry)
    PostAbilities(store, checker, site_url=site_url).register(registry)


def create_registry(
    store: ContentStore,
    checker: CapabilityChecker,
    site_url: str = "http://localhost",
) -> AbilityRegistry:
    """Create a sealed registry with all content abilities."""
    registry = AbilityRegistry()
    register_content_abilities(registry, store, checker, site_url=site_url)
    registry.seal()
    logger.debug(f"Registered abilities: {', '.join(registry.ids)}")
    return registry


def caller_for_user(config: AbilitiesConfig, name: str | None) -> CallerContext:
    """Caller context for a configured user, or anonymous when name is None."""
    if name is None:
        return CallerContext.anonymous()
    user = config.get_user(name)
    return CallerContext(
        user_id=user.id,
        roles=frozenset(user.roles),
        capabilities=frozenset(user.capabilities),
        metadata={"username": name},
    )


@dataclass(slots=True)
class Runtime:
    """Composed runtime dependencies."""

    store: ContentStore
    checker: RoleCapabilityChecker
    registry: AbilityRegistry
    invoker: AbilityInvoker
    database: Database | None = None

    async def close(self) -> None:
        if self.database is not None:
            await self.database.disconnect()


async def create_store(config: AbilitiesConfig) -> tuple[ContentStore, Database | None]:
    if config.store.backend == "memory":
        return InMemoryContentStore(), None

    database = Database(
        database_url=config.store.database_url,
        database_path=config.store.database_path,
    )
    await database.connect()
    store = SQLContentStore(database)
    await store.initialize()
    return store, database


async def create_runtime(
    config: AbilitiesConfig,
    on_invocation: InvocationCallback | None = None,
) -> Runtime:
    """Wire a runtime from configuration. Call ``close()`` when done."""
    store, database = await create_store(config)
    checker = RoleCapabilityChecker(
        store, roles={name: frozenset(caps) for name, caps in config.roles.items()}
    )
    registry = create_registry(store, checker, site_url=config.site.url)
    invoker = AbilityInvoker(registry, on_invocation=on_invocation)
    return Runtime(
        store=store,
        checker=checker,
        registry=registry,
        invoker=invoker,
        database=database,
    )
