"""Protocol definitions for the content collaborators.

The post abilities only talk to these interfaces, so stores and capability
checkers can be swapped or mocked in tests.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from content_abilities.abilities.types import CallerContext
    from content_abilities.content.models import (
        Post,
        PostFields,
        PostQuery,
        PostType,
        Term,
    )


@runtime_checkable
class ContentStore(Protocol):
    """Protocol for post storage.

    Write methods raise ``StoreError`` when the store rejects the change.
    """

    async def create_post(self, fields: PostFields) -> int:
        """Create a post and return its id."""
        ...

    async def update_post(self, post_id: int, fields: PostFields) -> None:
        """Apply the non-None fields to an existing post."""
        ...

    async def get_post(self, post_id: int) -> Post | None:
        """Get a post by id."""
        ...

    async def query_posts(self, query: PostQuery) -> list[Post]:
        """Filter, order and paginate posts."""
        ...

    async def set_tags(self, post_id: int, tags: list[str | int]) -> None:
        """Replace a post's tags.

        Names are created on demand; integer ids must name existing tags.
        """
        ...

    async def get_post_type(self, slug: str) -> PostType | None:
        """Resolve a post type slug."""
        ...

    async def create_term(self, taxonomy: str, name: str) -> Term:
        """Create a category or tag."""
        ...

    async def list_terms(self, taxonomy: str) -> list[Term]:
        """List terms of one taxonomy, by id."""
        ...


@runtime_checkable
class CapabilityChecker(Protocol):
    """Decides whether a caller holds a capability."""

    async def has_capability(
        self,
        caller: CallerContext,
        capability: str,
        resource_id: int | None = None,
    ) -> bool:
        """Check a primitive capability, or a meta capability on a post."""
        ...
