"""Role-based capability checks.

Roles grant *primitive* capabilities (``edit_posts``, ``publish_pages``).
*Meta* capabilities (``read_post``, ``edit_post``) are asked about one post
and are mapped onto primitive ones from that post's author, status and type:

- ``read_post``: published posts need the type's read capability; private
  posts need ``read_private_*`` unless the caller wrote them; anything not
  yet published is readable by whoever may edit it.
- ``edit_post``: the base edit capability, ``edit_others_*`` for someone
  else's post, plus ``edit_published_*`` or ``edit_private_*`` depending
  on the post's status.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from content_abilities.abilities.types import CallerContext
from content_abilities.content.store import ContentStore

logger = logging.getLogger(__name__)

_AUTHOR = frozenset(
    {
        "read",
        "edit_posts",
        "edit_published_posts",
        "publish_posts",
    }
)

_EDITOR = _AUTHOR | {
    "edit_others_posts",
    "edit_private_posts",
    "read_private_posts",
    "edit_pages",
    "edit_others_pages",
    "edit_published_pages",
    "edit_private_pages",
    "publish_pages",
    "read_private_pages",
}

DEFAULT_ROLES: dict[str, frozenset[str]] = {
    "subscriber": frozenset({"read"}),
    "contributor": frozenset({"read", "edit_posts"}),
    "author": _AUTHOR,
    "editor": frozenset(_EDITOR),
    "administrator": frozenset(_EDITOR | {"manage_options"}),
}

META_CAPABILITIES = frozenset({"read_post", "edit_post"})


class RoleCapabilityChecker:
    """Answers capability questions from roles and, for meta caps, the store."""

    def __init__(
        self,
        store: ContentStore,
        roles: Mapping[str, frozenset[str] | set[str] | list[str]] | None = None,
    ) -> None:
        self._store = store
        merged: dict[str, frozenset[str]] = dict(DEFAULT_ROLES)
        for name, capabilities in (roles or {}).items():
            merged[name] = frozenset(capabilities)
        self._roles = merged

    @property
    def roles(self) -> dict[str, frozenset[str]]:
        return dict(self._roles)

    def granted(self, caller: CallerContext) -> frozenset[str]:
        """Primitive capabilities the caller holds."""
        capabilities: set[str] = set(caller.capabilities)
        for role in caller.roles:
            role_caps = self._roles.get(role)
            if role_caps is None:
                logger.debug(f"Ignoring unknown role: {role}")
                continue
            capabilities |= role_caps
        return frozenset(capabilities)

    async def has_capability(
        self,
        caller: CallerContext,
        capability: str,
        resource_id: int | None = None,
    ) -> bool:
        granted = self.granted(caller)
        if capability not in META_CAPABILITIES:
            return capability in granted
        if resource_id is None:
            return False
        required = await self.map_meta_capability(caller, capability, resource_id)
        if required is None:
            return False
        return all(name in granted for name in required)

    async def map_meta_capability(
        self, caller: CallerContext, capability: str, post_id: int
    ) -> list[str] | None:
        """Primitive capabilities needed for a meta capability on one post.

        Returns None when the post or its type does not exist.
        """
        post = await self._store.get_post(post_id)
        if post is None:
            return None
        post_type = await self._store.get_post_type(post.type)
        if post_type is None:
            return None
        caps = post_type.capabilities
        is_owner = caller.user_id is not None and post.author_id == caller.user_id

        if capability == "read_post":
            if post.status == "publish":
                return [caps.read]
            if post.status == "private":
                return [caps.read] if is_owner else [caps.read_private]
            return await self.map_meta_capability(caller, "edit_post", post_id)

        if capability == "edit_post":
            required = [caps.edit]
            if not is_owner:
                required.append(caps.edit_others)
            if post.status in ("publish", "future"):
                required.append(caps.edit_published)
            elif post.status == "private":
                required.append(caps.edit_private)
            return required

        raise ValueError(f"Unknown meta capability: {capability}")
