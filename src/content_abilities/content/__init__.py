"""Post abilities and the collaborators they run against.

Public API:
- PostAbilities: builds and registers the content/* abilities
- ContentStore, CapabilityChecker: collaborator protocols
- InMemoryContentStore, SQLContentStore: store backends
- RoleCapabilityChecker: role-based capability checks
"""

from content_abilities.content.capabilities import (
    DEFAULT_ROLES,
    META_CAPABILITIES,
    RoleCapabilityChecker,
)
from content_abilities.content.memory import InMemoryContentStore
from content_abilities.content.models import (
    DEFAULT_POST_TYPES,
    POST_STATUSES,
    Post,
    PostFields,
    PostQuery,
    PostType,
    PostTypeCapabilities,
    Term,
)
from content_abilities.content.posts import (
    CATEGORY_ID,
    InvalidPostType,
    PostAbilities,
    post_output_schema,
    register_categories,
)
from content_abilities.content.sql import SQLContentStore
from content_abilities.content.store import CapabilityChecker, ContentStore

__all__ = [
    "CATEGORY_ID",
    "DEFAULT_POST_TYPES",
    "DEFAULT_ROLES",
    "META_CAPABILITIES",
    "POST_STATUSES",
    "CapabilityChecker",
    "ContentStore",
    "InMemoryContentStore",
    "InvalidPostType",
    "Post",
    "PostAbilities",
    "PostFields",
    "PostQuery",
    "PostType",
    "PostTypeCapabilities",
    "RoleCapabilityChecker",
    "SQLContentStore",
    "Term",
    "post_output_schema",
    "register_categories",
]
