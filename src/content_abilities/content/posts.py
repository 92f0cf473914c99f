"""Post abilities: create, update, get and find.

Fallback policy differs per ability on purpose:

- create: an unlisted ``status`` becomes ``draft``.
- find: an unlisted ``status``/``orderby``/``order`` becomes the default and
  ``limit`` is clamped to 1..50; an unknown ``post_type`` is an error.
- update: ``status`` is checked strictly by the validator.
"""

from __future__ import annotations

import logging
from typing import Any

from content_abilities.abilities.errors import (
    AbilityError,
    PartialFailure,
    ResourceNotFound,
    StoreError,
)
from content_abilities.abilities.gate import requires_publish_capability
from content_abilities.abilities.registry import AbilityRegistry
from content_abilities.abilities.types import (
    AbilityAnnotations,
    AbilityDefinition,
    AbilityResult,
    CallerContext,
)
from content_abilities.content.models import (
    ANY_STATUS,
    ORDERBY_FIELDS,
    Post,
    PostFields,
    PostQuery,
    PostType,
    format_datetime,
)
from content_abilities.content.sanitize import (
    sanitize_key,
    sanitize_text_field,
    sanitize_textarea_field,
)
from content_abilities.content.store import CapabilityChecker, ContentStore

logger = logging.getLogger(__name__)

CATEGORY_ID = "content"

DEFAULT_POST_TYPE = "post"
CREATE_STATUSES = ["draft", "publish", "pending", "private", "future"]
UPDATE_STATUSES = ["draft", "publish", "pending", "private"]
FIND_STATUSES = ["publish", "draft", "pending", "private", "future", ANY_STATUS]
ORDER_DIRECTIONS = ["DESC", "ASC"]

DEFAULT_LIMIT = 10
MIN_LIMIT = 1
MAX_LIMIT = 50


class InvalidPostType(AbilityError):
    code = "content_invalid_post_type"


def post_not_found() -> ResourceNotFound:
    return ResourceNotFound("Post not found.", code="content_post_not_found", field="id")


def post_output_schema() -> dict[str, Any]:
    return {
        "type": "object",
        "properties": {
            "id": {"type": "integer"},
            "title": {"type": "string"},
            "content": {"type": "string"},
            "excerpt": {"type": "string"},
            "status": {"type": "string"},
            "type": {"type": "string"},
            "date": {"type": "string"},
            "modified": {"type": "string"},
            "link": {"type": "string"},
            "edit_link": {"type": "string"},
        },
    }


def register_categories(registry: AbilityRegistry) -> None:
    registry.register_category(
        CATEGORY_ID,
        label="Content",
        description="Abilities for creating and managing posts and pages.",
    )


def _post_type_key(value: Any) -> Any:
    if isinstance(value, str):
        return sanitize_key(value) or DEFAULT_POST_TYPE
    return value


def normalize_create_input(data: dict[str, Any]) -> dict[str, Any]:
    if "post_type" in data:
        data["post_type"] = _post_type_key(data["post_type"])
    if "status" in data:
        status = data["status"]
        if isinstance(status, str):
            status = sanitize_key(status)
        data["status"] = status if status in CREATE_STATUSES else "draft"
    return data


def normalize_find_input(data: dict[str, Any]) -> dict[str, Any]:
    if "post_type" in data:
        data["post_type"] = _post_type_key(data["post_type"])
    if "status" in data:
        status = data["status"]
        if isinstance(status, str):
            status = sanitize_key(status)
        data["status"] = status if status in FIND_STATUSES else "publish"
    if "orderby" in data:
        orderby = data["orderby"]
        by_key = {name.lower(): name for name in ORDERBY_FIELDS}
        data["orderby"] = (
            by_key.get(orderby.lower(), "date") if isinstance(orderby, str) else "date"
        )
    if "order" in data:
        order = data["order"]
        data["order"] = "ASC" if isinstance(order, str) and order.upper() == "ASC" else "DESC"
    limit = data.get("limit")
    if isinstance(limit, int) and not isinstance(limit, bool):
        data["limit"] = max(MIN_LIMIT, min(limit, MAX_LIMIT))
    return data


class PostAbilities:
    """Builds the post abilities around a store and a capability checker."""

    def __init__(
        self,
        store: ContentStore,
        checker: CapabilityChecker,
        site_url: str = "http://localhost",
    ) -> None:
        self._store = store
        self._checker = checker
        self._site_url = site_url.rstrip("/")

    def format_post(self, post: Post) -> dict[str, Any]:
        return {
            "id": post.id,
            "title": post.title,
            "content": post.content,
            "excerpt": post.excerpt,
            "status": post.status,
            "type": post.type,
            "date": format_datetime(post.date),
            "modified": format_datetime(post.modified),
            "link": f"{self._site_url}/?p={post.id}",
            "edit_link": f"{self._site_url}/admin/post.php?post={post.id}&action=edit",
        }

    def definitions(self) -> list[AbilityDefinition]:
        return [
            self.create_post_definition(),
            self.update_post_definition(),
            self.get_post_definition(),
            self.find_posts_definition(),
        ]

    def register(self, registry: AbilityRegistry) -> None:
        for definition in self.definitions():
            registry.register(definition)

    async def _public_post_type(self, slug: str) -> PostType | None:
        post_type = await self._store.get_post_type(slug)
        if post_type is None or not post_type.public:
            return None
        return post_type

    async def _require_post_type(
        self, caller: CallerContext, input_data: dict[str, Any]
    ) -> AbilityError | None:
        slug = input_data["post_type"]
        if await self._public_post_type(slug) is None:
            return InvalidPostType(f'Post type "{slug}" does not exist.', field="post_type")
        return None

    async def _require_post(
        self, caller: CallerContext, input_data: dict[str, Any]
    ) -> AbilityError | None:
        if await self._store.get_post(input_data["id"]) is None:
            return post_not_found()
        return None

    async def _can(
        self, caller: CallerContext, capability: str, post_id: int | None = None
    ) -> bool:
        return await self._checker.has_capability(caller, capability, post_id)

    # -------------------------------------------------------------------------
    # content/create-post
    # -------------------------------------------------------------------------

    def create_post_definition(self) -> AbilityDefinition:
        return AbilityDefinition(
            id="content/create-post",
            label="Create Post",
            description=(
                "Create a new post. Supports title, content (HTML or block markup), "
                "excerpt, status, categories, and tags."
            ),
            category=CATEGORY_ID,
            input_schema={
                "type": "object",
                "required": ["title"],
                "properties": {
                    "post_type": {
                        "type": "string",
                        "description": 'Post type slug. Defaults to "post".',
                        "default": DEFAULT_POST_TYPE,
                    },
                    "title": {"type": "string", "description": "The post title."},
                    "content": {
                        "type": "string",
                        "description": "The post content. Accepts HTML or block markup.",
                        "default": "",
                    },
                    "excerpt": {
                        "type": "string",
                        "description": "The post excerpt.",
                        "default": "",
                    },
                    "status": {
                        "type": "string",
                        "description": 'Post status. Defaults to "draft".',
                        "enum": CREATE_STATUSES,
                        "default": "draft",
                    },
                    "categories": {
                        "type": "array",
                        "description": "Array of category IDs to assign.",
                        "items": {"type": "integer"},
                        "default": [],
                    },
                    "tags": {
                        "type": "array",
                        "description": "Array of tag names or IDs to assign.",
                        "items": {"type": ["string", "integer"]},
                        "default": [],
                    },
                },
            },
            output_schema=post_output_schema(),
            permission=self.can_create_post,
            execute=self.create_post,
            annotations=AbilityAnnotations(
                read_only=False, destructive=False, idempotent=False
            ),
            normalize_input=normalize_create_input,
            precondition=self._require_post_type,
        )

    async def can_create_post(self, caller: CallerContext, input_data: dict[str, Any]) -> bool:
        post_type = await self._public_post_type(input_data["post_type"])
        if post_type is None:
            return False
        if not await self._can(caller, post_type.capabilities.create):
            return False
        if requires_publish_capability(input_data["status"]):
            return await self._can(caller, post_type.capabilities.publish)
        return True

    async def create_post(
        self, caller: CallerContext, input_data: dict[str, Any]
    ) -> AbilityResult:
        post_type = input_data["post_type"]
        if await self._public_post_type(post_type) is None:
            return AbilityResult.failure(
                InvalidPostType(f'Post type "{post_type}" does not exist.', field="post_type")
            )

        post_id = await self._store.create_post(
            PostFields(
                type=post_type,
                title=sanitize_text_field(input_data["title"]),
                content=input_data["content"],
                excerpt=sanitize_textarea_field(input_data["excerpt"]),
                status=input_data["status"],
                author_id=caller.user_id,
                categories=list(input_data["categories"]) or None,
            )
        )
        logger.debug(f"Created post {post_id}")

        if input_data["tags"]:
            try:
                await self._store.set_tags(post_id, input_data["tags"])
            except StoreError as e:
                # The post exists now; report it rather than pretend nothing happened
                return AbilityResult.failure(
                    PartialFailure(
                        f"Post {post_id} was created but its tags could not be assigned.",
                        resource_id=post_id,
                        cause=e,
                    )
                )

        post = await self._store.get_post(post_id)
        if post is None:
            return AbilityResult.failure(
                AbilityError(
                    "Post was created but could not be retrieved.",
                    code="content_create_failed",
                )
            )
        return AbilityResult.success(self.format_post(post))

    # -------------------------------------------------------------------------
    # content/update-post
    # -------------------------------------------------------------------------

    def update_post_definition(self) -> AbilityDefinition:
        return AbilityDefinition(
            id="content/update-post",
            label="Update Post",
            description="Update an existing post. Only provided fields are modified.",
            category=CATEGORY_ID,
            input_schema={
                "type": "object",
                "required": ["id"],
                "properties": {
                    "id": {"type": "integer", "description": "The post ID to update."},
                    "title": {"type": "string", "description": "New post title."},
                    "content": {
                        "type": "string",
                        "description": "New post content. Accepts HTML or block markup.",
                    },
                    "excerpt": {"type": "string", "description": "New post excerpt."},
                    "status": {
                        "type": "string",
                        "description": "New post status.",
                        "enum": UPDATE_STATUSES,
                    },
                    "categories": {
                        "type": "array",
                        "description": "Array of category IDs to set (replaces existing).",
                        "items": {"type": "integer"},
                    },
                    "tags": {
                        "type": "array",
                        "description": "Array of tag names or IDs to set (replaces existing).",
                        "items": {"type": ["string", "integer"]},
                    },
                },
            },
            output_schema=post_output_schema(),
            permission=self.can_update_post,
            execute=self.update_post,
            annotations=AbilityAnnotations(
                read_only=False, destructive=False, idempotent=True
            ),
            precondition=self._require_post,
        )

    async def can_update_post(self, caller: CallerContext, input_data: dict[str, Any]) -> bool:
        post_id = input_data["id"]
        if post_id <= 0:
            return False
        if not await self._can(caller, "edit_post", post_id):
            return False
        if requires_publish_capability(input_data.get("status")):
            post = await self._store.get_post(post_id)
            if post is None:
                return False
            post_type = await self._store.get_post_type(post.type)
            if post_type is None:
                return False
            return await self._can(caller, post_type.capabilities.publish)
        return True

    async def update_post(
        self, caller: CallerContext, input_data: dict[str, Any]
    ) -> AbilityResult:
        post_id = input_data["id"]
        if await self._store.get_post(post_id) is None:
            return AbilityResult.failure(post_not_found())

        fields = PostFields()
        if "title" in input_data:
            fields.title = sanitize_text_field(input_data["title"])
        if "content" in input_data:
            fields.content = input_data["content"]
        if "excerpt" in input_data:
            fields.excerpt = sanitize_textarea_field(input_data["excerpt"])
        if "status" in input_data:
            fields.status = input_data["status"]
        if "categories" in input_data:
            fields.categories = list(input_data["categories"])

        if fields.changes():
            await self._store.update_post(post_id, fields)

        if "tags" in input_data:
            try:
                await self._store.set_tags(post_id, input_data["tags"])
            except StoreError as e:
                return AbilityResult.failure(
                    PartialFailure(
                        f"Post {post_id} was updated but its tags could not be assigned.",
                        resource_id=post_id,
                        cause=e,
                    )
                )

        post = await self._store.get_post(post_id)
        if post is None:
            return AbilityResult.failure(post_not_found())
        return AbilityResult.success(self.format_post(post))

    # -------------------------------------------------------------------------
    # content/get-post
    # -------------------------------------------------------------------------

    def get_post_definition(self) -> AbilityDefinition:
        return AbilityDefinition(
            id="content/get-post",
            label="Get Post",
            description="Retrieve a single post by ID.",
            category=CATEGORY_ID,
            input_schema={
                "type": "object",
                "required": ["id"],
                "properties": {
                    "id": {"type": "integer", "description": "The post ID to retrieve."},
                },
            },
            output_schema=post_output_schema(),
            permission=self.can_read_post,
            execute=self.get_post,
            annotations=AbilityAnnotations(
                read_only=True, destructive=False, idempotent=True
            ),
            precondition=self._require_post,
        )

    async def can_read_post(self, caller: CallerContext, input_data: dict[str, Any]) -> bool:
        post_id = input_data["id"]
        if post_id <= 0:
            return False
        return await self._can(caller, "read_post", post_id)

    async def get_post(
        self, caller: CallerContext, input_data: dict[str, Any]
    ) -> AbilityResult:
        post = await self._store.get_post(input_data["id"])
        if post is None:
            return AbilityResult.failure(post_not_found())
        return AbilityResult.success(self.format_post(post))

    # -------------------------------------------------------------------------
    # content/find-posts
    # -------------------------------------------------------------------------

    def find_posts_definition(self) -> AbilityDefinition:
        return AbilityDefinition(
            id="content/find-posts",
            label="Find Posts",
            description="Search and filter posts by keyword, post type, and status.",
            category=CATEGORY_ID,
            input_schema={
                "type": "object",
                "properties": {
                    "search": {
                        "type": "string",
                        "description": "Search keyword to match against title and content.",
                    },
                    "post_type": {
                        "type": "string",
                        "description": 'Post type slug. Defaults to "post".',
                        "default": DEFAULT_POST_TYPE,
                    },
                    "status": {
                        "type": "string",
                        "description": 'Post status to filter by. Defaults to "publish".',
                        "enum": FIND_STATUSES,
                        "default": "publish",
                    },
                    "limit": {
                        "type": "integer",
                        "description": "Maximum number of posts to return (1-50). Defaults to 10.",
                        "default": DEFAULT_LIMIT,
                        "minimum": MIN_LIMIT,
                        "maximum": MAX_LIMIT,
                    },
                    "orderby": {
                        "type": "string",
                        "description": "Field to order results by.",
                        "enum": list(ORDERBY_FIELDS),
                        "default": "date",
                    },
                    "order": {
                        "type": "string",
                        "description": "Sort direction.",
                        "enum": ORDER_DIRECTIONS,
                        "default": "DESC",
                    },
                },
            },
            output_schema={"type": "array", "items": post_output_schema()},
            permission=self.can_find_posts,
            execute=self.find_posts,
            annotations=AbilityAnnotations(
                read_only=True, destructive=False, idempotent=True
            ),
            normalize_input=normalize_find_input,
            precondition=self._require_post_type,
        )

    async def can_find_posts(self, caller: CallerContext, input_data: dict[str, Any]) -> bool:
        return await self._can(caller, "read")

    async def find_posts(
        self, caller: CallerContext, input_data: dict[str, Any]
    ) -> AbilityResult:
        search = input_data.get("search")
        query = PostQuery(
            post_type=input_data["post_type"],
            status=input_data["status"],
            search=sanitize_text_field(search) if search else None,
            limit=input_data["limit"],
            orderby=input_data["orderby"],
            order=input_data["order"],
        )
        posts = await self._store.query_posts(query)

        # Filtered after pagination: a page can come back short
        visible = [
            self.format_post(post)
            for post in posts
            if await self._can(caller, "read_post", post.id)
        ]
        return AbilityResult.success(visible)
