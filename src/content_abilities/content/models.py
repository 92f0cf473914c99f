"""Content types shared by the stores and the post abilities."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import UTC, datetime
from typing import Any

POST_STATUSES = ("draft", "publish", "pending", "private", "future")

# Special status for queries: match every status.
ANY_STATUS = "any"

CATEGORY = "category"
POST_TAG = "post_tag"

DEFAULT_CATEGORY_ID = 1
DEFAULT_CATEGORY_NAME = "Uncategorized"

ORDERBY_FIELDS = ("date", "title", "modified", "ID")

DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def utc_now() -> datetime:
    """Current UTC time, truncated to whole seconds like stored post dates."""
    return datetime.now(UTC).replace(microsecond=0)


def format_datetime(value: datetime) -> str:
    return value.strftime(DATETIME_FORMAT)


@dataclass(frozen=True, slots=True)
class PostTypeCapabilities:
    """Primitive capability names guarding one post type."""

    create: str
    edit: str
    edit_others: str
    edit_published: str
    edit_private: str
    publish: str
    read: str
    read_private: str

    @classmethod
    def for_plural(cls, plural: str) -> PostTypeCapabilities:
        return cls(
            create=f"edit_{plural}",
            edit=f"edit_{plural}",
            edit_others=f"edit_others_{plural}",
            edit_published=f"edit_published_{plural}",
            edit_private=f"edit_private_{plural}",
            publish=f"publish_{plural}",
            read="read",
            read_private=f"read_private_{plural}",
        )


@dataclass(frozen=True, slots=True)
class PostType:
    slug: str
    label: str
    public: bool
    capabilities: PostTypeCapabilities


DEFAULT_POST_TYPES: dict[str, PostType] = {
    "post": PostType(
        slug="post",
        label="Posts",
        public=True,
        capabilities=PostTypeCapabilities.for_plural("posts"),
    ),
    "page": PostType(
        slug="page",
        label="Pages",
        public=True,
        capabilities=PostTypeCapabilities.for_plural("pages"),
    ),
    "revision": PostType(
        slug="revision",
        label="Revisions",
        public=False,
        capabilities=PostTypeCapabilities.for_plural("posts"),
    ),
}


@dataclass(slots=True)
class Post:
    id: int
    type: str
    title: str
    content: str
    excerpt: str
    status: str
    author_id: int | None
    date: datetime
    modified: datetime
    categories: list[int] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class Term:
    """A category or tag."""

    id: int
    taxonomy: str
    name: str
    slug: str


@dataclass(slots=True)
class PostFields:
    """Fields to write. ``None`` means "leave unchanged" (or default on create)."""

    type: str | None = None
    title: str | None = None
    content: str | None = None
    excerpt: str | None = None
    status: str | None = None
    author_id: int | None = None
    categories: list[int] | None = None

    def changes(self) -> dict[str, Any]:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }


@dataclass(frozen=True, slots=True)
class PostQuery:
    post_type: str = "post"
    status: str = "publish"
    search: str | None = None
    limit: int = 10
    offset: int = 0
    orderby: str = "date"
    order: str = "DESC"
