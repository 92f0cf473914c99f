"""In-process content store.

Used by tests and by the ``memory`` store backend. Posts are copied on the
way in and out so callers never hold references into the store.
"""

from __future__ import annotations

import copy
from collections.abc import Callable
from datetime import datetime

from content_abilities.abilities.errors import StoreError
from content_abilities.content.models import (
    ANY_STATUS,
    CATEGORY,
    DEFAULT_CATEGORY_ID,
    DEFAULT_CATEGORY_NAME,
    DEFAULT_POST_TYPES,
    POST_STATUSES,
    POST_TAG,
    Post,
    PostFields,
    PostQuery,
    PostType,
    Term,
    utc_now,
)
from content_abilities.content.sanitize import slugify


class InMemoryContentStore:
    def __init__(
        self,
        post_types: dict[str, PostType] | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._post_types = dict(post_types or DEFAULT_POST_TYPES)
        self._clock = clock
        self._posts: dict[int, Post] = {}
        self._terms: dict[int, Term] = {}
        self._next_post_id = 1
        self._next_term_id = 1
        self._add_term(CATEGORY, DEFAULT_CATEGORY_NAME)

    def _add_term(self, taxonomy: str, name: str) -> Term:
        term = Term(
            id=self._next_term_id, taxonomy=taxonomy, name=name, slug=slugify(name)
        )
        self._terms[term.id] = term
        self._next_term_id += 1
        return term

    def _check_categories(self, categories: list[int]) -> list[int]:
        for term_id in categories:
            term = self._terms.get(term_id)
            if term is None or term.taxonomy != CATEGORY:
                raise StoreError(
                    f"Category {term_id} does not exist.", code="content_invalid_category"
                )
        return list(dict.fromkeys(categories))

    async def create_post(self, fields: PostFields) -> int:
        post_type = fields.type or "post"
        if post_type not in self._post_types:
            raise StoreError(
                f'Post type "{post_type}" does not exist.',
                code="content_invalid_post_type",
            )
        status = fields.status or "draft"
        if status not in POST_STATUSES:
            raise StoreError(f'Invalid post status "{status}".', code="content_invalid_status")
        categories = self._check_categories(fields.categories or [DEFAULT_CATEGORY_ID])

        now = self._clock()
        post = Post(
            id=self._next_post_id,
            type=post_type,
            title=fields.title or "",
            content=fields.content or "",
            excerpt=fields.excerpt or "",
            status=status,
            author_id=fields.author_id,
            date=now,
            modified=now,
            categories=categories,
        )
        self._posts[post.id] = post
        self._next_post_id += 1
        return post.id

    async def update_post(self, post_id: int, fields: PostFields) -> None:
        post = self._posts.get(post_id)
        if post is None:
            raise StoreError("Invalid post ID.", code="content_post_not_found")
        changes = fields.changes()
        if "status" in changes and changes["status"] not in POST_STATUSES:
            raise StoreError(
                f'Invalid post status "{changes["status"]}".', code="content_invalid_status"
            )
        if "type" in changes and changes["type"] not in self._post_types:
            raise StoreError(
                f'Post type "{changes["type"]}" does not exist.',
                code="content_invalid_post_type",
            )
        if "categories" in changes:
            changes["categories"] = self._check_categories(changes["categories"])

        for name, value in changes.items():
            setattr(post, name, copy.copy(value))
        post.modified = self._clock()

    async def get_post(self, post_id: int) -> Post | None:
        post = self._posts.get(post_id)
        return copy.deepcopy(post) if post is not None else None

    async def query_posts(self, query: PostQuery) -> list[Post]:
        matches = [
            post
            for post in self._posts.values()
            if post.type == query.post_type
            and (query.status == ANY_STATUS or post.status == query.status)
        ]
        if query.search:
            needle = query.search.lower()
            matches = [
                post
                for post in matches
                if needle in post.title.lower() or needle in post.content.lower()
            ]

        def sort_key(post: Post) -> tuple:
            if query.orderby == "title":
                return (post.title.lower(), post.id)
            if query.orderby == "modified":
                return (post.modified, post.id)
            if query.orderby == "ID":
                return (post.id,)
            return (post.date, post.id)

        matches.sort(key=sort_key, reverse=query.order == "DESC")
        page = matches[query.offset : query.offset + query.limit]
        return [copy.deepcopy(post) for post in page]

    async def set_tags(self, post_id: int, tags: list[str | int]) -> None:
        post = self._posts.get(post_id)
        if post is None:
            raise StoreError("Invalid post ID.", code="content_post_not_found")

        # Resolve ids before creating anything so a bad id leaves no new tags behind
        for tag in tags:
            if isinstance(tag, int):
                term = self._terms.get(tag)
                if term is None or term.taxonomy != POST_TAG:
                    raise StoreError(f"Tag {tag} does not exist.", code="content_invalid_tag")

        names: list[str] = []
        for tag in tags:
            if isinstance(tag, int):
                names.append(self._terms[tag].name)
                continue
            name = tag.strip()
            if not name:
                continue
            existing = self._find_term(POST_TAG, name)
            names.append(existing.name if existing else self._add_term(POST_TAG, name).name)

        post.tags = list(dict.fromkeys(names))

    def _find_term(self, taxonomy: str, name: str) -> Term | None:
        slug = slugify(name)
        for term in self._terms.values():
            if term.taxonomy == taxonomy and term.slug == slug:
                return term
        return None

    async def get_post_type(self, slug: str) -> PostType | None:
        return self._post_types.get(slug)

    async def create_term(self, taxonomy: str, name: str) -> Term:
        name = name.strip()
        if not name:
            raise StoreError("Term name is required.", code="content_invalid_term")
        if self._find_term(taxonomy, name) is not None:
            raise StoreError(f'Term "{name}" already exists.', code="content_term_exists")
        return self._add_term(taxonomy, name)

    async def list_terms(self, taxonomy: str) -> list[Term]:
        return [term for term in self._terms.values() if term.taxonomy == taxonomy]
