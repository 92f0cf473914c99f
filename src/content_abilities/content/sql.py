"""Content store backed by SQLAlchemy (SQLite by default).

Each store call runs in its own session, so a call either commits fully or
not at all. Two calls in a row (create, then set tags) are independent.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import AsyncIterator, Callable, Sequence
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

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
from content_abilities.db.engine import Database
from content_abilities.db.models import PostRow, PostTermRow, TermRow

logger = logging.getLogger(__name__)

# PostFields attribute -> PostRow column attribute
_COLUMNS = {
    "type": "post_type",
    "title": "title",
    "content": "content",
    "excerpt": "excerpt",
    "status": "status",
    "author_id": "author_id",
}


def _to_naive(value: datetime) -> datetime:
    return value.astimezone(UTC).replace(tzinfo=None)


def _to_aware(value: datetime) -> datetime:
    return value.replace(tzinfo=UTC) if value.tzinfo is None else value


def _to_term(row: TermRow) -> Term:
    return Term(id=row.id, taxonomy=row.taxonomy, name=row.name, slug=row.slug)


class SQLContentStore:
    def __init__(
        self,
        database: Database,
        post_types: dict[str, PostType] | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._db = database
        self._post_types = dict(post_types or DEFAULT_POST_TYPES)
        self._clock = clock

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        """Open a session whose database failures surface as StoreError.

        Driver errors include values the backend cannot bind, such as
        integers wider than 64 bits on SQLite.
        """
        try:
            async with self._db.session() as session:
                yield session
        except (SQLAlchemyError, OverflowError) as e:
            logger.warning("content_store_failed", extra={"error.type": type(e).__name__})
            raise StoreError(
                "The content store could not complete the request.", code="store_error"
            ) from e

    async def initialize(self) -> None:
        """Create tables and the default category if missing."""
        await self._db.create_tables()
        async with self._session() as session:
            if await session.get(TermRow, DEFAULT_CATEGORY_ID) is None:
                session.add(
                    TermRow(
                        id=DEFAULT_CATEGORY_ID,
                        taxonomy=CATEGORY,
                        name=DEFAULT_CATEGORY_NAME,
                        slug=slugify(DEFAULT_CATEGORY_NAME),
                    )
                )
                logger.debug("Created default category")

    def _check_type_and_status(self, post_type: str | None, status: str | None) -> None:
        if post_type is not None and post_type not in self._post_types:
            raise StoreError(
                f'Post type "{post_type}" does not exist.',
                code="content_invalid_post_type",
            )
        if status is not None and status not in POST_STATUSES:
            raise StoreError(f'Invalid post status "{status}".', code="content_invalid_status")

    async def _check_categories(
        self, session: AsyncSession, categories: list[int]
    ) -> list[int]:
        unique = list(dict.fromkeys(categories))
        if not unique:
            return []
        result = await session.execute(
            select(TermRow.id).where(TermRow.taxonomy == CATEGORY, TermRow.id.in_(unique))
        )
        found = set(result.scalars().all())
        for term_id in unique:
            if term_id not in found:
                raise StoreError(
                    f"Category {term_id} does not exist.", code="content_invalid_category"
                )
        return unique

    async def _replace_terms(
        self,
        session: AsyncSession,
        post_id: int,
        taxonomy: str,
        term_ids: list[int],
    ) -> None:
        await session.execute(
            delete(PostTermRow)
            .where(
                PostTermRow.post_id == post_id,
                PostTermRow.term_id.in_(
                    select(TermRow.id).where(TermRow.taxonomy == taxonomy)
                ),
            )
            .execution_options(synchronize_session=False)
        )
        session.add_all(
            PostTermRow(post_id=post_id, term_id=term_id, position=position)
            for position, term_id in enumerate(term_ids)
        )

    async def _load_terms(
        self, session: AsyncSession, post_ids: Sequence[int]
    ) -> dict[int, list[TermRow]]:
        grouped: dict[int, list[TermRow]] = defaultdict(list)
        if not post_ids:
            return grouped
        result = await session.execute(
            select(PostTermRow.post_id, TermRow)
            .join(TermRow, TermRow.id == PostTermRow.term_id)
            .where(PostTermRow.post_id.in_(post_ids))
            .order_by(PostTermRow.post_id, PostTermRow.position)
        )
        for post_id, term in result.all():
            grouped[post_id].append(term)
        return grouped

    @staticmethod
    def _to_post(row: PostRow, terms: list[TermRow]) -> Post:
        return Post(
            id=row.id,
            type=row.post_type,
            title=row.title,
            content=row.content,
            excerpt=row.excerpt,
            status=row.status,
            author_id=row.author_id,
            date=_to_aware(row.created_at),
            modified=_to_aware(row.modified_at),
            categories=[term.id for term in terms if term.taxonomy == CATEGORY],
            tags=[term.name for term in terms if term.taxonomy == POST_TAG],
        )

    async def create_post(self, fields: PostFields) -> int:
        post_type = fields.type or "post"
        status = fields.status or "draft"
        self._check_type_and_status(post_type, status)

        async with self._session() as session:
            categories = await self._check_categories(
                session, fields.categories or [DEFAULT_CATEGORY_ID]
            )
            now = _to_naive(self._clock())
            row = PostRow(
                post_type=post_type,
                title=fields.title or "",
                content=fields.content or "",
                excerpt=fields.excerpt or "",
                status=status,
                author_id=fields.author_id,
                created_at=now,
                modified_at=now,
            )
            session.add(row)
            await session.flush()
            post_id = row.id
            await self._replace_terms(session, post_id, CATEGORY, categories)
        return post_id

    async def update_post(self, post_id: int, fields: PostFields) -> None:
        self._check_type_and_status(fields.type, fields.status)
        changes = fields.changes()
        categories = changes.pop("categories", None)

        async with self._session() as session:
            row = await session.get(PostRow, post_id)
            if row is None:
                raise StoreError("Invalid post ID.", code="content_post_not_found")
            for name, value in changes.items():
                setattr(row, _COLUMNS[name], value)
            row.modified_at = _to_naive(self._clock())
            if categories is not None:
                checked = await self._check_categories(session, categories)
                await self._replace_terms(session, post_id, CATEGORY, checked)

    async def get_post(self, post_id: int) -> Post | None:
        async with self._session() as session:
            row = await session.get(PostRow, post_id)
            if row is None:
                return None
            terms = await self._load_terms(session, [row.id])
            return self._to_post(row, terms.get(row.id, []))

    async def query_posts(self, query: PostQuery) -> list[Post]:
        stmt = select(PostRow).where(PostRow.post_type == query.post_type)
        if query.status != ANY_STATUS:
            stmt = stmt.where(PostRow.status == query.status)
        if query.search:
            needle = query.search.lower()
            stmt = stmt.where(
                or_(
                    func.lower(PostRow.title).contains(needle, autoescape=True),
                    func.lower(PostRow.content).contains(needle, autoescape=True),
                )
            )

        columns = {
            "date": PostRow.created_at,
            "title": func.lower(PostRow.title),
            "modified": PostRow.modified_at,
            "ID": PostRow.id,
        }
        column = columns.get(query.orderby, PostRow.created_at)
        if query.order == "ASC":
            stmt = stmt.order_by(column.asc(), PostRow.id.asc())
        else:
            stmt = stmt.order_by(column.desc(), PostRow.id.desc())
        stmt = stmt.offset(query.offset).limit(query.limit)

        async with self._session() as session:
            rows = list((await session.execute(stmt)).scalars().all())
            terms = await self._load_terms(session, [row.id for row in rows])
            return [self._to_post(row, terms.get(row.id, [])) for row in rows]

    async def set_tags(self, post_id: int, tags: list[str | int]) -> None:
        async with self._session() as session:
            if await session.get(PostRow, post_id) is None:
                raise StoreError("Invalid post ID.", code="content_post_not_found")

            term_ids: list[int] = []
            for tag in tags:
                if isinstance(tag, int):
                    term = await session.get(TermRow, tag)
                    if term is None or term.taxonomy != POST_TAG:
                        raise StoreError(
                            f"Tag {tag} does not exist.", code="content_invalid_tag"
                        )
                    term_ids.append(term.id)
                    continue
                name = tag.strip()
                if not name:
                    continue
                term = await self._find_term(session, POST_TAG, name)
                if term is None:
                    term = TermRow(taxonomy=POST_TAG, name=name, slug=slugify(name))
                    session.add(term)
                    await session.flush()
                term_ids.append(term.id)

            await self._replace_terms(session, post_id, POST_TAG, list(dict.fromkeys(term_ids)))

    async def _find_term(
        self, session: AsyncSession, taxonomy: str, name: str
    ) -> TermRow | None:
        result = await session.execute(
            select(TermRow).where(TermRow.taxonomy == taxonomy, TermRow.slug == slugify(name))
        )
        return result.scalar_one_or_none()

    async def get_post_type(self, slug: str) -> PostType | None:
        return self._post_types.get(slug)

    async def create_term(self, taxonomy: str, name: str) -> Term:
        name = name.strip()
        if not name:
            raise StoreError("Term name is required.", code="content_invalid_term")
        async with self._session() as session:
            if await self._find_term(session, taxonomy, name) is not None:
                raise StoreError(f'Term "{name}" already exists.', code="content_term_exists")
            row = TermRow(taxonomy=taxonomy, name=name, slug=slugify(name))
            session.add(row)
            await session.flush()
            return _to_term(row)

    async def list_terms(self, taxonomy: str) -> list[Term]:
        async with self._session() as session:
            result = await session.execute(
                select(TermRow).where(TermRow.taxonomy == taxonomy).order_by(TermRow.id)
            )
            return [_to_term(row) for row in result.scalars().all()]
