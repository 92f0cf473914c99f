"""Database handle shared by the SQL content store and the ``db`` commands.

A ``Database`` is created from configuration, connected once at startup and
disposed at shutdown. Store calls each take a short-lived session from it.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)


def sqlite_url(path: Path) -> str:
    return f"sqlite+aiosqlite:///{path}"


def _enable_foreign_keys(dbapi_connection, connection_record) -> None:
    # post_terms rows cascade with their post and term
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """Owns the async engine for one content database.

    ``database_url`` wins over ``database_path``. A path is turned into an
    aiosqlite URL and its parent directory is created.
    """

    def __init__(
        self, database_url: str | None = None, database_path: Path | None = None
    ):
        if database_url:
            self.url = database_url
        elif database_path:
            database_path.parent.mkdir(parents=True, exist_ok=True)
            self.url = sqlite_url(database_path)
        else:
            raise ValueError("Either database_url or database_path must be provided")

        self._engine: AsyncEngine | None = None
        self._sessions: async_sessionmaker[AsyncSession] | None = None

    @property
    def connected(self) -> bool:
        return self._engine is not None

    def _engine_or_raise(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError(f"Database {self.url} is not connected")
        return self._engine

    async def connect(self) -> None:
        if self.connected:
            return
        engine = create_async_engine(self.url, pool_pre_ping=True)
        if engine.dialect.name == "sqlite":
            event.listen(engine.sync_engine, "connect", _enable_foreign_keys)
        self._engine = engine
        # rows are read after commit when building Post values
        self._sessions = async_sessionmaker(engine, expire_on_commit=False)

    async def disconnect(self) -> None:
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        self._sessions = None

    async def create_tables(self) -> None:
        """Create any missing content tables. Existing tables are left alone."""
        from content_abilities.db.models import Base

        async with self._engine_or_raise().begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """One unit of work: committed if the block finishes, rolled back if it raises."""
        self._engine_or_raise()
        async with self._sessions() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
