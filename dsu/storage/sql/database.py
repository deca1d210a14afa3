"""Async engine, session factory and shared bin plumbing for SQL storage.

Each bin operation runs in its own short transaction. Unique constraints
surface as IntegrityError and are translated to ConflictError here, so
every SQL bin reports duplicates the same way.
"""

import logging
from collections.abc import Sequence
from typing import Any

from sqlalchemy import Select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from dsu.core.errors import ConflictError
from dsu.storage.base import StorageEngine
from dsu.storage.sql.models import Base

logger = logging.getLogger(__name__)


class SqlEngine(StorageEngine):
    """Owns the SQLAlchemy engine and session factory.

    Args:
        database_url: Async SQLAlchemy URL (postgresql+asyncpg://..., sqlite+aiosqlite://...).
        echo: Log emitted SQL.
    """

    def __init__(self, database_url: str, echo: bool = False) -> None:
        options: dict[str, Any] = {"echo": echo}
        if database_url.startswith("sqlite"):
            if ":memory:" in database_url or database_url.endswith("//"):
                # One shared connection, otherwise every checkout sees an empty database
                options["poolclass"] = StaticPool
        else:
            options["pool_pre_ping"] = True
        self.engine: AsyncEngine = create_async_engine(database_url, **options)
        self.sessions = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    async def initialize(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("SQL storage initialized")

    async def close(self) -> None:
        await self.engine.dispose()


class SqlBin:
    """Shared helpers for SQL bins.

    Args:
        sessions: Session factory from SqlEngine.
    """

    def __init__(self, sessions: async_sessionmaker[AsyncSession]) -> None:
        self._sessions = sessions

    async def _insert(
        self, rows: Sequence[Base], conflict_code: str, conflict_message: str
    ) -> None:
        """Insert rows in one transaction.

        Raises:
            ConflictError: If a unique constraint rejects any row. Nothing
                from the batch is persisted.
        """
        try:
            async with self._sessions.begin() as session:
                session.add_all(rows)
        except IntegrityError as exc:
            raise ConflictError(conflict_code, conflict_message) from exc

    async def _fetch_at_most_two(self, stmt: Select) -> list[Any]:
        """Run a key lookup, fetching enough rows to detect ambiguity."""
        async with self._sessions() as session:
            result = await session.execute(stmt.limit(2))
            return list(result.scalars().all())

    async def _fetch_all(self, stmt: Select) -> list[Any]:
        async with self._sessions() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def _scalar(self, stmt: Select) -> Any:
        async with self._sessions() as session:
            result = await session.execute(stmt)
            return result.scalar_one()
