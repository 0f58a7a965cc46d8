"""Async database session management for SQLAlchemy 2.0+.

The engine and session factory are owned by a ``Database`` object that the
application factory stores on ``app.state``; the lifespan handler opens it on
startup and disposes it on shutdown. Request handlers receive a session via
the ``SessionDep`` dependency.

Usage:
    @router.get("/items")
    async def get_items(session: SessionDep):
        result = await session.execute(select(Item))
        return result.scalars().all()
"""

from __future__ import annotations

import logging
from typing import Annotated, AsyncGenerator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from bugtracker.db.base import Base

logger = logging.getLogger(__name__)


class Database:
    """Engine plus session factory for one database URL."""

    def __init__(self, url: str, *, echo: bool = False) -> None:
        self.url = url
        self.echo = echo
        self._engine: AsyncEngine | None = None
        self._session_maker: async_sessionmaker[AsyncSession] | None = None

    @property
    def is_sqlite(self) -> bool:
        return "sqlite" in self.url.lower()

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("Database is not connected; call connect() first")
        return self._engine

    def connect(self) -> None:
        """Create the engine and session factory (idempotent)."""
        if self._engine is not None:
            return

        if self.is_sqlite:
            # File-backed SQLite: one connection per session, no pool to share across loops
            self._engine = create_async_engine(self.url, echo=self.echo, poolclass=NullPool)
        else:
            self._engine = create_async_engine(self.url, echo=self.echo, pool_pre_ping=True)

        self._session_maker = async_sessionmaker(
            bind=self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        logger.info("db.engine_created", extra={"dialect": self._engine.dialect.name})

    async def create_all(self) -> None:
        """Create all tables that do not exist yet."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self) -> None:
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        self._session_maker = None
        logger.info("db.engine_disposed")

    def session(self) -> AsyncSession:
        if self._session_maker is None:
            raise RuntimeError("Database is not connected; call connect() first")
        return self._session_maker()


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Yield a session bound to the application's database."""
    database: Database = request.app.state.db
    async with database.session() as session:
        yield session


# Type alias for FastAPI dependency injection
SessionDep = Annotated[AsyncSession, Depends(get_db)]

__all__ = ["Database", "SessionDep", "get_db"]
