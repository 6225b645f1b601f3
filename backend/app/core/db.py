"""Database utilities for the figure registry store."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from app.models.tables import Base

_REPO_ROOT = Path(__file__).resolve().parents[3]


def resolve_repo_path(raw_path: str) -> Path:
    """Resolve relative paths against the repository root."""

    path = Path(raw_path)
    if not path.is_absolute():
        path = (_REPO_ROOT / path).resolve()
    return path


def _resolve_registry_db_url(raw_url: str) -> str:
    """Ensure SQLite URLs point at the repository-level data directory."""

    url = make_url(raw_url)
    if "sqlite" not in url.drivername or not url.database or url.database == ":memory:":
        return raw_url

    db_path = resolve_repo_path(url.database)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    url = url.set(database=str(db_path))
    return url.render_as_string(hide_password=False)


class Database:
    """Owns the async engine and session factory for one application instance."""

    def __init__(self, url: str) -> None:
        self.url = _resolve_registry_db_url(url)
        self.engine: AsyncEngine = create_async_engine(self.url, echo=False)
        self.session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(
            bind=self.engine, expire_on_commit=False
        )

    async def create_all(self) -> None:
        """Create tables that do not exist yet."""

        async with self.engine.begin() as connection:
            await connection.run_sync(Base.metadata.create_all)

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Provide an async database session."""

        async with self.session_factory() as session:
            try:
                yield session
            finally:
                await session.close()

    async def dispose(self) -> None:
        await self.engine.dispose()
