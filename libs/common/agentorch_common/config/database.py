"""Database settings and the process-wide async engine."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from functools import lru_cache

from pydantic import Field
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from .base import BaseAppSettings


class DatabaseSettings(BaseAppSettings):
    """Connection settings for the orchestration store of record."""

    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"  # noqa: S105
    POSTGRES_HOST: str = "db"
    POSTGRES_PORT: str = "5432"
    POSTGRES_DB: str = "agentorch"
    DATABASE_URL: str | None = Field(
        default=None, description="Full SQLAlchemy URL; overrides the POSTGRES_* parts"
    )
    pool_size: int = 20
    max_overflow: int = 30
    pool_timeout: int = 30
    pool_recycle: int = 3600
    echo: bool = False

    @property
    def url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    def engine_options(self) -> dict[str, int | bool]:
        options: dict[str, int | bool] = {"echo": self.echo}
        if self.url.startswith("postgresql"):
            options.update(
                pool_size=self.pool_size,
                max_overflow=self.max_overflow,
                pool_timeout=self.pool_timeout,
                pool_recycle=self.pool_recycle,
            )
        return options


class Database:
    """Owns the async engine and hands out transactional sessions.

    Sessions from ``session()`` commit when the block exits normally and roll
    back when it raises. Workers and CLI commands share one instance per
    process through ``get_database()``.
    """

    def __init__(self, settings: DatabaseSettings) -> None:
        self.settings = settings
        self.engine: AsyncEngine = create_async_engine(settings.url, **settings.engine_options())
        self.session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(
            self.engine, expire_on_commit=False
        )

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def dispose(self) -> None:
        await self.engine.dispose()


@lru_cache
def get_db_settings() -> DatabaseSettings:
    return DatabaseSettings()


@lru_cache
def get_database() -> Database:
    return Database(get_db_settings())


def get_db():
    """Open a session on the process-wide database."""
    return get_database().session()
