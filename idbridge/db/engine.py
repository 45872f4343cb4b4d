"""Async SQLAlchemy engine and session factory management."""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from idbridge.core.settings import DatabaseSettings
from idbridge.db.base import BaseEntity
from idbridge.db.models_documents import DocumentEntity
from idbridge.db.models_keys import SessionKeyEntity
from idbridge.db.models_user import FederatedUserEntity

_registered = (DocumentEntity, SessionKeyEntity, FederatedUserEntity)


class _EngineHolder:
    """Lazy singleton for the async engine and its session factory."""

    engine: AsyncEngine | None = None
    factory: async_sessionmaker[AsyncSession] | None = None


_holder = _EngineHolder()


def _create_engine(db: DatabaseSettings) -> AsyncEngine:
    url = db.async_url
    if url.startswith("postgresql"):
        return create_async_engine(
            url, pool_size=db.pool_size, max_overflow=db.max_overflow
        )
    return create_async_engine(url)


def get_engine() -> AsyncEngine:
    """Lazily create the process-wide engine."""
    if _holder.engine is None:
        _holder.engine = _create_engine(DatabaseSettings())
    return _holder.engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Lazily create the async session factory."""
    if _holder.factory is None:
        _holder.factory = async_sessionmaker(
            get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
        )
    return _holder.factory


async def init_schema(engine: AsyncEngine) -> None:
    """Create any missing tables."""
    async with engine.begin() as conn:
        await conn.run_sync(BaseEntity.metadata.create_all)


async def dispose_engine() -> None:
    """Close pooled connections and forget the singleton."""
    if _holder.engine is not None:
        await _holder.engine.dispose()
    _holder.engine = None
    _holder.factory = None
