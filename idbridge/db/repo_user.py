"""Federated user repository for database CRUD operations."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from idbridge.db.models_user import FederatedUserEntity


async def get_user(session: AsyncSession, uid: str) -> FederatedUserEntity | None:
    """Look up a user by internal uid."""
    stmt = select(FederatedUserEntity).where(FederatedUserEntity.uid == uid)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def get_user_by_email(
    session: AsyncSession, email: str
) -> FederatedUserEntity | None:
    """Look up a user by email address (case-insensitive)."""
    stmt = select(FederatedUserEntity).where(
        FederatedUserEntity.email == email.lower()
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def insert_user(
    session: AsyncSession, uid: str, email: str | None = None
) -> FederatedUserEntity:
    """Insert a new user; the caller checks for existing records."""
    user = FederatedUserEntity(
        uid=uid,
        email=email.lower() if email else None,
        disabled=False,
    )
    session.add(user)
    await session.flush()
    return user
