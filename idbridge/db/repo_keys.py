"""Session key storage: the signing key in use and the published set."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from idbridge.crypto.keys import KeyVault, new_session_key
from idbridge.db.models_keys import SessionKeyEntity


async def current_session_key(session: AsyncSession) -> SessionKeyEntity | None:
    """Newest key that has not been retired."""
    stmt = (
        select(SessionKeyEntity)
        .where(SessionKeyEntity.retired_at.is_(None))
        .order_by(SessionKeyEntity.kid.desc())
        .limit(1)
    )
    result = await session.execute(stmt)
    return result.scalars().first()


async def published_session_keys(session: AsyncSession) -> list[SessionKeyEntity]:
    """Every key, retired ones included, so outstanding tokens still verify."""
    stmt = select(SessionKeyEntity).order_by(SessionKeyEntity.kid.desc())
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def provision_session_key(
    session: AsyncSession, vault: KeyVault
) -> SessionKeyEntity:
    """Return the current key, generating and sealing one on first use."""
    current = await current_session_key(session)
    if current is not None:
        return current

    pair = new_session_key()
    entity = SessionKeyEntity(
        kid=pair.kid,
        sealed_private_key=vault.seal(pair.private_pem),
        public_pem=pair.public_pem,
    )
    session.add(entity)
    await session.flush()
    return entity
