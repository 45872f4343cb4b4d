"""Path-addressed document operations (get/set/merge/delete/exists)."""

from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from idbridge.db.models_documents import DocumentEntity


async def _load(session: AsyncSession, path: str) -> DocumentEntity | None:
    stmt = select(DocumentEntity).where(DocumentEntity.path == path)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def get_document(session: AsyncSession, path: str) -> dict[str, Any] | None:
    """Return the document body at ``path``, or None."""
    entity = await _load(session, path)
    return dict(entity.data) if entity is not None else None


async def document_exists(session: AsyncSession, path: str) -> bool:
    return await _load(session, path) is not None


async def set_document(
    session: AsyncSession, path: str, data: dict[str, Any]
) -> DocumentEntity:
    """Create or fully replace the document at ``path``."""
    entity = await _load(session, path)
    if entity is None:
        entity = DocumentEntity(path=path, data=dict(data))
        session.add(entity)
    else:
        entity.data = dict(data)
    await session.flush()
    return entity


async def merge_document(
    session: AsyncSession, path: str, data: dict[str, Any]
) -> DocumentEntity:
    """Shallow-merge top-level fields, creating the document if absent."""
    entity = await _load(session, path)
    if entity is None:
        return await set_document(session, path, data)
    entity.data = {**entity.data, **data}
    await session.flush()
    return entity


async def delete_document(session: AsyncSession, path: str) -> bool:
    """Delete the document; returns False when nothing was there."""
    result = await session.execute(
        delete(DocumentEntity).where(DocumentEntity.path == path)
    )
    await session.flush()
    return bool(result.rowcount)
