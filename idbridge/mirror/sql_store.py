"""DocumentStore implementation over the documents table."""

from typing import Any

from pydantic_core import to_jsonable_python
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from idbridge.db.repo_documents import (
    delete_document,
    document_exists,
    get_document,
    merge_document,
    set_document,
)


class SqlDocumentStore:
    """Each call runs in its own committed transaction."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get(self, path: str) -> dict[str, Any] | None:
        async with self._session_factory() as session:
            return await get_document(session, path)

    async def exists(self, path: str) -> bool:
        async with self._session_factory() as session:
            return await document_exists(session, path)

    async def set(self, path: str, data: dict[str, Any]) -> None:
        async with self._session_factory() as session:
            await set_document(session, path, to_jsonable_python(data))
            await session.commit()

    async def merge(self, path: str, data: dict[str, Any]) -> None:
        async with self._session_factory() as session:
            await merge_document(session, path, to_jsonable_python(data))
            await session.commit()

    async def delete(self, path: str) -> None:
        async with self._session_factory() as session:
            await delete_document(session, path)
            await session.commit()
