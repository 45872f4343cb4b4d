"""Document store interface and the write intents executed against it."""

from typing import Any, Literal, Protocol

from pydantic import BaseModel, ConfigDict


class DocumentStore(Protocol):
    """Key-value store of path-addressed documents."""

    async def get(self, path: str) -> dict[str, Any] | None: ...

    async def set(self, path: str, data: dict[str, Any]) -> None: ...

    async def merge(self, path: str, data: dict[str, Any]) -> None: ...

    async def delete(self, path: str) -> None: ...

    async def exists(self, path: str) -> bool: ...


class SetDocument(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["set"] = "set"
    path: str
    data: dict[str, Any]


class MergeDocument(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["merge"] = "merge"
    path: str
    data: dict[str, Any]


class DeleteDocument(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["delete"] = "delete"
    path: str


WriteIntent = SetDocument | MergeDocument | DeleteDocument
