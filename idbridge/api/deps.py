"""FastAPI dependencies resolving process-wide components from app state."""

from typing import Any

from fastapi import HTTPException, Request, status

from idbridge.directory.sql_directory import SqlIdentityDirectory
from idbridge.federation.service import FederationService
from idbridge.mirror.ports import DocumentStore


def _from_state(request: Request, name: str) -> Any:
    component = getattr(request.app.state, name, None)
    if component is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE)
    return component


def get_federation_service(request: Request) -> FederationService:
    return _from_state(request, "federation")


def get_directory(request: Request) -> SqlIdentityDirectory:
    return _from_state(request, "directory")


def get_document_store(request: Request) -> DocumentStore:
    return _from_state(request, "documents")
