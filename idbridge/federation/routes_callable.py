"""Callable endpoints: verify-and-mint and verify-only."""

from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends
from starlette.responses import JSONResponse

from idbridge.api.deps import get_federation_service
from idbridge.federation.errors import (
    STATUS_FAILED_PRECONDITION,
    STATUS_INTERNAL,
    STATUS_INVALID_ARGUMENT,
    STATUS_UNAUTHENTICATED,
    STATUS_UNAVAILABLE,
    FederationError,
)
from idbridge.federation.service import FederationService

router = APIRouter()

HTTP_STATUS_BY_ERROR = {
    STATUS_INVALID_ARGUMENT: 400,
    STATUS_FAILED_PRECONDITION: 400,
    STATUS_UNAUTHENTICATED: 401,
    STATUS_UNAVAILABLE: 503,
    STATUS_INTERNAL: 500,
}

Service = Annotated[FederationService, Depends(get_federation_service)]
Envelope = Annotated[Any, Body()]


def id_token_from(body: Any) -> Any:
    """Pull ``data.idToken`` out of a callable envelope of any shape."""
    if not isinstance(body, dict):
        return None
    data = body.get("data")
    if not isinstance(data, dict):
        return None
    return data.get("idToken")


def error_response(exc: FederationError) -> JSONResponse:
    """Render a pipeline failure in the callable error envelope."""
    message = exc.message if exc.status != STATUS_INTERNAL else exc.default_message
    return JSONResponse(
        {
            "error": {
                "status": exc.status.upper().replace("-", "_"),
                "message": message,
            }
        },
        status_code=HTTP_STATUS_BY_ERROR.get(exc.status, 500),
    )


@router.post("/verifyAndMint")
async def verify_and_mint(service: Service, body: Envelope = None) -> JSONResponse:
    """POST /verifyAndMint -- exchange a provider ID token for a session token."""
    try:
        minted = await service.verify_and_mint(id_token_from(body))
    except FederationError as exc:
        return error_response(exc)
    return JSONResponse(
        {
            "result": {
                "customToken": minted.custom_token,
                "uid": minted.uid,
                "email": minted.email,
            }
        }
    )


@router.post("/verifyToken")
async def verify_token(service: Service, body: Envelope = None) -> JSONResponse:
    """POST /verifyToken -- verify only, no minting."""
    try:
        result = await service.verify_only(id_token_from(body))
    except FederationError as exc:
        return error_response(exc)
    return JSONResponse({"result": result.model_dump()})
