"""Publication of the session-token verification keys."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Response, status

from idbridge.api.deps import get_directory
from idbridge.crypto.keys import PublicKeySet
from idbridge.directory.sql_directory import SqlIdentityDirectory
from idbridge.federation.ports import DirectoryError

router = APIRouter()

JWKS_CACHE_CONTROL = "public, max-age=3600"


@router.get("/.well-known/jwks.json")
async def jwks(
    response: Response,
    directory: Annotated[SqlIdentityDirectory, Depends(get_directory)],
) -> PublicKeySet:
    """JSON Web Key Set for tokens minted by this service."""
    try:
        keys = await directory.public_keys()
    except DirectoryError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE) from exc
    response.headers["Cache-Control"] = JWKS_CACHE_CONTROL
    return keys
