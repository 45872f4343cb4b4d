"""Reserved-claim filtering for session tokens."""

from collections.abc import Mapping
from typing import Any

from idbridge.federation.types import SanitizedClaimSet, VerifiedClaims

# Changing this set changes the shape of issued tokens.
RESERVED_CLAIMS = frozenset(
    {
        "iss",
        "aud",
        "sub",
        "iat",
        "exp",
        "nbf",
        "jti",
        "uid",
        "claims",
        "tenant_id",
        "firebase",
    }
)


def sanitize(claims: Mapping[str, Any]) -> SanitizedClaimSet:
    """Copy ``claims`` without reserved keys. Never adds or coerces values."""
    return SanitizedClaimSet(
        {key: value for key, value in claims.items() if key not in RESERVED_CLAIMS}
    )


def session_claims(verified: VerifiedClaims, provider_name: str) -> dict[str, Any]:
    """Custom claims attached to a session token minted for ``verified``."""
    claims: dict[str, Any] = {
        "provider": provider_name,
        "email_verified": verified.email_verified,
    }
    if verified.email is not None:
        claims["email"] = verified.email
    return claims
