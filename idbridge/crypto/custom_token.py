"""Signing of first-party session ("custom") tokens."""

import json
from collections.abc import Callable, Mapping
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt

MAX_UID_LENGTH = 128
MAX_CLAIMS_BYTES = 1000
MAX_TOKEN_TTL = 3600

# JWT names the directory sets itself; developer claims may not shadow them.
DIRECTORY_RESERVED_CLAIMS = frozenset(
    {
        "acr",
        "amr",
        "at_hash",
        "aud",
        "auth_time",
        "azp",
        "cnf",
        "c_hash",
        "exp",
        "firebase",
        "iat",
        "iss",
        "jti",
        "nbf",
        "nonce",
        "sub",
    }
)


class CustomTokenError(ValueError):
    """The uid or developer claims cannot be put into a session token."""


class CustomTokenSigner:
    """Creates RS256 session tokens carrying a uid and developer claims."""

    def __init__(
        self,
        *,
        private_key_pem: str,
        kid: str,
        service_account: str,
        audience: str,
        ttl_seconds: int = MAX_TOKEN_TTL,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ) -> None:
        self._private_key_pem = private_key_pem
        self._kid = kid
        self._service_account = service_account
        self._audience = audience
        self._ttl = min(ttl_seconds, MAX_TOKEN_TTL)
        self._clock = clock

    @property
    def kid(self) -> str:
        return self._kid

    def sign(self, uid: str, claims: Mapping[str, Any] | None = None) -> str:
        """Sign a session token for ``uid``."""
        validate_uid(uid)
        developer_claims = _validate_claims(claims or {})

        now = self._clock()
        payload: dict[str, Any] = {
            "iss": self._service_account,
            "sub": self._service_account,
            "aud": self._audience,
            "iat": now,
            "exp": now + timedelta(seconds=self._ttl),
            "uid": uid,
        }
        if developer_claims:
            payload["claims"] = developer_claims
        return jwt.encode(
            payload,
            self._private_key_pem,
            algorithm="RS256",
            headers={"kid": self._kid},
        )


def validate_uid(uid: str) -> None:
    if not isinstance(uid, str) or not uid:
        raise CustomTokenError("uid must be a non-empty string")
    if len(uid) > MAX_UID_LENGTH:
        raise CustomTokenError(f"uid must be at most {MAX_UID_LENGTH} characters")


def _validate_claims(claims: Mapping[str, Any]) -> dict[str, Any]:
    reserved = sorted(DIRECTORY_RESERVED_CLAIMS.intersection(claims))
    if reserved:
        raise CustomTokenError(f"reserved claims not allowed: {', '.join(reserved)}")
    try:
        encoded = json.dumps(dict(claims), separators=(",", ":"))
    except (TypeError, ValueError) as exc:
        raise CustomTokenError("claims must be JSON serializable") from exc
    if len(encoded.encode()) > MAX_CLAIMS_BYTES:
        raise CustomTokenError(f"claims must not exceed {MAX_CLAIMS_BYTES} bytes")
    return dict(claims)
