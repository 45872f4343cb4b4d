"""Verification of provider-issued ID tokens against the remote key set."""

import time
from collections.abc import Callable
from typing import Any

import jwt

from idbridge.federation.errors import (
    AudienceMismatch,
    Expired,
    IssuerMismatch,
    MalformedToken,
    MissingSubject,
    NotYetValid,
    SignatureInvalid,
)
from idbridge.federation.keyset import ALLOWED_ALGORITHMS, KeySetCache, VerificationKey
from idbridge.federation.types import VerifiedClaims

_DECODE_OPTIONS = {
    "verify_signature": True,
    "verify_aud": True,
    "verify_iss": True,
    "verify_exp": False,
    "verify_nbf": False,
    "verify_iat": False,
    "verify_sub": False,
    "verify_jti": False,
    "require": ["iss", "aud"],
}


def _parse(token: object) -> tuple[dict[str, Any], dict[str, Any]]:
    """Split a compact JWS into header and unverified payload."""
    if not isinstance(token, str) or not token:
        raise MalformedToken("token must be a non-empty string")
    try:
        header = jwt.get_unverified_header(token)
        payload = jwt.decode(token, options={"verify_signature": False})
    except jwt.InvalidTokenError as exc:
        raise MalformedToken(f"invalid token: {exc}") from exc
    return header, payload


def _time_claim(payload: dict[str, Any], name: str) -> float | None:
    value = payload.get(name)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise MalformedToken(f"'{name}' claim must be a number")
    return value


class TokenVerifier:
    """Checks signature, issuer, audience and validity window of ID tokens.

    Holds no per-request state; the key cache is the only shared resource.
    """

    def __init__(
        self,
        *,
        keys: KeySetCache,
        issuer: str,
        audience: str,
        clock_skew_s: int = 0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._keys = keys
        self._issuer = issuer
        self._audience = audience
        self._clock_skew_s = clock_skew_s
        self._clock = clock

    @property
    def issuer(self) -> str:
        return self._issuer

    @property
    def audience(self) -> str:
        return self._audience

    async def verify(self, token: str) -> VerifiedClaims:
        """Verify ``token`` and return its validated claims."""
        header, unverified = _parse(token)

        # Foreign issuers are rejected before any key lookup or JWKS refresh.
        iss = unverified.get("iss")
        if iss is None:
            raise IssuerMismatch("token has no issuer")
        if iss != self._issuer:
            raise IssuerMismatch()

        alg = header.get("alg")
        if alg not in ALLOWED_ALGORITHMS:
            raise SignatureInvalid(f"unsupported alg {alg!r}")
        kid = header.get("kid")
        if kid is not None and not isinstance(kid, str):
            raise MalformedToken("'kid' header must be a string")

        key = await self._keys.get_verification_key(kid, alg)
        if key.algorithm != alg:
            raise SignatureInvalid("token alg does not match key alg")

        payload = self._decode(token, key)
        return self._check_claims(header, payload)

    def _decode(self, token: str, key: VerificationKey) -> dict[str, Any]:
        try:
            return jwt.decode(
                token,
                key.key,
                algorithms=[key.algorithm],
                issuer=self._issuer,
                audience=self._audience,
                options=_DECODE_OPTIONS,
            )
        except (jwt.InvalidSignatureError, jwt.InvalidAlgorithmError) as exc:
            raise SignatureInvalid() from exc
        except jwt.InvalidIssuerError as exc:
            raise IssuerMismatch() from exc
        except jwt.InvalidAudienceError as exc:
            raise AudienceMismatch() from exc
        except jwt.MissingRequiredClaimError as exc:
            if exc.claim == "iss":
                raise IssuerMismatch("token has no issuer") from exc
            if exc.claim == "aud":
                raise AudienceMismatch("token has no audience") from exc
            raise MalformedToken(str(exc)) from exc
        except jwt.InvalidTokenError as exc:
            raise MalformedToken(f"invalid token: {exc}") from exc

    def _check_claims(
        self, header: dict[str, Any], payload: dict[str, Any]
    ) -> VerifiedClaims:
        now = self._clock()
        skew = self._clock_skew_s

        exp = _time_claim(payload, "exp")
        nbf = _time_claim(payload, "nbf")
        iat = _time_claim(payload, "iat")
        if exp is None:
            raise MalformedToken("token has no 'exp' claim")
        if exp <= now - skew:
            raise Expired()
        if nbf is not None and nbf > now + skew:
            raise NotYetValid()
        if iat is not None and iat > now + skew:
            raise NotYetValid("token was issued in the future")

        sub = payload.get("sub")
        if sub is None or sub == "":
            raise MissingSubject()
        if not isinstance(sub, str):
            raise MalformedToken("'sub' claim must be a string")

        return VerifiedClaims(
            subject=sub,
            issuer=payload["iss"],
            audience=payload["aud"],
            expires_at=int(exp),
            issued_at=int(iat) if iat is not None else None,
            not_before=int(nbf) if nbf is not None else None,
            header=header,
            payload=payload,
        )
