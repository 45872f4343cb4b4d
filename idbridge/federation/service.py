"""Verify-and-mint and verify-only pipelines."""

from typing import Any

import httpx
import structlog
from pydantic import BaseModel

from idbridge.core.settings import FederationSettings
from idbridge.federation.errors import FederationError, InvalidRequest
from idbridge.federation.identity import IdentityResolver
from idbridge.federation.issuer import TokenIssuer
from idbridge.federation.keyset import KeySetCache
from idbridge.federation.ports import IdentityDirectory
from idbridge.federation.sanitizer import sanitize, session_claims
from idbridge.federation.types import MintedToken, VerifiedClaims
from idbridge.federation.verifier import TokenVerifier

logger = structlog.get_logger(__name__)


class VerificationResult(BaseModel):
    """Response of the verify-only path."""

    valid: bool
    header: dict[str, Any]
    payload: dict[str, Any]


def _require_token(id_token: object) -> str:
    if not isinstance(id_token, str) or not id_token:
        raise InvalidRequest("idToken is required")
    return id_token


class FederationService:
    """Runs received -> verified -> resolved -> sanitized -> issued.

    The first failure ends the request; nothing partial is returned.
    """

    def __init__(
        self,
        *,
        settings: FederationSettings,
        verifier: TokenVerifier,
        resolver: IdentityResolver,
        issuer: TokenIssuer,
    ) -> None:
        self._settings = settings
        self._verifier = verifier
        self._resolver = resolver
        self._issuer = issuer

    async def verify(self, id_token: object) -> VerifiedClaims:
        token = _require_token(id_token)
        self._settings.require_audience()
        return await self._verifier.verify(token)

    async def verify_only(self, id_token: object) -> VerificationResult:
        try:
            verified = await self.verify(id_token)
        except FederationError as exc:
            logger.warning("verify_failed", error=type(exc).__name__, reason=str(exc))
            raise
        return VerificationResult(
            valid=True, header=verified.header, payload=verified.payload
        )

    async def verify_and_mint(self, id_token: object) -> MintedToken:
        try:
            verified = await self.verify(id_token)
            identity = await self._resolver.resolve(verified.subject, verified.email)
            claims = sanitize(session_claims(verified, self._settings.provider_name))
            minted = await self._issuer.issue(identity, claims)
        except FederationError as exc:
            logger.warning(
                "verify_and_mint_failed", error=type(exc).__name__, reason=str(exc)
            )
            raise
        logger.info("session_token_minted", uid=minted.uid)
        return minted


def build_federation_service(
    settings: FederationSettings,
    *,
    http_client: httpx.AsyncClient,
    directory: IdentityDirectory,
) -> FederationService:
    """Wire the pipeline components from settings."""
    keys = KeySetCache(
        jwks_uri=settings.jwks_uri,
        http_client=http_client,
        timeout_s=settings.jwks_timeout_s,
        max_age_s=settings.jwks_max_age_s,
        min_refresh_interval_s=settings.jwks_min_refresh_interval_s,
    )
    verifier = TokenVerifier(
        keys=keys,
        issuer=settings.issuer_url,
        audience=settings.audience,
        clock_skew_s=settings.clock_skew_s,
    )
    resolver = IdentityResolver(
        directory=directory,
        provider_name=settings.provider_name,
        timeout_s=settings.directory_timeout_s,
    )
    issuer = TokenIssuer(directory=directory, timeout_s=settings.directory_timeout_s)
    return FederationService(
        settings=settings, verifier=verifier, resolver=resolver, issuer=issuer
    )
