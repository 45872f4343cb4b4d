"""Session token issuance through the identity directory."""

import asyncio

import structlog

from idbridge.federation.errors import TokenMintingFailed
from idbridge.federation.ports import DirectoryError, IdentityDirectory
from idbridge.federation.types import MintedToken, ResolvedIdentity, SanitizedClaimSet

logger = structlog.get_logger(__name__)


class TokenIssuer:
    """Asks the directory to sign a session token. No retries here."""

    def __init__(self, *, directory: IdentityDirectory, timeout_s: float = 10.0) -> None:
        self._directory = directory
        self._timeout_s = timeout_s

    async def issue(
        self, identity: ResolvedIdentity, claims: SanitizedClaimSet
    ) -> MintedToken:
        try:
            async with asyncio.timeout(self._timeout_s):
                token = await self._directory.create_custom_token(identity.uid, claims)
        except TimeoutError as exc:
            raise TokenMintingFailed("identity directory timed out") from exc
        except DirectoryError as exc:
            logger.error("token_minting_failed", uid=identity.uid, error=str(exc))
            raise TokenMintingFailed(str(exc)) from exc
        return MintedToken(custom_token=token, uid=identity.uid, email=identity.email)
