"""Derivation and provisioning of internal identities for federated subjects."""

import asyncio

import structlog

from idbridge.federation.errors import IdentityProvisioningFailed, MissingSubject
from idbridge.federation.ports import (
    DirectoryError,
    IdentityDirectory,
    UserAlreadyExistsError,
)
from idbridge.federation.types import ProvisionOutcome, ProvisionStatus, ResolvedIdentity

logger = structlog.get_logger(__name__)

# Frozen: identities already minted embed this delimiter.
FEDERATED_UID_DELIMITER = ":"


def federated_uid(provider_name: str, subject: str) -> str:
    """Namespace a provider subject so it cannot collide with other sources."""
    return f"{provider_name}{FEDERATED_UID_DELIMITER}{subject}"


class IdentityResolver:
    """Maps a verified subject to a directory record, creating it if absent."""

    def __init__(
        self,
        *,
        directory: IdentityDirectory,
        provider_name: str,
        timeout_s: float = 10.0,
    ) -> None:
        self._directory = directory
        self._provider_name = provider_name
        self._timeout_s = timeout_s

    def uid_for(self, subject: str) -> str:
        return federated_uid(self._provider_name, subject)

    async def resolve(self, subject: str, email: str | None = None) -> ResolvedIdentity:
        """Return the internal identity for ``subject``; idempotent."""
        if not subject:
            raise MissingSubject()
        uid = self.uid_for(subject)
        outcome = await self.ensure_user(uid, email)
        if not outcome.ok:
            logger.error("identity_provisioning_failed", uid=uid, reason=outcome.reason)
            raise IdentityProvisioningFailed(outcome.reason)
        if outcome.status is ProvisionStatus.CREATED:
            logger.info("identity_created", uid=uid)
        return ResolvedIdentity(uid=uid, email=email, outcome=outcome)

    async def ensure_user(self, uid: str, email: str | None) -> ProvisionOutcome:
        """Create-if-absent; a lost creation race counts as success."""
        try:
            async with asyncio.timeout(self._timeout_s):
                existing = await self._directory.get_user(uid)
                if existing is not None:
                    return ProvisionOutcome(status=ProvisionStatus.EXISTING)
                await self._directory.create_user(uid, email)
        except UserAlreadyExistsError:
            return ProvisionOutcome(status=ProvisionStatus.ALREADY_EXISTS)
        except TimeoutError:
            return ProvisionOutcome(
                status=ProvisionStatus.FAILED,
                reason="identity directory timed out",
            )
        except DirectoryError as exc:
            return ProvisionOutcome(status=ProvisionStatus.FAILED, reason=str(exc))
        return ProvisionOutcome(status=ProvisionStatus.CREATED)
