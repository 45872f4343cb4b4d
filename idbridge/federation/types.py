"""Type definitions for the verification and minting pipeline."""

from enum import StrEnum
from typing import Any, NewType

from pydantic import BaseModel, ConfigDict, Field

SanitizedClaimSet = NewType("SanitizedClaimSet", dict[str, Any])


class VerifiedClaims(BaseModel):
    """Validated output of a single verification call. Never persisted."""

    model_config = ConfigDict(frozen=True)

    subject: str
    issuer: str
    audience: str | list[str]
    expires_at: int
    issued_at: int | None = None
    not_before: int | None = None
    header: dict[str, Any] = Field(default_factory=dict)
    payload: dict[str, Any] = Field(default_factory=dict)

    @property
    def email(self) -> str | None:
        """Email claim, only when the provider sent a string."""
        value = self.payload.get("email")
        return value if isinstance(value, str) else None

    @property
    def email_verified(self) -> bool:
        return self.payload.get("email_verified") is True


class ProvisionStatus(StrEnum):
    """Outcome of ensuring a directory record exists."""

    EXISTING = "existing"
    CREATED = "created"
    ALREADY_EXISTS = "already_exists"
    FAILED = "failed"


class ProvisionOutcome(BaseModel):
    """Tagged result of the create-if-absent step."""

    model_config = ConfigDict(frozen=True)

    status: ProvisionStatus
    reason: str | None = None

    @property
    def ok(self) -> bool:
        return self.status is not ProvisionStatus.FAILED


class ResolvedIdentity(BaseModel):
    """Internal identity derived from a verified provider subject."""

    model_config = ConfigDict(frozen=True)

    uid: str
    email: str | None = None
    outcome: ProvisionOutcome


class MintedToken(BaseModel):
    """Opaque session token handed back to the caller."""

    model_config = ConfigDict(frozen=True)

    custom_token: str
    uid: str
    email: str | None = None


class UserRecord(BaseModel):
    """Directory view of a stored identity."""

    model_config = ConfigDict(from_attributes=True)

    uid: str
    email: str | None = None
    disabled: bool = False
