"""Typed failures of the federation pipeline.

Every failure carries a ``status`` naming the caller-visible outcome, so the
callable boundary can tell a misconfigured service apart from a bad token.
"""

STATUS_INVALID_ARGUMENT = "invalid-argument"
STATUS_FAILED_PRECONDITION = "failed-precondition"
STATUS_UNAUTHENTICATED = "unauthenticated"
STATUS_UNAVAILABLE = "unavailable"
STATUS_INTERNAL = "internal"


class FederationError(Exception):
    """Base class for all pipeline failures."""

    status = STATUS_INTERNAL
    default_message = "Federation request failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class InvalidRequest(FederationError):
    status = STATUS_INVALID_ARGUMENT
    default_message = "idToken is required"


class ConfigurationInvalid(FederationError):
    status = STATUS_FAILED_PRECONDITION
    default_message = "Service is not configured"


class VerificationError(FederationError):
    """A presented token was rejected."""

    status = STATUS_UNAUTHENTICATED
    default_message = "Token verification failed"


class MalformedToken(VerificationError):
    default_message = "Token is malformed"


class SignatureInvalid(VerificationError):
    default_message = "Token signature is invalid"


class IssuerMismatch(VerificationError):
    default_message = "Token issuer does not match"


class AudienceMismatch(VerificationError):
    default_message = "Token audience does not match"


class Expired(VerificationError):
    default_message = "Token has expired"


class NotYetValid(VerificationError):
    default_message = "Token is not yet valid"


class MissingSubject(VerificationError):
    default_message = "OIDC token missing 'sub'"


class KeyNotFound(VerificationError):
    default_message = "No verification key for token"


class KeySetUnavailable(FederationError):
    status = STATUS_UNAVAILABLE
    default_message = "Key set could not be retrieved"


class IdentityProvisioningFailed(FederationError):
    default_message = "Identity could not be provisioned"


class TokenMintingFailed(FederationError):
    default_message = "Session token could not be minted"
