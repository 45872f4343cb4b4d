"""Session-token signing keys: generation, sealing at rest, JWK export.

Private halves never leave the directory unsealed; the vault holds the only
Fernet key able to open them. Public halves are published as a JWKS so
relying parties can check minted session tokens.
"""

import base64

import uuid_utils
from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPublicKey
from pydantic import BaseModel, ConfigDict

SESSION_KEY_ALGORITHM = "RS256"
RSA_KEY_SIZE = 2048
RSA_PUBLIC_EXPONENT = 65537


class SessionKeyPair(BaseModel):
    """Freshly generated key, before sealing."""

    model_config = ConfigDict(frozen=True)

    kid: str
    private_pem: str
    public_pem: str


class PublicJWK(BaseModel):
    """Public half of one session key, as published."""

    kty: str = "RSA"
    use: str = "sig"
    alg: str = SESSION_KEY_ALGORITHM
    kid: str
    n: str
    e: str


class PublicKeySet(BaseModel):
    """JWKS document for session tokens."""

    keys: list[PublicJWK]


class KeyVaultError(Exception):
    """The vault cannot seal or open a key."""


class KeyVault:
    """Seals private keys with the directory's Fernet key."""

    def __init__(self, fernet_key: str) -> None:
        if not fernet_key:
            raise KeyVaultError("signing key encryption key is not configured")
        try:
            self._fernet = Fernet(fernet_key.encode())
        except ValueError as exc:
            raise KeyVaultError("signing key encryption key is malformed") from exc

    def seal(self, private_pem: str) -> str:
        return self._fernet.encrypt(private_pem.encode()).decode()

    def open(self, sealed: str) -> str:
        try:
            return self._fernet.decrypt(sealed.encode()).decode()
        except InvalidToken as exc:
            raise KeyVaultError("session key cannot be opened with this vault") from exc


def new_session_key() -> SessionKeyPair:
    """RSA keypair with a time-ordered kid, so newer keys sort last."""
    private_key = rsa.generate_private_key(
        public_exponent=RSA_PUBLIC_EXPONENT,
        key_size=RSA_KEY_SIZE,
    )
    return SessionKeyPair(
        kid=str(uuid_utils.uuid7()),
        private_pem=private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        ).decode(),
        public_pem=private_key.public_key()
        .public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        .decode(),
    )


def _b64url_uint(value: int) -> str:
    raw = value.to_bytes((value.bit_length() + 7) // 8, byteorder="big")
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()


def to_public_jwk(public_pem: str, kid: str) -> PublicJWK:
    loaded = serialization.load_pem_public_key(public_pem.encode())
    if not isinstance(loaded, RSAPublicKey):
        raise ValueError("session keys must be RSA")
    numbers = loaded.public_numbers()
    return PublicJWK(kid=kid, n=_b64url_uint(numbers.n), e=_b64url_uint(numbers.e))
