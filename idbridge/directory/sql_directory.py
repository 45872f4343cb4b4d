"""Identity directory backed by the SQL database.

Stores federated user records and signs session tokens with a locally held
RSA key. The private key is sealed at rest with the configured Fernet key and
generated on first use.
"""

from collections.abc import Mapping
from typing import Any

import structlog
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from idbridge.core.settings import DirectorySettings
from idbridge.crypto.custom_token import CustomTokenError, CustomTokenSigner, validate_uid
from idbridge.crypto.keys import KeyVault, KeyVaultError, PublicKeySet, to_public_jwk
from idbridge.db.repo_keys import provision_session_key, published_session_keys
from idbridge.db.repo_user import get_user, get_user_by_email, insert_user
from idbridge.federation.ports import (
    DirectoryError,
    EmailAlreadyExistsError,
    UserAlreadyExistsError,
)
from idbridge.federation.types import UserRecord

logger = structlog.get_logger(__name__)


class SqlIdentityDirectory:
    """IdentityDirectory implementation over an async session factory."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        settings: DirectorySettings,
    ) -> None:
        self._session_factory = session_factory
        self._settings = settings
        self._signer: CustomTokenSigner | None = None

    async def get_user(self, uid: str) -> UserRecord | None:
        try:
            async with self._session_factory() as session:
                entity = await get_user(session, uid)
        except SQLAlchemyError as exc:
            raise DirectoryError(f"user lookup failed: {exc}") from exc
        return UserRecord.model_validate(entity) if entity is not None else None

    async def create_user(self, uid: str, email: str | None = None) -> UserRecord:
        try:
            validate_uid(uid)
        except CustomTokenError as exc:
            raise DirectoryError(str(exc)) from exc

        async with self._session_factory() as session:
            try:
                if await get_user(session, uid) is not None:
                    raise UserAlreadyExistsError(f"uid {uid!r} already exists")
                if email and await get_user_by_email(session, email) is not None:
                    raise EmailAlreadyExistsError("email is already in use")
                entity = await insert_user(session, uid, email)
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                raise UserAlreadyExistsError(f"uid {uid!r} already exists") from exc
            except SQLAlchemyError as exc:
                await session.rollback()
                raise DirectoryError(f"user creation failed: {exc}") from exc
        return UserRecord.model_validate(entity)

    async def create_custom_token(self, uid: str, claims: Mapping[str, Any]) -> str:
        signer = await self._get_signer()
        try:
            return signer.sign(uid, claims)
        except CustomTokenError as exc:
            raise DirectoryError(str(exc)) from exc

    async def public_keys(self) -> PublicKeySet:
        """Public halves of all signing keys, for relying parties."""
        try:
            async with self._session_factory() as session:
                keys = await published_session_keys(session)
        except SQLAlchemyError as exc:
            raise DirectoryError(f"key lookup failed: {exc}") from exc
        return PublicKeySet(keys=[to_public_jwk(k.public_pem, k.kid) for k in keys])

    async def _get_signer(self) -> CustomTokenSigner:
        if self._signer is not None:
            return self._signer

        try:
            vault = KeyVault(self._settings.signing_key_encryption_key)
            async with self._session_factory() as session:
                key = await provision_session_key(session, vault)
                await session.commit()
            private_pem = vault.open(key.sealed_private_key)
        except SQLAlchemyError as exc:
            raise DirectoryError(f"signing key lookup failed: {exc}") from exc
        except KeyVaultError as exc:
            raise DirectoryError(str(exc)) from exc

        self._signer = CustomTokenSigner(
            private_key_pem=private_pem,
            kid=key.kid,
            service_account=self._settings.service_account,
            audience=self._settings.token_audience,
            ttl_seconds=self._settings.custom_token_ttl,
        )
        logger.info("session_signing_key_loaded", kid=key.kid)
        return self._signer
