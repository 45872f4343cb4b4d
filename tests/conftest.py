"""Shared test fixtures for idbridge."""

from collections.abc import AsyncIterator

import pytest
from cryptography.fernet import Fernet
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from idbridge.core.settings import DirectorySettings, FederationSettings
from idbridge.crypto.keys import SessionKeyPair, new_session_key
from idbridge.db.base import BaseEntity
from tests.support import AUDIENCE, ISSUER, JWKS_URI, JwksEndpoint, jwks_for

FERNET_KEY = Fernet.generate_key().decode()


@pytest.fixture(autouse=True)
def _set_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Set environment variables for test settings."""
    monkeypatch.setenv("FEDERATION_ISSUER_URL", ISSUER)
    monkeypatch.setenv("FEDERATION_AUDIENCE", AUDIENCE)
    monkeypatch.setenv("FEDERATION_JWKS_URI", JWKS_URI)
    monkeypatch.setenv("DIRECTORY_SIGNING_KEY_ENCRYPTION_KEY", FERNET_KEY)
    monkeypatch.delenv("CORBADO_PROJECT_ID", raising=False)


@pytest.fixture(scope="session")
def provider_key() -> SessionKeyPair:
    """RSA key the fake identity provider signs ID tokens with."""
    return new_session_key()


@pytest.fixture
def jwks_endpoint(provider_key: SessionKeyPair) -> JwksEndpoint:
    return JwksEndpoint(jwks_for(provider_key))


@pytest.fixture
async def jwks_http(jwks_endpoint: JwksEndpoint) -> AsyncIterator[AsyncClient]:
    async with jwks_endpoint.client() as client:
        yield client


@pytest.fixture
def federation_settings() -> FederationSettings:
    return FederationSettings()


@pytest.fixture
def directory_settings() -> DirectorySettings:
    return DirectorySettings(signing_key_encryption_key=FERNET_KEY)


@pytest.fixture
async def session_factory() -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    """In-memory SQLite shared by every session of one test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(BaseEntity.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    """Create an in-memory SQLite async session for tests."""
    async with session_factory() as session:
        yield session
