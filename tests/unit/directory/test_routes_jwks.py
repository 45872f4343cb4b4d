"""Tests for the session-token JWKS endpoint."""

from collections.abc import AsyncIterator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from idbridge.api.deps import get_directory
from idbridge.core.app import create_app
from idbridge.core.settings import DirectorySettings
from idbridge.directory.sql_directory import SqlIdentityDirectory


@pytest.fixture
def directory(
    session_factory: async_sessionmaker[AsyncSession],
    directory_settings: DirectorySettings,
) -> SqlIdentityDirectory:
    return SqlIdentityDirectory(session_factory, directory_settings)


@pytest.fixture
async def client(directory: SqlIdentityDirectory) -> AsyncIterator[AsyncClient]:
    app = create_app()
    app.dependency_overrides[get_directory] = lambda: directory
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


class TestJWKSEndpoint:
    """Tests for GET /.well-known/jwks.json."""

    @pytest.mark.asyncio
    async def test_empty_before_first_mint(self, client: AsyncClient) -> None:
        resp = await client.get("/.well-known/jwks.json")
        assert resp.status_code == 200
        assert resp.json() == {"keys": []}
        assert "max-age" in resp.headers["cache-control"]

    @pytest.mark.asyncio
    async def test_lists_signing_key(
        self, client: AsyncClient, directory: SqlIdentityDirectory
    ) -> None:
        await directory.create_custom_token("corbado:user-42", {})
        resp = await client.get("/.well-known/jwks.json")
        keys = resp.json()["keys"]
        assert len(keys) == 1
        assert keys[0]["kty"] == "RSA"
        assert keys[0]["alg"] == "RS256"
        assert keys[0]["use"] == "sig"

    @pytest.mark.asyncio
    async def test_unwired_app_is_unavailable(self) -> None:
        app = create_app()
        async with AsyncClient(
            transport=ASGITransport(app=app), base_url="http://test"
        ) as ac:
            resp = await ac.get("/.well-known/jwks.json")
        assert resp.status_code == 503
