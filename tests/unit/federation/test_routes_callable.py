"""Tests for the callable verify endpoints."""

from collections.abc import AsyncIterator

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from idbridge.api.deps import get_federation_service
from idbridge.core.app import create_app
from idbridge.core.settings import FederationSettings
from idbridge.crypto.keys import SessionKeyPair
from idbridge.federation.service import FederationService, build_federation_service
from tests.support import (
    EMAIL,
    BrokenDirectoryError,
    FakeDirectory,
    JwksEndpoint,
    make_id_token,
)


@pytest.fixture
def directory() -> FakeDirectory:
    return FakeDirectory()


@pytest.fixture
async def client(
    federation_settings: FederationSettings,
    jwks_http: httpx.AsyncClient,
    directory: FakeDirectory,
) -> AsyncIterator[AsyncClient]:
    """Test client wired to a service over the fake directory."""
    service = build_federation_service(
        federation_settings, http_client=jwks_http, directory=directory
    )
    app = create_app()

    def _override_service() -> FederationService:
        return service

    app.dependency_overrides[get_federation_service] = _override_service

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


class TestVerifyAndMintEndpoint:
    """Tests for POST /verifyAndMint."""

    @pytest.mark.asyncio
    async def test_success(self, client: AsyncClient, provider_key: SessionKeyPair) -> None:
        resp = await client.post(
            "/verifyAndMint", json={"data": {"idToken": make_id_token(provider_key)}}
        )
        assert resp.status_code == 200
        result = resp.json()["result"]
        assert result == {
            "customToken": "session-token-for-corbado:user-42",
            "uid": "corbado:user-42",
            "email": EMAIL,
        }

    @pytest.mark.asyncio
    async def test_missing_token_is_invalid_argument(self, client: AsyncClient) -> None:
        resp = await client.post("/verifyAndMint", json={"data": {}})
        assert resp.status_code == 400
        assert resp.json() == {
            "error": {"status": "INVALID_ARGUMENT", "message": "idToken is required"}
        }

    @pytest.mark.asyncio
    async def test_missing_envelope_is_invalid_argument(
        self, client: AsyncClient
    ) -> None:
        resp = await client.post("/verifyAndMint", json={})
        assert resp.status_code == 400
        assert resp.json()["error"]["status"] == "INVALID_ARGUMENT"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload", [{"data": "x"}, {"data": {"idToken": 42}}, ["idToken"], "token"]
    )
    async def test_malformed_envelope_is_invalid_argument(
        self, client: AsyncClient, payload: object
    ) -> None:
        resp = await client.post("/verifyAndMint", json=payload)
        assert resp.status_code == 400
        assert resp.json() == {
            "error": {"status": "INVALID_ARGUMENT", "message": "idToken is required"}
        }

    @pytest.mark.asyncio
    async def test_empty_body_is_invalid_argument(self, client: AsyncClient) -> None:
        resp = await client.post("/verifyAndMint")
        assert resp.status_code == 400
        assert resp.json()["error"]["status"] == "INVALID_ARGUMENT"

    @pytest.mark.asyncio
    async def test_bad_token_is_unauthenticated(self, client: AsyncClient) -> None:
        resp = await client.post("/verifyAndMint", json={"data": {"idToken": "junk"}})
        assert resp.status_code == 401
        assert resp.json()["error"]["status"] == "UNAUTHENTICATED"

    @pytest.mark.asyncio
    async def test_missing_subject_message(
        self, client: AsyncClient, provider_key: SessionKeyPair
    ) -> None:
        token = make_id_token(provider_key, drop=("sub",))
        resp = await client.post("/verifyAndMint", json={"data": {"idToken": token}})
        assert resp.status_code == 401
        assert resp.json()["error"]["message"] == "OIDC token missing 'sub'"

    @pytest.mark.asyncio
    async def test_unconfigured_audience_is_failed_precondition(
        self,
        monkeypatch: pytest.MonkeyPatch,
        jwks_http: httpx.AsyncClient,
        directory: FakeDirectory,
        provider_key: SessionKeyPair,
    ) -> None:
        monkeypatch.delenv("FEDERATION_AUDIENCE")
        service = build_federation_service(
            FederationSettings(), http_client=jwks_http, directory=directory
        )
        app = create_app()
        app.dependency_overrides[get_federation_service] = lambda: service
        async with AsyncClient(
            transport=ASGITransport(app=app), base_url="http://test"
        ) as ac:
            resp = await ac.post(
                "/verifyAndMint",
                json={"data": {"idToken": make_id_token(provider_key)}},
            )
        assert resp.status_code == 400
        assert resp.json()["error"]["status"] == "FAILED_PRECONDITION"

    @pytest.mark.asyncio
    async def test_jwks_outage_is_unavailable(
        self,
        client: AsyncClient,
        jwks_endpoint: JwksEndpoint,
        provider_key: SessionKeyPair,
    ) -> None:
        jwks_endpoint.status_code = 503
        resp = await client.post(
            "/verifyAndMint", json={"data": {"idToken": make_id_token(provider_key)}}
        )
        assert resp.status_code == 503
        assert resp.json()["error"]["status"] == "UNAVAILABLE"

    @pytest.mark.asyncio
    async def test_directory_failure_is_internal_without_details(
        self,
        client: AsyncClient,
        directory: FakeDirectory,
        provider_key: SessionKeyPair,
    ) -> None:
        directory.fail_create = BrokenDirectoryError("db password rejected")
        resp = await client.post(
            "/verifyAndMint", json={"data": {"idToken": make_id_token(provider_key)}}
        )
        assert resp.status_code == 500
        error = resp.json()["error"]
        assert error["status"] == "INTERNAL"
        assert "password" not in error["message"]


class TestVerifyTokenEndpoint:
    """Tests for POST /verifyToken."""

    @pytest.mark.asyncio
    async def test_success(
        self,
        client: AsyncClient,
        directory: FakeDirectory,
        provider_key: SessionKeyPair,
    ) -> None:
        resp = await client.post(
            "/verifyToken", json={"data": {"idToken": make_id_token(provider_key)}}
        )
        assert resp.status_code == 200
        result = resp.json()["result"]
        assert result["valid"] is True
        assert result["header"]["alg"] == "RS256"
        assert result["payload"]["sub"] == "user-42"
        assert directory.users == {}

    @pytest.mark.asyncio
    async def test_non_object_data_is_invalid_argument(
        self, client: AsyncClient
    ) -> None:
        resp = await client.post("/verifyToken", json={"data": "x"})
        assert resp.status_code == 400
        assert resp.json()["error"]["status"] == "INVALID_ARGUMENT"

    @pytest.mark.asyncio
    async def test_rejected(self, client: AsyncClient, provider_key: SessionKeyPair) -> None:
        token = make_id_token(provider_key, claims={"aud": "elsewhere"})
        resp = await client.post("/verifyToken", json={"data": {"idToken": token}})
        assert resp.status_code == 401
