"""Test doubles shared across the suite."""

import asyncio
import time
from collections.abc import Mapping
from typing import Any

import httpx
import jwt

from idbridge.crypto.keys import SessionKeyPair, to_public_jwk
from idbridge.federation.ports import DirectoryError, UserAlreadyExistsError
from idbridge.federation.types import UserRecord

ISSUER = "https://idp.example.test"
AUDIENCE = "project-123"
JWKS_URI = "https://idp.example.test/.well-known/jwks"
SUBJECT = "user-42"
EMAIL = "alice@example.com"


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def jwks_for(*keys: SessionKeyPair) -> dict[str, Any]:
    return {"keys": [to_public_jwk(k.public_pem, k.kid).model_dump() for k in keys]}


class JwksEndpoint:
    """Stands in for the provider's JWKS URL."""

    def __init__(self, document: Any) -> None:
        self.document = document
        self.status_code = 200
        self.calls = 0

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls += 1
        return httpx.Response(self.status_code, json=self.document)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


def make_id_token(
    key: SessionKeyPair,
    *,
    claims: Mapping[str, Any] | None = None,
    drop: tuple[str, ...] = (),
    kid: str | None = None,
    omit_kid: bool = False,
    now: float | None = None,
) -> str:
    """Sign a provider ID token with sensible defaults."""
    issued = int(now if now is not None else time.time())
    payload: dict[str, Any] = {
        "iss": ISSUER,
        "aud": AUDIENCE,
        "sub": SUBJECT,
        "email": EMAIL,
        "email_verified": True,
        "iat": issued,
        "exp": issued + 300,
    }
    payload.update(claims or {})
    for name in drop:
        payload.pop(name, None)
    headers = {} if omit_kid else {"kid": kid or key.kid}
    return jwt.encode(payload, key.private_pem, algorithm="RS256", headers=headers)


class FakeDirectory:
    """In-memory identity directory.

    ``get_user`` yields to the loop so concurrent callers can all observe a
    missing record before any of them creates it.
    """

    def __init__(self) -> None:
        self.users: dict[str, UserRecord] = {}
        self.create_calls = 0
        self.minted: list[tuple[str, dict[str, Any]]] = []
        self.fail_get: Exception | None = None
        self.fail_create: Exception | None = None
        self.fail_mint: Exception | None = None
        self.delay_s = 0.0

    async def get_user(self, uid: str) -> UserRecord | None:
        await asyncio.sleep(self.delay_s)
        if self.fail_get is not None:
            raise self.fail_get
        return self.users.get(uid)

    async def create_user(self, uid: str, email: str | None = None) -> UserRecord:
        self.create_calls += 1
        await asyncio.sleep(0)
        if self.fail_create is not None:
            raise self.fail_create
        if uid in self.users:
            raise UserAlreadyExistsError(uid)
        self.users[uid] = UserRecord(uid=uid, email=email)
        return self.users[uid]

    async def create_custom_token(self, uid: str, claims: Mapping[str, Any]) -> str:
        if self.fail_mint is not None:
            raise self.fail_mint
        self.minted.append((uid, dict(claims)))
        return f"session-token-for-{uid}"


class BrokenDirectoryError(DirectoryError):
    """Raised by tests to simulate a directory outage."""


class MemoryDocumentStore:
    """Dict-backed document store."""

    def __init__(self) -> None:
        self.documents: dict[str, dict[str, Any]] = {}

    async def get(self, path: str) -> dict[str, Any] | None:
        return self.documents.get(path)

    async def set(self, path: str, data: dict[str, Any]) -> None:
        self.documents[path] = dict(data)

    async def merge(self, path: str, data: dict[str, Any]) -> None:
        self.documents[path] = {**self.documents.get(path, {}), **data}

    async def delete(self, path: str) -> None:
        self.documents.pop(path, None)

    async def exists(self, path: str) -> bool:
        return path in self.documents
