"""Outbound interface to the identity directory."""

from collections.abc import Mapping
from typing import Any, Protocol

from idbridge.federation.types import UserRecord


class DirectoryError(Exception):
    """Any failure reported by the identity directory."""


class UserAlreadyExistsError(DirectoryError):
    """A record with the requested uid already exists."""


class EmailAlreadyExistsError(DirectoryError):
    """Another record already holds the requested email."""


class IdentityDirectory(Protocol):
    """Stores user records and signs session tokens for them."""

    async def get_user(self, uid: str) -> UserRecord | None: ...

    async def create_user(self, uid: str, email: str | None = None) -> UserRecord: ...

    async def create_custom_token(self, uid: str, claims: Mapping[str, Any]) -> str: ...
