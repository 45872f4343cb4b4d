"""Remote JWKS retrieval and caching with single-flight refresh."""

import asyncio
import time
from collections.abc import Callable, Mapping
from typing import Any

import httpx
import jwt
import structlog
from pydantic import BaseModel, ConfigDict

from idbridge.federation.errors import KeyNotFound, KeySetUnavailable

logger = structlog.get_logger(__name__)

ALLOWED_ALGORITHMS = frozenset(
    {
        "RS256",
        "RS384",
        "RS512",
        "PS256",
        "PS384",
        "PS512",
        "ES256",
        "ES384",
        "ES512",
        "EdDSA",
    }
)
_EC_CURVE_ALGORITHMS = {"P-256": "ES256", "P-384": "ES384", "P-521": "ES512"}


class VerificationKey(BaseModel):
    """A single public key usable for signature checks."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    kid: str | None
    algorithm: str
    key: Any


class RemoteKeySet(BaseModel):
    """Key material as of one successful fetch of the JWKS document."""

    model_config = ConfigDict(frozen=True)

    source_url: str
    fetched_at: float
    keys: tuple[VerificationKey, ...] = ()

    @property
    def kids(self) -> list[str]:
        return [k.kid for k in self.keys if k.kid is not None]

    def find(self, kid: str | None, algorithm: str | None = None) -> VerificationKey | None:
        """Look up by kid; without a kid, accept a single unambiguous candidate."""
        if kid is not None:
            for key in self.keys:
                if key.kid == kid:
                    return key
            return None
        candidates = [
            k for k in self.keys if algorithm is None or k.algorithm == algorithm
        ]
        if len(candidates) == 1:
            return candidates[0]
        return None


def _infer_algorithm(jwk_data: Mapping[str, Any]) -> str | None:
    """Pick the signing algorithm a JWK is meant for."""
    alg = jwk_data.get("alg")
    if isinstance(alg, str) and alg:
        return alg
    kty = jwk_data.get("kty")
    if kty == "RSA":
        return "RS256"
    if kty == "EC":
        return _EC_CURVE_ALGORITHMS.get(str(jwk_data.get("crv")))
    if kty == "OKP":
        return "EdDSA"
    return None


def _build_key(jwk_data: Any) -> VerificationKey | None:
    """Turn one JWK entry into a verification key, or None if unusable."""
    if not isinstance(jwk_data, dict):
        return None
    use = jwk_data.get("use")
    if use is not None and use != "sig":
        return None
    algorithm = _infer_algorithm(jwk_data)
    if algorithm not in ALLOWED_ALGORITHMS:
        logger.info("jwks_key_skipped", kid=jwk_data.get("kid"), alg=algorithm)
        return None
    try:
        parsed = jwt.PyJWK(jwk_data, algorithm=algorithm)
    except (jwt.PyJWKError, jwt.InvalidKeyError, ValueError) as exc:
        logger.warning("jwks_key_invalid", kid=jwk_data.get("kid"), error=str(exc))
        return None
    kid = jwk_data.get("kid")
    return VerificationKey(
        kid=str(kid) if kid is not None else None,
        algorithm=algorithm,
        key=parsed.key,
    )


def parse_key_set(document: Any, *, source_url: str, fetched_at: float) -> RemoteKeySet:
    """Parse a JWKS document; unusable entries are dropped."""
    if not isinstance(document, dict) or not isinstance(document.get("keys"), list):
        raise KeySetUnavailable("malformed JWKS document")
    keys = [key for key in map(_build_key, document["keys"]) if key is not None]
    return RemoteKeySet(source_url=source_url, fetched_at=fetched_at, keys=tuple(keys))


class KeySetCache:
    """Process-wide cache of the provider's signing keys.

    Populated lazily, refreshed when stale or when a kid is missing (key
    rotation), never torn down. Concurrent refreshes collapse into one
    network call, and refresh attempts are spaced by a minimum interval so
    a bogus kid cannot hammer the endpoint. A failed refresh keeps serving
    the previous non-empty set.
    """

    def __init__(
        self,
        *,
        jwks_uri: str,
        http_client: httpx.AsyncClient,
        timeout_s: float = 5.0,
        max_age_s: float = 600,
        min_refresh_interval_s: float = 30,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._jwks_uri = jwks_uri
        self._http = http_client
        self._timeout_s = timeout_s
        self._max_age_s = max_age_s
        self._min_refresh_interval_s = min_refresh_interval_s
        self._clock = clock
        self._lock = asyncio.Lock()
        self._key_set: RemoteKeySet | None = None
        self._attempts = 0
        self._last_attempt_at: float | None = None
        self._last_error: KeySetUnavailable | None = None

    @property
    def jwks_uri(self) -> str:
        return self._jwks_uri

    @property
    def key_set(self) -> RemoteKeySet | None:
        """The currently cached key set, if any fetch has succeeded."""
        return self._key_set

    @property
    def fetch_attempts(self) -> int:
        return self._attempts

    def _is_stale(self, key_set: RemoteKeySet) -> bool:
        return self._clock() - key_set.fetched_at >= self._max_age_s

    def _refresh_allowed(self) -> bool:
        if self._last_attempt_at is None:
            return True
        return self._clock() - self._last_attempt_at >= self._min_refresh_interval_s

    async def get_verification_key(
        self, kid: str | None, algorithm: str | None = None
    ) -> VerificationKey:
        """Return the key for ``kid``, refreshing at most once on a miss."""
        seen = self._attempts
        key_set = self._key_set
        if key_set is None:
            if self._last_error is not None and not self._refresh_allowed():
                raise KeySetUnavailable(str(self._last_error))
            key_set = await self._refresh(seen)
        elif self._is_stale(key_set) and self._refresh_allowed():
            key_set = await self._refresh_or_keep(seen, key_set)

        key = key_set.find(kid, algorithm)
        if key is not None:
            return key

        if not self._refresh_allowed():
            logger.info("jwks_refresh_suppressed", kid=kid)
            raise KeyNotFound(f"kid {kid!r} not found in JWKS")

        key_set = await self._refresh(seen)
        key = key_set.find(kid, algorithm)
        if key is None:
            raise KeyNotFound(f"kid {kid!r} not found in JWKS")
        return key

    async def _refresh_or_keep(self, seen: int, current: RemoteKeySet) -> RemoteKeySet:
        try:
            return await self._refresh(seen)
        except KeySetUnavailable as exc:
            if not current.keys:
                raise
            logger.warning(
                "jwks_refresh_failed_serving_cached",
                error=str(exc),
                kids=current.kids,
            )
            return current

    async def _refresh(self, seen: int) -> RemoteKeySet:
        """Single-flight fetch: waiters reuse the result of the call in progress."""
        async with self._lock:
            if self._attempts != seen:
                if self._last_error is not None:
                    raise KeySetUnavailable(str(self._last_error))
                if self._key_set is not None:
                    return self._key_set

            self._attempts += 1
            self._last_attempt_at = self._clock()
            try:
                key_set = await self._fetch()
            except KeySetUnavailable as exc:
                self._last_error = exc
                logger.warning("jwks_refresh_failed", url=self._jwks_uri, error=str(exc))
                raise

            self._last_error = None
            self._key_set = key_set
            logger.info("jwks_refreshed", url=self._jwks_uri, kids=key_set.kids)
            return key_set

    async def _fetch(self) -> RemoteKeySet:
        try:
            response = await self._http.get(
                self._jwks_uri,
                timeout=self._timeout_s,
                headers={"Accept": "application/json"},
            )
            response.raise_for_status()
            document = response.json()
        except httpx.HTTPError as exc:
            raise KeySetUnavailable(f"failed to fetch JWKS: {exc}") from exc
        except ValueError as exc:
            raise KeySetUnavailable("failed to parse JWKS JSON") from exc

        key_set = parse_key_set(
            document, source_url=self._jwks_uri, fetched_at=self._clock()
        )
        previous = self._key_set
        if not key_set.keys and previous is not None and previous.keys:
            raise KeySetUnavailable("JWKS document has no usable keys")
        return key_set
