"""Location document triggers as pure functions.

Each handler maps one write event on ``locations/{uid}`` to the writes it
implies; nothing here touches a store.
"""

import base64
import math
from datetime import UTC, datetime, timedelta
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict, Field, field_validator

from idbridge.core.settings import MirrorSettings
from idbridge.mirror.ports import DeleteDocument, MergeDocument, SetDocument, WriteIntent

logger = structlog.get_logger(__name__)

EXPIRATION_FIELD = "expireAt"


class DocumentChange(BaseModel):
    """A single document write: ``before``/``after`` are None when absent."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    path: str
    before: dict[str, Any] | None = None
    after: dict[str, Any] | None = None
    write_time: datetime = Field(alias="writeTime")

    @field_validator("write_time")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        return value if value.tzinfo is not None else value.replace(tzinfo=UTC)

    @property
    def is_create(self) -> bool:
        return self.before is None and self.after is not None

    @property
    def is_update(self) -> bool:
        return self.before is not None and self.after is not None

    @property
    def is_delete(self) -> bool:
        return self.before is not None and self.after is None


def encode_user_key(uid: str) -> str:
    """Path-safe, reversible document id for a uid."""
    return base64.urlsafe_b64encode(uid.encode()).rstrip(b"=").decode()


def decode_user_key(key: str) -> str:
    padding = "=" * (-len(key) % 4)
    return base64.urlsafe_b64decode(key + padding).decode()


def user_id_from_path(path: str, collection: str) -> str | None:
    """Return ``uid`` for ``{collection}/{uid}``, else None."""
    parts = path.strip("/").split("/")
    if len(parts) == 2 and parts[0] == collection and parts[1]:
        return parts[1]
    return None


def _is_coordinate(value: Any) -> bool:
    return (
        isinstance(value, int | float)
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def _location_fields(document: dict[str, Any]) -> dict[str, Any] | None:
    """Public subset of a location document, or None if it is malformed."""
    lat = document.get("lat")
    lng = document.get("lng")
    geohash = document.get("geohash")
    if not (_is_coordinate(lat) and _is_coordinate(lng)):
        return None
    if not isinstance(geohash, str) or not geohash:
        return None
    return {
        "lat": lat,
        "lng": lng,
        "geohash": geohash,
        "timestamp": document.get("timestamp"),
    }


def project_public_location(
    change: DocumentChange, settings: MirrorSettings
) -> list[WriteIntent]:
    """Mirror a private location into its public, restricted projection."""
    uid = user_id_from_path(change.path, settings.private_collection)
    if uid is None:
        return []
    public_path = f"{settings.public_collection}/{encode_user_key(uid)}"

    if change.after is None:
        if change.before is None:
            return []
        return [DeleteDocument(path=public_path)]

    fields = _location_fields(change.after)
    if fields is None:
        logger.warning("location_projection_skipped", path=change.path)
        return []
    if change.before is not None and _location_fields(change.before) == fields:
        return []

    if fields["timestamp"] is None:
        fields["timestamp"] = change.write_time
    return [SetDocument(path=public_path, data=fields)]


def stamp_expiration(change: DocumentChange, settings: MirrorSettings) -> list[WriteIntent]:
    """On the first update of a location, add its retention deadline."""
    if user_id_from_path(change.path, settings.private_collection) is None:
        return []
    if not change.is_update or change.after is None:
        return []
    if EXPIRATION_FIELD in change.after:
        return []
    expire_at = change.write_time + timedelta(days=settings.retention_days)
    return [MergeDocument(path=change.path, data={EXPIRATION_FIELD: expire_at})]


def handle_location_write(
    change: DocumentChange, settings: MirrorSettings
) -> list[WriteIntent]:
    """All intents implied by one location write."""
    return [
        *project_public_location(change, settings),
        *stamp_expiration(change, settings),
    ]
