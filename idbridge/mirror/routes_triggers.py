"""Document write trigger endpoint for location documents."""

from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from idbridge.api.deps import get_document_store
from idbridge.core.settings import MirrorSettings
from idbridge.mirror.executor import apply_intents
from idbridge.mirror.locations import DocumentChange, handle_location_write
from idbridge.mirror.ports import DocumentStore, WriteIntent

router = APIRouter(prefix="/triggers", tags=["triggers"])


class TriggerResult(BaseModel):
    """Writes performed in response to one event."""

    applied: int
    intents: list[WriteIntent]


def _load_settings() -> MirrorSettings:
    return MirrorSettings()


@router.post("/locations")
async def on_location_written(
    change: DocumentChange,
    store: Annotated[DocumentStore, Depends(get_document_store)],
    settings: Annotated[MirrorSettings, Depends(_load_settings)],
) -> TriggerResult:
    """POST /triggers/locations -- mirror and TTL-stamp a location write."""
    intents = handle_location_write(change, settings)
    applied = await apply_intents(store, intents)
    return TriggerResult(applied=applied, intents=intents)
