"""Execution of write intents through a document store."""

from collections.abc import Iterable

import structlog

from idbridge.mirror.ports import (
    DeleteDocument,
    DocumentStore,
    MergeDocument,
    SetDocument,
    WriteIntent,
)

logger = structlog.get_logger(__name__)


async def apply_intents(store: DocumentStore, intents: Iterable[WriteIntent]) -> int:
    """Apply intents in order; returns how many were executed."""
    applied = 0
    for intent in intents:
        match intent:
            case SetDocument(path=path, data=data):
                await store.set(path, data)
            case MergeDocument(path=path, data=data):
                await store.merge(path, data)
            case DeleteDocument(path=path):
                await store.delete(path)
        logger.debug("write_intent_applied", kind=intent.kind, path=intent.path)
        applied += 1
    return applied
