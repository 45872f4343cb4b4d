"""FastAPI application factory for the identity federation bridge."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from idbridge.core.logging import configure_logging
from idbridge.core.settings import AppSettings, DirectorySettings, FederationSettings
from idbridge.db.engine import dispose_engine, get_engine, get_session_factory, init_schema
from idbridge.directory.routes_jwks import router as jwks_router
from idbridge.directory.sql_directory import SqlIdentityDirectory
from idbridge.federation.routes_callable import router as callable_router
from idbridge.federation.service import build_federation_service
from idbridge.mirror.routes_triggers import router as triggers_router
from idbridge.mirror.sql_store import SqlDocumentStore

logger = structlog.get_logger(__name__)


def create_app() -> FastAPI:
    """Build and configure the FastAPI application."""
    settings = AppSettings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        configure_logging()
        federation = FederationSettings()
        if not federation.audience_configured:
            logger.warning("audience_not_configured", issuer=federation.issuer_url)

        await init_schema(get_engine())
        session_factory = get_session_factory()
        directory = SqlIdentityDirectory(session_factory, DirectorySettings())

        async with httpx.AsyncClient() as http_client:
            app.state.directory = directory
            app.state.documents = SqlDocumentStore(session_factory)
            app.state.federation = build_federation_service(
                federation, http_client=http_client, directory=directory
            )
            yield
        await dispose_engine()

    app = FastAPI(
        title="Identity Federation Bridge",
        version="0.1.0",
        lifespan=lifespan,
    )

    origins = settings.get_cors_origin_list()
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["GET", "POST"],
            allow_headers=["Authorization", "Content-Type"],
        )

    app.include_router(callable_router)
    app.include_router(jwks_router)
    app.include_router(triggers_router)

    return app
