"""FastAPI server for MeatDesk.

Main entry point for the API server.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core import __version__
from core.config import Settings, load_settings
from core.observability import configure_logging, get_logger
from certificate_resolver import CertificateLookup, ResolutionRegistry
from connectors.ekape import EkapeClient, EkapeConfig
from ingest import IngestStore
from production import ScaleReader, init_production_db

from api.routes import (
    health,
    records,
    certificates,
    production,
    settings as settings_routes,
)


logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    # Startup
    logger.info("MeatDesk API starting up...")
    client = app.state.ekape_client
    if client is not None:
        await client.connect()
    scale = app.state.scale_reader
    if scale is not None:
        scale.start()

    yield

    # Shutdown
    if scale is not None:
        scale.stop()
    if client is not None:
        await client.disconnect()
    logger.info("MeatDesk API shutting down...")


def create_app(
    settings: Optional[Settings] = None,
    lookup: Optional[CertificateLookup] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Overrides environment settings
        lookup: Certificate lookup to use instead of the grading API client
    """
    settings = settings or load_settings()
    configure_logging(
        level=getattr(logging, settings.log_level, logging.INFO),
        json_format=settings.log_json,
        force=True,
    )

    app = FastAPI(
        title="MeatDesk API",
        description="Traceability label intake, grading certificate lookup and production reporting",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    init_production_db(settings.db_path)

    ekape_client = None
    if lookup is None:
        ekape_client = EkapeClient(EkapeConfig.from_settings(settings))
        lookup = ekape_client
        if not settings.ekape_api_key:
            logger.warning("EKAPE_API_KEY not set; certificate lookups will fail")

    app.state.settings = settings
    app.state.store = IngestStore()
    app.state.registry = ResolutionRegistry(lookup, max_finished_runs=settings.max_finished_runs)
    app.state.ekape_client = ekape_client
    app.state.scale_reader = (
        ScaleReader(settings.scale_port, settings.scale_baud) if settings.scale_port else None
    )

    # Include routers
    app.include_router(health.router, tags=["Health"])
    app.include_router(records.router, prefix="/records", tags=["Records"])
    app.include_router(certificates.router, prefix="/certificates", tags=["Certificates"])
    app.include_router(production.router, prefix="/production", tags=["Production"])
    app.include_router(settings_routes.router, prefix="/settings", tags=["Settings"])

    return app


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("api.server:create_app", factory=True, host="0.0.0.0", port=8000, reload=True)
