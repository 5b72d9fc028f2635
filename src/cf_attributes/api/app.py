"""
cf_attributes.api.app

FastAPI app factory for the enrichment service.

Responsibilities:
- Build the FastAPI application and register routers/middleware.
- Start and stop the attributes processor (platform client + metadata cache) with the app.
- Provide a single composition root where cross-cutting concerns live.
"""

from __future__ import annotations

from fastapi import FastAPI

from cf_attributes import __version__
from cf_attributes.api.routers.cache import router as cache_router
from cf_attributes.api.routers.enrich import router as enrich_router
from cf_attributes.api.routers.health import router as health_router
from cf_attributes.observability.logging import configure_logging, get_logger
from cf_attributes.observability.middleware import RequestContextMiddleware
from cf_attributes.services.processor import AttributesProcessor
from cf_attributes.settings import Settings

log = get_logger(__name__)


def create_app(*, settings: Settings, processor: AttributesProcessor | None = None) -> FastAPI:
    configure_logging(
        service_name=settings.service_name, level=settings.log_level, fmt=settings.log_format
    )

    app = FastAPI(
        title="Cloud Foundry Attributes Enricher",
        version=__version__,
        docs_url="/docs",
        openapi_url="/openapi.json",
    )

    app.add_middleware(RequestContextMiddleware)
    app.include_router(health_router, tags=["health"])
    app.include_router(enrich_router)
    app.include_router(cache_router)

    app.state.processor = processor or AttributesProcessor(settings=settings)

    @app.on_event("startup")
    async def _startup() -> None:
        log.info("startup", env=settings.env)
        # ConfigurationError/FetchError here abort startup; the service must not serve half-wired.
        await app.state.processor.start()

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        await app.state.processor.stop()
        log.info("shutdown")

    return app


# --- Module Notes -----------------------------------------------------------
# Business logic stays in `services` and `enrichment`; this file only composes.
