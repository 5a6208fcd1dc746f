"""
FastAPI application factory for MetaStore.

Usage:
    uvicorn metastore.api.app:create_app --factory --port 8090
    metastore-server
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .._version import __version__
from ..clock import Clock
from ..config import Settings
from ..errors import MetaStoreError
from ..store import AttributeStores
from .routes import router

logger = logging.getLogger(__name__)

# HTTP status per MetaStoreError code
ERROR_STATUS = {
    "CONFIGURATION_ERROR": 404,
    "DECODE_ERROR": 422,
    "CONCURRENCY_CONFLICT": 409,
    "SCHEMA_ERROR": 500,
    "STORAGE_ERROR": 500,
}


def create_app(
    settings: Settings | None = None,
    stores: AttributeStores | None = None,
    clock: Clock | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Settings (loaded from the environment if omitted)
        stores: Attribute store factory (built from settings if omitted)
        clock: Timestamp source for stores built from settings

    Returns:
        FastAPI application
    """
    settings = settings or Settings()

    if stores is None:
        registry = settings.load_registry()
        database = settings.open_database()
        database.ensure_schema(registry)
        registry.freeze()
        stores = AttributeStores(database, registry, clock=clock)

    app = FastAPI(
        title="MetaStore",
        description="Typed key/value attributes for registered entity types.",
        version=__version__,
    )
    app.state.settings = settings
    app.state.stores = stores

    @app.exception_handler(MetaStoreError)
    async def metastore_error_handler(request: Request, exc: MetaStoreError) -> JSONResponse:
        status = ERROR_STATUS.get(exc.code, 500)
        if status >= 500:
            logger.error(f"HTTP handler error: {exc.message}", exc_info=exc)
        return JSONResponse(
            {"error": exc.message, "error_code": exc.code, "details": exc.details},
            status_code=status,
        )

    app.include_router(router, prefix="/v1")

    @app.get("/v1/health")
    def health():
        return {
            "status": "healthy",
            "service": "metastore",
            "entity_types": len(stores.registry),
        }

    return app


def main() -> None:
    """Run the HTTP service with uvicorn."""
    import uvicorn

    from ..logging_setup import setup_logging

    settings = Settings()
    setup_logging(settings)
    settings.log_config()
    uvicorn.run(create_app(settings), host=settings.http_host, port=settings.http_port)


if __name__ == "__main__":
    main()
