import logging
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from greenbook.config import settings
from greenbook.exceptions import ConfigError, DataSourceError, NotFoundError
from greenbook.api import deps
from greenbook.api.middleware import add_request_id, log_requests

# Routers
from greenbook.api.routers import aars, events, hierarchy, system

# Configure logging
logging.basicConfig(level=getattr(logging, settings.logging.level.upper(), logging.INFO))
logger = logging.getLogger("greenbook.api")


def _error_payload(request: Request, error: str, detail: str) -> dict:
    payload = {"error": error, "detail": detail}
    rid = getattr(request.state, "request_id", None)
    if rid:
        payload["request_id"] = rid
    return payload


def create_app(data_file: Optional[Path] = None) -> FastAPI:
    """
    Factory to build the FastAPI application.
    Passing data_file points the store at a different snapshot (used by tests).
    """
    if data_file:
        settings.paths.data_file = Path(data_file)
    deps.reset_cache()

    app = FastAPI(title="GreenBook AAR API", version=settings.app.version)

    # Custom Middleware
    app.middleware("http")(add_request_id)
    if settings.logging.log_requests:
        app.middleware("http")(log_requests)

    app.include_router(system.router)
    app.include_router(hierarchy.router)
    app.include_router(aars.router)
    app.include_router(events.router)

    @app.exception_handler(DataSourceError)
    async def datasource_exception_handler(request: Request, exc: DataSourceError):
        return JSONResponse(status_code=422, content=_error_payload(request, "invalid_source", str(exc)))

    @app.exception_handler(NotFoundError)
    async def not_found_exception_handler(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content=_error_payload(request, "not_found", str(exc)))

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        if isinstance(exc, StarletteHTTPException):
            return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})
        if isinstance(exc, ConfigError):
            logger.error(f"Configuration error: {exc}")
            return JSONResponse(status_code=500, content=_error_payload(request, "config_error", str(exc)))

        rid = getattr(request.state, "request_id", None)
        logger.exception("Unhandled error", extra={"path": str(request.url), "request_id": rid})
        return JSONResponse(
            status_code=500, content=_error_payload(request, "internal_error", "Unexpected server error")
        )

    return app


# Module-level app for uvicorn entrypoint
app = create_app()
