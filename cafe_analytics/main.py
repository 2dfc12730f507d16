"""FastAPI application entrypoint."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from cafe_analytics.api.router import api_router
from cafe_analytics.core.config import get_settings
from cafe_analytics.core.errors import (
    AnalyticsError,
    ComputationError,
    NotFoundError,
    PartialWriteError,
    SourceUnavailable,
    ValidationError,
    describe_field_errors,
)
from cafe_analytics.core.logging_config import configure_logging

logger = logging.getLogger(__name__)

ERROR_STATUS: dict[type[AnalyticsError], int] = {
    ValidationError: 422,
    NotFoundError: 404,
    SourceUnavailable: 503,
    ComputationError: 503,
    PartialWriteError: 207,
}


def _status_for(exc: AnalyticsError) -> int:
    for error_type, status_code in ERROR_STATUS.items():
        if isinstance(exc, error_type):
            return status_code
    return 500


async def analytics_error_handler(request: Request, exc: AnalyticsError) -> JSONResponse:
    status_code = _status_for(exc)
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.info("%s %s rejected: %s", request.method, request.url.path, exc.message)

    payload = exc.to_payload()
    if isinstance(exc, PartialWriteError):
        payload["failures"] = [failure.to_payload() for failure in exc.failures]
    return JSONResponse(status_code=status_code, content=jsonable_encoder(payload))


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    error = ValidationError("Invalid request.", context={"errors": describe_field_errors(exc.errors())})
    return await analytics_error_handler(request, error)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    logger.info("Starting %s (env=%s)", settings.app_name, settings.app_env)
    yield
    logger.info("Shutting down %s", settings.app_name)


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""

    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title=settings.app_name,
        version="0.1.0",
        openapi_url=f"{settings.api_prefix}/openapi.json",
        docs_url=f"{settings.api_prefix}/docs",
        redoc_url=f"{settings.api_prefix}/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(AnalyticsError, analytics_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.include_router(api_router, prefix=settings.api_prefix)

    @app.get("/", tags=["system"])
    def root() -> dict[str, str]:
        return {"service": settings.app_name, "status": "running"}

    return app


app = create_app()
