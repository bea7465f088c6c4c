"""FastAPI application factory."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from meal_subscriptions.api.admin import router as admin_router
from meal_subscriptions.app_logging import configure_logging
from meal_subscriptions.containers import AppContainer
from meal_subscriptions.domain.errors import (
    EngineError,
    ExternalServiceError,
    InvalidArgument,
    NotFound,
    PersistenceError,
    PricingUnresolved,
)

_STATUS_BY_ERROR: tuple[tuple[type[EngineError], int], ...] = (
    (InvalidArgument, status.HTTP_400_BAD_REQUEST),
    (NotFound, status.HTTP_404_NOT_FOUND),
    (PricingUnresolved, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (PersistenceError, status.HTTP_502_BAD_GATEWAY),
    (ExternalServiceError, status.HTTP_502_BAD_GATEWAY),
)


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    app = FastAPI()
    app.state.container = container

    app.include_router(admin_router)

    @app.exception_handler(EngineError)
    async def engine_error_handler(request: Request, exc: EngineError) -> JSONResponse:
        status_code = _status_for(exc)
        if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
            logger.error("Request failed: path=%s error=%s", request.url.path, exc)
        return JSONResponse(
            status_code=status_code,
            content={"error": str(exc), "kind": exc.kind},
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    return app


def _status_for(exc: EngineError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR
