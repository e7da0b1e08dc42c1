"""Exception handlers converting domain exceptions into HTTP responses."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from sonicat.domain.exceptions import (
    ConfigurationException,
    EntityNotFoundException,
    ScanCancelledException,
    ScanInProgressException,
    ValidationException,
)

logger = logging.getLogger(__name__)


# Hey future me, register these during app setup (create_app), BEFORE any request arrives.
# Without them domain exceptions leak out as 500s.
def register_exception_handlers(app: FastAPI) -> None:
    """Register handlers for domain exceptions.

    Args:
        app: FastAPI application instance
    """

    @app.exception_handler(ScanInProgressException)
    async def scan_in_progress_handler(
        request: Request, exc: ScanInProgressException
    ) -> JSONResponse:
        """A second scan request while scanning gets 409 Conflict."""
        logger.info("Rejected scan request at %s: %s", request.url.path, exc.message)
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={"detail": exc.message},
        )

    @app.exception_handler(ScanCancelledException)
    async def scan_cancelled_handler(
        request: Request, exc: ScanCancelledException
    ) -> JSONResponse:
        """A cleanup cancelled via /scan/cancel ends with 409, nothing was swept."""
        logger.info("Cancelled run at %s: %s", request.url.path, exc.message)
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={"detail": exc.message},
        )

    @app.exception_handler(EntityNotFoundException)
    async def entity_not_found_handler(
        request: Request, exc: EntityNotFoundException
    ) -> JSONResponse:
        logger.info(
            "Entity not found at %s: %s %s",
            request.url.path,
            exc.entity_type,
            exc.entity_id,
        )
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"detail": exc.message},
        )

    @app.exception_handler(ValidationException)
    async def validation_exception_handler(
        request: Request, exc: ValidationException
    ) -> JSONResponse:
        logger.warning("Validation error at %s: %s", request.url.path, exc.message)
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"detail": exc.message},
        )

    @app.exception_handler(ConfigurationException)
    async def configuration_exception_handler(
        request: Request, exc: ConfigurationException
    ) -> JSONResponse:
        logger.error("Configuration error at %s: %s", request.url.path, exc.message)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": exc.message},
        )
