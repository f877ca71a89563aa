"""
Domain errors raised by the service layer.

Every error carries a stable ``kind`` and the HTTP status the API layer maps
it to, so callers can classify failures without parsing messages.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class DomainError(Exception):
    """Base class for caller-visible failures."""

    kind = "error"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(DomainError):
    """Referenced entity is missing or not owned by the stated parent."""

    kind = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class Forbidden(DomainError):
    """The authorization gate denied the action."""

    kind = "forbidden"
    status_code = status.HTTP_403_FORBIDDEN


class Conflict(DomainError):
    """Uniqueness, ownership or class-consistency rule violated."""

    kind = "conflict"
    status_code = status.HTTP_409_CONFLICT


class ValidationFailed(DomainError):
    """Input or persistence-layer constraint rejected the change."""

    kind = "validation_failed"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    logger.info(f"{exc.kind} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error": exc.kind},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Map domain errors to JSON responses."""
    app.add_exception_handler(DomainError, domain_error_handler)
