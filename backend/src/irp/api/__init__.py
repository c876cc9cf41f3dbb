"""FastAPI routes and API modules for IRP.

Provides the error response envelope and exception handlers.
"""

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..errors import DOMAIN_ERRORS, ReportError
from ..logging import get_logger


# =========================
# Response Models
# =========================


class ErrorResponse(BaseModel):
    """Standard error response."""

    success: bool = False
    error: str
    error_code: str


# =========================
# Exception Handlers
# =========================


async def report_error_handler(request: Request, exc: ReportError) -> JSONResponse:
    """Handle workflow errors.

    Domain errors carry their message to the client; collaborator failures
    are logged and reported with a generic message.
    """
    message = exc.message
    if not isinstance(exc, DOMAIN_ERRORS):
        logger = get_logger(__name__)
        logger.error(
            f"{type(exc).__name__}: {exc.message}",
            extra={"path": request.url.path, "error_code": exc.error_code},
        )
        message = "The request could not be completed. Please try again later."

    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=message, error_code=exc.error_code).model_dump(),
        headers={"X-Error-Code": exc.error_code},
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle generic HTTPException."""
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=str(exc.detail),
            error_code="HTTP_ERROR",
        ).model_dump(),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger = get_logger(__name__)
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error="An unexpected error occurred",
            error_code="INTERNAL_ERROR",
        ).model_dump(),
    )


def register_exception_handlers(app):
    """Register exception handlers with the FastAPI app."""
    app.add_exception_handler(ReportError, report_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
