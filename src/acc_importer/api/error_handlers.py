"""JSON rendering of application errors."""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from acc_importer.errors import UpstreamHttpError, UserError

_logger = logging.getLogger(__name__)


async def user_error_handler(_: Request, exc: Exception) -> JSONResponse:
    """Render caller-facing errors with their status code."""
    status_code = getattr(exc, "status_code", 400)
    return JSONResponse(status_code=status_code, content={"error": str(exc)})


async def upstream_error_handler(_: Request, exc: UpstreamHttpError) -> JSONResponse:
    """Propagate upstream status and body for diagnosis."""
    _logger.warning(
        "Upstream request failed",
        extra={"action": exc.action, "status": exc.status_code},
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.action, "status": exc.status_code, "details": exc.body},
    )


async def general_exception_handler(_: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected errors (500)."""
    _logger.exception("Unexpected error: %s", exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


async def render_error(request: Request, exc: Exception) -> JSONResponse:
    """Render ``exc`` the way the registered exception handlers would."""
    if isinstance(exc, UpstreamHttpError):
        return await upstream_error_handler(request, exc)
    if isinstance(exc, UserError):
        return await user_error_handler(request, exc)
    return await general_exception_handler(request, exc)
