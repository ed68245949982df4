"""
Centralized error handlers for FastAPI.

Maps domain error families to HTTP responses.
No stack traces or internal details are exposed to clients.
All error responses share the body {"error": <kind>, "message": <reason>}.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from lotqueue.domain.trading.errors import (
    ConflictError,
    EligibilityError,
    InvalidStateError,
    NotFoundError,
    TradingDomainError,
    ValidationError,
)

logger = logging.getLogger(__name__)

HTTP_400 = 400
HTTP_404 = 404
HTTP_409 = 409
HTTP_422 = 422
HTTP_500 = 500
HTTP_503 = 503

_HTTP_KINDS = {
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
}


def _error_response(status_code: int, error: str, message: str) -> JSONResponse:
    """Build a consistent JSON error response."""
    return JSONResponse(status_code=status_code, content={"error": error, "message": message})


def register_error_handlers(app: FastAPI) -> None:
    """Register all domain error handlers on the FastAPI application.

    Handlers are keyed on the error families, so new subclasses are
    mapped without touching this module.

    Args:
        app: The FastAPI application instance.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation(_request: Request, exc: ValidationError) -> JSONResponse:
        """Handle malformed or out-of-range input."""
        logger.warning("Validation failed: %s", exc.message)
        return _error_response(HTTP_422, "validation_error", exc.message)

    @app.exception_handler(EligibilityError)
    async def handle_eligibility(_request: Request, exc: EligibilityError) -> JSONResponse:
        """Handle business-rule rejections."""
        logger.info("Request rejected (%s): %s", type(exc).__name__, exc.message)
        return _error_response(HTTP_400, "not_eligible", exc.message)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(_request: Request, exc: NotFoundError) -> JSONResponse:
        """Handle references to missing records."""
        logger.warning("Not found: %s", exc.message)
        return _error_response(HTTP_404, "not_found", exc.message)

    @app.exception_handler(InvalidStateError)
    async def handle_invalid_state(_request: Request, exc: InvalidStateError) -> JSONResponse:
        """Handle operations on records in the wrong state."""
        logger.warning("Invalid state: %s", exc.message)
        return _error_response(HTTP_409, "invalid_state", exc.message)

    @app.exception_handler(ConflictError)
    async def handle_conflict(_request: Request, exc: ConflictError) -> JSONResponse:
        """Handle contention that outlasted the retries."""
        logger.error("Conflict not resolved by retries: %s", exc.reason)
        return _error_response(HTTP_503, "conflict", "The ledger is busy, please retry")

    @app.exception_handler(TradingDomainError)
    async def handle_trading_domain(_request: Request, exc: TradingDomainError) -> JSONResponse:
        """Catch-all for unmapped trading domain errors."""
        logger.error("Unhandled trading domain error: %s", exc.message)
        return _error_response(HTTP_500, "internal_error", "Internal server error")

    @app.exception_handler(StarletteHTTPException)
    async def handle_http(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
        """Reshape framework HTTP errors (401, 403, unknown routes)."""
        kind = _HTTP_KINDS.get(exc.status_code, "http_error")
        return _error_response(exc.status_code, kind, str(exc.detail))

    @app.exception_handler(Exception)
    async def handle_unexpected(_request: Request, exc: Exception) -> JSONResponse:
        """Catch-all for unexpected errors. Never exposes internals."""
        logger.exception("Unexpected error: %s", type(exc).__name__)
        return _error_response(HTTP_500, "internal_error", "Internal server error")
