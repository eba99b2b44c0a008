"""FastAPI exception handlers for converting RentalError to HTTP responses.

ErrorCode-to-HTTP status mapping:
- 400 Bad Request: validation, invalid transitions, unverifiable payments
- 402 Payment Required: confirming an order that is not paid
- 403 Forbidden: acting user may not perform the action
- 404 Not Found: order or car missing
- 409 Conflict: car unavailable, overlapping booking, concurrent update
- 502 Bad Gateway: Midtrans failed

Usage:
    from api.exceptions import register_exception_handlers
    register_exception_handlers(app)
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_402_PAYMENT_REQUIRED,
    HTTP_403_FORBIDDEN,
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
    HTTP_500_INTERNAL_SERVER_ERROR,
    HTTP_502_BAD_GATEWAY,
)

from api.models.common import format_validation_errors
from rental.models import ErrorCode, RentalError

logger = logging.getLogger(__name__)

ERROR_CODE_TO_HTTP_STATUS: dict[ErrorCode, int] = {
    ErrorCode.VALIDATION_ERROR: HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_TRANSITION: HTTP_400_BAD_REQUEST,
    ErrorCode.PAYMENT_VERIFICATION_FAILED: HTTP_400_BAD_REQUEST,
    ErrorCode.PAYMENT_REQUIRED: HTTP_402_PAYMENT_REQUIRED,
    ErrorCode.FORBIDDEN: HTTP_403_FORBIDDEN,
    ErrorCode.ORDER_NOT_FOUND: HTTP_404_NOT_FOUND,
    ErrorCode.CAR_NOT_FOUND: HTTP_404_NOT_FOUND,
    ErrorCode.CAR_UNAVAILABLE: HTTP_409_CONFLICT,
    ErrorCode.BOOKING_CONFLICT: HTTP_409_CONFLICT,
    ErrorCode.CONCURRENT_UPDATE: HTTP_409_CONFLICT,
    ErrorCode.UPSTREAM_ERROR: HTTP_502_BAD_GATEWAY,
}


def get_http_status_for_error(code: ErrorCode) -> int:
    """Get HTTP status code for an ErrorCode, defaulting to 400."""
    return ERROR_CODE_TO_HTTP_STATUS.get(code, HTTP_400_BAD_REQUEST)


async def rental_error_handler(request: Request, exc: RentalError) -> JSONResponse:
    """Convert a RentalError to its ErrorResponse body and mapped status."""
    status_code = get_http_status_for_error(exc.code)
    if status_code >= HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)

    return JSONResponse(
        status_code=status_code,
        content=exc.to_error_response().model_dump(mode="json"),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report malformed requests as ERR_VALIDATION with field details."""
    return JSONResponse(
        status_code=HTTP_400_BAD_REQUEST,
        content=format_validation_errors(exc.errors()).model_dump(mode="json"),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log unexpected exceptions and return a generic 500 body."""
    logger.exception("Unhandled exception: %s", exc)

    return JSONResponse(
        status_code=HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "error_code": "ERR_INTERNAL",
            "message": "An unexpected error occurred",
            "recovery": "Please try again later or contact support",
            "details": None,
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app."""
    app.add_exception_handler(RentalError, rental_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, generic_exception_handler)
