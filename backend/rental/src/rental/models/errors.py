"""Standard error codes for order and payment operations.

Every failure the engine reports to a caller is a RentalError carrying one of
these codes, so the HTTP layer can map it to a stable status and body.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class ErrorCode(str, Enum):
    """Stable error kinds surfaced by the order engine."""

    VALIDATION_ERROR = "ERR_VALIDATION"
    ORDER_NOT_FOUND = "ERR_ORDER_NOT_FOUND"
    CAR_NOT_FOUND = "ERR_CAR_NOT_FOUND"
    FORBIDDEN = "ERR_FORBIDDEN"

    # Conflicts
    CAR_UNAVAILABLE = "ERR_CAR_UNAVAILABLE"
    BOOKING_CONFLICT = "ERR_BOOKING_CONFLICT"
    CONCURRENT_UPDATE = "ERR_CONCURRENT_UPDATE"

    INVALID_TRANSITION = "ERR_INVALID_TRANSITION"

    # Payment gating
    PAYMENT_REQUIRED = "ERR_PAYMENT_REQUIRED"
    PAYMENT_VERIFICATION_FAILED = "ERR_PAYMENT_VERIFICATION_FAILED"

    # Midtrans unreachable or erroring
    UPSTREAM_ERROR = "ERR_UPSTREAM"


ERROR_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.VALIDATION_ERROR: "The request is invalid",
    ErrorCode.ORDER_NOT_FOUND: "Order not found",
    ErrorCode.CAR_NOT_FOUND: "Car not found",
    ErrorCode.FORBIDDEN: "You are not allowed to perform this action",
    ErrorCode.CAR_UNAVAILABLE: "Car is not available for rent",
    ErrorCode.BOOKING_CONFLICT: "Car is not available for the selected dates",
    ErrorCode.CONCURRENT_UPDATE: "The order was modified by another request",
    ErrorCode.INVALID_TRANSITION: "This status change is not allowed",
    ErrorCode.PAYMENT_REQUIRED: "Payment must be completed before confirming order",
    ErrorCode.PAYMENT_VERIFICATION_FAILED: "Unable to verify payment status",
    ErrorCode.UPSTREAM_ERROR: "Payment provider request failed",
}

ERROR_RECOVERY: dict[ErrorCode, str] = {
    ErrorCode.VALIDATION_ERROR: "Correct the request and try again",
    ErrorCode.ORDER_NOT_FOUND: "Verify the order ID",
    ErrorCode.CAR_NOT_FOUND: "Verify the car ID",
    ErrorCode.FORBIDDEN: "Only the customer or seller of the order may do this",
    ErrorCode.CAR_UNAVAILABLE: "Choose another car",
    ErrorCode.BOOKING_CONFLICT: "Choose different dates or another car",
    ErrorCode.CONCURRENT_UPDATE: "Reload the order and try again",
    ErrorCode.INVALID_TRANSITION: "Check the current order status",
    ErrorCode.PAYMENT_REQUIRED: "Ask the customer to complete payment",
    ErrorCode.PAYMENT_VERIFICATION_FAILED: "Please try again later",
    ErrorCode.UPSTREAM_ERROR: "Please try again later",
}


class ErrorResponse(BaseModel):
    """Standard error body returned for RentalError failures."""

    model_config = ConfigDict(strict=True)

    success: bool = False
    error_code: ErrorCode
    message: str
    recovery: str
    details: Optional[dict[str, str]] = None

    @classmethod
    def from_code(
        cls,
        code: ErrorCode,
        details: Optional[dict[str, str]] = None,
        message: Optional[str] = None,
    ) -> "ErrorResponse":
        """Create an ErrorResponse from an error code.

        Args:
            code: The error code
            details: Optional additional context about the error
            message: Overrides the default message for the code

        Returns:
            An ErrorResponse with the message and recovery hint for the code.
        """
        return cls(
            error_code=code,
            message=message or ERROR_MESSAGES[code],
            recovery=ERROR_RECOVERY[code],
            details=details,
        )


class RentalError(Exception):
    """Exception raised by order and payment operations.

    Terminal for the triggering request; the API layer converts it to an
    ErrorResponse with the status mapped from its code.
    """

    def __init__(
        self,
        code: ErrorCode,
        details: Optional[dict[str, str]] = None,
        message: Optional[str] = None,
    ):
        self.code = code
        self.message = message or ERROR_MESSAGES[code]
        self.recovery = ERROR_RECOVERY[code]
        self.details = details
        super().__init__(self.message)

    def to_error_response(self) -> ErrorResponse:
        """Convert this exception to an ErrorResponse."""
        return ErrorResponse.from_code(self.code, self.details, self.message)
