"""
Custom Exceptions
Domain error taxonomy shared by services and the HTTP boundary
Source: https://fastapi.tiangolo.com/tutorial/handling-errors/
Verified: 2026-10-18
"""

from typing import Any

from fastapi import HTTPException, status


class AuthenticationError(HTTPException):
    """Raised when the upstream identity headers are missing or malformed"""

    def __init__(self, detail: str = "Could not identify the caller"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
        )


# =============================================================================
# Domain Errors
# =============================================================================


class ServiceError(Exception):
    """
    Base class for errors raised by the claims and ledger core.

    Every subclass carries a stable ``error_kind`` that clients can switch on
    and the HTTP status used when the error reaches the API boundary.
    """

    error_kind: str = "internal_error"
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal error"

    def __init__(self, message: str | None = None, errors: list[str] | None = None):
        self.message = message or self.default_message
        self.errors = errors or []
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "success": False,
            "error": self.error_kind,
            "detail": self.message,
        }
        if self.errors:
            payload["errors"] = self.errors
        return payload


class ValidationError(ServiceError):
    """Raised when input is malformed or missing"""

    error_kind = "validation_error"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_message = "Validation error"


class InvalidAmount(ValidationError):
    """Raised when a money amount is zero, negative or not a number"""

    error_kind = "invalid_amount"
    default_message = "Amount must be greater than zero"


class NotFound(ServiceError):
    """Raised when a referenced entity does not exist"""

    error_kind = "not_found"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


class InvalidClaimState(ServiceError):
    """Raised when a claim transition is not allowed from the current status"""

    error_kind = "invalid_claim_state"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Transition not allowed for the current claim status"


class InvalidState(ServiceError):
    """Raised when a non-claim aggregate is in the wrong state for an operation"""

    error_kind = "invalid_state"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Operation not allowed in the current state"


class ServiceNotCovered(ServiceError):
    """Raised when the plan does not cover the billed service type"""

    error_kind = "service_not_covered"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_message = "Service is not covered by the plan"


class InsufficientFunds(ServiceError):
    """Raised when a debit exceeds the available balance"""

    error_kind = "insufficient_funds"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Insufficient balance"


class CurrencyMismatch(ServiceError):
    """Raised when an amount's currency differs from the wallet currency"""

    error_kind = "currency_mismatch"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_message = "Currency does not match the wallet currency"


class AlreadyPaid(ServiceError):
    """Raised when a claim has already been settled"""

    error_kind = "already_paid"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Claim has already been paid"


class PermissionDenied(ServiceError):
    """Raised when the caller's role or ownership does not allow the operation"""

    error_kind = "permission_denied"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Permission denied"


class ConcurrentModification(ServiceError):
    """Raised when another request changed the same aggregate first"""

    error_kind = "concurrent_modification"
    status_code = status.HTTP_409_CONFLICT
    default_message = "The record was modified by another request; retry the operation"


class InternalError(ServiceError):
    """Raised for unexpected or storage failures"""
