"""
Application Error Taxonomy

Every failure the API reports deliberately is an AppError subclass carrying
its HTTP status and a machine-readable code. The exception handlers in
orderflow.main turn them into JSON bodies of the form:

    {"message": "...", "code": "NOT_FOUND", "details": ..., "error": ...}

The optional ``error`` marker lets clients attach a failure to a specific
form field (e.g. ``duplicate_table_number``).
"""

from enum import Enum
from typing import Any, Optional


class ErrorCode(str, Enum):
    VALIDATION_ERROR = "VALIDATION_ERROR"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class AppError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code: int = 500
    code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(
        self,
        message: str,
        details: Any = None,
        error: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details
        self.error = error

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        body: dict[str, Any] = {"message": self.message, "code": self.code.value}
        if self.details is not None:
            body["details"] = self.details
        if self.error is not None:
            body["error"] = self.error
        return body


class ValidationError(AppError):
    """Malformed or missing input."""
    status_code = 400
    code = ErrorCode.VALIDATION_ERROR


class UnauthorizedError(AppError):
    status_code = 401
    code = ErrorCode.UNAUTHORIZED


class ForbiddenError(AppError):
    status_code = 403
    code = ErrorCode.FORBIDDEN


class NotFoundError(AppError):
    status_code = 404
    code = ErrorCode.NOT_FOUND


class ConflictError(AppError):
    status_code = 409
    code = ErrorCode.CONFLICT


# =============================================================================
# DOMAIN ERRORS
# =============================================================================

class InvalidStatusError(ValidationError):
    """Requested status is not one of the known values."""

    def __init__(self, value: Any, valid: list[str], kind: str = "order status"):
        super().__init__(
            f"Invalid {kind}",
            details={"value": value, "validStatuses": valid},
        )


class InvalidPriorityError(ValidationError):
    def __init__(self, value: Any, valid: list[str]):
        super().__init__(
            "Invalid priority value",
            details={"value": value, "validPriorities": valid},
            error=f"Priority must be one of: {', '.join(valid)}",
        )


class InvalidTransitionError(ConflictError):
    """Status change rejected by the strict transition table."""

    def __init__(self, current: str, target: str, allowed: list[str]):
        super().__init__(
            f"Cannot move order from '{current}' to '{target}'",
            details={"from": current, "to": target, "allowed": allowed},
            error="invalid_status_transition",
        )


class OrderNotFoundError(NotFoundError):
    def __init__(self, order_id: int):
        super().__init__("Order not found", details={"orderId": order_id})


class TableNotFoundError(NotFoundError):
    def __init__(self, table_id: int):
        super().__init__("Table not found", details={"tableId": table_id})


class DuplicateTableNumberError(ConflictError):
    """
    Table number already taken, by an active or a soft-deleted table.

    Reported as 400 with the ``duplicate_table_number`` marker so existing
    clients can attach it to the table-number field.
    """

    status_code = 400

    def __init__(self, table_number: int):
        super().__init__(
            "A table with this number already exists. Please choose a different table number.",
            details={"tableNumber": table_number},
            error="duplicate_table_number",
        )
