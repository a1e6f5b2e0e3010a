from __future__ import annotations

from typing import Any, Dict, Optional


class DomainError(Exception):
    """Base exception for business rule violations.

    Carries the HTTP status the boundary layer should answer with and any
    structured context the caller needs to render a precise message.
    """

    http_status = 400

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = context

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, **self.context}


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class InvalidRangeError(ValidationError):
    def __init__(self, message: str = "End date must be on or after start date"):
        super().__init__(message)


class ReasonTooShortError(ValidationError):
    def __init__(self, *, min_length: int, actual: int):
        super().__init__(
            f"Reason must be at least {min_length} characters long",
            min_length=min_length,
            actual=actual,
        )


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""

    http_status = 403


class ForbiddenError(AuthorizationError):
    pass


class NotFoundError(DomainError):
    http_status = 404


class LocationNotFoundError(NotFoundError):
    def __init__(self, location_id: int):
        super().__init__("Location not found", location_id=location_id)


class BusinessRuleError(DomainError):
    """Expected condition the user can recover from (wrong place, no balance, ...)."""


class OutOfGeofenceError(BusinessRuleError):
    def __init__(self, *, required: float, actual: int):
        super().__init__(
            "You are not within the required distance of this location",
            distance={"required": required, "actual": actual},
        )
        self.required = required
        self.actual = actual


class AlreadyCheckedInError(BusinessRuleError):
    def __init__(self) -> None:
        super().__init__("You already have an active check-in")


class NoActiveCheckInError(BusinessRuleError):
    def __init__(self) -> None:
        super().__init__("No active check-in found")


class InsufficientBalanceError(BusinessRuleError):
    def __init__(self, *, available: int, requested: int):
        super().__init__(
            f"Insufficient leave balance. Available: {available} days, Requested: {requested} days",
            available=available,
            requested=requested,
        )
        self.available = available
        self.requested = requested


class OverlappingRequestError(BusinessRuleError):
    def __init__(self, *, conflicting_ids: Optional[list] = None):
        super().__init__(
            "You already have an overlapping leave request for this period",
            conflicting_request_ids=list(conflicting_ids or []),
        )


class AlreadyDecidedError(BusinessRuleError):
    def __init__(self, status: str):
        super().__init__(f"Leave request is already {status.lower()}", status=status)


class NotPendingError(BusinessRuleError):
    def __init__(self, status: str):
        super().__init__("Only pending leave requests can be cancelled", status=status)


class TransientConflictError(DomainError):
    """Concurrent writers kept colliding on the same rows; the caller may retry."""

    http_status = 409


class ConsistencyError(Exception):
    """Internal invariant broken (ledger arithmetic, duplicate open records).

    Indicates a concurrency-control bug, never a user mistake.
    """
