# studio_booking/core/exceptions.py
"""
Domain-specific exceptions for the studio booking engine.

These exceptions provide clear, business-focused error messages
that can be caught and handled appropriately at the API layer.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status

from .enums import DenialReason

HTTP_422_UNPROCESSABLE: int = getattr(status, "HTTP_422_UNPROCESSABLE_CONTENT", 422)


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class ValidationException(DomainException):
    """Raised when business validation fails."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictException(DomainException):
    """Raised when there's a conflict with existing data."""

    status_code = status.HTTP_409_CONFLICT


class BusinessRuleException(DomainException):
    """Raised when a business rule is violated."""

    status_code = HTTP_422_UNPROCESSABLE


class ServiceException(DomainException):
    """Raised when a service operation fails."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message or "An error occurred processing your request",
                "code": self.code,
                "details": self.details if self.details else {},
            },
        )


# Specific business exceptions


class BookingDeniedException(BusinessRuleException):
    """
    Raised when a booking, cancellation or enqueue is refused.

    ``reason`` is one of the closed DenialReason values and doubles as the
    error code, so API clients can branch on it directly.
    """

    def __init__(
        self,
        reason: DenialReason,
        message: Optional[str] = None,
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.reason = reason
        super().__init__(
            message=message or _DENIAL_MESSAGES.get(reason, reason.value),
            code=reason.value,
            details=details or {},
        )


_DENIAL_MESSAGES: Dict[DenialReason, str] = {
    DenialReason.INACTIVE_SUBSCRIPTION: "You need an active subscription to book classes",
    DenialReason.NO_REMAINING_CREDITS: "No remaining classes in your subscription",
    DenialReason.CATEGORY_MISMATCH: "Your subscription does not cover this class type",
    DenialReason.EQUIPMENT_MISMATCH: "Your subscription does not include this equipment",
    DenialReason.CLASS_ALREADY_STARTED: "This class has already started",
    DenialReason.TOO_CLOSE_TO_START: "Booking is closed this close to the class start",
    DenialReason.TOO_LATE_TO_CANCEL: "It is too late to cancel this booking",
    DenialReason.CLASS_NOT_AVAILABLE: "Class not found or not available",
    DenialReason.ALREADY_BOOKED: "You already have a booking for this class",
    DenialReason.ALREADY_WAITLISTED: "You are already on the waitlist for this class",
    DenialReason.BOOKING_ALREADY_CANCELLED: "Booking is already cancelled",
}


class WaitlistEntryNotWaitingException(ConflictException):
    """Raised when leaving a waitlist entry that was already promoted."""

    def __init__(self, entry_id: str, entry_status: str):
        super().__init__(
            message="Waitlist entry is no longer waiting",
            code="WAITLIST_ENTRY_NOT_WAITING",
            details={"entry_id": entry_id, "status": entry_status},
        )


class CapacityInvariantViolation(ServiceException):
    """
    Raised when a reservation would push enrolled above capacity.

    Only reachable if the per-class critical section was bypassed.
    """

    def __init__(self, class_id: str, enrolled: int, capacity: int):
        super().__init__(
            message="Capacity invariant violated for class",
            code="CONCURRENT_RESERVATION_LOST",
            details={"class_id": class_id, "enrolled": enrolled, "capacity": capacity},
        )


class ClassLockTimeoutException(ServiceException):
    """Raised when the per-class lock cannot be acquired in time."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    def __init__(self, class_id: str, waited_seconds: float):
        super().__init__(
            message="Class is busy, please retry",
            code="CLASS_LOCK_TIMEOUT",
            details={"class_id": class_id, "waited_seconds": waited_seconds},
        )


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues, query failures, or
    constraint violations.
    """
