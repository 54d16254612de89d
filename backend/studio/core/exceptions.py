# backend/studio/core/exceptions.py
"""
Domain-specific exceptions for the studio booking engine.

These exceptions provide clear, business-focused error messages
that can be caught and handled appropriately at the API layer.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status

from .constants import ALREADY_PROCESSED_MESSAGE, GENERIC_CONFLICT_MESSAGE

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
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "message": self.message or "An error occurred processing your request",
                "code": self.code,
                "details": self.details if self.details else {},
            },
        )


# Specific business exceptions


class BookingConflictException(ConflictException):
    """Raised when a booking conflicts with existing bookings or studio capacity."""

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        code: str = "BOOKING_CONFLICT",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message or GENERIC_CONFLICT_MESSAGE,
            code=code,
            details=details or {},
        )


class InvalidTransitionException(ConflictException):
    """Raised when a booking status transition is not allowed from its current state."""

    def __init__(
        self,
        booking_id: Optional[str],
        current_status: str,
        event: str,
    ):
        super().__init__(
            message=ALREADY_PROCESSED_MESSAGE,
            code="INVALID_TRANSITION",
            details={
                "booking_id": booking_id,
                "current_status": current_status,
                "event": event,
            },
        )


class CancellationPolicyException(BusinessRuleException):
    """Raised when a cancellation falls outside the permitted window."""

    def __init__(self, message: str, threshold_hours: int, hours_until_start: float):
        super().__init__(
            message=message,
            code="CANCELLATION_WINDOW",
            details={
                "threshold_hours": threshold_hours,
                "hours_until_start": round(hours_until_start, 2),
            },
        )


class OutsideAdvanceWindowException(BusinessRuleException):
    """Raised when a booking doesn't meet the minimum advance notice."""

    def __init__(self, required_hours: int, provided_hours: float):
        super().__init__(
            message=f"Bookings must be made at least {required_hours} hours in advance",
            code="OUTSIDE_ADVANCE_WINDOW",
            details={
                "required_hours": required_hours,
                "provided_hours": round(provided_hours, 2),
            },
        )


class PackageInactiveException(BusinessRuleException):
    """Raised when a package is expired or fully used."""

    def __init__(self, package_id: str, package_status: str):
        super().__init__(
            message=f"Package is not active ({package_status.lower()})",
            code="PACKAGE_INACTIVE",
            details={"package_id": package_id, "status": package_status},
        )


class PackageInvalidPeriodException(BusinessRuleException):
    """Raised when a session falls outside the package validity period."""

    def __init__(self, package_id: str, valid_from: str, valid_to: str):
        super().__init__(
            message="Session time is outside the package validity period",
            code="PACKAGE_INVALID_PERIOD",
            details={"package_id": package_id, "valid_from": valid_from, "valid_to": valid_to},
        )


class PackageDepletedException(BusinessRuleException):
    """Raised when a package has no sessions left to reserve or debit."""

    def __init__(self, package_id: str):
        super().__init__(
            message="No sessions remaining in package",
            code="PACKAGE_DEPLETED",
            details={"package_id": package_id},
        )


class LedgerIntegrityException(ServiceException):
    """Raised when a package's session counts cannot be reconciled."""

    def __init__(self, package_id: str, details: Dict[str, Any]):
        super().__init__(
            message="Package session ledger is inconsistent and needs manual reconciliation",
            code="LEDGER_INTEGRITY",
            details={"package_id": package_id, **details},
        )


class DependencyException(Exception):
    """
    Raised by external collaborators (calendar sync, notifications).

    Services catch and log these after the booking transaction commits;
    they are never surfaced to API callers.
    """

    def __init__(self, dependency: str, message: str):
        self.dependency = dependency
        self.message = message
        super().__init__(f"{dependency}: {message}")


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues, query failures, or
    constraint violations.
    """
