# backend/coachbook/core/exceptions.py
"""
Domain-specific exceptions for the coaching availability engine.

These exceptions provide clear, business-focused error messages
that can be caught and handled appropriately at the API layer.
"""

from typing import Any, Dict, List, Optional

from fastapi import HTTPException, status


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
    """
    Raised when business validation fails.

    ``details`` always carries field-level information: either a single
    ``field`` entry or an ``errors`` list of ``{"field", "message"}`` dicts.
    """

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        errors: Optional[List[Dict[str, Any]]] = None,
        code: str = "VALIDATION_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        payload: Dict[str, Any] = dict(details or {})
        if field is not None:
            payload["field"] = field
        if errors:
            payload["errors"] = errors
        super().__init__(message=message, code=code, details=payload)


class RangeTooLargeException(ValidationException):
    """Raised when a requested date range exceeds the paging safety cap."""

    def __init__(self, requested_days: int, max_days: int) -> None:
        super().__init__(
            message=f"Requested range of {requested_days} days exceeds the maximum of {max_days} days",
            field="range",
            code="RANGE_TOO_LARGE",
            details={"requested_days": requested_days, "max_days": max_days},
        )


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    status_code = status.HTTP_404_NOT_FOUND


class ProfileNotFoundException(NotFoundException):
    """Raised when a coach has no availability profile."""

    def __init__(self, coach_id: str) -> None:
        super().__init__(
            message=f"Availability profile not found for coach {coach_id}",
            code="PROFILE_NOT_FOUND",
            details={"coach_id": coach_id},
        )


class ConflictException(DomainException):
    """Raised when there's a conflict with existing data."""

    status_code = status.HTTP_409_CONFLICT


class VersionConflictException(ConflictException):
    """Raised when a profile write was based on a stale version."""

    def __init__(self, coach_id: str, expected_version: int, current_version: Optional[int]) -> None:
        super().__init__(
            message="Availability profile was modified by another request; re-read and retry",
            code="VERSION_CONFLICT",
            details={
                "coach_id": coach_id,
                "expected_version": expected_version,
                "current_version": current_version,
            },
        )


class ServiceException(DomainException):
    """Raised when a service operation fails."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class ExternalStoreException(ServiceException):
    """Raised when the profile or session store cannot be read or written."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    def __init__(self, operation: str, message: Optional[str] = None) -> None:
        super().__init__(
            message=message or f"External store operation failed: {operation}",
            code="EXTERNAL_STORE_ERROR",
            details={"operation": operation},
        )


class GenerationCancelledException(ServiceException):
    """Raised when an in-flight slot generation is cancelled between days."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    def __init__(self, completed_days: int) -> None:
        super().__init__(
            message="Slot generation was cancelled",
            code="GENERATION_CANCELLED",
            details={"completed_days": completed_days},
        )
