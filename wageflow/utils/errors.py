"""Custom exception classes and error response utilities."""

from dataclasses import dataclass, field
from enum import Enum
from http import HTTPStatus
from typing import Any, Dict, List, Optional, Sequence, Tuple


@dataclass
class FieldError:
    """Error details for a specific field."""

    field: str
    message: str
    code: str = "invalid"

    def to_dict(self) -> Dict[str, str]:
        """Convert to dictionary for JSON response."""
        return {
            "field": self.field,
            "message": self.message,
            "code": self.code,
        }


@dataclass
class ErrorResponse:
    """Structured error response for API endpoints."""

    message: str
    status_code: int
    error_code: str
    details: Optional[Dict[str, Any]] = None
    field_errors: List[FieldError] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON response."""
        result = {
            "ok": False,
            "error": {
                "message": self.message,
                "code": self.error_code,
            }
        }

        if self.details:
            result["error"]["details"] = self.details

        if self.field_errors:
            result["error"]["field_errors"] = [
                fe.to_dict() for fe in self.field_errors
            ]

        return result


class APIError(Exception):
    """Base exception for API errors."""

    status_code: int = HTTPStatus.INTERNAL_SERVER_ERROR
    error_code: str = "INTERNAL_ERROR"
    message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        field_errors: Optional[List[FieldError]] = None,
    ):
        self.message = message or self.__class__.message
        self.details = details
        self.field_errors = field_errors or []
        super().__init__(self.message)

    def to_response(self) -> ErrorResponse:
        """Convert exception to structured error response."""
        return ErrorResponse(
            message=self.message,
            status_code=self.status_code,
            error_code=self.error_code,
            details=self.details,
            field_errors=self.field_errors,
        )


class ValidationError(APIError):
    """Exception for request validation failures."""

    status_code: int = HTTPStatus.BAD_REQUEST
    error_code: str = "VALIDATION_ERROR"
    message: str = "Request validation failed"


class LeaveValidationError(ValidationError):
    """
    A leave request broke one specific rule.

    ``rule`` names the violated rule so callers can show the matching
    corrective action instead of a generic failure.
    """

    def __init__(self, rule: str, message: str, field: Optional[str] = None):
        self.rule = rule
        field_errors = [FieldError(field=field, message=message, code=rule)] if field else None
        super().__init__(message=message, details={"rule": rule}, field_errors=field_errors)


class NotFoundError(APIError):
    """Exception for resource not found."""

    status_code: int = HTTPStatus.NOT_FOUND
    error_code: str = "NOT_FOUND"
    message: str = "Resource not found"


class ForbiddenError(APIError):
    """Exception for authorization failures."""

    status_code: int = HTTPStatus.FORBIDDEN
    error_code: str = "FORBIDDEN"
    message: str = "Access denied"


class EmployeeNotFoundError(NotFoundError):
    error_code: str = "EMPLOYEE_NOT_FOUND"
    message: str = "Employee not found."


class EmployeeNotInCompanyError(ForbiddenError):
    error_code: str = "EMPLOYEE_NOT_IN_COMPANY"
    message: str = "Employee does not belong to this company."


class AbsenceOverlapError(APIError):
    """Proposed absence dates overlap an existing absence for the employee."""

    status_code: int = HTTPStatus.CONFLICT
    error_code: str = "ABSENCE_DATE_OVERLAP"
    message: str = (
        "These dates overlap another existing absence for this employee. "
        "Change the dates or cancel the other absence."
    )

    def __init__(
        self,
        conflicts: Optional[Sequence[Dict[str, Any]]] = None,
        message: Optional[str] = None,
    ):
        self.conflicts = list(conflicts or [])
        super().__init__(message=message, details={"conflicts": self.conflicts})


class AbsenceCancelledError(APIError):
    status_code: int = HTTPStatus.CONFLICT
    error_code: str = "ABSENCE_CANCELLED"
    message: str = "Cancelled absences cannot be edited."


class OverlapCheckUnavailableError(APIError):
    """Existing absences could not be loaded to run the overlap check."""

    status_code: int = HTTPStatus.SERVICE_UNAVAILABLE
    error_code: str = "OVERLAP_CHECK_UNAVAILABLE"
    message: str = "Could not check existing absences."


def create_not_found_error(resource_type: str, identifier: Any) -> NotFoundError:
    """Create a not found error for a specific resource."""
    return NotFoundError(
        message=f"{resource_type} not found",
        details={"resource_type": resource_type, "identifier": str(identifier)},
    )


# =============================================================================
# Store Error Classification
# =============================================================================

class StoreErrorKind(str, Enum):
    """Classification of errors raised by the record store."""

    ABSENCE_OVERLAP = "absence_overlap"
    OTHER = "other"


# SQLSTATE codes that mean "overlap" on their own
OVERLAP_ERROR_CODES: Dict[str, StoreErrorKind] = {
    "23P01": StoreErrorKind.ABSENCE_OVERLAP,  # exclusion_violation
}

# Lower-cased message fragments that mean "overlap" on their own
OVERLAP_MESSAGE_MARKERS: Tuple[Tuple[str, StoreErrorKind], ...] = (
    ("absences_no_overlap_per_employee", StoreErrorKind.ABSENCE_OVERLAP),
)


def _store_error_code(exc: BaseException) -> str:
    """Pull the SQLSTATE from an exception or its wrapped DBAPI error."""
    orig = getattr(exc, "orig", None)
    candidates = [c for c in (orig, exc) if c is not None]
    for attr in ("pgcode", "sqlstate"):
        for candidate in candidates:
            value = getattr(candidate, attr, None)
            if value:
                return str(value)

    # Plain store clients expose the SQLSTATE as ``code``
    if orig is None:
        value = getattr(exc, "code", None)
        if value:
            return str(value)
    return ""


def classify_store_error(exc: BaseException) -> StoreErrorKind:
    """
    Map a store exception to the error taxonomy.

    The error code and the message marker are checked independently:
    either one is enough to classify the error as an overlap.
    """
    kind = OVERLAP_ERROR_CODES.get(_store_error_code(exc))
    if kind is not None:
        return kind

    message_parts = [str(exc)]
    orig = getattr(exc, "orig", None)
    if orig is not None:
        message_parts.append(str(orig))
    message = " ".join(message_parts).lower()

    for marker, marker_kind in OVERLAP_MESSAGE_MARKERS:
        if marker in message:
            return marker_kind

    return StoreErrorKind.OTHER


def is_overlap_error(exc: BaseException) -> bool:
    """Check whether a store exception signals an absence overlap."""
    return classify_store_error(exc) == StoreErrorKind.ABSENCE_OVERLAP
