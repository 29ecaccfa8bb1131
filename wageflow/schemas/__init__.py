"""Pydantic schemas for API request/response validation."""

from wageflow.schemas.absence import (
    AbsenceCreateResponse,
    AbsenceDatesUpdate,
    AbsenceResponse,
    AbsenceUpdateResponse,
    LeaveAbsenceCreate,
    OverlapCheckRequest,
    OverlapCheckResponse,
    ParentalBereavementCreate,
    SicknessAbsenceCreate,
)

__all__ = [
    # Requests
    "AbsenceDatesUpdate",
    "LeaveAbsenceCreate",
    "OverlapCheckRequest",
    "ParentalBereavementCreate",
    "SicknessAbsenceCreate",
    # Responses
    "AbsenceCreateResponse",
    "AbsenceResponse",
    "AbsenceUpdateResponse",
    "OverlapCheckResponse",
]
