"""Pydantic models for absence API endpoints.

Request bodies accept both camelCase and snake_case field names. Dates and
quantities are kept as raw values here so that the leave policies report
the specific rule a request breaks.
"""

from datetime import date, datetime
from typing import Any, List, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from wageflow.services.leave_window_policy import (
    BereavementLeaveOption,
    DateRangeLeaveRequest,
    LeaveBlock,
    ParentalBereavementRequest,
    SicknessRequest,
)


class CamelModel(BaseModel):
    """Base model accepting camelCase aliases and snake_case names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


Quantity = Optional[Union[float, str]]


# =============================================================================
# Request Models
# =============================================================================

class SicknessAbsenceCreate(CamelModel):
    """Request model for recording a sickness absence."""

    employee_id: Optional[str] = Field(default=None, description="Employee ID")
    first_day: Optional[str] = Field(default=None, description="First day of sickness (YYYY-MM-DD)")
    last_day_expected: Optional[str] = Field(default=None, description="Expected last day (YYYY-MM-DD)")
    last_day_actual: Optional[str] = Field(default=None, description="Actual last day (YYYY-MM-DD)")
    reference_notes: Optional[str] = Field(default=None, max_length=2000)

    def to_request(self) -> SicknessRequest:
        return SicknessRequest(
            employee_id=self.employee_id,
            first_day=self.first_day,
            last_day_expected=self.last_day_expected,
            last_day_actual=self.last_day_actual,
            reference_notes=self.reference_notes,
        )


class LeaveAbsenceCreate(CamelModel):
    """
    Request model shared by the single-range leave types.

    Only the related date that belongs to the leave type is read: ewc_date
    for maternity, placement_date for adoption, due_date for paternity and
    child_arrival_date for shared parental leave.
    """

    employee_id: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    total_days: Quantity = None
    weeks_of_leave: Quantity = None
    ewc_date: Optional[str] = None
    placement_date: Optional[str] = None
    due_date: Optional[str] = None
    child_arrival_date: Optional[str] = None
    notes: Optional[str] = Field(default=None, max_length=2000)

    def to_request(self, reference_field: Optional[str] = None) -> DateRangeLeaveRequest:
        return DateRangeLeaveRequest(
            employee_id=self.employee_id,
            start_date=self.start_date,
            end_date=self.end_date,
            total_days=self.total_days,
            weeks_of_leave=self.weeks_of_leave,
            reference_date=getattr(self, reference_field) if reference_field else None,
            notes=self.notes,
        )


class LeaveBlockIn(CamelModel):
    start_date: Optional[str] = None
    end_date: Optional[str] = None


class ParentalBereavementCreate(CamelModel):
    """Request model for parental bereavement leave."""

    employee_id: Optional[str] = None
    event_date: Optional[str] = Field(default=None, description="Date of the child's death or stillbirth")
    leave_option: Optional[str] = Field(
        default=BereavementLeaveOption.ONE_WEEK.value,
        description="one_week, two_weeks_together or two_weeks_separate",
    )
    blocks: List[LeaveBlockIn] = Field(default_factory=list)
    notes: Optional[str] = Field(default=None, max_length=2000)

    def to_request(self) -> ParentalBereavementRequest:
        return ParentalBereavementRequest(
            employee_id=self.employee_id,
            event_date=self.event_date,
            leave_option=self.leave_option,
            blocks=[LeaveBlock(start_date=b.start_date, end_date=b.end_date) for b in self.blocks],
            notes=self.notes,
        )


class AbsenceDatesUpdate(CamelModel):
    """
    Request model for changing the dates of an absence.

    total_days, weeks_of_leave and reference_date are read for the leave
    types that need them. reference_date replaces the stored due,
    placement or event date when sent.
    """

    first_day: Optional[str] = None
    last_day_expected: Optional[str] = None
    last_day_actual: Optional[str] = None
    reference_notes: Optional[str] = Field(default=None, max_length=2000)
    total_days: Quantity = None
    weeks_of_leave: Quantity = None
    reference_date: Optional[str] = None


class OverlapCheckRequest(CamelModel):
    """Request model for the overlap pre-check."""

    employee_id: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    exclude_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("excludeId", "exclude_id", "currentId", "current_id"),
    )


# =============================================================================
# Response Models
# =============================================================================

class AbsenceResponse(CamelModel):
    """A stored absence."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    id: str
    company_id: str
    employee_id: str
    type: str
    status: str
    first_day: date
    last_day_expected: Optional[date] = None
    last_day_actual: Optional[date] = None
    reference_notes: Optional[str] = None
    reference_date: Optional[date] = None
    created_at: Optional[datetime] = None


class AbsenceCreateResponse(CamelModel):
    ok: bool = True
    absences: List[AbsenceResponse]


class AbsenceUpdateResponse(CamelModel):
    ok: bool = True
    absence: AbsenceResponse


class ConflictOut(CamelModel):
    id: str
    start_date: Optional[Any] = None
    end_date: Optional[Any] = None


class OverlapCheckResponse(CamelModel):
    """Outcome of the overlap pre-check."""

    ok: bool = True
    checked: bool
    has_overlap: bool
    conflicts: List[ConflictOut] = Field(default_factory=list)
    code: Optional[str] = None
    message: Optional[str] = None
