"""Per leave-type validation run before any overlap check.

Each policy either raises a LeaveValidationError naming the rule that was
broken, or returns a LeavePlan: the absence rows that should be stored.
Policies never read from or write to the database.
"""

import math
from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from wageflow.models.absence import AbsenceType
from wageflow.services.absence_overlap import parse_iso_date, ranges_overlap
from wageflow.utils.errors import LeaveValidationError


DEFAULT_BEREAVEMENT_WINDOW_WEEKS = 56


class LeaveRule(str, Enum):
    """Rules a leave request can violate."""

    MISSING_EMPLOYEE = "missing_employee"
    MISSING_DATES = "missing_dates"
    INVALID_DATE = "invalid_date"
    END_BEFORE_START = "end_before_start"
    ACTUAL_BEFORE_START = "actual_before_start"
    MISSING_QUANTITY = "missing_quantity"
    INVALID_QUANTITY = "invalid_quantity"
    MISSING_REFERENCE_DATE = "missing_reference_date"
    INVALID_REFERENCE_DATE = "invalid_reference_date"
    INVALID_EVENT_DATE = "invalid_event_date"
    BLOCK_COUNT = "block_count"
    INVALID_BLOCK_DATES = "invalid_block_dates"
    BLOCK_END_BEFORE_START = "block_end_before_start"
    START_BEFORE_EVENT = "start_before_event"
    END_AFTER_WINDOW = "end_after_window"
    BLOCKS_OVERLAP = "blocks_overlap"


class BereavementLeaveOption(str, Enum):
    """How parental bereavement leave is taken."""

    ONE_WEEK = "one_week"
    TWO_WEEKS_TOGETHER = "two_weeks_together"
    TWO_WEEKS_SEPARATE = "two_weeks_separate"


# =============================================================================
# Request Types
# =============================================================================

@dataclass
class SicknessRequest:
    """Sickness absence as entered by an administrator."""

    employee_id: Optional[str]
    first_day: Optional[str]
    last_day_expected: Optional[str]
    last_day_actual: Optional[str] = None
    reference_notes: Optional[str] = None


@dataclass
class DateRangeLeaveRequest:
    """Single-range leave (annual, family, unpaid) with optional extras."""

    employee_id: Optional[str]
    start_date: Optional[str]
    end_date: Optional[str]
    total_days: Any = None
    weeks_of_leave: Any = None
    reference_date: Optional[str] = None
    notes: Optional[str] = None


@dataclass
class LeaveBlock:
    start_date: Optional[str]
    end_date: Optional[str]


@dataclass
class ParentalBereavementRequest:
    """Parental bereavement leave taken in one or two blocks."""

    employee_id: Optional[str]
    event_date: Optional[str]
    leave_option: Optional[str] = BereavementLeaveOption.ONE_WEEK.value
    blocks: List[LeaveBlock] = field(default_factory=list)
    notes: Optional[str] = None


# =============================================================================
# Plan Types
# =============================================================================

@dataclass
class PlannedAbsence:
    """One absence row ready to be checked for overlaps and stored."""

    absence_type: AbsenceType
    first_day: date
    last_day_expected: date
    last_day_actual: Optional[date] = None
    reference_notes: Optional[str] = None
    reference_date: Optional[date] = None

    @property
    def effective_last_day(self) -> date:
        return self.last_day_actual or self.last_day_expected


@dataclass
class LeavePlan:
    """Validated outcome of a leave request."""

    employee_id: str
    absence_type: AbsenceType
    absences: List[PlannedAbsence]
    quantities: Dict[str, float] = field(default_factory=dict)


# =============================================================================
# Shared Checks
# =============================================================================

def _clean(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _positive_number(value: Any) -> Optional[float]:
    """Return the value as a float if it is a finite number above zero."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number) or number <= 0:
        return None
    return number


def _require_employee(employee_id: Optional[str]) -> str:
    cleaned = _clean(employee_id)
    if not cleaned:
        raise LeaveValidationError(
            LeaveRule.MISSING_EMPLOYEE.value,
            "Missing employeeId.",
            field="employee_id",
        )
    return cleaned


def _combine_notes(prefix: Optional[str], notes: Optional[str]) -> Optional[str]:
    notes = _clean(notes)
    if prefix:
        return f"{prefix} {notes}" if notes else prefix
    return notes or None


class LeaveWindowPolicy:
    """Base class for per leave-type validation."""

    absence_type: AbsenceType

    def validate(self, request: Any) -> LeavePlan:
        raise NotImplementedError


# =============================================================================
# Sickness
# =============================================================================

class SicknessPolicy(LeaveWindowPolicy):
    """Sickness needs a first day and an expected last day."""

    absence_type = AbsenceType.SICKNESS

    def validate(self, request: SicknessRequest) -> LeavePlan:
        employee_id = _clean(request.employee_id)
        if not employee_id or not _clean(request.first_day) or not _clean(request.last_day_expected):
            raise LeaveValidationError(
                LeaveRule.MISSING_DATES.value,
                "Employee, first day and expected last day are required.",
            )

        first_day = parse_iso_date(request.first_day)
        last_expected = parse_iso_date(request.last_day_expected)
        if first_day is None or last_expected is None:
            raise LeaveValidationError(
                LeaveRule.INVALID_DATE.value,
                "First day and expected last day must be YYYY-MM-DD.",
            )

        if last_expected < first_day:
            raise LeaveValidationError(
                LeaveRule.END_BEFORE_START.value,
                "Expected last day cannot be earlier than the first day.",
                field="last_day_expected",
            )

        last_actual = None
        if _clean(request.last_day_actual):
            last_actual = parse_iso_date(request.last_day_actual)
            if last_actual is None:
                raise LeaveValidationError(
                    LeaveRule.INVALID_DATE.value,
                    "Actual last day must be YYYY-MM-DD when provided.",
                    field="last_day_actual",
                )
            if last_actual < first_day:
                raise LeaveValidationError(
                    LeaveRule.ACTUAL_BEFORE_START.value,
                    "Actual last day cannot be earlier than the first day.",
                    field="last_day_actual",
                )

        return LeavePlan(
            employee_id=employee_id,
            absence_type=self.absence_type,
            absences=[PlannedAbsence(
                absence_type=self.absence_type,
                first_day=first_day,
                last_day_expected=last_expected,
                last_day_actual=last_actual,
                reference_notes=_combine_notes(None, request.reference_notes),
            )],
        )


# =============================================================================
# Single-Range Leave Types
# =============================================================================

class DateRangeLeavePolicy(LeaveWindowPolicy):
    """
    Common contract for leave stored as one start/end range.

    Args:
        absence_type: Type stored on the absence row
        label: Human name used in messages
        total_days_required: Whether ``total_days`` must be supplied
        weeks_allowed: Whether ``weeks_of_leave`` may be supplied
        reference_date_label: Name of the related date (due date, placement
            date) recorded in the notes, if the type has one
        reference_date_required: Whether the related date must be supplied
    """

    def __init__(
        self,
        absence_type: AbsenceType,
        label: str,
        total_days_required: bool = False,
        weeks_allowed: bool = False,
        reference_date_label: Optional[str] = None,
        reference_date_required: bool = False,
    ):
        self.absence_type = absence_type
        self.label = label
        self.total_days_required = total_days_required
        self.weeks_allowed = weeks_allowed
        self.reference_date_label = reference_date_label
        self.reference_date_required = reference_date_required

    def validate(self, request: DateRangeLeaveRequest) -> LeavePlan:
        employee_id = _require_employee(request.employee_id)

        if not _clean(request.start_date) or not _clean(request.end_date):
            raise LeaveValidationError(
                LeaveRule.MISSING_DATES.value,
                f"Start date and end date are required for {self.label}.",
            )

        start = parse_iso_date(request.start_date)
        end = parse_iso_date(request.end_date)
        if start is None or end is None:
            raise LeaveValidationError(
                LeaveRule.INVALID_DATE.value,
                "Dates must be in YYYY-MM-DD format.",
            )
        if end < start:
            raise LeaveValidationError(
                LeaveRule.END_BEFORE_START.value,
                "End date cannot be before start date.",
                field="end_date",
            )

        quantities: Dict[str, float] = {}
        if self.total_days_required:
            if request.total_days is None or _clean(request.total_days) == "":
                raise LeaveValidationError(
                    LeaveRule.MISSING_QUANTITY.value,
                    f"Total days is required for {self.label}.",
                    field="total_days",
                )
            total_days = _positive_number(request.total_days)
            if total_days is None:
                raise LeaveValidationError(
                    LeaveRule.INVALID_QUANTITY.value,
                    "Total days must be a positive number.",
                    field="total_days",
                )
            quantities["total_days"] = total_days

        if self.weeks_allowed and request.weeks_of_leave not in (None, ""):
            weeks = _positive_number(request.weeks_of_leave)
            if weeks is None:
                raise LeaveValidationError(
                    LeaveRule.INVALID_QUANTITY.value,
                    "Weeks of leave must be a positive number.",
                    field="weeks_of_leave",
                )
            quantities["weeks_of_leave"] = weeks

        reference, notes_prefix = self._reference_note(request.reference_date)

        return LeavePlan(
            employee_id=employee_id,
            absence_type=self.absence_type,
            absences=[PlannedAbsence(
                absence_type=self.absence_type,
                first_day=start,
                last_day_expected=end,
                reference_notes=_combine_notes(notes_prefix, request.notes),
                reference_date=reference,
            )],
            quantities=quantities,
        )

    def _reference_note(self, raw: Optional[str]) -> Tuple[Optional[date], Optional[str]]:
        if self.reference_date_label is None:
            return None, None

        if not _clean(raw):
            if self.reference_date_required:
                raise LeaveValidationError(
                    LeaveRule.MISSING_REFERENCE_DATE.value,
                    f"{self.reference_date_label} is required for {self.label}.",
                    field="reference_date",
                )
            return None, None

        reference = parse_iso_date(raw)
        if reference is None:
            raise LeaveValidationError(
                LeaveRule.INVALID_REFERENCE_DATE.value,
                f"{self.reference_date_label} must be YYYY-MM-DD.",
                field="reference_date",
            )
        return reference, f"{self.reference_date_label}: {reference.isoformat()}."


# =============================================================================
# Parental Bereavement
# =============================================================================

class ParentalBereavementPolicy(LeaveWindowPolicy):
    """
    Parental bereavement leave.

    One block, or two blocks for ``two_weeks_separate``. Every block starts
    on or after the event date and ends within the statutory window
    (56 weeks by default). Two blocks must not overlap each other.
    """

    absence_type = AbsenceType.PARENTAL_BEREAVEMENT

    def __init__(self, window_weeks: int = DEFAULT_BEREAVEMENT_WINDOW_WEEKS):
        self.window_weeks = window_weeks

    def window_end(self, event_date: date) -> date:
        """Last day on which leave may still be taken."""
        return event_date + timedelta(weeks=self.window_weeks)

    def validate(self, request: ParentalBereavementRequest) -> LeavePlan:
        employee_id = _require_employee(request.employee_id)

        event_date = parse_iso_date(request.event_date)
        if event_date is None:
            raise LeaveValidationError(
                LeaveRule.INVALID_EVENT_DATE.value,
                "Invalid event date. Use YYYY-MM-DD.",
                field="event_date",
            )
        limit = self.window_end(event_date)

        leave_option = _clean(request.leave_option) or BereavementLeaveOption.ONE_WEEK.value
        blocks = list(request.blocks or [])

        if leave_option == BereavementLeaveOption.TWO_WEEKS_SEPARATE.value:
            if len(blocks) != 2:
                raise LeaveValidationError(
                    LeaveRule.BLOCK_COUNT.value,
                    "Two blocks are required for two separate weeks.",
                    field="blocks",
                )
        elif len(blocks) != 1:
            raise LeaveValidationError(
                LeaveRule.BLOCK_COUNT.value,
                "One block is required.",
                field="blocks",
            )

        parsed = []
        for block in blocks:
            start = parse_iso_date(block.start_date)
            end = parse_iso_date(block.end_date)
            if start is None or end is None:
                raise LeaveValidationError(
                    LeaveRule.INVALID_BLOCK_DATES.value,
                    "Block dates must be valid YYYY-MM-DD.",
                    field="blocks",
                )
            if end < start:
                raise LeaveValidationError(
                    LeaveRule.BLOCK_END_BEFORE_START.value,
                    "Block end date cannot be before start date.",
                    field="blocks",
                )
            if start < event_date:
                raise LeaveValidationError(
                    LeaveRule.START_BEFORE_EVENT.value,
                    "Leave must start on or after the event date.",
                    field="blocks",
                )
            if end > limit:
                raise LeaveValidationError(
                    LeaveRule.END_AFTER_WINDOW.value,
                    f"Leave must finish within {self.window_weeks} weeks of the event date.",
                    field="blocks",
                )
            parsed.append((start, end))

        if len(parsed) == 2 and ranges_overlap(parsed[0][0], parsed[0][1], parsed[1][0], parsed[1][1]):
            raise LeaveValidationError(
                LeaveRule.BLOCKS_OVERLAP.value,
                "The two weeks overlap. Separate the dates.",
                field="blocks",
            )

        notes = _combine_notes(f"Event date: {event_date.isoformat()}.", request.notes)

        return LeavePlan(
            employee_id=employee_id,
            absence_type=self.absence_type,
            absences=[
                PlannedAbsence(
                    absence_type=self.absence_type,
                    first_day=start,
                    last_day_expected=end,
                    reference_notes=notes,
                    reference_date=event_date,
                )
                for start, end in parsed
            ],
        )


# =============================================================================
# Registry
# =============================================================================

def build_leave_policies(
    bereavement_window_weeks: int = DEFAULT_BEREAVEMENT_WINDOW_WEEKS,
) -> Dict[AbsenceType, LeaveWindowPolicy]:
    """Build one policy per absence type."""
    return {
        AbsenceType.SICKNESS: SicknessPolicy(),
        AbsenceType.ANNUAL_LEAVE: DateRangeLeavePolicy(
            AbsenceType.ANNUAL_LEAVE,
            "annual leave",
            total_days_required=True,
        ),
        AbsenceType.MATERNITY: DateRangeLeavePolicy(
            AbsenceType.MATERNITY,
            "maternity leave",
            reference_date_label="Expected week of childbirth",
        ),
        AbsenceType.ADOPTION_LEAVE: DateRangeLeavePolicy(
            AbsenceType.ADOPTION_LEAVE,
            "adoption leave",
            reference_date_label="Placement date",
            reference_date_required=True,
        ),
        AbsenceType.PATERNITY_LEAVE: DateRangeLeavePolicy(
            AbsenceType.PATERNITY_LEAVE,
            "paternity leave",
            weeks_allowed=True,
            reference_date_label="Due date",
        ),
        AbsenceType.SHARED_PARENTAL_LEAVE: DateRangeLeavePolicy(
            AbsenceType.SHARED_PARENTAL_LEAVE,
            "shared parental leave",
            reference_date_label="Child arrival date",
        ),
        AbsenceType.UNPAID_LEAVE: DateRangeLeavePolicy(
            AbsenceType.UNPAID_LEAVE,
            "unpaid leave",
            total_days_required=True,
        ),
        AbsenceType.BEREAVED_PARTNERS_PATERNITY: DateRangeLeavePolicy(
            AbsenceType.BEREAVED_PARTNERS_PATERNITY,
            "bereaved partner's paternity leave",
        ),
        AbsenceType.PARENTAL_BEREAVEMENT: ParentalBereavementPolicy(bereavement_window_weeks),
    }


def get_leave_policy(
    absence_type: AbsenceType,
    bereavement_window_weeks: int = DEFAULT_BEREAVEMENT_WINDOW_WEEKS,
) -> LeaveWindowPolicy:
    """Return the policy for one absence type."""
    return build_leave_policies(bereavement_window_weeks)[absence_type]
