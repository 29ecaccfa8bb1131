"""Service for creating and editing absences with overlap protection."""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from uuid import uuid4

from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.orm import Session

from wageflow.config.settings import OverlapCheckFailurePolicy, Settings, get_settings
from wageflow.data.absence_repository import AbsenceRepository
from wageflow.models.absence import Absence, AbsenceStatus, AbsenceType
from wageflow.models.employee import Employee
from wageflow.services.absence_overlap import (
    DateInput,
    OverlapConflict,
    OverlapValidationResult,
    map_absence_rows_to_ranges,
    parse_iso_date,
    validate_absence_overlap,
)
from wageflow.services.leave_window_policy import (
    DateRangeLeaveRequest,
    LeaveBlock,
    LeavePlan,
    LeaveRule,
    ParentalBereavementRequest,
    PlannedAbsence,
    SicknessPolicy,
    SicknessRequest,
    get_leave_policy,
)
from wageflow.utils.errors import (
    AbsenceCancelledError,
    AbsenceOverlapError,
    EmployeeNotFoundError,
    EmployeeNotInCompanyError,
    FieldError,
    LeaveValidationError,
    OverlapCheckUnavailableError,
    ValidationError,
    create_not_found_error,
    is_overlap_error,
)

logger = logging.getLogger(__name__)


@dataclass
class OverlapCheckOutcome:
    """
    Result of the overlap pre-check offered to the UI.

    ``checked`` is False only when existing absences could not be loaded
    and the failure policy is fail-open.
    """

    checked: bool
    result: OverlapValidationResult = field(
        default_factory=lambda: OverlapValidationResult(has_overlap=False)
    )
    code: Optional[str] = None
    message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"ok": True, "checked": self.checked}
        data.update(self.result.to_dict())
        if self.code:
            data["code"] = self.code
        if self.message:
            data["message"] = self.message
        return data


class AbsenceService:
    """
    Create and edit absences.

    Every write runs the leave-type policy first, then the overlap check
    against the employee's non-cancelled absences, then the insert. The
    database exclusion constraint is the final word: an overlap it reports
    is returned to the caller as the same conflict error.
    """

    def __init__(
        self,
        db: Session,
        settings: Optional[Settings] = None,
        repository: Optional[AbsenceRepository] = None,
    ):
        self.db = db
        self.settings = settings or get_settings()
        self.repository = repository or AbsenceRepository(db)

    # =========================================================================
    # Overlap Checks
    # =========================================================================

    def find_overlaps(
        self,
        company_id: str,
        employee_id: str,
        start: DateInput,
        end: DateInput,
        exclude_id: Optional[str] = None,
    ) -> OverlapValidationResult:
        """Compare a proposed range with the employee's active absences."""
        rows = self.repository.list_active_absences(company_id, employee_id)
        return validate_absence_overlap(
            start,
            end,
            map_absence_rows_to_ranges(rows),
            exclude_id=exclude_id,
        )

    def check_overlap(
        self,
        company_id: str,
        employee_id: Optional[str],
        start: DateInput,
        end: DateInput,
        exclude_id: Optional[str] = None,
    ) -> OverlapCheckOutcome:
        """
        Overlap pre-check for forms.

        Raises AbsenceOverlapError listing the conflicts when the dates
        overlap an existing absence. When existing absences cannot be loaded
        the configured OverlapCheckFailurePolicy decides: fail-open reports
        an unchecked result, fail-closed raises OverlapCheckUnavailableError.

        Raises:
            ValidationError: Employee or dates missing or malformed
            AbsenceOverlapError: Dates overlap an existing absence
            OverlapCheckUnavailableError: Store unreadable under fail-closed
        """
        self._validate_check_input(employee_id, start, end)

        try:
            result = self.find_overlaps(company_id, employee_id, start, end, exclude_id)
        except SQLAlchemyError as e:
            policy = self.settings.absence.overlap_check_failure_policy
            if policy == OverlapCheckFailurePolicy.FAIL_OPEN:
                logger.warning(
                    f"Overlap check skipped for employee {employee_id}: {e}"
                )
                return OverlapCheckOutcome(
                    checked=False,
                    code="DB_ERROR",
                    message=OverlapCheckUnavailableError.message,
                )
            logger.error(f"Overlap check failed for employee {employee_id}: {e}")
            raise OverlapCheckUnavailableError() from e

        if result.has_overlap:
            logger.info(
                f"Overlap pre-check for employee {employee_id} found "
                f"{[c.id for c in result.conflicts]}"
            )
            raise AbsenceOverlapError([c.to_dict() for c in result.conflicts])

        return OverlapCheckOutcome(checked=True, result=result)

    # =========================================================================
    # Leave Creation
    # =========================================================================

    def create_leave(
        self,
        company_id: str,
        absence_type: AbsenceType,
        request: Any,
    ) -> List[Absence]:
        """
        Validate and store a leave request.

        Args:
            company_id: Company the request is made in
            absence_type: Leave type selecting the validation policy
            request: Request object accepted by that type's policy

        Returns:
            The stored absences (two for parental bereavement taken as
            separate weeks, otherwise one)

        Raises:
            LeaveValidationError: A leave rule was broken
            EmployeeNotFoundError: Employee does not exist
            EmployeeNotInCompanyError: Employee belongs to another company
            AbsenceOverlapError: Dates overlap an existing absence
        """
        policy = get_leave_policy(
            absence_type,
            bereavement_window_weeks=self.settings.absence.bereavement_window_weeks,
        )
        plan = policy.validate(request)

        self._resolve_employee(company_id, plan.employee_id)
        self._ensure_no_overlap(company_id, plan)

        rows = [
            self._build_absence(company_id, plan.employee_id, planned)
            for planned in plan.absences
        ]
        self._write(self.repository.insert_absences, rows, plan.employee_id)

        logger.info(
            f"Created {len(rows)} {absence_type.value} absence(s) "
            f"for employee {plan.employee_id} in company {company_id}"
        )
        return rows

    def update_absence_dates(
        self,
        company_id: str,
        absence_id: str,
        first_day: Optional[str],
        last_day_expected: Optional[str],
        last_day_actual: Optional[str] = None,
        reference_notes: Optional[str] = None,
        total_days: Any = None,
        weeks_of_leave: Any = None,
        reference_date: Optional[str] = None,
    ) -> Absence:
        """
        Change the dates of an existing absence.

        Every edit gets the first/expected/actual date checks. Leave other
        than sickness is then validated again by its own policy, so the
        bereavement window and required quantities apply on edit as on
        creation. The stored reference date is used when none is sent.
        The absence's own row is excluded from the overlap check.

        Raises:
            NotFoundError: Absence does not exist in the company
            AbsenceCancelledError: Absence is cancelled
            LeaveValidationError: A leave rule was broken
            AbsenceOverlapError: New dates overlap another absence
        """
        absence = self.repository.get_absence(company_id, absence_id)
        if absence is None:
            raise create_not_found_error("Absence", absence_id)
        if absence.status == AbsenceStatus.CANCELLED.value:
            raise AbsenceCancelledError(details={"absence_id": str(absence.id)})

        plan = SicknessPolicy().validate(SicknessRequest(
            employee_id=absence.employee_id,
            first_day=first_day,
            last_day_expected=last_day_expected,
            last_day_actual=last_day_actual,
            reference_notes=reference_notes,
        ))
        planned = plan.absences[0]

        absence_type = AbsenceType(absence.type)
        if absence_type != AbsenceType.SICKNESS:
            revalidated = self._revalidate_leave(
                absence,
                absence_type,
                planned,
                reference_notes=reference_notes,
                total_days=total_days,
                weeks_of_leave=weeks_of_leave,
                reference_date=reference_date,
            )
            planned.reference_notes = revalidated.reference_notes
            planned.reference_date = revalidated.reference_date

        self._ensure_no_overlap(company_id, plan, exclude_id=absence.id)

        absence.first_day = planned.first_day
        absence.last_day_expected = planned.last_day_expected
        absence.last_day_actual = planned.last_day_actual
        if reference_notes is not None:
            absence.reference_notes = planned.reference_notes
        if planned.reference_date is not None:
            absence.reference_date = planned.reference_date

        self._write(self.repository.update_absence, absence, absence.employee_id)

        logger.info(f"Updated dates of absence {absence.id} in company {company_id}")
        return absence

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _validate_check_input(
        employee_id: Optional[str],
        start: DateInput,
        end: DateInput,
    ) -> None:
        if not (employee_id or "").strip():
            raise ValidationError(
                "Missing employeeId.",
                field_errors=[FieldError(
                    field="employee_id",
                    message="Employee is required.",
                    code="required",
                )],
            )
        if parse_iso_date(start) is None or parse_iso_date(end) is None:
            raise ValidationError("Start date and end date must be YYYY-MM-DD.")

    def _revalidate_leave(
        self,
        absence: Absence,
        absence_type: AbsenceType,
        planned: PlannedAbsence,
        reference_notes: Optional[str] = None,
        total_days: Any = None,
        weeks_of_leave: Any = None,
        reference_date: Optional[str] = None,
    ) -> PlannedAbsence:
        """Run the absence type's own policy over the edited range."""
        policy = get_leave_policy(
            absence_type,
            bereavement_window_weeks=self.settings.absence.bereavement_window_weeks,
        )
        start = planned.first_day.isoformat()
        end = planned.effective_last_day.isoformat()

        reference = reference_date
        if not reference and absence.reference_date is not None:
            reference = absence.reference_date.isoformat()

        if absence_type == AbsenceType.PARENTAL_BEREAVEMENT:
            if not reference:
                raise LeaveValidationError(
                    LeaveRule.MISSING_REFERENCE_DATE.value,
                    "The event date is not recorded for this absence. "
                    "Send referenceDate to change its dates.",
                    field="reference_date",
                )
            request = ParentalBereavementRequest(
                employee_id=absence.employee_id,
                event_date=reference,
                blocks=[LeaveBlock(start_date=start, end_date=end)],
                notes=reference_notes,
            )
        else:
            request = DateRangeLeaveRequest(
                employee_id=absence.employee_id,
                start_date=start,
                end_date=end,
                total_days=total_days,
                weeks_of_leave=weeks_of_leave,
                reference_date=reference,
                notes=reference_notes,
            )

        return policy.validate(request).absences[0]

    def _resolve_employee(self, company_id: str, employee_id: str) -> Employee:
        employee = self.repository.get_employee(employee_id)
        if employee is None:
            raise EmployeeNotFoundError(details={"employee_id": employee_id})
        if str(employee.company_id) != str(company_id):
            raise EmployeeNotInCompanyError(details={"employee_id": employee_id})
        return employee

    def _ensure_no_overlap(
        self,
        company_id: str,
        plan: LeavePlan,
        exclude_id: Optional[str] = None,
    ) -> None:
        existing = map_absence_rows_to_ranges(
            self.repository.list_active_absences(company_id, plan.employee_id)
        )

        conflicts: List[OverlapConflict] = []
        for planned in plan.absences:
            result = validate_absence_overlap(
                planned.first_day,
                planned.effective_last_day,
                existing,
                exclude_id=exclude_id,
            )
            for conflict in result.conflicts:
                if conflict not in conflicts:
                    conflicts.append(conflict)

        if conflicts:
            logger.warning(
                f"Rejected absence for employee {plan.employee_id}: "
                f"overlaps {[c.id for c in conflicts]}"
            )
            raise AbsenceOverlapError([c.to_dict() for c in conflicts])

    def _write(self, operation, payload, employee_id: str):
        try:
            return operation(payload)
        except DBAPIError as e:
            if is_overlap_error(e):
                logger.warning(
                    f"Store rejected overlapping absence for employee {employee_id}"
                )
                raise AbsenceOverlapError() from e
            raise

    @staticmethod
    def _build_absence(company_id: str, employee_id: str, planned: PlannedAbsence) -> Absence:
        return Absence(
            id=str(uuid4()),
            company_id=company_id,
            employee_id=employee_id,
            type=planned.absence_type.value,
            status=AbsenceStatus.DRAFT.value,
            first_day=planned.first_day,
            last_day_expected=planned.last_day_expected,
            last_day_actual=planned.last_day_actual,
            reference_notes=planned.reference_notes,
            reference_date=planned.reference_date,
        )
