"""Absence repository for data access operations."""

from datetime import date
from typing import Iterable, List, Optional, Sequence

from sqlalchemy import and_, func, select
from sqlalchemy.orm import Session

from wageflow.models.absence import Absence, AbsenceStatus, AbsenceType
from wageflow.models.employee import Employee


class AbsenceRepository:
    """
    Repository for absence data access operations.

    Every query is scoped by company. Cancelled absences never take part in
    overlap checks or SSP calculations.
    """

    def __init__(self, session: Session):
        """Initialize repository with database session."""
        self.session = session

    # =========================================================================
    # Lookups
    # =========================================================================

    def get_employee(self, employee_id: str) -> Optional[Employee]:
        """Get an employee by ID regardless of company."""
        return self.session.get(Employee, employee_id)

    def get_absence(self, company_id: str, absence_id: str) -> Optional[Absence]:
        """Get one absence within a company."""
        stmt = select(Absence).where(
            and_(
                Absence.id == absence_id,
                Absence.company_id == company_id,
            )
        )
        return self.session.execute(stmt).scalars().first()

    def list_active_absences(
        self,
        company_id: str,
        employee_id: str,
        exclude_id: Optional[str] = None,
    ) -> Sequence[Absence]:
        """
        List the employee's non-cancelled absences.

        Args:
            company_id: Company scope
            employee_id: Employee whose absences are loaded
            exclude_id: Absence to leave out (the one being edited)
        """
        stmt = (
            select(Absence)
            .where(
                and_(
                    Absence.company_id == company_id,
                    Absence.employee_id == employee_id,
                    Absence.status != AbsenceStatus.CANCELLED.value,
                )
            )
            .order_by(Absence.first_day)
        )

        if exclude_id is not None:
            stmt = stmt.where(Absence.id != exclude_id)

        return self.session.execute(stmt).scalars().all()

    def list_sickness_absences_for_run(
        self,
        company_id: str,
        history_start: date,
        run_end: date,
    ) -> Sequence[Absence]:
        """
        List sickness absences touching ``[history_start, run_end]``.

        ``history_start`` sits before the run start so that waiting days
        already served in a linked chain are known.
        """
        effective_end = func.coalesce(
            Absence.last_day_actual,
            Absence.last_day_expected,
            Absence.first_day,
        )

        stmt = (
            select(Absence)
            .where(
                and_(
                    Absence.company_id == company_id,
                    Absence.type == AbsenceType.SICKNESS.value,
                    Absence.status != AbsenceStatus.CANCELLED.value,
                    Absence.first_day <= run_end,
                    effective_end >= history_start,
                )
            )
            .order_by(Absence.employee_id, Absence.first_day)
        )

        return self.session.execute(stmt).scalars().all()

    # =========================================================================
    # Writes
    # =========================================================================

    def insert_absences(self, absences: Iterable[Absence]) -> List[Absence]:
        """
        Add absences and flush.

        Flushing here makes the exclusion constraint fire inside the call,
        so overlap violations surface to the caller as ``IntegrityError``.
        """
        created = list(absences)
        self.session.add_all(created)
        self.session.flush()
        return created

    def update_absence(self, absence: Absence) -> Absence:
        """Flush pending changes on an absence."""
        self.session.add(absence)
        self.session.flush()
        return absence
