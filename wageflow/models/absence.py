"""SQLAlchemy model for employee absences."""

from datetime import date, datetime
from enum import Enum
from typing import TYPE_CHECKING, Optional
from uuid import uuid4

from sqlalchemy import Date, DateTime, ForeignKey, Index, String, Text, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from wageflow.models.base import Base

if TYPE_CHECKING:
    from wageflow.models.employee import Employee


class AbsenceType(str, Enum):
    """Types of absence recorded against an employee."""

    SICKNESS = "sickness"
    ANNUAL_LEAVE = "annual_leave"
    MATERNITY = "maternity"
    ADOPTION_LEAVE = "adoption_leave"
    PATERNITY_LEAVE = "paternity_leave"
    SHARED_PARENTAL_LEAVE = "shared_parental_leave"
    PARENTAL_BEREAVEMENT = "parental_bereavement"
    BEREAVED_PARTNERS_PATERNITY = "bereaved_partners_paternity"
    UNPAID_LEAVE = "unpaid_leave"


class AbsenceStatus(str, Enum):
    """
    Lifecycle status of an absence.

    Only DRAFT (set on creation) and CANCELLED (excluded from overlap checks)
    carry meaning here; the remaining states are owned by payroll processing.
    """

    DRAFT = "draft"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    PROCESSED = "processed"
    CANCELLED = "cancelled"


class Absence(Base):
    """One period of leave for one employee."""

    __tablename__ = "absences"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )

    # Scope
    company_id: Mapped[str] = mapped_column(UUID(as_uuid=False), nullable=False)
    employee_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
    )

    # Absence details
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        default=AbsenceStatus.DRAFT.value,
    )

    # Dates (inclusive)
    first_day: Mapped[date] = mapped_column(Date, nullable=False)
    last_day_expected: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    last_day_actual: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    reference_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Date the leave is measured from, such as the bereavement event date
    reference_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        onupdate=func.now(),
    )

    # Relationships
    employee: Mapped["Employee"] = relationship(
        "Employee",
        back_populates="absences",
    )

    __table_args__ = (
        Index("ix_absences_company_employee", "company_id", "employee_id"),
        Index("ix_absences_company_type_first_day", "company_id", "type", "first_day"),
    )

    @property
    def effective_last_day(self) -> date:
        """Actual last day if recorded, else expected, else the first day."""
        return self.last_day_actual or self.last_day_expected or self.first_day

    def __repr__(self) -> str:
        return (
            f"Absence(id={self.id}, employee_id={self.employee_id}, "
            f"type={self.type}, status={self.status})"
        )
