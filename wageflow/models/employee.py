"""SQLAlchemy Employee model for database operations."""

from datetime import datetime
from typing import TYPE_CHECKING, List, Optional
from uuid import uuid4

from sqlalchemy import DateTime, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from wageflow.models.base import Base

if TYPE_CHECKING:
    from wageflow.models.absence import Absence


class Employee(Base):
    """
    Employee record as seen by the absence domain.

    Only the fields needed to scope absences to a company are mapped here.
    Payroll, bank and contact details are owned by other modules.
    """

    __tablename__ = "employees"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    company_id: Mapped[str] = mapped_column(UUID(as_uuid=False), nullable=False, index=True)

    first_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    # Relationships
    absences: Mapped[List["Absence"]] = relationship(
        "Absence",
        back_populates="employee",
    )

    def __repr__(self) -> str:
        return f"Employee(id={self.id}, company_id={self.company_id})"
