"""Models package for the WageFlow absence domain."""

from wageflow.models.absence import Absence, AbsenceStatus, AbsenceType
from wageflow.models.base import Base
from wageflow.models.employee import Employee

__all__ = [
    "Absence",
    "AbsenceStatus",
    "AbsenceType",
    "Base",
    "Employee",
]
