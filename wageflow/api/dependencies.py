"""Shared FastAPI dependencies."""

from typing import Annotated, Optional

from fastapi import Depends, Header, Query
from sqlalchemy.orm import Session

from wageflow.database import get_db
from wageflow.services.absence_service import AbsenceService
from wageflow.services.ssp_service import SspService
from wageflow.utils.errors import ValidationError


def get_absence_service(
    session: Annotated[Session, Depends(get_db)],
) -> AbsenceService:
    """Get absence service instance."""
    return AbsenceService(session)


def get_ssp_service(
    session: Annotated[Session, Depends(get_db)],
) -> SspService:
    """Get SSP service instance."""
    return SspService(session)


def get_company_id(
    x_company_id: Annotated[Optional[str], Header(alias="X-Company-ID")] = None,
    company_id: Annotated[Optional[str], Query(alias="companyId")] = None,
) -> str:
    """
    Company the request acts on.

    Taken from the ``X-Company-ID`` header, or the ``companyId`` query
    parameter for report-style GET endpoints.
    """
    value = (x_company_id or company_id or "").strip()
    if not value:
        raise ValidationError("Missing company. Send the X-Company-ID header.")
    return value
