"""API endpoints for recording and editing absences."""

from typing import Annotated, List

from fastapi import APIRouter, Depends, status

from wageflow.api.dependencies import get_absence_service, get_company_id
from wageflow.models.absence import Absence, AbsenceType
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
from wageflow.services.absence_service import AbsenceService


absence_router = APIRouter(
    prefix="/api/absence",
    tags=["Absences"],
)

AbsenceServiceDep = Annotated[AbsenceService, Depends(get_absence_service)]
CompanyIdDep = Annotated[str, Depends(get_company_id)]


def _created(absences: List[Absence]) -> AbsenceCreateResponse:
    return AbsenceCreateResponse(
        absences=[AbsenceResponse.model_validate(a) for a in absences],
    )


# =============================================================================
# Overlap Pre-check
# =============================================================================

@absence_router.post(
    "/check-overlap",
    response_model=OverlapCheckResponse,
    summary="Check absence overlap",
    description="Returns 409 ABSENCE_DATE_OVERLAP with the conflicting absences when the proposed dates share a day with one.",
)
async def check_overlap(
    request: OverlapCheckRequest,
    service: AbsenceServiceDep,
    company_id: CompanyIdDep,
):
    outcome = service.check_overlap(
        company_id,
        request.employee_id,
        request.start_date,
        request.end_date,
        exclude_id=request.exclude_id,
    )
    return outcome.to_dict()


# =============================================================================
# Leave Creation Endpoints
# =============================================================================

@absence_router.post(
    "/sickness",
    response_model=AbsenceCreateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record sickness",
)
async def create_sickness(
    data: SicknessAbsenceCreate,
    service: AbsenceServiceDep,
    company_id: CompanyIdDep,
):
    absences = service.create_leave(company_id, AbsenceType.SICKNESS, data.to_request())
    return _created(absences)


@absence_router.post(
    "/annual",
    response_model=AbsenceCreateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record annual leave",
)
async def create_annual_leave(
    data: LeaveAbsenceCreate,
    service: AbsenceServiceDep,
    company_id: CompanyIdDep,
):
    absences = service.create_leave(company_id, AbsenceType.ANNUAL_LEAVE, data.to_request())
    return _created(absences)


@absence_router.post(
    "/maternity",
    response_model=AbsenceCreateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record maternity leave",
)
async def create_maternity_leave(
    data: LeaveAbsenceCreate,
    service: AbsenceServiceDep,
    company_id: CompanyIdDep,
):
    absences = service.create_leave(
        company_id, AbsenceType.MATERNITY, data.to_request("ewc_date")
    )
    return _created(absences)


@absence_router.post(
    "/adoption",
    response_model=AbsenceCreateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record adoption leave",
)
async def create_adoption_leave(
    data: LeaveAbsenceCreate,
    service: AbsenceServiceDep,
    company_id: CompanyIdDep,
):
    absences = service.create_leave(
        company_id, AbsenceType.ADOPTION_LEAVE, data.to_request("placement_date")
    )
    return _created(absences)


@absence_router.post(
    "/paternity",
    response_model=AbsenceCreateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record paternity leave",
)
async def create_paternity_leave(
    data: LeaveAbsenceCreate,
    service: AbsenceServiceDep,
    company_id: CompanyIdDep,
):
    absences = service.create_leave(
        company_id, AbsenceType.PATERNITY_LEAVE, data.to_request("due_date")
    )
    return _created(absences)


@absence_router.post(
    "/shared-parental",
    response_model=AbsenceCreateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record shared parental leave",
)
async def create_shared_parental_leave(
    data: LeaveAbsenceCreate,
    service: AbsenceServiceDep,
    company_id: CompanyIdDep,
):
    absences = service.create_leave(
        company_id, AbsenceType.SHARED_PARENTAL_LEAVE, data.to_request("child_arrival_date")
    )
    return _created(absences)


@absence_router.post(
    "/unpaid",
    response_model=AbsenceCreateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record unpaid leave",
)
async def create_unpaid_leave(
    data: LeaveAbsenceCreate,
    service: AbsenceServiceDep,
    company_id: CompanyIdDep,
):
    absences = service.create_leave(company_id, AbsenceType.UNPAID_LEAVE, data.to_request())
    return _created(absences)


@absence_router.post(
    "/bereaved-partners-paternity",
    response_model=AbsenceCreateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record bereaved partner's paternity leave",
)
async def create_bereaved_partners_paternity(
    data: LeaveAbsenceCreate,
    service: AbsenceServiceDep,
    company_id: CompanyIdDep,
):
    absences = service.create_leave(
        company_id, AbsenceType.BEREAVED_PARTNERS_PATERNITY, data.to_request()
    )
    return _created(absences)


@absence_router.post(
    "/parental-bereavement",
    response_model=AbsenceCreateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record parental bereavement leave",
    description="One block, or two blocks when taken as two separate weeks, within 56 weeks of the event.",
)
async def create_parental_bereavement(
    data: ParentalBereavementCreate,
    service: AbsenceServiceDep,
    company_id: CompanyIdDep,
):
    absences = service.create_leave(
        company_id, AbsenceType.PARENTAL_BEREAVEMENT, data.to_request()
    )
    return _created(absences)


# =============================================================================
# Edit Endpoint
# =============================================================================

@absence_router.patch(
    "/{absence_id}",
    response_model=AbsenceUpdateResponse,
    summary="Change absence dates",
    description="Dates are validated again by the rules of the absence's leave type.",
)
async def update_absence(
    absence_id: str,
    data: AbsenceDatesUpdate,
    service: AbsenceServiceDep,
    company_id: CompanyIdDep,
):
    absence = service.update_absence_dates(
        company_id,
        absence_id,
        first_day=data.first_day,
        last_day_expected=data.last_day_expected,
        last_day_actual=data.last_day_actual,
        reference_notes=data.reference_notes,
        total_days=data.total_days,
        weeks_of_leave=data.weeks_of_leave,
        reference_date=data.reference_date,
    )
    return AbsenceUpdateResponse(absence=AbsenceResponse.model_validate(absence))
