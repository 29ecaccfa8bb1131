"""API endpoints for Statutory Sick Pay over a pay run."""

from typing import Annotated, Any, Dict, Optional

from fastapi import APIRouter, Depends, Query

from wageflow.api.dependencies import get_company_id, get_ssp_service
from wageflow.services.ssp_service import SspService


ssp_router = APIRouter(
    prefix="/api/absence",
    tags=["Statutory Sick Pay"],
)


@ssp_router.get(
    "/ssp-plan",
    summary="SSP day plan for a run",
    description="Qualifying and payable SSP days per employee between start and end.",
)
async def get_ssp_plan(
    service: Annotated[SspService, Depends(get_ssp_service)],
    company_id: Annotated[str, Depends(get_company_id)],
    start: Annotated[Optional[str], Query()] = None,
    end: Annotated[Optional[str], Query()] = None,
    qualifying_days_per_week: Annotated[Optional[int], Query(alias="qualifyingDaysPerWeek")] = None,
) -> Dict[str, Any]:
    plans = service.get_ssp_plans(company_id, start, end, qualifying_days_per_week)
    return {
        "ok": True,
        "companyId": company_id,
        "start": start,
        "end": end,
        "plans": [p.to_dict() for p in plans],
    }


@ssp_router.get(
    "/ssp-preview",
    summary="SSP amounts for a run",
    description="SSP due per employee, at the statutory daily rate unless dailyRate is given.",
)
async def get_ssp_preview(
    service: Annotated[SspService, Depends(get_ssp_service)],
    company_id: Annotated[str, Depends(get_company_id)],
    start: Annotated[Optional[str], Query()] = None,
    end: Annotated[Optional[str], Query()] = None,
    daily_rate: Annotated[Optional[str], Query(alias="dailyRate")] = None,
    qualifying_days_per_week: Annotated[Optional[int], Query(alias="qualifyingDaysPerWeek")] = None,
) -> Dict[str, Any]:
    preview = service.get_ssp_preview(
        company_id,
        start,
        end,
        daily_rate=daily_rate,
        qualifying_days_per_week=qualifying_days_per_week,
    )
    return {"ok": True, "companyId": company_id, **preview.to_dict()}
