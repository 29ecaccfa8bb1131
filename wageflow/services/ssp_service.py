"""Service for SSP plans and previews over a pay run."""

import logging
import math
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from wageflow.config.settings import Settings, get_settings
from wageflow.data.absence_repository import AbsenceRepository
from wageflow.services.absence_overlap import parse_iso_date
from wageflow.services.ssp import (
    SspEmployeeAmount,
    SspEmployeePlan,
    compute_ssp_amounts,
    compute_ssp_plans,
    daily_rate_from_weekly,
    rates_for,
)
from wageflow.utils.errors import ValidationError

logger = logging.getLogger(__name__)


@dataclass
class SspPreview:
    """Priced SSP for every employee with sickness in a run."""

    run_start: date
    run_end: date
    tax_year: str
    weekly_rate: Decimal
    daily_rate: Decimal
    daily_rate_source: str
    qualifying_days_per_week: int
    waiting_days: int
    employees: List[SspEmployeeAmount] = field(default_factory=list)

    @property
    def total_ssp(self) -> Decimal:
        return sum((e.ssp_amount for e in self.employees), Decimal("0.00"))

    @property
    def employee_count(self) -> int:
        return len(self.employees)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "runStart": self.run_start.isoformat(),
            "runEnd": self.run_end.isoformat(),
            "taxYear": self.tax_year,
            "weeklyRate": float(self.weekly_rate),
            "dailyRate": float(self.daily_rate),
            "dailyRateSource": self.daily_rate_source,
            "qualifyingDaysPerWeek": self.qualifying_days_per_week,
            "waitingDays": self.waiting_days,
            "employees": [e.to_dict() for e in self.employees],
            "totals": {
                "totalSsp": float(self.total_ssp),
                "employeeCount": self.employee_count,
            },
        }


class SspService:
    """Load sickness history for a run and apply the SSP day model."""

    def __init__(
        self,
        db: Session,
        settings: Optional[Settings] = None,
        repository: Optional[AbsenceRepository] = None,
    ):
        self.db = db
        self.settings = settings or get_settings()
        self.repository = repository or AbsenceRepository(db)

    def get_ssp_plans(
        self,
        company_id: str,
        start: Optional[str],
        end: Optional[str],
        qualifying_days_per_week: Optional[int] = None,
    ) -> List[SspEmployeePlan]:
        """Qualifying and payable days per employee for a run."""
        run_start, run_end = self._parse_run(company_id, start, end)
        days_per_week = self._qualifying_days_per_week(qualifying_days_per_week)

        history_start = run_start - timedelta(days=self.settings.ssp.lookback_days)
        rows = self.repository.list_sickness_absences_for_run(company_id, history_start, run_end)

        plans = compute_ssp_plans(
            rows,
            run_start,
            run_end,
            waiting_days=self.settings.ssp.waiting_days,
            qualifying_days_per_week=days_per_week,
            linking_gap_days=self.settings.ssp.linking_gap_days,
        )
        logger.info(
            f"SSP plan for company {company_id} {run_start}..{run_end}: "
            f"{len(plans)} employee(s) from {len(rows)} absence(s)"
        )
        return plans

    def get_ssp_preview(
        self,
        company_id: str,
        start: Optional[str],
        end: Optional[str],
        daily_rate: Any = None,
        qualifying_days_per_week: Optional[int] = None,
    ) -> SspPreview:
        """
        Price the run's SSP plans.

        Without ``daily_rate`` the statutory weekly rate for the tax year of
        the run end date is spread over the qualifying days.
        """
        run_start, run_end = self._parse_run(company_id, start, end)
        days_per_week = self._qualifying_days_per_week(qualifying_days_per_week)
        rates = rates_for(run_end)

        if daily_rate is None or daily_rate == "":
            rate = daily_rate_from_weekly(rates.ssp_weekly, days_per_week)
            source = "statutory"
        else:
            rate = self._parse_daily_rate(daily_rate)
            source = "override"

        plans = self.get_ssp_plans(company_id, start, end, days_per_week)

        return SspPreview(
            run_start=run_start,
            run_end=run_end,
            tax_year=rates.tax_year,
            weekly_rate=rates.ssp_weekly,
            daily_rate=rate,
            daily_rate_source=source,
            qualifying_days_per_week=days_per_week,
            waiting_days=self.settings.ssp.waiting_days,
            employees=compute_ssp_amounts(plans, rate, source),
        )

    # =========================================================================
    # Input Validation
    # =========================================================================

    @staticmethod
    def _parse_run(
        company_id: Optional[str],
        start: Optional[str],
        end: Optional[str],
    ) -> Tuple[date, date]:
        if not company_id or not start or not end:
            raise ValidationError("Missing companyId, start or end.")

        run_start = parse_iso_date(start)
        run_end = parse_iso_date(end)
        if run_start is None or run_end is None:
            raise ValidationError("Invalid start/end. Expected YYYY-MM-DD.")
        if run_end < run_start:
            raise ValidationError("end must be on or after start.")
        return run_start, run_end

    def _qualifying_days_per_week(self, value: Optional[int]) -> int:
        if value is None:
            return self.settings.ssp.default_qualifying_days_per_week
        if not 1 <= int(value) <= 7:
            raise ValidationError("qualifyingDaysPerWeek must be between 1 and 7.")
        return int(value)

    @staticmethod
    def _parse_daily_rate(value: Any) -> Decimal:
        try:
            number = float(value)
        except (TypeError, ValueError):
            number = math.nan
        if not math.isfinite(number) or number <= 0:
            raise ValidationError("Invalid dailyRate. Must be a positive number.")
        return Decimal(str(value).strip())
