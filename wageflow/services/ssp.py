"""
Statutory Sick Pay qualifying and payable day model.

Pure computation over sickness absence rows: which days in a pay run are
qualifying days, which of those are payable once waiting days in the linked
chain are served, and what that comes to in money.
"""

from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Tuple, Union

from wageflow.services.absence_overlap import (
    get_effective_end_date,
    parse_iso_date,
    read_row_field,
)


DEFAULT_WAITING_DAYS = 3
DEFAULT_LINKING_GAP_DAYS = 56
DEFAULT_QUALIFYING_DAYS_PER_WEEK = 5

MAX_WAITING_DAYS = 7

_PENNY = Decimal("0.01")

Number = Union[Decimal, float, int, str]


# =============================================================================
# Statutory Rates
# =============================================================================

@dataclass(frozen=True)
class TaxYearRates:
    """Statutory weekly figures for one UK tax year (starting 6 April)."""

    tax_year: str
    starts_on: date
    ssp_weekly: Decimal


TAX_YEAR_RATES: Tuple[TaxYearRates, ...] = (
    TaxYearRates(
        tax_year="2024-25",
        starts_on=date(2024, 4, 6),
        ssp_weekly=Decimal("116.75"),
    ),
    TaxYearRates(
        tax_year="2025-26",
        starts_on=date(2025, 4, 6),
        ssp_weekly=Decimal("118.75"),
    ),
)


def rates_for(on_date: date) -> TaxYearRates:
    """
    Return the rates in force on a date.

    Dates before the first known tax year use the earliest rates; dates
    after the last one use the latest.
    """
    selected = TAX_YEAR_RATES[0]
    for rates in TAX_YEAR_RATES:
        if rates.starts_on <= on_date:
            selected = rates
    return selected


# =============================================================================
# Day and Money Helpers
# =============================================================================

def qualifying_weekdays(qualifying_days_per_week: int) -> FrozenSet[int]:
    """
    Weekday numbers (Monday=0) that are qualifying days.

    N qualifying days per week means the first N days starting Monday,
    so 5 gives Monday to Friday.
    """
    if not 1 <= qualifying_days_per_week <= 7:
        raise ValueError("qualifying_days_per_week must be between 1 and 7")
    return frozenset(range(qualifying_days_per_week))


def round_money(value: Number) -> Decimal:
    """Round to pence, halves away from zero."""
    return Decimal(str(value)).quantize(_PENNY, rounding=ROUND_HALF_UP)


def daily_rate_from_weekly(weekly_rate: Number, qualifying_days_per_week: int) -> Decimal:
    """Daily SSP rate: weekly flat rate spread over the qualifying days."""
    return round_money(Decimal(str(weekly_rate)) / Decimal(qualifying_days_per_week))


def compute_ssp_amount(payable_days: int, daily_rate: Number) -> Decimal:
    """SSP due for a number of payable days, e.g. 4 x 21.35 = 85.40."""
    return round_money(Decimal(payable_days) * Decimal(str(daily_rate)))


def _clamp_waiting_days(waiting_days: int) -> int:
    return max(0, min(MAX_WAITING_DAYS, int(waiting_days)))


# =============================================================================
# Plan Types
# =============================================================================

@dataclass
class SspAbsencePlan:
    """Qualifying and payable days of one sickness absence inside a run."""

    absence_id: str
    employee_id: str
    run_start: date
    run_end: date
    sickness_start: date
    sickness_end: date
    qualifying_days: List[date] = field(default_factory=list)
    payable_days: List[date] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "absenceId": self.absence_id,
            "employeeId": self.employee_id,
            "runStart": self.run_start.isoformat(),
            "runEnd": self.run_end.isoformat(),
            "sicknessStart": self.sickness_start.isoformat(),
            "sicknessEnd": self.sickness_end.isoformat(),
            "qualifyingDays": [d.isoformat() for d in self.qualifying_days],
            "payableDays": [d.isoformat() for d in self.payable_days],
        }


@dataclass
class SspEmployeePlan:
    """All sickness for one employee inside a run."""

    employee_id: str
    absences: List[SspAbsencePlan] = field(default_factory=list)
    total_qualifying_days: int = 0
    total_payable_days: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "employeeId": self.employee_id,
            "absences": [a.to_dict() for a in self.absences],
            "totalQualifyingDays": self.total_qualifying_days,
            "totalPayableDays": self.total_payable_days,
        }


@dataclass
class SspEmployeeAmount:
    """SSP due to one employee for a run."""

    employee_id: str
    total_qualifying_days: int
    total_payable_days: int
    daily_rate: Decimal
    ssp_amount: Decimal
    daily_rate_source: str
    absences: List[SspAbsencePlan] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "employeeId": self.employee_id,
            "totalQualifyingDays": self.total_qualifying_days,
            "totalPayableDays": self.total_payable_days,
            "dailyRate": float(self.daily_rate),
            "sspAmount": float(self.ssp_amount),
            "dailyRateSource": self.daily_rate_source,
            "absences": [a.to_dict() for a in self.absences],
        }


# =============================================================================
# Linked Chain Computation
# =============================================================================

def _absence_span(row: Any) -> Optional[Tuple[date, date]]:
    start = parse_iso_date(read_row_field(row, "first_day"))
    end = parse_iso_date(get_effective_end_date(row))
    if start is None or end is None:
        return None
    return (start, end) if start <= end else (end, start)


def compute_ssp_plan_for_employee(
    employee_id: str,
    absences: Iterable[Any],
    run_start: date,
    run_end: date,
    waiting_days: int = DEFAULT_WAITING_DAYS,
    qualifying_days_per_week: int = DEFAULT_QUALIFYING_DAYS_PER_WEEK,
    linking_gap_days: int = DEFAULT_LINKING_GAP_DAYS,
) -> SspEmployeePlan:
    """
    Work out qualifying and payable days for one employee.

    Absences are walked in order of first day then effective end. They form
    one linked chain until the gap between the chain's latest end and the
    next absence's start exceeds ``linking_gap_days``; then the waiting-day
    count starts again. Waiting days are served on qualifying days whether
    or not they fall inside the run, but only days inside
    ``[run_start, run_end]`` are reported.

    Args:
        employee_id: Employee the absences belong to
        absences: Sickness absence rows, including look-back history
        run_start: First day of the pay run
        run_end: Last day of the pay run
        waiting_days: Unpaid qualifying days per chain (clamped to 0-7)
        qualifying_days_per_week: Qualifying days counted from Monday
        linking_gap_days: Largest gap that still links two absences

    Returns:
        SspEmployeePlan with only the absences that have qualifying days
        inside the run
    """
    weekdays = qualifying_weekdays(qualifying_days_per_week)
    target = _clamp_waiting_days(waiting_days)

    spans = []
    for row in absences:
        span = _absence_span(row)
        if span is not None:
            spans.append((span[0], span[1], row))
    spans.sort(key=lambda item: (item[0], item[1]))

    plan = SspEmployeePlan(employee_id=employee_id)
    chain_end: Optional[date] = None
    waiting_served = 0

    for start, end, row in spans:
        if chain_end is not None and (start - chain_end).days > linking_gap_days:
            waiting_served = 0

        qualifying_in_run: List[date] = []
        payable_in_run: List[date] = []

        day = start
        while day <= end:
            if day.weekday() in weekdays:
                payable = waiting_served >= target
                if not payable:
                    waiting_served += 1

                if run_start <= day <= run_end:
                    qualifying_in_run.append(day)
                    if payable:
                        payable_in_run.append(day)
            day += timedelta(days=1)

        if qualifying_in_run:
            plan.absences.append(SspAbsencePlan(
                absence_id=str(read_row_field(row, "id")),
                employee_id=employee_id,
                run_start=run_start,
                run_end=run_end,
                sickness_start=start,
                sickness_end=end,
                qualifying_days=qualifying_in_run,
                payable_days=payable_in_run,
            ))
            plan.total_qualifying_days += len(qualifying_in_run)
            plan.total_payable_days += len(payable_in_run)

        if chain_end is None or end > chain_end:
            chain_end = end

    return plan


def compute_ssp_plans(
    absences: Iterable[Any],
    run_start: date,
    run_end: date,
    waiting_days: int = DEFAULT_WAITING_DAYS,
    qualifying_days_per_week: int = DEFAULT_QUALIFYING_DAYS_PER_WEEK,
    linking_gap_days: int = DEFAULT_LINKING_GAP_DAYS,
) -> List[SspEmployeePlan]:
    """
    Group sickness rows by employee and plan each one.

    Employees without a qualifying day in the run are left out.
    """
    by_employee: Dict[str, List[Any]] = {}
    for row in absences:
        employee_id = str(read_row_field(row, "employee_id"))
        by_employee.setdefault(employee_id, []).append(row)

    plans = []
    for employee_id, rows in by_employee.items():
        plan = compute_ssp_plan_for_employee(
            employee_id,
            rows,
            run_start,
            run_end,
            waiting_days=waiting_days,
            qualifying_days_per_week=qualifying_days_per_week,
            linking_gap_days=linking_gap_days,
        )
        if plan.total_qualifying_days > 0:
            plans.append(plan)

    return plans


def compute_ssp_amounts(
    plans: Iterable[SspEmployeePlan],
    daily_rate: Number,
    daily_rate_source: str = "statutory",
) -> List[SspEmployeeAmount]:
    """Price each employee plan at a daily rate. Only the amounts are rounded."""
    rate = Decimal(str(daily_rate))
    return [
        SspEmployeeAmount(
            employee_id=plan.employee_id,
            total_qualifying_days=plan.total_qualifying_days,
            total_payable_days=plan.total_payable_days,
            daily_rate=rate,
            ssp_amount=compute_ssp_amount(plan.total_payable_days, rate),
            daily_rate_source=daily_rate_source,
            absences=plan.absences,
        )
        for plan in plans
    ]
