"""Tests for the SSP qualifying and payable day model."""

from datetime import date
from decimal import Decimal

import pytest

from wageflow.services.ssp import (
    SspEmployeePlan,
    compute_ssp_amount,
    compute_ssp_amounts,
    compute_ssp_plan_for_employee,
    compute_ssp_plans,
    daily_rate_from_weekly,
    qualifying_weekdays,
    rates_for,
    round_money,
)


MARCH_START = date(2025, 3, 1)
MARCH_END = date(2025, 3, 31)


def sickness(absence_id, first_day, last_day, employee_id="emp-1", actual=None):
    return {
        "id": absence_id,
        "employee_id": employee_id,
        "first_day": first_day,
        "last_day_expected": last_day,
        "last_day_actual": actual,
    }


class TestRatesAndRounding:
    """Tests for statutory rates and money helpers."""

    def test_tax_year_boundary_is_6_april(self):
        """Test the new rate applies from 6 April."""
        assert rates_for(date(2025, 4, 5)).tax_year == "2024-25"
        assert rates_for(date(2025, 4, 6)).tax_year == "2025-26"
        assert rates_for(date(2025, 4, 6)).ssp_weekly == Decimal("118.75")

    def test_dates_outside_table_use_nearest_year(self):
        """Test early and late dates fall back to the first and last known years."""
        assert rates_for(date(2020, 1, 1)).ssp_weekly == Decimal("116.75")
        assert rates_for(date(2031, 1, 1)).ssp_weekly == Decimal("118.75")

    def test_daily_rate_from_weekly(self):
        """Test the weekly rate is spread over qualifying days and rounded."""
        assert daily_rate_from_weekly(Decimal("118.75"), 5) == Decimal("23.75")
        assert daily_rate_from_weekly(Decimal("116.75"), 3) == Decimal("38.92")

    def test_round_money_rounds_halves_up(self):
        """Test halves round away from zero."""
        assert round_money("0.125") == Decimal("0.13")
        assert round_money(2.675) == Decimal("2.68")

    def test_amount_for_four_days(self):
        """Test 4 payable days at 21.35 is exactly 85.40."""
        assert compute_ssp_amount(4, Decimal("21.35")) == Decimal("85.40")
        assert compute_ssp_amount(4, 21.35) == Decimal("85.40")

    def test_amount_is_idempotent(self):
        """Test recomputing with the same inputs gives the same amount."""
        results = {compute_ssp_amount(4, "21.35") for _ in range(5)}
        assert results == {Decimal("85.40")}


class TestQualifyingWeekdays:
    """Tests for qualifying weekday selection."""

    def test_five_days_is_monday_to_friday(self):
        """Test the default pattern."""
        assert qualifying_weekdays(5) == frozenset({0, 1, 2, 3, 4})

    def test_three_days_is_monday_to_wednesday(self):
        """Test N days are counted from Monday."""
        assert qualifying_weekdays(3) == frozenset({0, 1, 2})

    @pytest.mark.parametrize("value", [0, 8, -1])
    def test_out_of_range_rejected(self, value):
        """Test values outside 1 to 7 are rejected."""
        with pytest.raises(ValueError):
            qualifying_weekdays(value)


class TestComputeSspPlanForEmployee:
    """Tests for the linked chain and waiting days."""

    def test_single_absence_serves_waiting_days(self):
        """Test the first three qualifying days are not payable."""
        plan = compute_ssp_plan_for_employee(
            "emp-1",
            [sickness("s1", "2025-03-03", "2025-03-14")],
            MARCH_START,
            MARCH_END,
        )

        assert plan.total_qualifying_days == 10
        assert plan.total_payable_days == 7
        absence = plan.absences[0]
        assert absence.payable_days[0] == date(2025, 3, 6)
        assert date(2025, 3, 8) not in absence.qualifying_days

    def test_actual_last_day_ends_the_absence(self):
        """Test the actual return date shortens the absence."""
        plan = compute_ssp_plan_for_employee(
            "emp-1",
            [sickness("s1", "2025-03-03", "2025-03-14", actual="2025-03-07")],
            MARCH_START,
            MARCH_END,
        )

        assert plan.total_qualifying_days == 5
        assert plan.total_payable_days == 2

    def test_linked_absences_share_waiting_days(self):
        """Test waiting days served in January carry into a linked February absence."""
        absences = [
            sickness("jan", "2025-01-06", "2025-01-08"),
            sickness("feb", "2025-02-03", "2025-02-07"),
        ]

        plan = compute_ssp_plan_for_employee("emp-1", absences, date(2025, 2, 1), date(2025, 2, 28))

        assert [a.absence_id for a in plan.absences] == ["feb"]
        assert plan.total_qualifying_days == 5
        assert plan.total_payable_days == 5

    def test_gap_of_exactly_56_days_still_links(self):
        """Test a 56 day gap keeps the chain."""
        absences = [
            sickness("jan", "2025-01-06", "2025-01-08"),
            sickness("mar", "2025-03-05", "2025-03-07"),
        ]

        plan = compute_ssp_plan_for_employee("emp-1", absences, MARCH_START, MARCH_END)

        assert plan.total_qualifying_days == 3
        assert plan.total_payable_days == 3

    def test_gap_over_56_days_resets_waiting_days(self):
        """Test a gap longer than 56 days starts a new chain."""
        absences = [
            sickness("jan", "2025-01-06", "2025-01-08"),
            sickness("mar", "2025-03-10", "2025-03-14"),
        ]

        plan = compute_ssp_plan_for_employee("emp-1", absences, MARCH_START, MARCH_END)

        assert plan.total_qualifying_days == 5
        assert plan.total_payable_days == 2

    def test_waiting_days_consumed_before_run_start(self):
        """Test waiting days before the run are served but not reported."""
        plan = compute_ssp_plan_for_employee(
            "emp-1",
            [sickness("s1", "2025-03-03", "2025-03-07")],
            date(2025, 3, 6),
            MARCH_END,
        )

        assert plan.absences[0].qualifying_days == [date(2025, 3, 6), date(2025, 3, 7)]
        assert plan.total_payable_days == 2

    def test_input_order_does_not_matter(self):
        """Test absences are sorted before the chain is walked."""
        absences = [
            sickness("mar", "2025-03-10", "2025-03-14"),
            sickness("jan", "2025-01-06", "2025-01-08"),
        ]

        plan = compute_ssp_plan_for_employee("emp-1", absences, MARCH_START, MARCH_END)

        assert plan.total_payable_days == 2

    @pytest.mark.parametrize("waiting_days,expected_payable", [(0, 10), (3, 7), (7, 3), (12, 3), (-4, 10)])
    def test_waiting_days_are_clamped(self, waiting_days, expected_payable):
        """Test the waiting-day target is clamped to 0 to 7."""
        plan = compute_ssp_plan_for_employee(
            "emp-1",
            [sickness("s1", "2025-03-03", "2025-03-14")],
            MARCH_START,
            MARCH_END,
            waiting_days=waiting_days,
        )

        assert plan.total_payable_days == expected_payable

    def test_fewer_qualifying_days_per_week(self):
        """Test a three-day pattern only counts Monday to Wednesday."""
        plan = compute_ssp_plan_for_employee(
            "emp-1",
            [sickness("s1", "2025-03-03", "2025-03-14")],
            MARCH_START,
            MARCH_END,
            qualifying_days_per_week=3,
        )

        assert plan.total_qualifying_days == 6
        assert plan.total_payable_days == 3

    def test_unparseable_rows_are_ignored(self):
        """Test rows without a usable first day are skipped."""
        plan = compute_ssp_plan_for_employee(
            "emp-1",
            [sickness("bad", None, None), sickness("s1", "2025-03-03", "2025-03-07")],
            MARCH_START,
            MARCH_END,
        )

        assert [a.absence_id for a in plan.absences] == ["s1"]

    def test_plan_to_dict(self):
        """Test plan serialization uses ISO dates."""
        plan = compute_ssp_plan_for_employee(
            "emp-1",
            [sickness("s1", "2025-03-03", "2025-03-06")],
            MARCH_START,
            MARCH_END,
        )

        data = plan.to_dict()
        assert data["employeeId"] == "emp-1"
        assert data["totalPayableDays"] == 1
        assert data["absences"][0]["payableDays"] == ["2025-03-06"]
        assert data["absences"][0]["sicknessEnd"] == "2025-03-06"


class TestComputeSspPlans:
    """Tests for grouping and pricing."""

    def test_groups_by_employee_and_omits_empty_plans(self):
        """Test employees without qualifying days in the run are left out."""
        rows = [
            sickness("a", "2025-03-03", "2025-03-07", employee_id="emp-1"),
            sickness("b", "2025-03-08", "2025-03-09", employee_id="emp-2"),
            sickness("c", "2025-03-10", "2025-03-11", employee_id="emp-3"),
        ]

        plans = compute_ssp_plans(rows, MARCH_START, MARCH_END)

        assert [p.employee_id for p in plans] == ["emp-1", "emp-3"]

    def test_amounts_priced_per_employee(self):
        """Test each plan is priced at the daily rate."""
        plans = [SspEmployeePlan(employee_id="emp-1", total_qualifying_days=7, total_payable_days=4)]

        amounts = compute_ssp_amounts(plans, "21.35", "override")

        assert amounts[0].ssp_amount == Decimal("85.40")
        assert amounts[0].to_dict()["sspAmount"] == 85.4
        assert amounts[0].daily_rate_source == "override"

    def test_unrounded_rate_is_not_rounded_before_multiplying(self):
        """Test a rate with more than two decimals is only rounded in the amount."""
        plans = [SspEmployeePlan(employee_id="emp-1", total_qualifying_days=7, total_payable_days=4)]

        amounts = compute_ssp_amounts(plans, "21.355", "override")

        assert amounts[0].daily_rate == Decimal("21.355")
        assert amounts[0].ssp_amount == Decimal("85.42")
