"""Tests for absence and SSP API endpoints."""

from datetime import date
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from wageflow.api.dependencies import get_absence_service, get_ssp_service
from wageflow.config.settings import AbsenceSettings, OverlapCheckFailurePolicy, Settings
from wageflow.main import create_app
from wageflow.services.absence_service import AbsenceService
from wageflow.services.ssp_service import SspService


COMPANY_ID = "co-1"
EMPLOYEE_ID = "emp-1"
HEADERS = {"X-Company-ID": COMPANY_ID}


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def repository():
    """Mock repository with one stored sickness absence."""
    repo = MagicMock()
    repo.get_employee.return_value = SimpleNamespace(id=EMPLOYEE_ID, company_id=COMPANY_ID)
    repo.list_active_absences.return_value = [
        SimpleNamespace(
            id="abs-1",
            first_day=date(2025, 1, 6),
            last_day_expected=date(2025, 1, 10),
            last_day_actual=None,
        )
    ]
    repo.get_absence.return_value = None
    repo.list_sickness_absences_for_run.return_value = [
        SimpleNamespace(
            id="s1",
            employee_id=EMPLOYEE_ID,
            first_day=date(2025, 3, 3),
            last_day_expected=date(2025, 3, 11),
            last_day_actual=None,
        )
    ]
    return repo


@pytest.fixture
def settings():
    """Default settings."""
    return Settings()


@pytest.fixture
def client(repository, settings):
    """Test client with services backed by the mock repository."""
    app = create_app()
    session = MagicMock()
    app.dependency_overrides[get_absence_service] = lambda: AbsenceService(
        session, settings=settings, repository=repository
    )
    app.dependency_overrides[get_ssp_service] = lambda: SspService(
        session, settings=settings, repository=repository
    )
    return TestClient(app)


# =============================================================================
# Leave Creation Tests
# =============================================================================

class TestCreateLeaveEndpoints:
    """Test cases for leave creation endpoints."""

    def test_create_sickness_camel_case(self, client, repository):
        """Test a camelCase sickness body creates a draft absence."""
        response = client.post(
            "/api/absence/sickness",
            json={"employeeId": EMPLOYEE_ID, "firstDay": "2025-03-03", "lastDayExpected": "2025-03-07"},
            headers=HEADERS,
        )

        assert response.status_code == 201
        body = response.json()
        assert body["ok"] is True
        absence = body["absences"][0]
        assert absence["type"] == "sickness"
        assert absence["status"] == "draft"
        assert absence["firstDay"] == "2025-03-03"
        assert absence["lastDayExpected"] == "2025-03-07"
        repository.insert_absences.assert_called_once()

    def test_create_sickness_snake_case(self, client):
        """Test snake_case field names are accepted too."""
        response = client.post(
            "/api/absence/sickness",
            json={"employee_id": EMPLOYEE_ID, "first_day": "2025-03-03", "last_day_expected": "2025-03-07"},
            headers=HEADERS,
        )

        assert response.status_code == 201

    def test_missing_company_header(self, client):
        """Test requests without a company are rejected."""
        response = client.post(
            "/api/absence/sickness",
            json={"employeeId": EMPLOYEE_ID, "firstDay": "2025-03-03", "lastDayExpected": "2025-03-07"},
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_overlap_returns_conflict(self, client, repository):
        """Test overlapping dates return 409 with the conflicting absence."""
        response = client.post(
            "/api/absence/sickness",
            json={"employeeId": EMPLOYEE_ID, "firstDay": "2025-01-10", "lastDayExpected": "2025-01-14"},
            headers=HEADERS,
        )

        assert response.status_code == 409
        error = response.json()["error"]
        assert error["code"] == "ABSENCE_DATE_OVERLAP"
        assert error["details"]["conflicts"] == [
            {"id": "abs-1", "startDate": "2025-01-06", "endDate": "2025-01-10"}
        ]
        repository.insert_absences.assert_not_called()

    def test_annual_leave_requires_positive_total_days(self, client):
        """Test quantity rules surface as 400 with the rule name."""
        response = client.post(
            "/api/absence/annual",
            json={"employeeId": EMPLOYEE_ID, "startDate": "2025-03-03", "endDate": "2025-03-07", "totalDays": -1},
            headers=HEADERS,
        )

        assert response.status_code == 400
        assert response.json()["error"]["details"]["rule"] == "invalid_quantity"

    def test_adoption_records_placement_date(self, client):
        """Test the placement date is carried into the notes."""
        response = client.post(
            "/api/absence/adoption",
            json={
                "employeeId": EMPLOYEE_ID,
                "startDate": "2025-03-03",
                "endDate": "2025-03-07",
                "placementDate": "2025-03-01",
            },
            headers=HEADERS,
        )

        assert response.status_code == 201
        assert response.json()["absences"][0]["referenceNotes"] == "Placement date: 2025-03-01."

    def test_unknown_employee(self, client, repository):
        """Test an unknown employee returns 404."""
        repository.get_employee.return_value = None

        response = client.post(
            "/api/absence/unpaid",
            json={"employeeId": "nobody", "startDate": "2025-03-03", "endDate": "2025-03-07", "totalDays": 5},
            headers=HEADERS,
        )

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "EMPLOYEE_NOT_FOUND"


class TestParentalBereavementEndpoint:
    """Test cases for parental bereavement leave."""

    def test_two_separate_weeks(self, client):
        """Test two blocks create two absences."""
        response = client.post(
            "/api/absence/parental-bereavement",
            json={
                "employeeId": EMPLOYEE_ID,
                "eventDate": "2025-01-13",
                "leaveOption": "two_weeks_separate",
                "blocks": [
                    {"startDate": "2025-01-13", "endDate": "2025-01-19"},
                    {"startDate": "2025-06-02", "endDate": "2025-06-08"},
                ],
            },
            headers=HEADERS,
        )

        assert response.status_code == 201
        absences = response.json()["absences"]
        assert len(absences) == 2
        assert absences[0]["referenceNotes"] == "Event date: 2025-01-13."

    def test_end_after_56_weeks(self, client):
        """Test a block ending after the window is rejected with its own message."""
        response = client.post(
            "/api/absence/parental-bereavement",
            json={
                "employeeId": EMPLOYEE_ID,
                "eventDate": "2025-01-06",
                "blocks": [{"startDate": "2026-01-28", "endDate": "2026-02-03"}],
            },
            headers=HEADERS,
        )

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["message"] == "Leave must finish within 56 weeks of the event date."
        assert error["details"]["rule"] == "end_after_window"

    def test_malformed_blocks_body(self, client):
        """Test a body that cannot be parsed is a 400 validation error."""
        response = client.post(
            "/api/absence/parental-bereavement",
            json={"employeeId": EMPLOYEE_ID, "eventDate": "2025-01-06", "blocks": "one"},
            headers=HEADERS,
        )

        assert response.status_code == 400
        assert response.json()["ok"] is False


# =============================================================================
# Overlap Check and Edit Tests
# =============================================================================

class TestCheckOverlapEndpoint:
    """Test cases for the overlap pre-check."""

    def test_reports_overlap_as_conflict(self, client):
        """Test an overlap returns 409 with the conflicts verbatim."""
        response = client.post(
            "/api/absence/check-overlap",
            json={"employeeId": EMPLOYEE_ID, "startDate": "2025-01-08", "endDate": "2025-01-09"},
            headers=HEADERS,
        )

        assert response.status_code == 409
        body = response.json()
        assert body["ok"] is False
        assert body["error"]["code"] == "ABSENCE_DATE_OVERLAP"
        assert body["error"]["details"]["conflicts"] == [
            {"id": "abs-1", "startDate": "2025-01-06", "endDate": "2025-01-10"}
        ]

    def test_no_overlap(self, client):
        """Test free dates return ok with no conflicts."""
        response = client.post(
            "/api/absence/check-overlap",
            json={"employeeId": EMPLOYEE_ID, "startDate": "2025-01-13", "endDate": "2025-01-14"},
            headers=HEADERS,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["ok"] is True
        assert body["checked"] is True
        assert body["hasOverlap"] is False
        assert body["conflicts"] == []

    def test_missing_employee_rejected_before_store(self, client, repository):
        """Test a check without an employee is a validation error and reads nothing."""
        response = client.post(
            "/api/absence/check-overlap",
            json={"startDate": "2025-01-08", "endDate": "2025-01-09"},
            headers=HEADERS,
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"
        repository.list_active_absences.assert_not_called()

    def test_malformed_dates_rejected_before_store(self, client, repository):
        """Test unparseable dates are a validation error and read nothing."""
        response = client.post(
            "/api/absence/check-overlap",
            json={"employeeId": EMPLOYEE_ID, "startDate": "08/01/2025", "endDate": "2025-01-09"},
            headers=HEADERS,
        )

        assert response.status_code == 400
        repository.list_active_absences.assert_not_called()

    def test_current_id_excluded(self, client):
        """Test the record being edited is excluded."""
        response = client.post(
            "/api/absence/check-overlap",
            json={"employeeId": EMPLOYEE_ID, "startDate": "2025-01-08", "endDate": "2025-01-09", "currentId": "abs-1"},
            headers=HEADERS,
        )

        assert response.json()["hasOverlap"] is False

    def test_fail_closed_returns_503(self, client, repository):
        """Test the default policy reports the failure."""
        repository.list_active_absences.side_effect = OperationalError("SELECT ...", None, Exception("down"))

        response = client.post(
            "/api/absence/check-overlap",
            json={"employeeId": EMPLOYEE_ID, "startDate": "2025-01-08", "endDate": "2025-01-09"},
            headers=HEADERS,
        )

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "OVERLAP_CHECK_UNAVAILABLE"

    def test_fail_open_returns_unchecked(self, repository):
        """Test the fail-open policy returns ok without a check."""
        settings = Settings(
            absence=AbsenceSettings(overlap_check_failure_policy=OverlapCheckFailurePolicy.FAIL_OPEN)
        )
        repository.list_active_absences.side_effect = OperationalError("SELECT ...", None, Exception("down"))
        app = create_app()
        app.dependency_overrides[get_absence_service] = lambda: AbsenceService(
            MagicMock(), settings=settings, repository=repository
        )

        response = TestClient(app).post(
            "/api/absence/check-overlap",
            json={"employeeId": EMPLOYEE_ID, "startDate": "2025-01-08", "endDate": "2025-01-09"},
            headers=HEADERS,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["ok"] is True
        assert body["checked"] is False
        assert body["code"] == "DB_ERROR"


class TestUpdateAbsenceEndpoint:
    """Test cases for editing absence dates."""

    def test_unknown_absence(self, client):
        """Test editing a missing absence returns 404."""
        response = client.patch(
            "/api/absence/missing",
            json={"firstDay": "2025-01-06", "lastDayExpected": "2025-01-07"},
            headers=HEADERS,
        )

        assert response.status_code == 404

    def test_update_dates(self, client, repository):
        """Test an absence can be moved to free dates."""
        repository.get_absence.return_value = SimpleNamespace(
            id="abs-1",
            company_id=COMPANY_ID,
            employee_id=EMPLOYEE_ID,
            type="sickness",
            status="draft",
            first_day=date(2025, 1, 6),
            last_day_expected=date(2025, 1, 10),
            last_day_actual=None,
            reference_notes=None,
            reference_date=None,
            created_at=None,
        )

        response = client.patch(
            "/api/absence/abs-1",
            json={"firstDay": "2025-01-07", "lastDayExpected": "2025-01-09"},
            headers=HEADERS,
        )

        assert response.status_code == 200
        assert response.json()["absence"]["firstDay"] == "2025-01-07"

    def test_bereavement_edit_outside_window_rejected(self, client, repository):
        """Test a bereavement absence cannot be moved outside its 56-week window."""
        stored = SimpleNamespace(
            id="pb-1",
            company_id=COMPANY_ID,
            employee_id=EMPLOYEE_ID,
            type="parental_bereavement",
            status="draft",
            first_day=date(2025, 1, 13),
            last_day_expected=date(2025, 1, 19),
            last_day_actual=None,
            reference_notes="Event date: 2025-01-06.",
            reference_date=date(2025, 1, 6),
            created_at=None,
        )
        repository.get_absence.return_value = stored

        response = client.patch(
            "/api/absence/pb-1",
            json={"firstDay": "2024-06-01", "lastDayExpected": "2027-06-01"},
            headers=HEADERS,
        )

        assert response.status_code == 400
        assert response.json()["error"]["details"]["rule"] == "start_before_event"
        assert stored.first_day == date(2025, 1, 13)
        repository.update_absence.assert_not_called()

    def test_cancelled_absence_not_editable(self, client, repository):
        """Test a cancelled absence returns 409 and is not changed."""
        repository.get_absence.return_value = SimpleNamespace(
            id="abs-9",
            company_id=COMPANY_ID,
            employee_id=EMPLOYEE_ID,
            type="sickness",
            status="cancelled",
            first_day=date(2025, 2, 3),
            last_day_expected=date(2025, 2, 4),
            last_day_actual=None,
            reference_notes=None,
            reference_date=None,
            created_at=None,
        )

        response = client.patch(
            "/api/absence/abs-9",
            json={"firstDay": "2025-02-10", "lastDayExpected": "2025-02-11"},
            headers=HEADERS,
        )

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "ABSENCE_CANCELLED"
        repository.update_absence.assert_not_called()


# =============================================================================
# SSP Endpoint Tests
# =============================================================================

class TestSspEndpoints:
    """Test cases for SSP endpoints."""

    def test_ssp_plan(self, client):
        """Test the plan lists qualifying and payable days."""
        response = client.get(
            "/api/absence/ssp-plan",
            params={"companyId": COMPANY_ID, "start": "2025-03-01", "end": "2025-03-31"},
        )

        assert response.status_code == 200
        plan = response.json()["plans"][0]
        assert plan["totalQualifyingDays"] == 7
        assert plan["totalPayableDays"] == 4

    def test_ssp_preview_with_override(self, client):
        """Test 4 payable days at 21.35 come to 85.40."""
        response = client.get(
            "/api/absence/ssp-preview",
            params={"start": "2025-03-01", "end": "2025-03-31", "dailyRate": "21.35"},
            headers=HEADERS,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["employees"][0]["sspAmount"] == 85.4
        assert body["totals"] == {"totalSsp": 85.4, "employeeCount": 1}

    def test_ssp_preview_invalid_rate(self, client):
        """Test an invalid override is rejected."""
        response = client.get(
            "/api/absence/ssp-preview",
            params={"start": "2025-03-01", "end": "2025-03-31", "dailyRate": "-2"},
            headers=HEADERS,
        )

        assert response.status_code == 400

    def test_ssp_plan_missing_dates(self, client):
        """Test start and end are required."""
        response = client.get("/api/absence/ssp-plan", headers=HEADERS)

        assert response.status_code == 400


class TestHealth:
    """Test cases for the health check."""

    def test_health(self, client):
        """Test the service reports healthy."""
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
