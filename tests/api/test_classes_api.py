import pytest
from decimal import Decimal
from unittest.mock import AsyncMock
from fastapi.testclient import TestClient

from mengaji.backend.main import app
from mengaji.backend.api.auth import get_current_user
from mengaji.backend.api.dependencies import get_class_service, get_finance_service, get_center_service
from mengaji.backend.models.db_models import Role
from mengaji.backend.models.redis_models import SessionUser
from mengaji.backend.services.errors import ScheduleConflictError, CapacityExceededError, NotEnrolledError, InvalidPriceError
from mengaji.backend.modules.financial_report import build_financial_report

CLASS_PAYLOAD = {
    "study_center_id": 10, "name": "Iqra 1", "class_type": "physical", "teacher_id": 20,
    "schedule_day": "monday", "start_time": "09:00", "end_time": "10:30", "max_students": 1,
}


def session_user(role: Role, user_id: int = 1) -> SessionUser:
    return SessionUser(id=user_id, email=f"user{user_id}@mengaji.my", full_name="Test User", role=role)


@pytest.fixture
def services():
    return {"classes": AsyncMock(), "finance": AsyncMock(), "centers": AsyncMock()}


@pytest.fixture
def client_as(services):
    """Returns a factory: client_as(role) gives a TestClient logged in with that role."""
    app.dependency_overrides[get_class_service] = lambda: services["classes"]
    app.dependency_overrides[get_finance_service] = lambda: services["finance"]
    app.dependency_overrides[get_center_service] = lambda: services["centers"]

    def _client(role: Role, user_id: int = 1) -> TestClient:
        app.dependency_overrides[get_current_user] = lambda: session_user(role, user_id)
        return TestClient(app)

    yield _client
    app.dependency_overrides.clear()


def test_create_class(client_as, services, factory):
    services["classes"].create_class.return_value = factory.school_class()

    response = client_as(Role.CENTER_ADMIN).post("/api/v1/classes", json=CLASS_PAYLOAD)

    assert response.status_code == 201
    data = response.json()
    assert data["start_time"] == "09:00:00"
    assert data["schedule_day"] == "monday"
    sent = services["classes"].create_class.await_args.args[0]
    assert sent.max_students == 1


def test_schedule_conflict_is_reported_as_error_kind(client_as, services):
    services["classes"].create_class.side_effect = ScheduleConflictError("Teacher has a scheduling conflict with an existing class.")

    response = client_as(Role.CENTER_MANAGER).post("/api/v1/classes", json={**CLASS_PAYLOAD, "start_time": "10:00", "end_time": "11:30"})

    assert response.status_code == 409
    assert response.json() == {"error": {"kind": "ScheduleConflict", "message": "Teacher has a scheduling conflict with an existing class."}}


def test_invalid_body_is_rejected_before_the_service(client_as, services):
    response = client_as(Role.ADMINISTRATOR).post("/api/v1/classes", json={**CLASS_PAYLOAD, "max_students": 0})

    assert response.status_code == 422
    services["classes"].create_class.assert_not_awaited()


def test_teacher_cannot_create_class(client_as, services):
    response = client_as(Role.CENTER_TEACHER).post("/api/v1/classes", json=CLASS_PAYLOAD)

    assert response.status_code == 403
    assert response.json()["error"]["kind"] == "Forbidden"
    services["classes"].create_class.assert_not_awaited()


def test_enroll_capacity_exceeded(client_as, services):
    services["classes"].enroll_student.side_effect = CapacityExceededError("Class has reached its maximum number of students.")

    response = client_as(Role.CENTER_ADMIN).post("/api/v1/classes/40/enrollments", json={"student_id": 31})

    assert response.status_code == 409
    assert response.json()["error"]["kind"] == "CapacityExceeded"
    services["classes"].enroll_student.assert_awaited_once_with(40, 31)


def test_deactivate_class(client_as, services, factory):
    services["classes"].deactivate_class.return_value = factory.school_class(is_active=False)

    response = client_as(Role.CENTER_ADMIN).post("/api/v1/classes/40/deactivate")

    assert response.status_code == 200
    assert response.json()["is_active"] is False


def test_teacher_records_attendance(client_as, services, factory):
    services["classes"].create_attendance.return_value = factory.attendance()
    payload = {"class_id": 40, "student_id": 30, "date": "2024-01-15", "status": "present", "recorded_by": 2}

    response = client_as(Role.CENTER_TEACHER, user_id=2).post("/api/v1/attendance", json=payload)

    assert response.status_code == 201
    assert response.json()["date"] == "2024-01-15"


def test_attendance_for_unenrolled_student(client_as, services):
    services["classes"].create_attendance.side_effect = NotEnrolledError("Student is not enrolled in this class.")
    payload = {"class_id": 40, "student_id": 99, "date": "2024-01-15", "status": "absent", "recorded_by": 2}

    response = client_as(Role.CENTER_TEACHER, user_id=2).post("/api/v1/attendance", json=payload)

    assert response.status_code == 400
    assert response.json()["error"]["kind"] == "NotEnrolled"


def test_list_classes_passes_filters(client_as, services):
    services["classes"].get_classes.return_value = []

    response = client_as(Role.STUDENT).get("/api/v1/classes", params={"teacher_id": 20, "schedule_day": "monday", "is_active": "true"})

    assert response.status_code == 200
    services["classes"].get_classes.assert_awaited_once_with(study_center_id=None, teacher_id=20, schedule_day="monday", is_active=True)


def test_financial_report_uses_camel_case_and_string_money(client_as, services):
    services["finance"].get_financial_report.return_value = build_financial_report(
        10, {"paid": Decimal("150.50")}, {"waqf": Decimal("500.00")}, None,
        {"2024-01": Decimal("150.50")}, {"2024-01": Decimal("500.00")},
    )

    response = client_as(Role.CENTER_MANAGER).get("/api/v1/centers/10/financial-report", params={"date_from": "2024-01-01"})

    assert response.status_code == 200
    data = response.json()
    assert data["totalPayments"] == "150.50"
    assert data["totalDonations"] == "500.00"
    assert data["monthlyTrends"][0]["month"] == "2024-01"


def test_student_reads_only_own_payments(client_as, services, factory):
    services["centers"].get_student_profile.return_value = factory.student(id=30, user_id=3)
    services["finance"].get_payments_by_student.return_value = [factory.payment()]
    client = client_as(Role.STUDENT, user_id=3)

    own = client.get("/api/v1/students/30/payments")
    other = client.get("/api/v1/students/31/payments")

    assert own.status_code == 200
    assert own.json()[0]["amount"] == "150.50"
    assert other.status_code == 403
    services["finance"].get_payments_by_student.assert_awaited_once_with(30, status=None)


def test_sale_without_price_reaches_service(client_as, services):
    """Price presence is a business rule, so the body passes schema validation."""
    services["finance"].create_material_distribution.side_effect = InvalidPriceError("Price must be provided and positive for sales.")
    payload = {
        "study_center_id": 10, "material_type": "quran", "item_name": "Mushaf", "quantity": 1,
        "distribution_date": "2024-01-18", "is_sale": True, "recorded_by": 1,
    }

    response = client_as(Role.CENTER_MANAGER).post("/api/v1/material-distributions", json=payload)

    assert response.status_code == 400
    assert response.json()["error"]["kind"] == "InvalidPrice"
