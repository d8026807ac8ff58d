# tests/conftest.py
import asyncio
import sys
from datetime import datetime, date, time, timezone
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from mengaji.backend.config.config import settings
from mengaji.backend.api.utilities.limiter import limiter
from mengaji.backend.models.db_models import (
    User, Role, StudyCenter, Teacher, Student, SchoolClass, ClassType, Weekday,
    ClassEnrollment, Attendance, AttendanceStatus, Payment, PaymentStatus,
    FundTransaction, FundType, MaterialDistribution, MaterialType, Video,
)

# Windows needs the selector loop for asyncpg/redis under pytest.
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

TEST_SECRET_KEY = "test-secret-key-for-hs256-signing-0123456789"
NOW = datetime(2024, 1, 15, 8, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def test_settings(monkeypatch):
    """Deterministic settings for every test; rate limiting is off."""
    monkeypatch.setattr(settings, "SECRET_KEY", TEST_SECRET_KEY)
    monkeypatch.setattr(settings, "ALGORITHM", "HS256")
    monkeypatch.setattr(settings, "TRANSACTION_RETRY_ATTEMPTS", 3)
    monkeypatch.setattr(limiter, "enabled", False)
    return settings


def make_db_client() -> AsyncMock:
    """
    An AsyncPostgresClient stand-in whose transaction() yields the mock itself,
    so checks and writes made inside a transaction land on the same object.
    """
    db_client = AsyncMock()
    db_client.transaction = MagicMock()
    db_client.transaction.return_value.__aenter__.return_value = db_client
    db_client.transaction.return_value.__aexit__.return_value = False
    return db_client


@pytest.fixture
def db_client() -> AsyncMock:
    return make_db_client()


# --- Record builders ---

def _stamps() -> dict:
    return {"created_at": NOW, "updated_at": NOW}

def build_user(**overrides) -> User:
    values = dict(id=1, email="admin@mengaji.my", password_hash="hash", full_name="Siti Aminah",
                  phone=None, role=Role.ADMINISTRATOR, is_active=True, **_stamps())
    values.update(overrides)
    return User(**values)

def build_center(**overrides) -> StudyCenter:
    values = dict(id=10, name="Rumah Mengaji Al-Falah", address="Jalan Ampang, Kuala Lumpur",
                  admin_id=1, is_active=True, **_stamps())
    values.update(overrides)
    return StudyCenter(**values)

def build_teacher(**overrides) -> Teacher:
    values = dict(id=20, user_id=2, study_center_id=10, ic_number="800101-14-5555",
                  date_of_birth=date(1980, 1, 1), address="Shah Alam", is_active=True, **_stamps())
    values.update(overrides)
    return Teacher(**values)

def build_student(**overrides) -> Student:
    values = dict(id=30, user_id=3, study_center_id=10, ic_number="120505-10-1234",
                  date_of_birth=date(2012, 5, 5), address="Petaling Jaya", is_active=True, **_stamps())
    values.update(overrides)
    return Student(**values)

def build_class(**overrides) -> SchoolClass:
    values = dict(id=40, study_center_id=10, name="Iqra 1", class_type=ClassType.PHYSICAL, teacher_id=20,
                  schedule_day=Weekday.MONDAY, start_time=time(9, 0), end_time=time(10, 30),
                  max_students=1, is_active=True, **_stamps())
    values.update(overrides)
    return SchoolClass(**values)

def build_enrollment(**overrides) -> ClassEnrollment:
    values = dict(id=50, class_id=40, student_id=30, enrolled_at=NOW, is_active=True)
    values.update(overrides)
    return ClassEnrollment(**values)

def build_attendance(**overrides) -> Attendance:
    values = dict(id=60, class_id=40, student_id=30, date=date(2024, 1, 15),
                  status=AttendanceStatus.PRESENT, recorded_by=2, recorded_at=NOW)
    values.update(overrides)
    return Attendance(**values)

def build_payment(**overrides) -> Payment:
    values = dict(id=70, student_id=30, study_center_id=10, amount=Decimal("150.50"), description="Yuran Januari",
                  status=PaymentStatus.PENDING, due_date=date(2024, 1, 31), recorded_by=1, **_stamps())
    values.update(overrides)
    return Payment(**values)

def build_fund_transaction(**overrides) -> FundTransaction:
    values = dict(id=80, study_center_id=10, fund_type=FundType.WAQF, amount=Decimal("500.00"),
                  description="Waqf al-Quran", transaction_date=date(2024, 1, 20), recorded_by=1, created_at=NOW)
    values.update(overrides)
    return FundTransaction(**values)

def build_material_distribution(**overrides) -> MaterialDistribution:
    values = dict(id=90, study_center_id=10, material_type=MaterialType.QURAN, item_name="Mushaf Rasm Uthmani",
                  quantity=2, distribution_date=date(2024, 1, 18), is_sale=False, price=None,
                  recorded_by=1, created_at=NOW)
    values.update(overrides)
    return MaterialDistribution(**values)

def build_video(**overrides) -> Video:
    values = dict(id=100, study_center_id=10, title="Tajwid: Nun Sakinah", file_url="https://cdn.mengaji.my/v/1.mp4",
                  duration=600, uploaded_by=2, is_active=True, **_stamps())
    values.update(overrides)
    return Video(**values)


@pytest.fixture
def factory() -> SimpleNamespace:
    """Builders for model instances with sensible defaults; pass keyword overrides."""
    return SimpleNamespace(
        user=build_user, center=build_center, teacher=build_teacher, student=build_student,
        school_class=build_class, enrollment=build_enrollment, attendance=build_attendance,
        payment=build_payment, fund_transaction=build_fund_transaction,
        material_distribution=build_material_distribution, video=build_video,
    )
