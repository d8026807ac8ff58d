# mengaji/backend/models/db_models.py

from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime, date, time
from decimal import Decimal
from enum import Enum
from typing import Optional


class Role(str, Enum):
    """User roles. Values are the identifiers stored in the database."""
    ADMINISTRATOR = "administrator"
    CENTER_ADMIN = "admin_pusat"
    CENTER_MANAGER = "pengurus_pusat"
    CENTER_TEACHER = "pengajar_pusat"
    STUDENT = "pelajar"

class ClassType(str, Enum):
    PHYSICAL = "physical"
    ONLINE = "online"
    ON_CALL = "on_call"

class Weekday(str, Enum):
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

class AttendanceStatus(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"
    LATE = "late"

class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"

class MaterialType(str, Enum):
    QURAN = "quran"
    NOTEBOOK = "notebook"
    OTHER = "other"

class FundType(str, Enum):
    DONATION = "donation"
    STUDY = "study"
    WAQF = "waqf"
    INFAQ = "infaq"
    SADAQA = "sadaqa"


class Record(BaseModel):
    """Base for rows read back from the database (asyncpg records are mapping-like)."""
    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., description="Store-assigned identity, a positive integer")


class User(Record):
    """
    Represents a user account, mapping to the 'users' table.
    """
    email: str
    password_hash: str
    full_name: str
    phone: Optional[str] = None
    role: Role
    is_active: bool = True
    created_at: datetime
    updated_at: datetime

class StudyCenter(Record):
    """
    A study centre (tenant), mapping to the 'study_centers' table.
    """
    name: str
    address: str
    phone: Optional[str] = None
    email: Optional[str] = None
    registration_number: Optional[str] = None
    admin_id: int = Field(..., description="FK to the administering user")
    is_active: bool = True
    created_at: datetime
    updated_at: datetime

class Teacher(Record):
    user_id: int
    study_center_id: int
    ic_number: str = Field(..., description="National identity card number, unique across teachers")
    date_of_birth: date
    address: str
    qualifications: Optional[str] = None
    jaij_permit_number: Optional[str] = None
    jaij_permit_expiry: Optional[date] = None
    is_active: bool = True
    created_at: datetime
    updated_at: datetime

class Student(Record):
    user_id: int
    study_center_id: int
    ic_number: str = Field(..., description="National identity card number, unique across students")
    date_of_birth: date
    address: str
    parent_name: Optional[str] = None
    parent_phone: Optional[str] = None
    emergency_contact: Optional[str] = None
    is_active: bool = True
    created_at: datetime
    updated_at: datetime

class SchoolClass(Record):
    """
    A weekly class slot taught by one teacher, mapping to the 'classes' table.
    start_time/end_time are same-day time-of-day values forming [start, end).
    """
    study_center_id: int
    name: str
    description: Optional[str] = None
    class_type: ClassType
    teacher_id: int
    schedule_day: Weekday
    start_time: time
    end_time: time
    max_students: int = Field(..., description="Capacity: maximum number of active enrollments")
    is_active: bool = True
    created_at: datetime
    updated_at: datetime

class ClassEnrollment(Record):
    class_id: int
    student_id: int
    enrolled_at: datetime
    is_active: bool = True

class Attendance(Record):
    class_id: int
    student_id: int
    date: date
    status: AttendanceStatus
    notes: Optional[str] = None
    recorded_by: int
    recorded_at: datetime

class Payment(Record):
    student_id: int
    study_center_id: int
    amount: Decimal
    description: str
    status: PaymentStatus = PaymentStatus.PENDING
    due_date: date
    paid_date: Optional[date] = None
    recorded_by: int
    created_at: datetime
    updated_at: datetime

class Video(Record):
    study_center_id: int
    title: str
    description: Optional[str] = None
    file_url: str
    duration: Optional[int] = Field(None, description="Length in seconds")
    uploaded_by: int
    is_active: bool = True
    created_at: datetime
    updated_at: datetime

class MaterialDistribution(Record):
    study_center_id: int
    material_type: MaterialType
    item_name: str
    quantity: int
    recipient_id: Optional[int] = None
    distribution_date: date
    is_sale: bool = False
    price: Optional[Decimal] = None
    notes: Optional[str] = None
    recorded_by: int
    created_at: datetime

class FundTransaction(Record):
    study_center_id: int
    fund_type: FundType
    amount: Decimal
    description: str
    contributor_name: Optional[str] = None
    contributor_phone: Optional[str] = None
    transaction_date: date
    recorded_by: int
    created_at: datetime
