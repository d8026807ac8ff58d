# mengaji/backend/models/inputs.py
"""
Validated inputs for the create/update/query operations.

These models do the shape checks (types, required fields, signs, lengths);
the business rules that need the database live in the service layer.
"""

from pydantic import BaseModel, Field, EmailStr, HttpUrl
from datetime import date, time
from decimal import Decimal
from typing import Optional, Annotated

from .db_models import (
    Role, ClassType, Weekday, AttendanceStatus, PaymentStatus, MaterialType, FundType
)

# numeric(10, 2) in the database
Money = Annotated[Decimal, Field(gt=0, max_digits=10, decimal_places=2)]
NonEmptyStr = Annotated[str, Field(min_length=1)]


# --- Users & centres ---

class UserCreate(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8)
    full_name: NonEmptyStr
    phone: Optional[str] = None
    role: Role

class UserUpdate(BaseModel):
    """Partial update; only fields that were explicitly sent are applied."""
    email: Optional[EmailStr] = None
    full_name: Optional[NonEmptyStr] = None
    phone: Optional[str] = None
    role: Optional[Role] = None
    is_active: Optional[bool] = None

class StudyCenterCreate(BaseModel):
    name: NonEmptyStr
    address: NonEmptyStr
    phone: Optional[str] = None
    email: Optional[EmailStr] = None
    registration_number: Optional[str] = None
    admin_id: int

class TeacherCreate(BaseModel):
    user_id: int
    study_center_id: int
    ic_number: NonEmptyStr
    date_of_birth: date
    address: NonEmptyStr
    qualifications: Optional[str] = None
    jaij_permit_number: Optional[str] = None
    jaij_permit_expiry: Optional[date] = None

class StudentCreate(BaseModel):
    user_id: int
    study_center_id: int
    ic_number: NonEmptyStr
    date_of_birth: date
    address: NonEmptyStr
    parent_name: Optional[str] = None
    parent_phone: Optional[str] = None
    emergency_contact: Optional[str] = None


# --- Classes & attendance ---

class ClassCreate(BaseModel):
    study_center_id: int
    name: NonEmptyStr
    description: Optional[str] = None
    class_type: ClassType
    teacher_id: int
    schedule_day: Weekday
    start_time: time = Field(..., description="Time of day, e.g. '09:00'")
    end_time: time = Field(..., description="Time of day, strictly later than start_time")
    max_students: int = Field(1, ge=1, description="Capacity")

class EnrollmentCreate(BaseModel):
    student_id: int

class AttendanceCreate(BaseModel):
    class_id: int
    student_id: int
    date: date
    status: AttendanceStatus
    notes: Optional[str] = None
    recorded_by: int


# --- Money ---

class PaymentCreate(BaseModel):
    student_id: int
    study_center_id: int
    amount: Money
    description: NonEmptyStr
    due_date: date
    recorded_by: int

class PaymentUpdate(BaseModel):
    status: Optional[PaymentStatus] = None
    paid_date: Optional[date] = None

class FundTransactionCreate(BaseModel):
    study_center_id: int
    fund_type: FundType
    amount: Money
    description: NonEmptyStr
    contributor_name: Optional[str] = None
    contributor_phone: Optional[str] = None
    transaction_date: date
    recorded_by: int

class MaterialDistributionCreate(BaseModel):
    study_center_id: int
    material_type: MaterialType
    item_name: NonEmptyStr
    quantity: int = Field(..., gt=0)
    recipient_id: Optional[int] = None
    distribution_date: date
    is_sale: bool = False
    # Sign and presence are checked against is_sale by the service so the
    # caller gets InvalidPrice/UnexpectedPrice instead of a schema error.
    price: Optional[Annotated[Decimal, Field(max_digits=10, decimal_places=2)]] = None
    notes: Optional[str] = None
    recorded_by: int


# --- Videos ---

class VideoCreate(BaseModel):
    study_center_id: int
    title: NonEmptyStr
    description: Optional[str] = None
    file_url: HttpUrl
    duration: Optional[int] = Field(None, ge=0, description="Length in seconds")
    uploaded_by: int


# --- Queries ---

class DateWindow(BaseModel):
    """Optional inclusive date bounds."""
    date_from: Optional[date] = None
    date_to: Optional[date] = None

class MaterialDistributionQuery(DateWindow):
    study_center_id: Optional[int] = None
    material_type: Optional[MaterialType] = None
    is_sale: Optional[bool] = None
    limit: int = Field(100, gt=0)
    offset: int = Field(0, ge=0)

class FundTransactionQuery(DateWindow):
    study_center_id: Optional[int] = None
    fund_type: Optional[FundType] = None
    limit: int = Field(100, gt=0)
    offset: int = Field(0, ge=0)
