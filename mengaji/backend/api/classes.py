from fastapi import APIRouter, Depends, status, Request
from datetime import date
from typing import List, Optional

from ..models.db_models import SchoolClass, ClassEnrollment, Attendance, Weekday
from ..models.inputs import ClassCreate, EnrollmentCreate, AttendanceCreate
from ..models.redis_models import SessionUser
from ..services.class_service import ClassService
from .dependencies import get_class_service
from .utilities.limiter import limiter
from .utilities.permissions import Operation, require

router = APIRouter(tags=["Classes, Enrollment & Attendance"])

# === Classes ===

@router.post("/classes", response_model=SchoolClass, status_code=status.HTTP_201_CREATED, summary="Schedule a new class")
@limiter.limit("30/minute")
async def create_class(request: Request, body: ClassCreate, user: SessionUser = Depends(require(Operation.CREATE_CLASS)), service: ClassService = Depends(get_class_service)):
    return await service.create_class(body)

@router.get("/classes", response_model=List[SchoolClass], summary="List classes")
@limiter.limit("60/minute")
async def get_classes(
    request: Request,
    study_center_id: Optional[int] = None,
    teacher_id: Optional[int] = None,
    schedule_day: Optional[Weekday] = None,
    is_active: Optional[bool] = None,
    user: SessionUser = Depends(require(Operation.LIST_CLASSES)),
    service: ClassService = Depends(get_class_service),
):
    return await service.get_classes(study_center_id=study_center_id, teacher_id=teacher_id, schedule_day=schedule_day, is_active=is_active)

@router.post("/classes/{class_id}/deactivate", response_model=SchoolClass, summary="Deactivate a class")
@limiter.limit("30/minute")
async def deactivate_class(request: Request, class_id: int, user: SessionUser = Depends(require(Operation.DEACTIVATE_CLASS)), service: ClassService = Depends(get_class_service)):
    return await service.deactivate_class(class_id)

# === Enrollment ===

@router.post("/classes/{class_id}/enrollments", response_model=ClassEnrollment, status_code=status.HTTP_201_CREATED, summary="Enroll a student in a class")
@limiter.limit("30/minute")
async def enroll_student(request: Request, class_id: int, body: EnrollmentCreate, user: SessionUser = Depends(require(Operation.ENROLL_STUDENT)), service: ClassService = Depends(get_class_service)):
    return await service.enroll_student(class_id, body.student_id)

@router.get("/classes/{class_id}/enrollments", response_model=List[ClassEnrollment], summary="List the enrollments of a class")
@limiter.limit("60/minute")
async def get_enrollments(request: Request, class_id: int, is_active: Optional[bool] = None, user: SessionUser = Depends(require(Operation.LIST_ENROLLMENTS)), service: ClassService = Depends(get_class_service)):
    return await service.get_enrollments_by_class(class_id, is_active=is_active)

@router.post("/enrollments/{enrollment_id}/withdraw", response_model=ClassEnrollment, summary="Withdraw an enrollment")
@limiter.limit("30/minute")
async def withdraw_enrollment(request: Request, enrollment_id: int, user: SessionUser = Depends(require(Operation.WITHDRAW_ENROLLMENT)), service: ClassService = Depends(get_class_service)):
    return await service.withdraw_enrollment(enrollment_id)

# === Attendance ===

@router.post("/attendance", response_model=Attendance, status_code=status.HTTP_201_CREATED, summary="Record attendance")
@limiter.limit("120/minute")
async def create_attendance(request: Request, body: AttendanceCreate, user: SessionUser = Depends(require(Operation.RECORD_ATTENDANCE)), service: ClassService = Depends(get_class_service)):
    return await service.create_attendance(body)

@router.get("/classes/{class_id}/attendance", response_model=List[Attendance], summary="List the attendance of a class")
@limiter.limit("60/minute")
async def get_attendance(
    request: Request,
    class_id: int,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    user: SessionUser = Depends(require(Operation.LIST_ATTENDANCE)),
    service: ClassService = Depends(get_class_service),
):
    return await service.get_attendance_by_class(class_id, date_from=date_from, date_to=date_to)
