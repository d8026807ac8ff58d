from fastapi import APIRouter, Depends, status, Request
from typing import List, Optional

from ..models.db_models import StudyCenter, Teacher, Student
from ..models.inputs import StudyCenterCreate, TeacherCreate, StudentCreate
from ..models.redis_models import SessionUser
from ..services.center_service import CenterService
from .dependencies import get_center_service
from .utilities.limiter import limiter
from .utilities.permissions import Operation, require

router = APIRouter(tags=["Centers, Teachers & Students"])

# === Study centres ===

@router.post("/centers", response_model=StudyCenter, status_code=status.HTTP_201_CREATED, summary="Create a study center")
@limiter.limit("10/minute")
async def create_study_center(request: Request, body: StudyCenterCreate, user: SessionUser = Depends(require(Operation.CREATE_CENTER)), service: CenterService = Depends(get_center_service)):
    return await service.create_study_center(body)

@router.get("/centers", response_model=List[StudyCenter], summary="List active study centers")
@limiter.limit("60/minute")
async def get_study_centers(request: Request, user: SessionUser = Depends(require(Operation.LIST_CENTERS)), service: CenterService = Depends(get_center_service)):
    return await service.get_study_centers()

# === Teachers ===

@router.post("/teachers", response_model=Teacher, status_code=status.HTTP_201_CREATED, summary="Register a teacher profile")
@limiter.limit("30/minute")
async def create_teacher(request: Request, body: TeacherCreate, user: SessionUser = Depends(require(Operation.CREATE_TEACHER)), service: CenterService = Depends(get_center_service)):
    return await service.create_teacher(body)

@router.get("/teachers", response_model=List[Teacher], summary="List teachers")
@limiter.limit("60/minute")
async def get_teachers(request: Request, study_center_id: Optional[int] = None, user: SessionUser = Depends(require(Operation.LIST_TEACHERS)), service: CenterService = Depends(get_center_service)):
    return await service.get_teachers(study_center_id=study_center_id)

# === Students ===

@router.post("/students", response_model=Student, status_code=status.HTTP_201_CREATED, summary="Register a student profile")
@limiter.limit("30/minute")
async def create_student(request: Request, body: StudentCreate, user: SessionUser = Depends(require(Operation.CREATE_STUDENT)), service: CenterService = Depends(get_center_service)):
    return await service.create_student(body)

@router.get("/students", response_model=List[Student], summary="List students")
@limiter.limit("60/minute")
async def get_students(request: Request, study_center_id: Optional[int] = None, user: SessionUser = Depends(require(Operation.LIST_STUDENTS)), service: CenterService = Depends(get_center_service)):
    return await service.get_students(study_center_id=study_center_id)
