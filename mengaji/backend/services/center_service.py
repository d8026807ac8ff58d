import logging
from typing import List, Optional

from ..db.db_client import AsyncPostgresClient
from ..models.db_models import StudyCenter, Teacher, Student, Role
from ..models.inputs import StudyCenterCreate, TeacherCreate, StudentCreate
from .base_service import BaseService
from .errors import NotFoundError, UniquenessViolationError, ValidationFailedError

logger = logging.getLogger(__name__)


class CenterService(BaseService):
    """
    Service layer for study centres and the teacher/student profiles registered under them.
    """

    # --- Study centres ---

    async def create_study_center(self, data: StudyCenterCreate) -> StudyCenter:
        async def _create(tx: AsyncPostgresClient) -> StudyCenter:
            if not await tx.get_user(data.admin_id):
                raise NotFoundError(f"Admin user {data.admin_id} not found.")
            return await tx.add_study_center(data)

        center = await self._run_atomic(_create)
        logger.info(f"Study center {center.id} '{center.name}' created.")
        return center

    async def get_study_centers(self) -> List[StudyCenter]:
        return await self.db_client.get_study_centers(is_active=True)

    # --- Teachers ---

    async def create_teacher(self, data: TeacherCreate) -> Teacher:
        async def _create(tx: AsyncPostgresClient) -> Teacher:
            if not await tx.get_user(data.user_id):
                raise NotFoundError(f"User {data.user_id} not found.")
            if not await tx.get_study_center(data.study_center_id):
                raise NotFoundError(f"Study center {data.study_center_id} not found.")
            if await tx.get_teacher_by_ic_number(data.ic_number):
                raise UniquenessViolationError("A teacher with this IC number already exists.")
            if await tx.get_teacher_by_user(data.user_id):
                raise UniquenessViolationError("This user already has a teacher profile.")
            return await tx.add_teacher(data)

        teacher = await self._run_atomic(_create)
        logger.info(f"Teacher {teacher.id} registered at center {teacher.study_center_id}.")
        return teacher

    async def get_teachers(self, study_center_id: Optional[int] = None) -> List[Teacher]:
        return await self.db_client.get_teachers(study_center_id=study_center_id)

    # --- Students ---

    async def create_student(self, data: StudentCreate) -> Student:
        async def _create(tx: AsyncPostgresClient) -> Student:
            user = await tx.get_user(data.user_id)
            if not user:
                raise NotFoundError(f"User {data.user_id} not found.")
            if user.role != Role.STUDENT:
                logger.warning(f"User {user.id} with role '{user.role.value}' cannot own a student profile.")
                raise ValidationFailedError("Only users with the student role can have a student profile.")
            if not await tx.get_study_center(data.study_center_id):
                raise NotFoundError(f"Study center {data.study_center_id} not found.")
            if await tx.get_student_by_user(data.user_id):
                raise UniquenessViolationError("This user already has a student profile.")
            if await tx.get_student_by_ic_number(data.ic_number):
                raise UniquenessViolationError("This IC number is already registered.")
            return await tx.add_student(data)

        student = await self._run_atomic(_create)
        logger.info(f"Student {student.id} registered at center {student.study_center_id}.")
        return student

    async def get_students(self, study_center_id: Optional[int] = None) -> List[Student]:
        return await self.db_client.get_students(study_center_id=study_center_id)

    async def get_student_profile(self, user_id: int) -> Optional[Student]:
        return await self.db_client.get_student_by_user(user_id)
