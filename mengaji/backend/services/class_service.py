import logging
from datetime import date
from typing import List, Optional

from ..db.db_client import AsyncPostgresClient
from ..models.db_models import SchoolClass, ClassEnrollment, Attendance, Weekday
from ..models.inputs import ClassCreate, AttendanceCreate
from ..modules.schedule import find_schedule_conflict, is_valid_interval
from .base_service import BaseService
from .errors import (
    NotFoundError, InactiveError, OwnershipMismatchError, ScheduleConflictError,
    CapacityExceededError, DuplicateRecordError, NotEnrolledError, ValidationFailedError,
)

logger = logging.getLogger(__name__)


class ClassService(BaseService):
    """
    Class scheduling, enrollment and attendance.

    All checks run inside the same serializable transaction as the write they
    guard; the storage constraints in db/schema.sql reject anything that slips
    past them under concurrency.
    """

    # ===== Classes =====

    async def create_class(self, data: ClassCreate) -> SchoolClass:
        if not is_valid_interval(data.start_time, data.end_time):
            raise ValidationFailedError("end_time must be later than start_time.")

        async def _create(tx: AsyncPostgresClient) -> SchoolClass:
            center = await tx.get_study_center(data.study_center_id)
            if not center:
                raise NotFoundError(f"Study center {data.study_center_id} not found.")
            if not center.is_active:
                raise InactiveError(f"Study center {center.id} is inactive.")

            teacher = await tx.get_teacher(data.teacher_id)
            if not teacher:
                raise NotFoundError(f"Teacher {data.teacher_id} not found.")
            if not teacher.is_active:
                raise InactiveError(f"Teacher {teacher.id} is inactive.")
            if teacher.study_center_id != center.id:
                raise OwnershipMismatchError(f"Teacher {teacher.id} does not belong to study center {center.id}.")

            same_day = await tx.get_classes(teacher_id=teacher.id, schedule_day=data.schedule_day, is_active=True)
            conflict = find_schedule_conflict(same_day, data.start_time, data.end_time)
            if conflict:
                logger.warning(
                    f"Teacher {teacher.id} {data.schedule_day.value} {data.start_time}-{data.end_time} "
                    f"overlaps class {conflict.id} ({conflict.start_time}-{conflict.end_time})."
                )
                raise ScheduleConflictError("Teacher has a scheduling conflict with an existing class.")

            return await tx.add_class(data)

        school_class = await self._run_atomic(_create)
        logger.info(f"Class {school_class.id} '{school_class.name}' created for teacher {school_class.teacher_id}.")
        return school_class

    async def get_classes(
        self,
        study_center_id: Optional[int] = None,
        teacher_id: Optional[int] = None,
        schedule_day: Optional[Weekday] = None,
        is_active: Optional[bool] = None,
    ) -> List[SchoolClass]:
        return await self.db_client.get_classes(
            study_center_id=study_center_id, teacher_id=teacher_id,
            schedule_day=schedule_day, is_active=is_active,
        )

    async def deactivate_class(self, class_id: int) -> SchoolClass:
        """Deactivating an already inactive class returns it unchanged."""
        async def _deactivate(tx: AsyncPostgresClient) -> SchoolClass:
            school_class = await tx.get_class(class_id, for_update=True)
            if not school_class:
                raise NotFoundError(f"Class {class_id} not found.")
            if not school_class.is_active:
                return school_class
            return await tx.set_class_active(class_id, False)

        school_class = await self._run_atomic(_deactivate)
        logger.info(f"Class {class_id} is inactive.")
        return school_class

    # ===== Enrollments =====

    async def enroll_student(self, class_id: int, student_id: int) -> ClassEnrollment:
        async def _enroll(tx: AsyncPostgresClient) -> ClassEnrollment:
            # Row lock serializes concurrent enrollments into the same class.
            school_class = await tx.get_class(class_id, for_update=True)
            if not school_class:
                raise NotFoundError(f"Class {class_id} not found.")
            if not school_class.is_active:
                raise InactiveError(f"Class {class_id} is inactive.")

            student = await tx.get_student(student_id)
            if not student:
                raise NotFoundError(f"Student {student_id} not found.")
            if not student.is_active:
                raise InactiveError(f"Student {student_id} is inactive.")

            if await tx.get_active_enrollment(class_id, student_id):
                raise DuplicateRecordError("Student is already enrolled in this class.")

            enrolled = await tx.count_active_enrollments(class_id)
            if enrolled >= school_class.max_students:
                logger.warning(f"Class {class_id} is full ({enrolled}/{school_class.max_students}).")
                raise CapacityExceededError("Class has reached its maximum number of students.")

            return await tx.add_enrollment(class_id, student_id)

        enrollment = await self._run_atomic(_enroll)
        logger.info(f"Student {student_id} enrolled in class {class_id} (enrollment {enrollment.id}).")
        return enrollment

    async def withdraw_enrollment(self, enrollment_id: int) -> ClassEnrollment:
        async def _withdraw(tx: AsyncPostgresClient) -> ClassEnrollment:
            enrollment = await tx.get_enrollment(enrollment_id)
            if not enrollment:
                raise NotFoundError(f"Enrollment {enrollment_id} not found.")
            if not enrollment.is_active:
                return enrollment
            return await tx.set_enrollment_active(enrollment_id, False)

        enrollment = await self._run_atomic(_withdraw)
        logger.info(f"Enrollment {enrollment_id} withdrawn.")
        return enrollment

    async def get_enrollments_by_class(self, class_id: int, is_active: Optional[bool] = None) -> List[ClassEnrollment]:
        return await self.db_client.get_enrollments(class_id, is_active=is_active)

    # ===== Attendance =====

    async def create_attendance(self, data: AttendanceCreate) -> Attendance:
        """
        Records one attendance outcome.

        A missing class, a missing student and a missing enrollment are all
        reported as the same NotEnrolled error.
        """
        async def _create(tx: AsyncPostgresClient) -> Attendance:
            if not await tx.get_active_enrollment(data.class_id, data.student_id):
                raise NotEnrolledError("Student is not enrolled in this class.")
            if await tx.get_attendance_record(data.class_id, data.student_id, data.date):
                raise DuplicateRecordError("Attendance record already exists for this student on this date.")
            if not await tx.get_user(data.recorded_by):
                raise NotFoundError(f"User {data.recorded_by} not found.")
            return await tx.add_attendance(data)

        attendance = await self._run_atomic(_create)
        logger.info(f"Attendance {attendance.id} ({attendance.status.value}) recorded for student {attendance.student_id}.")
        return attendance

    async def get_attendance_by_class(self, class_id: int, date_from: Optional[date] = None, date_to: Optional[date] = None) -> List[Attendance]:
        return await self.db_client.get_attendance(class_id, date_from=date_from, date_to=date_to)
