import pytest
import pytest_asyncio
from datetime import date

from mengaji.backend.services.center_service import CenterService
from mengaji.backend.services.media_service import MediaService
from mengaji.backend.services.errors import (
    NotFoundError, InactiveError, UniquenessViolationError, ValidationFailedError,
)
from mengaji.backend.db.db_client import UniqueConstraintError
from mengaji.backend.models.db_models import Role
from mengaji.backend.models.inputs import StudyCenterCreate, TeacherCreate, StudentCreate, VideoCreate


def teacher_request(**overrides) -> TeacherCreate:
    values = dict(user_id=2, study_center_id=10, ic_number="800101-14-5555", date_of_birth=date(1980, 1, 1), address="Shah Alam")
    values.update(overrides)
    return TeacherCreate(**values)


def student_request(**overrides) -> StudentCreate:
    values = dict(user_id=3, study_center_id=10, ic_number="120505-10-1234", date_of_birth=date(2012, 5, 5),
                  address="Petaling Jaya", parent_name="Hassan", parent_phone="019-8765432")
    values.update(overrides)
    return StudentCreate(**values)


@pytest_asyncio.fixture
async def service_instance(db_client, factory):
    db_client.get_study_center.return_value = factory.center()
    db_client.get_teacher_by_ic_number.return_value = None
    db_client.get_teacher_by_user.return_value = None
    db_client.get_student_by_ic_number.return_value = None
    db_client.get_student_by_user.return_value = None
    return CenterService(db_client=db_client), db_client


@pytest.mark.asyncio
class TestStudyCenters:

    async def test_admin_must_exist(self, service_instance):
        service, mock_db_client = service_instance
        mock_db_client.get_user.return_value = None
        with pytest.raises(NotFoundError):
            await service.create_study_center(StudyCenterCreate(name="Al-Falah", address="KL", admin_id=99))
        mock_db_client.add_study_center.assert_not_awaited()

    async def test_lists_only_active_centers(self, service_instance):
        service, mock_db_client = service_instance
        mock_db_client.get_study_centers.return_value = []
        await service.get_study_centers()
        mock_db_client.get_study_centers.assert_awaited_once_with(is_active=True)


@pytest.mark.asyncio
class TestTeachers:

    async def test_create_teacher(self, service_instance, factory):
        service, mock_db_client = service_instance
        mock_db_client.get_user.return_value = factory.user(id=2, role=Role.CENTER_TEACHER)
        mock_db_client.add_teacher.return_value = factory.teacher()

        teacher = await service.create_teacher(teacher_request())

        assert teacher.ic_number == "800101-14-5555"

    async def test_duplicate_ic_number(self, service_instance, factory):
        service, mock_db_client = service_instance
        mock_db_client.get_user.return_value = factory.user(id=2)
        mock_db_client.get_teacher_by_ic_number.return_value = factory.teacher(user_id=5)
        with pytest.raises(UniquenessViolationError, match="IC number"):
            await service.create_teacher(teacher_request())

    async def test_user_already_teacher(self, service_instance, factory):
        service, mock_db_client = service_instance
        mock_db_client.get_user.return_value = factory.user(id=2)
        mock_db_client.get_teacher_by_user.return_value = factory.teacher(ic_number="700101-01-0001")
        with pytest.raises(UniquenessViolationError, match="teacher profile"):
            await service.create_teacher(teacher_request())

    async def test_missing_center(self, service_instance, factory):
        service, mock_db_client = service_instance
        mock_db_client.get_user.return_value = factory.user(id=2)
        mock_db_client.get_study_center.return_value = None
        with pytest.raises(NotFoundError):
            await service.create_teacher(teacher_request())


@pytest.mark.asyncio
class TestStudents:

    async def test_create_student(self, service_instance, factory):
        service, mock_db_client = service_instance
        mock_db_client.get_user.return_value = factory.user(id=3, role=Role.STUDENT)
        mock_db_client.add_student.return_value = factory.student()

        student = await service.create_student(student_request())

        assert student.user_id == 3

    async def test_user_must_have_student_role(self, service_instance, factory):
        service, mock_db_client = service_instance
        mock_db_client.get_user.return_value = factory.user(id=3, role=Role.CENTER_TEACHER)
        with pytest.raises(ValidationFailedError):
            await service.create_student(student_request())
        mock_db_client.add_student.assert_not_awaited()

    async def test_missing_user(self, service_instance):
        service, mock_db_client = service_instance
        mock_db_client.get_user.return_value = None
        with pytest.raises(NotFoundError):
            await service.create_student(student_request())

    async def test_existing_profile(self, service_instance, factory):
        service, mock_db_client = service_instance
        mock_db_client.get_user.return_value = factory.user(id=3, role=Role.STUDENT)
        mock_db_client.get_student_by_user.return_value = factory.student()
        with pytest.raises(UniquenessViolationError, match="student profile"):
            await service.create_student(student_request())

    async def test_ic_number_race(self, service_instance, factory):
        service, mock_db_client = service_instance
        mock_db_client.get_user.return_value = factory.user(id=3, role=Role.STUDENT)
        mock_db_client.add_student.side_effect = UniqueConstraintError("duplicate key", "uq_students_ic_number")
        with pytest.raises(UniquenessViolationError, match="IC number"):
            await service.create_student(student_request())


@pytest.mark.asyncio
class TestVideos:

    async def test_create_video_keeps_url_text(self, db_client, factory):
        db_client.get_study_center.return_value = factory.center()
        db_client.get_user.return_value = factory.user(id=2, role=Role.CENTER_TEACHER)
        db_client.add_video.return_value = factory.video()
        service = MediaService(db_client=db_client)

        video = await service.create_video(VideoCreate(
            study_center_id=10, title="Tajwid: Nun Sakinah", file_url="https://cdn.mengaji.my/v/1.mp4",
            duration=600, uploaded_by=2,
        ))

        assert video.file_url == "https://cdn.mengaji.my/v/1.mp4"

    async def test_inactive_uploader(self, db_client, factory):
        db_client.get_study_center.return_value = factory.center()
        db_client.get_user.return_value = factory.user(id=2, is_active=False)
        service = MediaService(db_client=db_client)

        with pytest.raises(InactiveError):
            await service.create_video(VideoCreate(
                study_center_id=10, title="Tajwid", file_url="https://cdn.mengaji.my/v/2.mp4", uploaded_by=2,
            ))
        db_client.add_video.assert_not_awaited()
