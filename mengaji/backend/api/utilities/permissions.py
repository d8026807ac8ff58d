# mengaji/backend/api/utilities/permissions.py
import logging
from enum import Enum
from typing import Dict, FrozenSet

from fastapi import Depends

from ...models.db_models import Role
from ...models.redis_models import SessionUser
from ...services.errors import AuthorizationError
from ..auth import get_current_user

logger = logging.getLogger(__name__)


class Operation(str, Enum):
    CREATE_USER = "create_user"
    LIST_USERS = "list_users"
    UPDATE_USER = "update_user"
    CREATE_CENTER = "create_study_center"
    LIST_CENTERS = "list_study_centers"
    CREATE_TEACHER = "create_teacher"
    LIST_TEACHERS = "list_teachers"
    CREATE_STUDENT = "create_student"
    LIST_STUDENTS = "list_students"
    CREATE_CLASS = "create_class"
    LIST_CLASSES = "list_classes"
    DEACTIVATE_CLASS = "deactivate_class"
    ENROLL_STUDENT = "enroll_student"
    WITHDRAW_ENROLLMENT = "withdraw_enrollment"
    LIST_ENROLLMENTS = "list_enrollments"
    RECORD_ATTENDANCE = "record_attendance"
    LIST_ATTENDANCE = "list_attendance"
    CREATE_PAYMENT = "create_payment"
    UPDATE_PAYMENT = "update_payment"
    LIST_PAYMENTS = "list_payments"
    CREATE_FUND_TRANSACTION = "create_fund_transaction"
    LIST_FUND_TRANSACTIONS = "list_fund_transactions"
    CREATE_MATERIAL_DISTRIBUTION = "create_material_distribution"
    LIST_MATERIAL_DISTRIBUTIONS = "list_material_distributions"
    VIEW_FINANCIAL_REPORT = "view_financial_report"
    UPLOAD_VIDEO = "upload_video"
    LIST_VIDEOS = "list_videos"


_ALL = frozenset(Operation)

_ACCOUNT_ADMINISTRATION = frozenset({
    Operation.CREATE_USER, Operation.UPDATE_USER, Operation.CREATE_CENTER,
})

_TEACHING = frozenset({
    Operation.LIST_CLASSES, Operation.LIST_STUDENTS, Operation.LIST_ENROLLMENTS,
    Operation.RECORD_ATTENDANCE, Operation.LIST_ATTENDANCE,
    Operation.LIST_VIDEOS, Operation.UPLOAD_VIDEO,
})

CAPABILITIES: Dict[Role, FrozenSet[Operation]] = {
    Role.ADMINISTRATOR: _ALL,
    Role.CENTER_ADMIN: _ALL,
    Role.CENTER_MANAGER: _ALL - _ACCOUNT_ADMINISTRATION,
    Role.CENTER_TEACHER: _TEACHING,
    Role.STUDENT: frozenset({Operation.LIST_CLASSES, Operation.LIST_VIDEOS, Operation.LIST_PAYMENTS}),
}


def is_allowed(role: Role, operation: Operation) -> bool:
    return operation in CAPABILITIES.get(role, frozenset())


def can_manage_role(actor: Role, target: Role) -> bool:
    """Only administrators may create or modify administrator accounts."""
    return actor == Role.ADMINISTRATOR or target != Role.ADMINISTRATOR


def require(operation: Operation):
    """
    Builds a dependency that admits the current user only if their role's
    capability set contains the operation. Returns the session user.
    """
    async def _check(current_user: SessionUser = Depends(get_current_user)) -> SessionUser:
        if not is_allowed(current_user.role, operation):
            logger.warning(f"User {current_user.id} ({current_user.role.value}) denied '{operation.value}'.")
            raise AuthorizationError(f"Your role is not allowed to {operation.value.replace('_', ' ')}.")
        return current_user
    return _check
