from enum import Enum
from typing import Dict, Optional, Type


class ErrorKind(str, Enum):
    NOT_FOUND = "NotFound"
    INACTIVE = "Inactive"
    OWNERSHIP_MISMATCH = "OwnershipMismatch"
    UNIQUENESS_VIOLATION = "UniquenessViolation"
    SCHEDULE_CONFLICT = "ScheduleConflict"
    CAPACITY_EXCEEDED = "CapacityExceeded"
    DUPLICATE_RECORD = "DuplicateRecord"
    NOT_ENROLLED = "NotEnrolled"
    INVALID_PRICE = "InvalidPrice"
    UNEXPECTED_PRICE = "UnexpectedPrice"
    VALIDATION_ERROR = "ValidationError"
    CONCURRENT_MODIFICATION = "ConcurrentModification"
    UNAUTHORIZED = "Unauthorized"
    FORBIDDEN = "Forbidden"


# --- Custom Service Layer Exception Classes ---
class ServiceError(Exception):
    """General exception class for the service layer. Carries a kind and an HTTP status."""
    kind: ErrorKind = ErrorKind.VALIDATION_ERROR
    status_code: int = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, str]:
        return {"kind": self.kind.value, "message": self.message}

class NotFoundError(ServiceError):
    kind = ErrorKind.NOT_FOUND
    status_code = 404

class InactiveError(ServiceError):
    kind = ErrorKind.INACTIVE
    status_code = 409

class OwnershipMismatchError(ServiceError):
    kind = ErrorKind.OWNERSHIP_MISMATCH
    status_code = 409

class UniquenessViolationError(ServiceError):
    kind = ErrorKind.UNIQUENESS_VIOLATION
    status_code = 409

class ScheduleConflictError(ServiceError):
    kind = ErrorKind.SCHEDULE_CONFLICT
    status_code = 409

class CapacityExceededError(ServiceError):
    kind = ErrorKind.CAPACITY_EXCEEDED
    status_code = 409

class DuplicateRecordError(ServiceError):
    kind = ErrorKind.DUPLICATE_RECORD
    status_code = 409

class NotEnrolledError(ServiceError):
    kind = ErrorKind.NOT_ENROLLED
    status_code = 400

class InvalidPriceError(ServiceError):
    kind = ErrorKind.INVALID_PRICE

class UnexpectedPriceError(ServiceError):
    kind = ErrorKind.UNEXPECTED_PRICE

class ValidationFailedError(ServiceError):
    kind = ErrorKind.VALIDATION_ERROR

class ConcurrentModificationError(ServiceError):
    kind = ErrorKind.CONCURRENT_MODIFICATION
    status_code = 409

class AuthenticationError(ServiceError):
    """Exception class for failed logins and invalid sessions."""
    kind = ErrorKind.UNAUTHORIZED
    status_code = 401

class AuthorizationError(ServiceError):
    """Exception class for authorization-related errors."""
    kind = ErrorKind.FORBIDDEN
    status_code = 403


# Storage constraint name -> (error class, message). Names match db/schema.sql.
CONSTRAINT_ERRORS: Dict[str, tuple] = {
    "uq_users_email": (UniquenessViolationError, "A user with this email already exists."),
    "uq_teachers_ic_number": (UniquenessViolationError, "A teacher with this IC number already exists."),
    "uq_teachers_user_id": (UniquenessViolationError, "This user already has a teacher profile."),
    "uq_students_ic_number": (UniquenessViolationError, "This IC number is already registered."),
    "uq_students_user_id": (UniquenessViolationError, "This user already has a student profile."),
    "uq_class_enrollments_active": (DuplicateRecordError, "Student is already enrolled in this class."),
    "uq_attendance_class_student_date": (DuplicateRecordError, "Attendance record already exists for this student on this date."),
    "ex_classes_teacher_schedule": (ScheduleConflictError, "Teacher has a scheduling conflict with an existing class."),
    "ck_material_distributions_sale_price": (InvalidPriceError, "Price must be provided and positive for sales only."),
}


def error_for_constraint(constraint_name: Optional[str], fallback: Type[ServiceError], fallback_message: str) -> ServiceError:
    """Maps a violated storage constraint onto the business error it stands for."""
    error_class, message = CONSTRAINT_ERRORS.get(constraint_name or "", (fallback, fallback_message))
    return error_class(message)
