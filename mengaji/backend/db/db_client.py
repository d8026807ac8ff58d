import logging
from contextlib import asynccontextmanager
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

import asyncpg
from asyncpg import exceptions as pg_errors

from ..models.db_models import (
    User, StudyCenter, Teacher, Student, SchoolClass, ClassEnrollment, Attendance,
    Payment, Video, MaterialDistribution, FundTransaction, Role, PaymentStatus, Weekday,
)
from ..models.inputs import (
    StudyCenterCreate, TeacherCreate, StudentCreate, ClassCreate, AttendanceCreate,
    PaymentCreate, FundTransactionCreate, MaterialDistributionCreate, VideoCreate,
    MaterialDistributionQuery, FundTransactionQuery,
)

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).with_name("schema.sql")


# --- Store-level errors (constraint violations reported by PostgreSQL) ---
class StoreError(Exception):
    """Base class for errors raised by the record store."""
    def __init__(self, message: str, constraint_name: Optional[str] = None):
        super().__init__(message)
        self.constraint_name = constraint_name

class UniqueConstraintError(StoreError):
    pass

class ForeignKeyError(StoreError):
    pass

class ExclusionConstraintError(StoreError):
    pass

class CheckConstraintError(StoreError):
    pass

class SerializationConflictError(StoreError):
    """Another transaction committed a conflicting write first; the unit of work may be retried."""
    pass


@asynccontextmanager
async def _translated_errors() -> AsyncIterator[None]:
    try:
        yield
    except pg_errors.UniqueViolationError as e:
        raise UniqueConstraintError(str(e), e.constraint_name) from e
    except pg_errors.ForeignKeyViolationError as e:
        raise ForeignKeyError(str(e), e.constraint_name) from e
    except pg_errors.ExclusionViolationError as e:
        raise ExclusionConstraintError(str(e), e.constraint_name) from e
    except pg_errors.CheckViolationError as e:
        raise CheckConstraintError(str(e), e.constraint_name) from e
    except (pg_errors.SerializationError, pg_errors.DeadlockDetectedError) as e:
        raise SerializationConflictError(str(e)) from e


def _plain(values: Dict[str, Any]) -> Dict[str, Any]:
    """Enum members become their stored value; everything else is passed to asyncpg as is."""
    return {k: (v.value if isinstance(v, Enum) else v) for k, v in values.items()}


class AsyncPostgresClient:
    """
    PostgreSQL client that handles every record-store operation.

    Built either on a pool (each call borrows a connection) or on a single
    connection, which is what ``transaction()`` hands out so that a whole
    validate-then-write sequence runs on one connection and one transaction.
    """
    def __init__(self, pool: Optional[asyncpg.Pool] = None, connection: Optional[asyncpg.Connection] = None):
        if pool is None and connection is None:
            raise ValueError("Either a pool or a connection is required.")
        self._pool = pool
        self._connection = connection

    @asynccontextmanager
    async def _acquire(self) -> AsyncIterator[asyncpg.Connection]:
        if self._connection is not None:
            yield self._connection
        else:
            async with self._pool.acquire() as connection:
                yield connection

    @asynccontextmanager
    async def transaction(self, isolation: str = "serializable") -> AsyncIterator["AsyncPostgresClient"]:
        """
        Opens a transaction and yields a client bound to its connection.
        Leaving the block with an exception rolls everything back.
        """
        async with self._acquire() as connection:
            async with _translated_errors():
                async with connection.transaction(isolation=isolation):
                    yield AsyncPostgresClient(connection=connection)

    async def create_schema(self):
        """Creates tables, indexes and constraints if they do not exist yet."""
        ddl = SCHEMA_PATH.read_text(encoding="utf-8")
        async with self._acquire() as connection:
            await connection.execute(ddl)
        logger.info("Database schema is in place.")

    # ===== Generic insert / update / query =====

    async def _insert(self, table: str, values: Dict[str, Any]) -> asyncpg.Record:
        values = _plain(values)
        columns = ", ".join(values)
        placeholders = ", ".join(f"${i}" for i in range(1, len(values) + 1))
        query = f"INSERT INTO {table} ({columns}) VALUES ({placeholders}) RETURNING *;"
        async with self._acquire() as connection:
            async with _translated_errors():
                return await connection.fetchrow(query, *values.values())

    async def _update(self, table: str, record_id: int, values: Dict[str, Any], touch: bool = True) -> Optional[asyncpg.Record]:
        """Updates the given columns of one row. Returns None if the row does not exist."""
        values = _plain(values)
        if touch:
            values["updated_at"] = datetime.now(timezone.utc)
        if not values:
            return await self._fetch_one(table, {"id": record_id})
        assignments = ", ".join(f"{column} = ${i}" for i, column in enumerate(values, start=2))
        query = f"UPDATE {table} SET {assignments} WHERE id = $1 RETURNING *;"
        async with self._acquire() as connection:
            async with _translated_errors():
                return await connection.fetchrow(query, record_id, *values.values())

    def _build_select(
        self,
        table: str,
        filters: Dict[str, Any],
        date_column: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> Tuple[str, List[Any]]:
        conditions: List[str] = []
        args: List[Any] = []
        for column, value in _plain(filters).items():
            if value is None:
                continue
            args.append(value)
            conditions.append(f"{column} = ${len(args)}")
        if date_column and date_from is not None:
            args.append(date_from)
            conditions.append(f"{date_column} >= ${len(args)}")
        if date_column and date_to is not None:
            args.append(date_to)
            conditions.append(f"{date_column} <= ${len(args)}")
        query = f"SELECT * FROM {table}"
        if conditions:
            query += " WHERE " + " AND ".join(conditions)
        return query, args

    async def _select(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: str = "id",
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        date_column: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> List[asyncpg.Record]:
        query, args = self._build_select(table, filters or {}, date_column, date_from, date_to)
        query += f" ORDER BY {order_by}"
        if limit is not None:
            args.append(limit)
            query += f" LIMIT ${len(args)}"
        if offset:
            args.append(offset)
            query += f" OFFSET ${len(args)}"
        async with self._acquire() as connection:
            return await connection.fetch(query + ";", *args)

    async def _fetch_one(self, table: str, filters: Dict[str, Any], for_update: bool = False) -> Optional[asyncpg.Record]:
        query, args = self._build_select(table, filters)
        if for_update:
            query += " FOR UPDATE"
        async with self._acquire() as connection:
            return await connection.fetchrow(query + ";", *args)

    # ===== Users =====

    async def add_user(self, email: str, password_hash: str, full_name: str, phone: Optional[str], role: Role) -> User:
        record = await self._insert("users", {
            "email": email, "password_hash": password_hash, "full_name": full_name,
            "phone": phone, "role": role,
        })
        return User(**record)

    async def get_user(self, user_id: int) -> Optional[User]:
        record = await self._fetch_one("users", {"id": user_id})
        return User(**record) if record else None

    async def get_user_by_email(self, email: str) -> Optional[User]:
        query = "SELECT * FROM users WHERE lower(email) = lower($1);"
        async with self._acquire() as connection:
            record = await connection.fetchrow(query, email)
            return User(**record) if record else None

    async def get_users(self, role: Optional[Role] = None, is_active: Optional[bool] = None) -> List[User]:
        records = await self._select("users", {"role": role, "is_active": is_active})
        return [User(**record) for record in records]

    async def update_user(self, user_id: int, fields: Dict[str, Any]) -> Optional[User]:
        record = await self._update("users", user_id, fields)
        return User(**record) if record else None

    # ===== Study centres =====

    async def add_study_center(self, data: StudyCenterCreate) -> StudyCenter:
        record = await self._insert("study_centers", data.model_dump())
        return StudyCenter(**record)

    async def get_study_center(self, study_center_id: int) -> Optional[StudyCenter]:
        record = await self._fetch_one("study_centers", {"id": study_center_id})
        return StudyCenter(**record) if record else None

    async def get_study_centers(self, is_active: Optional[bool] = True) -> List[StudyCenter]:
        records = await self._select("study_centers", {"is_active": is_active})
        return [StudyCenter(**record) for record in records]

    # ===== Teachers =====

    async def add_teacher(self, data: TeacherCreate) -> Teacher:
        record = await self._insert("teachers", data.model_dump())
        return Teacher(**record)

    async def get_teacher(self, teacher_id: int) -> Optional[Teacher]:
        record = await self._fetch_one("teachers", {"id": teacher_id})
        return Teacher(**record) if record else None

    async def get_teacher_by_ic_number(self, ic_number: str) -> Optional[Teacher]:
        record = await self._fetch_one("teachers", {"ic_number": ic_number})
        return Teacher(**record) if record else None

    async def get_teacher_by_user(self, user_id: int) -> Optional[Teacher]:
        record = await self._fetch_one("teachers", {"user_id": user_id})
        return Teacher(**record) if record else None

    async def get_teachers(self, study_center_id: Optional[int] = None) -> List[Teacher]:
        records = await self._select("teachers", {"study_center_id": study_center_id})
        return [Teacher(**record) for record in records]

    # ===== Students =====

    async def add_student(self, data: StudentCreate) -> Student:
        record = await self._insert("students", data.model_dump())
        return Student(**record)

    async def get_student(self, student_id: int) -> Optional[Student]:
        record = await self._fetch_one("students", {"id": student_id})
        return Student(**record) if record else None

    async def get_student_by_ic_number(self, ic_number: str) -> Optional[Student]:
        record = await self._fetch_one("students", {"ic_number": ic_number})
        return Student(**record) if record else None

    async def get_student_by_user(self, user_id: int) -> Optional[Student]:
        record = await self._fetch_one("students", {"user_id": user_id})
        return Student(**record) if record else None

    async def get_students(self, study_center_id: Optional[int] = None) -> List[Student]:
        records = await self._select("students", {"study_center_id": study_center_id})
        return [Student(**record) for record in records]

    # ===== Classes =====

    async def add_class(self, data: ClassCreate) -> SchoolClass:
        record = await self._insert("classes", data.model_dump())
        return SchoolClass(**record)

    async def get_class(self, class_id: int, for_update: bool = False) -> Optional[SchoolClass]:
        """Fetches a class; with for_update the row stays locked until the transaction ends."""
        record = await self._fetch_one("classes", {"id": class_id}, for_update=for_update)
        return SchoolClass(**record) if record else None

    async def get_classes(
        self,
        study_center_id: Optional[int] = None,
        teacher_id: Optional[int] = None,
        schedule_day: Optional[Weekday] = None,
        is_active: Optional[bool] = None,
    ) -> List[SchoolClass]:
        records = await self._select("classes", {
            "study_center_id": study_center_id, "teacher_id": teacher_id,
            "schedule_day": schedule_day, "is_active": is_active,
        })
        return [SchoolClass(**record) for record in records]

    async def set_class_active(self, class_id: int, is_active: bool) -> Optional[SchoolClass]:
        record = await self._update("classes", class_id, {"is_active": is_active})
        return SchoolClass(**record) if record else None

    # ===== Enrollments =====

    async def add_enrollment(self, class_id: int, student_id: int) -> ClassEnrollment:
        record = await self._insert("class_enrollments", {
            "class_id": class_id, "student_id": student_id,
            "enrolled_at": datetime.now(timezone.utc), "is_active": True,
        })
        return ClassEnrollment(**record)

    async def get_enrollment(self, enrollment_id: int) -> Optional[ClassEnrollment]:
        record = await self._fetch_one("class_enrollments", {"id": enrollment_id})
        return ClassEnrollment(**record) if record else None

    async def get_active_enrollment(self, class_id: int, student_id: int) -> Optional[ClassEnrollment]:
        record = await self._fetch_one("class_enrollments", {"class_id": class_id, "student_id": student_id, "is_active": True})
        return ClassEnrollment(**record) if record else None

    async def count_active_enrollments(self, class_id: int) -> int:
        query = "SELECT count(*) FROM class_enrollments WHERE class_id = $1 AND is_active = TRUE;"
        async with self._acquire() as connection:
            return await connection.fetchval(query, class_id)

    async def get_enrollments(self, class_id: int, is_active: Optional[bool] = None) -> List[ClassEnrollment]:
        records = await self._select("class_enrollments", {"class_id": class_id, "is_active": is_active})
        return [ClassEnrollment(**record) for record in records]

    async def set_enrollment_active(self, enrollment_id: int, is_active: bool) -> Optional[ClassEnrollment]:
        record = await self._update("class_enrollments", enrollment_id, {"is_active": is_active}, touch=False)
        return ClassEnrollment(**record) if record else None

    # ===== Attendance =====

    async def add_attendance(self, data: AttendanceCreate) -> Attendance:
        values = data.model_dump()
        values["recorded_at"] = datetime.now(timezone.utc)
        record = await self._insert("attendance", values)
        return Attendance(**record)

    async def get_attendance_record(self, class_id: int, student_id: int, on_date: date) -> Optional[Attendance]:
        record = await self._fetch_one("attendance", {"class_id": class_id, "student_id": student_id, "date": on_date})
        return Attendance(**record) if record else None

    async def get_attendance(self, class_id: int, date_from: Optional[date] = None, date_to: Optional[date] = None) -> List[Attendance]:
        records = await self._select(
            "attendance", {"class_id": class_id}, order_by="date, student_id",
            date_column="date", date_from=date_from, date_to=date_to,
        )
        return [Attendance(**record) for record in records]

    # ===== Payments =====

    async def add_payment(self, data: PaymentCreate) -> Payment:
        values = data.model_dump()
        values.update(status=PaymentStatus.PENDING, paid_date=None)
        record = await self._insert("payments", values)
        return Payment(**record)

    async def get_payment(self, payment_id: int) -> Optional[Payment]:
        record = await self._fetch_one("payments", {"id": payment_id})
        return Payment(**record) if record else None

    async def update_payment(self, payment_id: int, fields: Dict[str, Any]) -> Optional[Payment]:
        record = await self._update("payments", payment_id, fields)
        return Payment(**record) if record else None

    async def get_payments(self, student_id: int, status: Optional[PaymentStatus] = None) -> List[Payment]:
        records = await self._select("payments", {"student_id": student_id, "status": status}, order_by="due_date, id")
        return [Payment(**record) for record in records]

    # ===== Videos =====

    async def add_video(self, data: VideoCreate) -> Video:
        values = data.model_dump()
        values["file_url"] = str(data.file_url)
        record = await self._insert("videos", values)
        return Video(**record)

    async def get_videos(self, study_center_id: Optional[int] = None, is_active: Optional[bool] = None) -> List[Video]:
        records = await self._select("videos", {"study_center_id": study_center_id, "is_active": is_active}, order_by="created_at DESC, id DESC")
        return [Video(**record) for record in records]

    # ===== Material distributions =====

    async def add_material_distribution(self, data: MaterialDistributionCreate) -> MaterialDistribution:
        record = await self._insert("material_distributions", data.model_dump())
        return MaterialDistribution(**record)

    async def get_material_distributions(self, query: MaterialDistributionQuery) -> List[MaterialDistribution]:
        records = await self._select(
            "material_distributions",
            {"study_center_id": query.study_center_id, "material_type": query.material_type, "is_sale": query.is_sale},
            order_by="created_at DESC, id DESC", limit=query.limit, offset=query.offset,
            date_column="distribution_date", date_from=query.date_from, date_to=query.date_to,
        )
        return [MaterialDistribution(**record) for record in records]

    # ===== Fund transactions =====

    async def add_fund_transaction(self, data: FundTransactionCreate) -> FundTransaction:
        record = await self._insert("fund_transactions", data.model_dump())
        return FundTransaction(**record)

    async def get_fund_transactions(self, query: FundTransactionQuery) -> List[FundTransaction]:
        records = await self._select(
            "fund_transactions",
            {"study_center_id": query.study_center_id, "fund_type": query.fund_type},
            order_by="transaction_date DESC, id DESC", limit=query.limit, offset=query.offset,
            date_column="transaction_date", date_from=query.date_from, date_to=query.date_to,
        )
        return [FundTransaction(**record) for record in records]

    # ===== Financial report aggregates =====
    # Window bounds are optional; a NULL bound matches everything.

    async def _sum_grouped(self, query: str, *args) -> Dict[str, Decimal]:
        async with self._acquire() as connection:
            records = await connection.fetch(query, *args)
            return {record["key"]: record["total"] for record in records}

    async def sum_payments_by_status(self, study_center_id: int, date_from: Optional[date], date_to: Optional[date]) -> Dict[str, Decimal]:
        query = """
            SELECT status AS key, SUM(amount) AS total
            FROM payments
            WHERE study_center_id = $1
              AND ($2::date IS NULL OR due_date >= $2)
              AND ($3::date IS NULL OR due_date <= $3)
            GROUP BY status;
        """
        return await self._sum_grouped(query, study_center_id, date_from, date_to)

    async def sum_funds_by_type(self, study_center_id: int, date_from: Optional[date], date_to: Optional[date]) -> Dict[str, Decimal]:
        query = """
            SELECT fund_type AS key, SUM(amount) AS total
            FROM fund_transactions
            WHERE study_center_id = $1
              AND ($2::date IS NULL OR transaction_date >= $2)
              AND ($3::date IS NULL OR transaction_date <= $3)
            GROUP BY fund_type;
        """
        return await self._sum_grouped(query, study_center_id, date_from, date_to)

    async def sum_material_sales(self, study_center_id: int, date_from: Optional[date], date_to: Optional[date]) -> Optional[Decimal]:
        query = """
            SELECT SUM(price)
            FROM material_distributions
            WHERE study_center_id = $1 AND is_sale = TRUE
              AND ($2::date IS NULL OR distribution_date >= $2)
              AND ($3::date IS NULL OR distribution_date <= $3);
        """
        async with self._acquire() as connection:
            return await connection.fetchval(query, study_center_id, date_from, date_to)

    async def sum_paid_payments_by_month(self, study_center_id: int, date_from: Optional[date], date_to: Optional[date]) -> Dict[str, Decimal]:
        query = """
            SELECT to_char(paid_date, 'YYYY-MM') AS key, SUM(amount) AS total
            FROM payments
            WHERE study_center_id = $1 AND status = 'paid' AND paid_date IS NOT NULL
              AND ($2::date IS NULL OR paid_date >= $2)
              AND ($3::date IS NULL OR paid_date <= $3)
            GROUP BY 1;
        """
        return await self._sum_grouped(query, study_center_id, date_from, date_to)

    async def sum_funds_by_month(self, study_center_id: int, date_from: Optional[date], date_to: Optional[date]) -> Dict[str, Decimal]:
        query = """
            SELECT to_char(transaction_date, 'YYYY-MM') AS key, SUM(amount) AS total
            FROM fund_transactions
            WHERE study_center_id = $1
              AND ($2::date IS NULL OR transaction_date >= $2)
              AND ($3::date IS NULL OR transaction_date <= $3)
            GROUP BY 1;
        """
        return await self._sum_grouped(query, study_center_id, date_from, date_to)
