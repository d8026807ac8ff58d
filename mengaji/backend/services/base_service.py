import logging
from typing import Any, Awaitable, Callable, TypeVar

from ..config.config import settings
from ..db.db_client import (
    AsyncPostgresClient, StoreError, UniqueConstraintError, ForeignKeyError,
    ExclusionConstraintError, SerializationConflictError,
)
from .errors import (
    ServiceError, NotFoundError, UniquenessViolationError, ScheduleConflictError,
    ValidationFailedError, ConcurrentModificationError, error_for_constraint,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def translate_store_error(error: StoreError) -> ServiceError:
    """Turns a constraint violation reported by the store into the business error it stands for."""
    if isinstance(error, UniqueConstraintError):
        return error_for_constraint(error.constraint_name, UniquenessViolationError, "A record with these values already exists.")
    if isinstance(error, ForeignKeyError):
        return error_for_constraint(error.constraint_name, NotFoundError, "A referenced record does not exist.")
    if isinstance(error, ExclusionConstraintError):
        return error_for_constraint(error.constraint_name, ScheduleConflictError, "The time slot is already taken.")
    return error_for_constraint(error.constraint_name, ValidationFailedError, "The record violates a storage constraint.")


class BaseService:
    """
    Shared plumbing for the service classes: every validate-then-write
    sequence goes through ``_run_atomic`` so that it runs inside a single
    serializable transaction.
    """
    def __init__(self, db_client: AsyncPostgresClient):
        self.db_client = db_client

    async def _run_atomic(self, operation: Callable[..., Awaitable[T]], *args: Any) -> T:
        """
        Runs ``operation(tx, *args)`` inside a transaction and commits.

        On a serialization failure the whole operation, checks included, is run
        again; the re-run sees the competing write and raises the proper business
        error. Constraint violations are translated into ServiceErrors.
        """
        attempts = max(1, settings.TRANSACTION_RETRY_ATTEMPTS)
        for attempt in range(1, attempts + 1):
            try:
                async with self.db_client.transaction() as tx:
                    return await operation(tx, *args)
            except SerializationConflictError:
                logger.warning(f"Serialization conflict in '{operation.__name__}' (attempt {attempt}/{attempts}).")
            except StoreError as e:
                service_error = translate_store_error(e)
                logger.warning(f"Store rejected '{operation.__name__}': {e.constraint_name} -> {service_error.kind.value}")
                raise service_error from e
        raise ConcurrentModificationError("The record was modified concurrently. Please try again.")
