import logging
from typing import List, Optional

from werkzeug.security import generate_password_hash, check_password_hash

from ..db.db_client import AsyncPostgresClient
from ..models.db_models import User, Role
from ..models.inputs import UserCreate, UserUpdate
from .base_service import BaseService
from .errors import AuthenticationError, NotFoundError, UniquenessViolationError

logger = logging.getLogger(__name__)

# Columns that may not be set to NULL by a partial update.
_REQUIRED_USER_FIELDS = {"email", "full_name", "role", "is_active"}


class UserService(BaseService):
    """
    Service layer for user accounts and credential checks.
    """

    async def create_user(self, data: UserCreate) -> User:
        async def _create(tx: AsyncPostgresClient) -> User:
            if await tx.get_user_by_email(data.email):
                logger.warning(f"Registration rejected, email '{data.email}' is taken.")
                raise UniquenessViolationError("A user with this email already exists.")
            return await tx.add_user(
                email=data.email,
                password_hash=generate_password_hash(data.password),
                full_name=data.full_name,
                phone=data.phone,
                role=data.role,
            )

        user = await self._run_atomic(_create)
        logger.info(f"User {user.id} ({user.role.value}) created.")
        return user

    async def get_users(self, role: Optional[Role] = None, is_active: Optional[bool] = None) -> List[User]:
        return await self.db_client.get_users(role=role, is_active=is_active)

    async def get_user(self, user_id: int) -> User:
        user = await self.db_client.get_user(user_id)
        if not user:
            raise NotFoundError(f"User {user_id} not found.")
        return user

    async def update_user(self, user_id: int, data: UserUpdate) -> User:
        """Applies only the fields that were explicitly sent."""
        fields = {
            key: value for key, value in data.model_dump(exclude_unset=True).items()
            if value is not None or key not in _REQUIRED_USER_FIELDS
        }

        async def _update(tx: AsyncPostgresClient) -> User:
            user = await tx.get_user(user_id)
            if not user:
                raise NotFoundError(f"User {user_id} not found.")
            new_email = fields.get("email")
            if new_email and new_email.lower() != user.email.lower():
                if await tx.get_user_by_email(new_email):
                    raise UniquenessViolationError("A user with this email already exists.")
            return await tx.update_user(user_id, fields)

        user = await self._run_atomic(_update)
        logger.info(f"User {user_id} updated: {sorted(fields)}")
        return user

    async def authenticate(self, email: str, password: str) -> User:
        """Checks the credentials; the same error is raised for an unknown email and a wrong password."""
        user = await self.db_client.get_user_by_email(email)
        if not user or not check_password_hash(user.password_hash, password):
            logger.warning(f"Failed login for '{email}'.")
            raise AuthenticationError("Invalid email or password.")
        if not user.is_active:
            logger.warning(f"Login attempt on inactive account {user.id}.")
            raise AuthenticationError("This account is inactive.")
        return user
