import logging
from fastapi import APIRouter, Depends, status, Request
from typing import List, Optional

from ..models.db_models import Role
from ..models.inputs import UserCreate, UserUpdate
from ..models.redis_models import SessionUser
from ..services.user_service import UserService
from ..services.errors import AuthorizationError
from .schemas.user import UserResponse
from .dependencies import get_user_service
from .utilities.limiter import limiter
from .utilities.permissions import Operation, require, can_manage_role

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


def _ensure_can_manage(actor: SessionUser, target_role: Optional[Role]):
    if target_role is not None and not can_manage_role(actor.role, target_role):
        raise AuthorizationError("Only administrators can manage administrator accounts.")


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED, summary="Register a user account")
@limiter.limit("30/minute")
async def create_user(request: Request, body: UserCreate, user: SessionUser = Depends(require(Operation.CREATE_USER)), service: UserService = Depends(get_user_service)):
    _ensure_can_manage(user, body.role)
    return await service.create_user(body)

@router.get("", response_model=List[UserResponse], summary="List user accounts")
@limiter.limit("60/minute")
async def get_users(request: Request, role: Optional[Role] = None, is_active: Optional[bool] = None, user: SessionUser = Depends(require(Operation.LIST_USERS)), service: UserService = Depends(get_user_service)):
    return await service.get_users(role=role, is_active=is_active)

@router.patch("/{user_id}", response_model=UserResponse, summary="Update a user account")
@limiter.limit("30/minute")
async def update_user(request: Request, user_id: int, body: UserUpdate, user: SessionUser = Depends(require(Operation.UPDATE_USER)), service: UserService = Depends(get_user_service)):
    target = await service.get_user(user_id)
    _ensure_can_manage(user, target.role)
    _ensure_can_manage(user, body.role)
    return await service.update_user(user_id, body)
