from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional
from uuid import UUID
from .db_models import Role


class SessionUser(BaseModel):
    """
    The slice of a user account kept in the session. The password hash never leaves the database.
    """
    id: int
    email: str
    full_name: str
    phone: Optional[str] = None
    role: Role


class UserSessionRedis(BaseModel):
    """
    Represents a logged-in user's session stored in Redis.
    """
    user_data: SessionUser = Field(..., description="The user as it was at login time.")
    session_id: UUID = Field(..., description="Unique ID for this specific session.")
    session_start_time: datetime = Field(..., description="The time this session began.")
    session_end_time: datetime = Field(..., description="The time this session will expire.")
