# mengaji/backend/api/schemas/user.py
from pydantic import BaseModel, ConfigDict, EmailStr
from datetime import datetime
from typing import Optional

from ...models.db_models import Role

class LoginRequest(BaseModel):
    email: EmailStr
    password: str

class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"

class UserResponse(BaseModel):
    """Public view of a user account; the password hash is never returned."""
    id: int
    email: str
    full_name: str
    phone: Optional[str] = None
    role: Role
    is_active: bool = True
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class LoginResponse(BaseModel):
    token: Token
    user: UserResponse

# Internal representation of JWT data
class TokenData(BaseModel):
    user_id: int
