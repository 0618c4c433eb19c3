from datetime import datetime
from uuid import UUID

from pydantic import BaseModel

from storyloom.schemas.common import CamelModel


class UserRegister(CamelModel):
    """Schema for user registration"""

    email: str | None = None
    password: str | None = None
    first_name: str | None = None
    last_name: str | None = None


class UserLogin(CamelModel):
    """Schema for user login"""

    email: str | None = None
    password: str | None = None


class ProfileUpdate(CamelModel):
    first_name: str | None = None
    last_name: str | None = None


class PasswordChange(CamelModel):
    current_password: str | None = None
    new_password: str | None = None


class TokenData(BaseModel):
    """Schema for token payload data"""

    user_id: str
    email: str | None = None


class UserResponse(CamelModel):
    """Schema for user response; the password hash is never part of it"""

    id: UUID
    email: str
    first_name: str | None = None
    last_name: str | None = None
    full_name: str
    is_active: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None
