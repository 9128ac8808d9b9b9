"""Pydantic schemas for users and authentication."""

from datetime import datetime
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from ..common.schemas import TimestampSchema
from .models import UserRole


class UserBase(BaseModel):
    email: Annotated[EmailStr, Field(description="Login email, stored in lower case")]
    name: Optional[Annotated[str, Field(max_length=255)]] = None

    @field_validator("email")
    @classmethod
    def lower_email(cls, value: str) -> str:
        return value.strip().lower()


class UserRead(TimestampSchema, UserBase):
    """Public view of a user. Never carries the password hash."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    role: UserRole
    is_active: bool


class RegisterRequest(UserBase):
    """Registration payload. Password strength is checked by the service."""

    password: Annotated[str, Field(min_length=1, max_length=128)]


class LoginRequest(BaseModel):
    email: Annotated[EmailStr, Field(description="Login email")]
    password: Annotated[str, Field(min_length=1, max_length=128)]

    @field_validator("email")
    @classmethod
    def lower_email(cls, value: str) -> str:
        return value.strip().lower()


class ProfileUpdate(BaseModel):
    name: Optional[Annotated[str, Field(max_length=255)]] = None
    email: Optional[EmailStr] = None

    @field_validator("email")
    @classmethod
    def lower_email(cls, value: Optional[str]) -> Optional[str]:
        return value.strip().lower() if value else value


class ChangePasswordRequest(BaseModel):
    current_password: Annotated[str, Field(min_length=1, alias="currentPassword")]
    new_password: Annotated[str, Field(min_length=1, alias="newPassword")]

    model_config = ConfigDict(populate_by_name=True)


class UserStatusUpdate(BaseModel):
    is_active: bool = Field(alias="isActive")

    model_config = ConfigDict(populate_by_name=True)


class UserRoleUpdate(BaseModel):
    role: UserRole


class AuthResult(BaseModel):
    """Returned by login and register."""

    user: UserRead
    token: str


class UserCreateInternal(BaseModel):
    email: str
    password_hash: str
    name: Optional[str] = None
    role: UserRole = UserRole.USER
    is_active: bool = True


class RevokedTokenCreateInternal(BaseModel):
    jti: str
    user_id: Optional[int] = None
    expires_at: Optional[datetime] = None
