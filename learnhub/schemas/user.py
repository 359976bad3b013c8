from datetime import datetime

from pydantic import EmailStr, Field, field_validator

from learnhub.models.enums import UserRole, UserStatus
from learnhub.schemas.base import BaseSchema, TimestampSchema


def _check_password_strength(v: str) -> str:
    if not any(c.isupper() for c in v):
        raise ValueError("Password must contain at least one uppercase letter")
    if not any(c.islower() for c in v):
        raise ValueError("Password must contain at least one lowercase letter")
    if not any(c.isdigit() for c in v):
        raise ValueError("Password must contain at least one digit")
    return v


# === Auth Schemas ===


class UserRegister(BaseSchema):
    """Schema for user registration."""

    email: EmailStr
    password: str = Field(min_length=8, max_length=72)
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    phone: str | None = Field(default=None, max_length=50)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return _check_password_strength(v)


class UserLogin(BaseSchema):
    """Schema for user login."""

    email: EmailStr
    password: str


class TokenResponse(BaseSchema):
    """Schema for token response."""

    access_token: str
    refresh_token: str | None = None
    token_type: str = "bearer"
    expires_in: int  # seconds until expiration


class TokenRefreshRequest(BaseSchema):
    """Schema for token refresh request."""

    refresh_token: str


class PasswordChangeRequest(BaseSchema):
    """Schema for password change."""

    current_password: str
    new_password: str = Field(min_length=8, max_length=72)

    @field_validator("new_password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return _check_password_strength(v)


# === User Schemas ===


class UserBase(BaseSchema):
    """Base user schema with common fields."""

    email: EmailStr
    first_name: str
    last_name: str
    phone: str | None = None
    avatar_url: str | None = None
    bio: str | None = None


class UserCreate(UserBase):
    """Schema for creating a user (admin only)."""

    password: str = Field(min_length=8, max_length=72)
    role: UserRole = UserRole.USER
    status: UserStatus = UserStatus.ACTIVE
    is_verified: bool = False

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return _check_password_strength(v)


class UserUpdate(BaseSchema):
    """Schema for updating user profile."""

    first_name: str | None = Field(default=None, min_length=1, max_length=100)
    last_name: str | None = Field(default=None, min_length=1, max_length=100)
    phone: str | None = Field(default=None, max_length=50)
    avatar_url: str | None = Field(default=None, max_length=500)
    bio: str | None = None


class UserAdminUpdate(UserUpdate):
    """Schema for admin updating a user."""

    email: EmailStr | None = None
    role: UserRole | None = None
    is_verified: bool | None = None


class UserStatusUpdate(BaseSchema):
    status: UserStatus


class UserResponse(UserBase, TimestampSchema):
    """Schema for user response."""

    id: int
    role: UserRole
    status: UserStatus
    is_verified: bool
    last_login_at: datetime | None = None


class UserSummary(BaseSchema):
    """Embedded user reference."""

    id: int
    first_name: str
    last_name: str
    email: EmailStr
