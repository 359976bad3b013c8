import logging

from fastapi import APIRouter, status
from sqlalchemy import or_, select

from learnhub.core.database import DatabaseSession
from learnhub.core.deps import ActiveUser, AdminUser
from learnhub.core.exceptions import ConflictError, NotFoundError, ValidationError
from learnhub.core.pagination import Pagination, paginate
from learnhub.core.security import hash_password
from learnhub.models import User
from learnhub.models.enums import UserRole, UserStatus
from learnhub.schemas import (
    ApiResponse,
    Page,
    UserAdminUpdate,
    UserCreate,
    UserResponse,
    UserStatusUpdate,
    UserUpdate,
    ok,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


async def _get_user(db: DatabaseSession, user_id: int) -> User:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise NotFoundError("User", user_id)
    return user


@router.get("/me", response_model=ApiResponse[UserResponse])
async def get_my_profile(current_user: ActiveUser):
    """Get current user's profile."""
    return ok(current_user)


@router.patch("/me", response_model=ApiResponse[UserResponse])
async def update_my_profile(data: UserUpdate, current_user: ActiveUser, db: DatabaseSession):
    """Update current user's profile."""
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(current_user, field, value)

    await db.flush()
    return ok(current_user, "Profile updated")


# === Admin endpoints ===


@router.get("", response_model=ApiResponse[Page[UserResponse]])
async def list_users(
    admin: AdminUser,
    db: DatabaseSession,
    pagination: Pagination,
    search: str | None = None,
    role: UserRole | None = None,
    user_status: UserStatus | None = None,
):
    """List all users (admin only)."""
    query = select(User)

    if search:
        pattern = f"%{search}%"
        query = query.where(
            or_(
                User.email.ilike(pattern),
                User.first_name.ilike(pattern),
                User.last_name.ilike(pattern),
            )
        )
    if role:
        query = query.where(User.role == role)
    if user_status:
        query = query.where(User.status == user_status)

    query = query.order_by(User.created_at.desc(), User.id.desc())
    return ok(await paginate(db, query, pagination))


@router.get("/{user_id}", response_model=ApiResponse[UserResponse])
async def get_user(user_id: int, admin: AdminUser, db: DatabaseSession):
    """Get a specific user by ID (admin only)."""
    return ok(await _get_user(db, user_id))


@router.post("", response_model=ApiResponse[UserResponse], status_code=status.HTTP_201_CREATED)
async def create_user(data: UserCreate, admin: AdminUser, db: DatabaseSession):
    """Create a new user (admin only)."""
    result = await db.execute(select(User).where(User.email == data.email))
    if result.scalar_one_or_none():
        raise ConflictError("Email already registered", errors={"field": "email"})

    user = User(
        email=data.email,
        password_hash=hash_password(data.password),
        first_name=data.first_name,
        last_name=data.last_name,
        phone=data.phone,
        avatar_url=data.avatar_url,
        bio=data.bio,
        role=UserRole(data.role),
        status=UserStatus(data.status),
        is_verified=data.is_verified,
    )
    db.add(user)
    await db.flush()

    logger.info("Admin %s created user %s", admin.id, user.id)
    return ok(user, "User created successfully")


@router.patch("/{user_id}", response_model=ApiResponse[UserResponse])
async def update_user(user_id: int, data: UserAdminUpdate, admin: AdminUser, db: DatabaseSession):
    """Update a user (admin only)."""
    user = await _get_user(db, user_id)
    update_data = data.model_dump(exclude_unset=True)

    if "email" in update_data and update_data["email"] != user.email:
        result = await db.execute(select(User.id).where(User.email == update_data["email"]))
        if result.scalar_one_or_none() is not None:
            raise ConflictError("Email already registered", errors={"field": "email"})
    if update_data.get("role") is not None:
        update_data["role"] = UserRole(update_data["role"])

    for field, value in update_data.items():
        setattr(user, field, value)

    await db.flush()
    return ok(user, "User updated successfully")


@router.patch("/{user_id}/status", response_model=ApiResponse[UserResponse])
async def update_user_status(
    user_id: int, data: UserStatusUpdate, admin: AdminUser, db: DatabaseSession
):
    """Activate, suspend or deactivate a user (admin only)."""
    user = await _get_user(db, user_id)
    if user.id == admin.id:
        raise ValidationError("Cannot change your own status")

    user.status = UserStatus(data.status)
    await db.flush()
    logger.info("Admin %s set user %s status to %s", admin.id, user.id, user.status.value)
    return ok(user, "User status updated")


@router.delete("/{user_id}", response_model=ApiResponse[None])
async def delete_user(user_id: int, admin: AdminUser, db: DatabaseSession):
    """Delete a user (admin only). This is a soft delete - sets status to INACTIVE."""
    user = await _get_user(db, user_id)
    if user.id == admin.id:
        raise ValidationError("Cannot delete your own account")

    user.status = UserStatus.INACTIVE
    return ok(message="User deleted successfully")
