from datetime import datetime
from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select

from learnhub.core.clock import utcnow
from learnhub.core.config import Settings
from learnhub.core.database import DatabaseSession
from learnhub.core.exceptions import AuthenticationError, AuthorizationError
from learnhub.core.security import ACCESS_TOKEN_TYPE, TokenError, decode_token
from learnhub.models import User
from learnhub.models.enums import UserRole, UserStatus

bearer_scheme = HTTPBearer(auto_error=False)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


AppSettings = Annotated[Settings, Depends(get_app_settings)]


def get_now() -> datetime:
    """Current time; overridden in tests to move the clock."""
    return utcnow()


Now = Annotated[datetime, Depends(get_now)]


async def get_current_user(
    db: DatabaseSession,
    settings: AppSettings,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> User:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthenticationError()

    try:
        payload = decode_token(credentials.credentials, settings)
    except TokenError:
        raise AuthenticationError("Invalid or expired token")

    if payload.get("type") != ACCESS_TOKEN_TYPE:
        raise AuthenticationError("Invalid token type")

    try:
        user_id = int(payload.get("sub", 0))
    except (TypeError, ValueError):
        raise AuthenticationError("Invalid token subject")

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if not user:
        raise AuthenticationError("User not found or inactive")

    return user


CurrentUser = Annotated[User, Depends(get_current_user)]


async def get_active_user(current_user: CurrentUser) -> User:
    if current_user.status != UserStatus.ACTIVE:
        raise AuthenticationError("User not found or inactive")
    return current_user


ActiveUser = Annotated[User, Depends(get_active_user)]


def require_roles(*roles: UserRole):
    async def checker(current_user: ActiveUser) -> User:
        if current_user.role not in roles:
            raise AuthorizationError()
        return current_user

    return checker


AdminUser = Annotated[User, Depends(require_roles(UserRole.ADMIN))]
