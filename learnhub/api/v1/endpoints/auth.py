from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response, status

from learnhub.core.config import Settings
from learnhub.core.database import DatabaseSession
from learnhub.core.deps import ActiveUser, AppSettings
from learnhub.core.exceptions import AuthenticationError
from learnhub.schemas import (
    ApiResponse,
    PasswordChangeRequest,
    TokenRefreshRequest,
    TokenResponse,
    UserLogin,
    UserRegister,
    UserResponse,
    ok,
)
from learnhub.services.auth_service import AuthService

router = APIRouter(prefix="/auth", tags=["Authentication"])

REFRESH_COOKIE = "refresh_token"


def get_auth_service(db: DatabaseSession, settings: AppSettings) -> AuthService:
    return AuthService(db, settings)


AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]


def _set_refresh_cookie(response: Response, token: str, settings: Settings) -> None:
    response.set_cookie(
        key=REFRESH_COOKIE,
        value=token,
        httponly=True,
        secure=settings.environment not in ("development", "test"),
        samesite="lax",
        max_age=settings.refresh_token_expire_days * 24 * 60 * 60,
        path=f"{settings.api_v1_prefix}/auth",
    )


def _client_info(request: Request) -> dict[str, str | None]:
    return {
        "user_agent": request.headers.get("user-agent"),
        "ip_address": request.client.host if request.client else None,
    }


@router.post(
    "/register",
    response_model=ApiResponse[UserResponse],
    status_code=status.HTTP_201_CREATED,
)
async def register(data: UserRegister, auth_service: AuthServiceDep):
    """Register a new user account."""
    user = await auth_service.register_user(data)
    return ok(user, "User registered successfully")


@router.post("/login", response_model=ApiResponse[TokenResponse])
async def login(
    data: UserLogin,
    request: Request,
    response: Response,
    auth_service: AuthServiceDep,
    settings: AppSettings,
):
    """Login with email and password. Returns tokens and sets refresh token cookie."""
    user = await auth_service.authenticate_user(data.email, data.password)
    token_response, refresh_token = await auth_service.create_tokens(user, **_client_info(request))
    _set_refresh_cookie(response, refresh_token, settings)
    return ok(token_response, "Login successful")


@router.post("/refresh", response_model=ApiResponse[TokenResponse])
async def refresh_token(
    request: Request,
    response: Response,
    auth_service: AuthServiceDep,
    settings: AppSettings,
    body: TokenRefreshRequest | None = None,
):
    """
    Refresh access token using refresh token.

    The refresh token can be provided either:
    - In the request body (for mobile/desktop apps)
    - As an HTTP-only cookie (for web apps)
    """
    token = body.refresh_token if body and body.refresh_token else request.cookies.get(REFRESH_COOKIE)
    if not token:
        raise AuthenticationError("Refresh token not provided")

    token_response, new_refresh_token = await auth_service.refresh_tokens(
        token, **_client_info(request)
    )
    _set_refresh_cookie(response, new_refresh_token, settings)
    return ok(token_response, "Token refreshed")


@router.post("/logout", response_model=ApiResponse[None])
async def logout(
    request: Request,
    response: Response,
    auth_service: AuthServiceDep,
    settings: AppSettings,
    body: TokenRefreshRequest | None = None,
):
    """Logout and revoke refresh token."""
    token = body.refresh_token if body else request.cookies.get(REFRESH_COOKIE)
    if token:
        await auth_service.revoke_refresh_token(token)

    response.delete_cookie(key=REFRESH_COOKIE, path=f"{settings.api_v1_prefix}/auth")
    return ok(message="Successfully logged out")


@router.post("/logout-all", response_model=ApiResponse[None])
async def logout_all_devices(current_user: ActiveUser, auth_service: AuthServiceDep):
    """Logout from all devices by revoking all refresh tokens."""
    count = await auth_service.revoke_all_user_tokens(current_user.id)
    return ok(message=f"Logged out from {count} device(s)")


@router.get("/me", response_model=ApiResponse[UserResponse])
async def get_current_user(current_user: ActiveUser):
    """Get current authenticated user's profile."""
    return ok(current_user)


@router.post("/change-password", response_model=ApiResponse[None])
async def change_password(
    data: PasswordChangeRequest,
    current_user: ActiveUser,
    auth_service: AuthServiceDep,
):
    """Change current user's password."""
    await auth_service.change_password(current_user, data.current_password, data.new_password)
    return ok(message="Password changed successfully")
