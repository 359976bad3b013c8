import logging
from datetime import timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.core.clock import utcnow
from learnhub.core.config import Settings
from learnhub.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    ValidationError,
)
from learnhub.core.security import (
    REFRESH_TOKEN_TYPE,
    TokenError,
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    hash_token,
    verify_password,
)
from learnhub.models import RefreshToken, User
from learnhub.models.enums import UserRole, UserStatus
from learnhub.schemas import TokenResponse, UserRegister

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(self, db: AsyncSession, settings: Settings):
        self.db = db
        self.settings = settings

    async def register_user(self, data: UserRegister) -> User:
        """Register a new user."""
        if await self.get_user_by_email(data.email):
            raise ConflictError("Email already registered", errors={"field": "email"})

        user = User(
            email=data.email,
            password_hash=hash_password(data.password),
            first_name=data.first_name,
            last_name=data.last_name,
            phone=data.phone,
        )
        self.db.add(user)
        await self.db.flush()

        logger.info("Registered user %s", user.id)
        return user

    async def authenticate_user(self, email: str, password: str) -> User:
        """Check credentials. Disabled accounts are refused even with a valid password."""
        user = await self.get_user_by_email(email)

        if not user or not verify_password(password, user.password_hash):
            raise AuthenticationError("Incorrect email or password")

        if user.status != UserStatus.ACTIVE:
            raise AuthorizationError("Account is disabled")

        user.last_login_at = utcnow()
        return user

    async def create_tokens(
        self,
        user: User,
        user_agent: str | None = None,
        ip_address: str | None = None,
    ) -> tuple[TokenResponse, str]:
        """Create access and refresh tokens for a user."""
        access_token = create_access_token(
            user.id,
            self.settings,
            additional_claims={"role": UserRole(user.role).value},
        )
        refresh_token = create_refresh_token(user.id, self.settings)

        # Only the digest is stored
        self.db.add(
            RefreshToken(
                user_id=user.id,
                token_hash=hash_token(refresh_token),
                expires_at=utcnow() + timedelta(days=self.settings.refresh_token_expire_days),
                user_agent=user_agent,
                ip_address=ip_address,
            )
        )

        token_response = TokenResponse(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=self.settings.access_token_expire_minutes * 60,
        )
        return token_response, refresh_token

    async def refresh_tokens(
        self,
        refresh_token: str,
        user_agent: str | None = None,
        ip_address: str | None = None,
    ) -> tuple[TokenResponse, str]:
        """Refresh access token using refresh token. Implements token rotation."""
        try:
            payload = decode_token(refresh_token, self.settings)
            if payload.get("type") != REFRESH_TOKEN_TYPE:
                raise AuthenticationError("Invalid or expired refresh token")
            user_id = int(payload.get("sub", 0))
        except (TokenError, TypeError, ValueError):
            raise AuthenticationError("Invalid or expired refresh token")

        result = await self.db.execute(
            select(RefreshToken).where(
                RefreshToken.token_hash == hash_token(refresh_token),
                RefreshToken.revoked == False,  # noqa: E712
                RefreshToken.expires_at > utcnow(),
            )
        )
        stored_token = result.scalar_one_or_none()
        if not stored_token or stored_token.user_id != user_id:
            raise AuthenticationError("Invalid or expired refresh token")

        user = await self.get_user_by_id(user_id)
        if not user or user.status != UserStatus.ACTIVE:
            raise AuthenticationError("Invalid or expired refresh token")

        # Revoke old token (token rotation)
        stored_token.revoked = True
        stored_token.revoked_at = utcnow()

        return await self.create_tokens(user, user_agent, ip_address)

    async def revoke_refresh_token(self, refresh_token: str) -> bool:
        """Revoke a specific refresh token."""
        result = await self.db.execute(
            select(RefreshToken).where(RefreshToken.token_hash == hash_token(refresh_token))
        )
        stored_token = result.scalar_one_or_none()

        if stored_token and not stored_token.revoked:
            stored_token.revoked = True
            stored_token.revoked_at = utcnow()
            return True

        return False

    async def revoke_all_user_tokens(self, user_id: int) -> int:
        """Revoke all refresh tokens for a user. Returns count of revoked tokens."""
        result = await self.db.execute(
            select(RefreshToken).where(
                RefreshToken.user_id == user_id,
                RefreshToken.revoked == False,  # noqa: E712
            )
        )
        tokens = result.scalars().all()

        now = utcnow()
        for token in tokens:
            token.revoked = True
            token.revoked_at = now

        return len(tokens)

    async def change_password(self, user: User, current_password: str, new_password: str) -> None:
        if not verify_password(current_password, user.password_hash):
            raise ValidationError("Current password is incorrect", field="current_password")

        user.password_hash = hash_password(new_password)

        # Existing sessions must log in again
        revoked = await self.revoke_all_user_tokens(user.id)
        logger.info("User %s changed password, revoked %d refresh tokens", user.id, revoked)

    async def get_user_by_id(self, user_id: int) -> User | None:
        result = await self.db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_user_by_email(self, email: str) -> User | None:
        result = await self.db.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()
