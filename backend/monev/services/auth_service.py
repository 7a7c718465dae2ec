"""Account registration, credential checks and token issuing."""

from datetime import datetime, timezone

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from monev.config import settings
from monev.core.exceptions import AlreadyExistsError, UnauthorizedError
from monev.core.security import (
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    verify_password,
)
from monev.models.user import User
from monev.models.user_settings import UserSettings
from monev.schemas.user import AuthResponse, TokenResponse, UserLogin, UserRegister, UserResponse

logger = structlog.get_logger()


def token_pair(user_id: int) -> TokenResponse:
    return TokenResponse(
        access_token=create_access_token(user_id),
        refresh_token=create_refresh_token(user_id),
        expires_in=settings.jwt_access_token_expire_minutes * 60,
    )


def auth_response(user: User) -> AuthResponse:
    return AuthResponse(user=UserResponse.model_validate(user), **token_pair(user.id).model_dump())


class AuthService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _active_user(self, **filters) -> User | None:
        query = select(User).where(User.is_active.is_(True))
        for column, value in filters.items():
            query = query.where(getattr(User, column) == value)
        return (await self.db.execute(query)).scalar_one_or_none()

    async def register(self, data: UserRegister) -> AuthResponse:
        """Create the account and its settings row, then sign the user in."""
        existing = await self.db.scalar(select(User.id).where(User.email == data.email))
        if existing is not None:
            raise AlreadyExistsError("Email")

        user = User(
            email=data.email,
            password_hash=hash_password(data.password),
            full_name=data.full_name,
            last_login_at=datetime.now(timezone.utc),
        )
        user.settings = UserSettings(
            language=settings.default_language,
            daily_recap_enabled=True,
        )
        self.db.add(user)
        await self.db.flush()
        await self.db.refresh(user)
        logger.info("user_registered", user_id=user.id)
        return auth_response(user)

    async def login(self, data: UserLogin) -> AuthResponse:
        user = await self._active_user(email=data.email)
        # Same message for unknown email and wrong password
        if user is None or not verify_password(data.password, user.password_hash):
            logger.info("login_failed", email=data.email)
            raise UnauthorizedError("Invalid email or password")
        user.last_login_at = datetime.now(timezone.utc)
        await self.db.flush()
        logger.info("login_succeeded", user_id=user.id)
        return auth_response(user)

    async def refresh(self, refresh_token: str) -> TokenResponse:
        """Exchange a refresh token for a fresh pair. Deactivated users are refused."""
        claims = decode_token(refresh_token)
        if claims.get("type") != "refresh":
            raise UnauthorizedError("Invalid token type")
        subject = claims.get("sub")
        if not isinstance(subject, str) or not subject.isdigit():
            raise UnauthorizedError("Token missing subject")

        user = await self._active_user(id=int(subject))
        if user is None:
            raise UnauthorizedError("User not found")
        return token_pair(user.id)
