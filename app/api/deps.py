# app/api/deps.py
"""
Зависимости FastAPI (Depends).

- get_db_session     — AsyncSession на запрос
- get_auth_service   — AuthService со счётчиком попыток в Redis
- get_current_user   — пользователь из Bearer access-токена
- require_admin      — то же, но только для роли admin
"""

from dataclasses import dataclass

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.bot.services.auth import AuthService, TokenIssuer
from app.exceptions import ForbiddenError
from config.settings import config
from infrastructure.database.base import get_db_session
from infrastructure.database.models import UserRole
from infrastructure.redis_storage import RedisAttemptCounter, redis

import structlog

logger = structlog.get_logger()

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class CurrentUser:
    id: int
    role: UserRole
    locale: str

    @property
    def is_admin(self) -> bool:
        return self.role is UserRole.ADMIN


def get_attempt_counter() -> RedisAttemptCounter:
    return RedisAttemptCounter(redis)


def get_token_issuer() -> TokenIssuer:
    return TokenIssuer()


async def get_auth_service(
    session: AsyncSession = Depends(get_db_session),
    attempts: RedisAttemptCounter = Depends(get_attempt_counter),
    tokens: TokenIssuer = Depends(get_token_issuer),
) -> AuthService:
    return AuthService(session, attempts, tokens=tokens)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    tokens: TokenIssuer = Depends(get_token_issuer),
) -> CurrentUser:
    """Разобрать access-токен. Нет токена или он битый → 401."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload = tokens.decode(credentials.credentials, expected_type="access")
    except jwt.InvalidTokenError as e:
        logger.warning("invalid_access_token", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e

    return CurrentUser(
        id=int(payload["userId"]),
        role=UserRole(payload.get("role", UserRole.CUSTOMER.value)),
        locale=payload.get("locale") or config.default_locale,
    )


async def require_admin(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not user.is_admin:
        raise ForbiddenError("Admin role required")
    return user
