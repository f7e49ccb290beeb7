# app/bot/services/auth.py
"""
🔐 АВТОРИЗАЦИЯ

- OTP: 6-значный код по SMS, живёт 1 минуту, хранится только bcrypt-хэш.
  Не больше 10 запросов кода на номер за 24 часа (счётчик в Redis).
- JWT: access (15 минут) + refresh (7 дней), HS256.
  Claims: sub, userId, role, locale, tokenType.
"""

import re
import secrets
from datetime import timedelta
from typing import Optional, Protocol

import bcrypt
import jwt
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import BusinessValidationError, InvalidInputError, UserNotFoundError
from app.schemas import TokenResponse
from config.settings import config
from infrastructure.database.models import OtpCode, User, UserRole, utcnow
from infrastructure.database.repositories import OtpRepository, UserRepository, UserStateRepository

import structlog

logger = structlog.get_logger()

PHONE_PATTERN = re.compile(r"^\+998[0-9]{9}$")


def normalize_phone(phone_number: str) -> str:
    """'998 90 123 45 67' → '+998901234567'. Telegram присылает номер без '+'."""
    phone = re.sub(r"[\s\-()]", "", phone_number or "")
    if phone and not phone.startswith("+"):
        phone = "+" + phone
    return phone


def is_valid_phone(phone_number: str) -> bool:
    return bool(PHONE_PATTERN.match(normalize_phone(phone_number)))


def hash_secret(value: str, rounds: Optional[int] = None) -> str:
    salt = bcrypt.gensalt(rounds=rounds or config.bcrypt_rounds)
    return bcrypt.hashpw(value.encode(), salt).decode()


def check_secret(value: str, hashed: str) -> bool:
    if not hashed:
        return False
    return bcrypt.checkpw(value.encode(), hashed.encode())


# ==========================================
# КОЛЛАБОРАТОРЫ
# ==========================================

class AttemptCounter(Protocol):
    async def hit(self, name: str) -> int: ...


class SmsSender(Protocol):
    async def send(self, phone_number: str, text: str) -> None: ...


class LoggingSmsSender:
    """SMS-шлюз не подключен: код пишется в лог."""

    async def send(self, phone_number: str, text: str) -> None:
        logger.info("sms_sent", phone_number=phone_number, text=text)


# ==========================================
# JWT
# ==========================================

class TokenIssuer:

    def __init__(
        self,
        secret: Optional[str] = None,
        algorithm: Optional[str] = None,
        access_minutes: Optional[int] = None,
        refresh_days: Optional[int] = None,
    ):
        self.secret = secret or config.jwt_secret
        self.algorithm = algorithm or config.jwt_algorithm
        self.access_ttl = timedelta(minutes=access_minutes or config.access_token_minutes)
        self.refresh_ttl = timedelta(days=refresh_days or config.refresh_token_days)

    def _encode(self, user: User, locale: str, token_type: str, ttl: timedelta) -> str:
        now = utcnow()
        payload = {
            "sub": str(user.id),
            "userId": user.id,
            "role": user.role.value if user.role else UserRole.CUSTOMER.value,
            "locale": locale,
            "tokenType": token_type,
            "iat": now,
            "exp": now + ttl,
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def issue(self, user: User, locale: Optional[str] = None) -> TokenResponse:
        locale = locale or config.default_locale
        return TokenResponse(
            access_token=self._encode(user, locale, "access", self.access_ttl),
            refresh_token=self._encode(user, locale, "refresh", self.refresh_ttl),
        )

    def decode(self, token: str, expected_type: str = "access") -> dict:
        """Проверить подпись и срок. Бросает jwt.InvalidTokenError."""
        payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        if payload.get("tokenType") != expected_type:
            raise jwt.InvalidTokenError(f"Expected {expected_type} token")
        return payload


# ==========================================
# СЕРВИС
# ==========================================

class AuthService:
    """Запрос и проверка OTP, выдача токенов."""

    def __init__(
        self,
        session: AsyncSession,
        attempts: AttemptCounter,
        sms_sender: Optional[SmsSender] = None,
        tokens: Optional[TokenIssuer] = None,
        bcrypt_rounds: Optional[int] = None,
    ):
        self.users = UserRepository(session)
        self.states = UserStateRepository(session)
        self.otps = OtpRepository(session)
        self.attempts = attempts
        self.sms_sender = sms_sender or LoggingSmsSender()
        self.tokens = tokens or TokenIssuer()
        self.bcrypt_rounds = bcrypt_rounds

    # ==========================================
    # OTP
    # ==========================================

    async def request_otp(self, phone_number: str, chat_id: Optional[int] = None) -> int:
        """Отправить код. Возвращает id кода (otp_id)."""
        phone = normalize_phone(phone_number)
        if not PHONE_PATTERN.match(phone):
            raise InvalidInputError("Invalid phone number")

        count = await self.attempts.hit(phone)
        if count > config.otp_max_attempts:
            logger.warning("otp_attempts_exceeded", phone_number=phone, chat_id=chat_id)
            raise BusinessValidationError("Too many OTP requests, try again later")

        code = str(secrets.randbelow(10 ** config.otp_length)).zfill(config.otp_length)
        now = utcnow()
        otp = await self.otps.create(OtpCode(
            phone_number=phone,
            code_hash=hash_secret(code, self.bcrypt_rounds),
            sent_at=now,
            expires_at=now + timedelta(seconds=config.otp_lifetime_seconds),
            checked=False,
        ))

        await self.sms_sender.send(phone, f"RestoranPro: {code}")
        logger.info("otp_requested", otp_id=otp.id, chat_id=chat_id, attempt=count)
        return otp.id

    async def verify_otp(self, phone_number: str, code: str, otp_id: int) -> bool:
        """
        True только если код существует, выдан этому номеру,
        ещё не использован, не истёк и совпадает. Совпавший код гасится.
        """
        otp = await self.otps.get_by_id(otp_id)
        phone = normalize_phone(phone_number)

        if otp is None or otp.phone_number != phone:
            logger.info("otp_rejected", otp_id=otp_id, reason="not_found")
            return False
        if otp.checked:
            logger.info("otp_rejected", otp_id=otp_id, reason="already_used")
            return False
        if otp.expires_at < utcnow():
            logger.info("otp_rejected", otp_id=otp_id, reason="expired")
            return False
        if not check_secret((code or "").strip(), otp.code_hash):
            logger.info("otp_rejected", otp_id=otp_id, reason="mismatch")
            return False

        await self.otps.mark_checked(otp)
        logger.info("otp_verified", otp_id=otp_id)
        return True

    async def otp_login(
        self,
        phone_number: str,
        code: str,
        otp_id: int,
        chat_id: Optional[int] = None,
    ) -> TokenResponse:
        if not await self.verify_otp(phone_number, code, otp_id):
            raise InvalidInputError("Invalid or expired OTP")

        phone = normalize_phone(phone_number)
        user = await self.users.get_by_phone(phone)

        if user is None and chat_id is not None:
            user = await self.users.get_by_chat_id(chat_id)
            if user is not None:
                user.phone_number = phone
                await self.users.save(user)

        if user is None:
            user = await self.users.save(User(
                username="Customer",
                phone_number=phone,
                password_hash="",
                role=UserRole.CUSTOMER,
            ))
            logger.info("user_created", user_id=user.id, source="otp_login")

        await self.states.update_data(user.id, phone_verified="true")
        return self.tokens.issue(user)

    # ==========================================
    # ПАРОЛЬ И REFRESH
    # ==========================================

    async def login(self, phone_number: str, password: str) -> TokenResponse:
        phone = normalize_phone(phone_number)
        if not PHONE_PATTERN.match(phone):
            raise InvalidInputError("Invalid phone number")

        user = await self.users.get_by_phone(phone)
        if user is None:
            raise UserNotFoundError("User not found")
        if not check_secret(password, user.password_hash):
            raise InvalidInputError("Invalid credentials")
        return self.tokens.issue(user)

    async def refresh(self, refresh_token: str) -> TokenResponse:
        try:
            payload = self.tokens.decode(refresh_token, expected_type="refresh")
        except jwt.InvalidTokenError as e:
            raise InvalidInputError(f"Invalid refresh token: {e}") from e

        user = await self.users.get_by_id(int(payload["userId"]))
        if user is None:
            raise UserNotFoundError("User not found")
        return self.tokens.issue(user, payload.get("locale"))
