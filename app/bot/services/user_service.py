# app/bot/services/user_service.py
"""
Сервис пользователей бота.

Пользователь создаётся при регистрации (после выбора языка),
телефон и флаг phone_verified появляются после подтверждения OTP.
Язык и phone_verified хранятся в user_states.data, чтобы
пережить перезапуск бота.
"""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.bot.session import UserRef
from infrastructure.database.models import User
from infrastructure.database.repositories import (
    AddressRepository,
    CartRepository,
    OrderDataRepository,
    UserRepository,
    UserStateRepository,
)

import structlog

logger = structlog.get_logger()


def to_ref(user: User) -> UserRef:
    return UserRef(
        id=user.id,
        chat_id=user.telegram_chat_id,
        username=user.username,
        phone_number=user.phone_number or "",
    )


class UserService:
    """Поиск, регистрация и удаление пользователей."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.users = UserRepository(session)
        self.states = UserStateRepository(session)

    async def find_by_chat_id(self, chat_id: int) -> Optional[User]:
        return await self.users.get_by_chat_id(chat_id)

    async def register(self, chat_id: int, username: Optional[str] = None, locale: Optional[str] = None) -> User:
        """Найти или создать пользователя чата. Язык сразу сохраняем."""
        user = await self.users.get_or_create(chat_id, username=username or "Customer")
        if locale:
            await self.states.update_data(user.id, locale=locale)
        return user

    async def save(self, user: User) -> User:
        return await self.users.save(user)

    async def set_phone(self, chat_id: int, phone_number: str) -> Optional[User]:
        user = await self.users.get_by_chat_id(chat_id)
        if user is None:
            return None

        user.phone_number = phone_number
        await self.users.save(user)
        logger.info("user_phone_saved", user_id=user.id)
        return user

    # ==========================================
    # СОХРАНЁННЫЙ СНИМОК (user_states)
    # ==========================================

    async def mark_phone_verified(self, user_id: int) -> None:
        await self.states.update_data(user_id, phone_verified="true")

    async def is_phone_verified(self, user_id: int) -> bool:
        state = await self.states.get_by_user_id(user_id)
        return bool(state and (state.data or {}).get("phone_verified") == "true")

    async def save_locale(self, user_id: int, locale: str) -> None:
        await self.states.update_data(user_id, locale=locale)

    async def get_saved_locale(self, user_id: int) -> Optional[str]:
        state = await self.states.get_by_user_id(user_id)
        if state is None:
            return None
        return (state.data or {}).get("locale")

    async def save_state(self, user_id: int, state_name: str) -> None:
        await self.states.set_current_state(user_id, state_name)

    # ==========================================
    # /deletedata
    # ==========================================

    async def delete_data(self, chat_id: int) -> bool:
        """
        Удалить данные пользователя чата: адреса, корзину, черновик заказа.
        Сам пользователь помечается deleted (заказы остаются для истории).
        """
        user = await self.users.get_by_chat_id(chat_id)
        if user is None:
            return False

        await AddressRepository(self.session).soft_delete_for_user(user.id)
        await OrderDataRepository(self.session).delete_for_user(user.id)

        carts = CartRepository(self.session)
        cart = await carts.get_for_user(user.id)
        if cart is not None:
            await carts.clear(cart)

        await self.states.update_data(user.id, phone_verified="false")
        await self.users.soft_delete(user)

        logger.info("user_data_deleted", user_id=user.id, chat_id=chat_id)
        return True
