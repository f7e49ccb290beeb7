# app/bot/middlewares/database.py
"""
Middleware для подачи БД сессии в каждый обработчик.

Логика:
1. Создаем сессию
2. Передаем её обработчику
3. Ошибка → rollback, потом сессия закрывается
"""

from typing import Any, Awaitable, Callable

from aiogram import BaseMiddleware
from aiogram.types import CallbackQuery, Message

from infrastructure.database.base import async_session_maker

import structlog

logger = structlog.get_logger()


class DatabaseMiddleware(BaseMiddleware):
    """Middleware который подает AsyncSession в контекст (data["session"])."""

    def __init__(self, session_maker=None):
        self.session_maker = session_maker or async_session_maker

    async def __call__(
        self,
        handler: Callable[[Message | CallbackQuery, dict[str, Any]], Awaitable[Any]],
        event: Message | CallbackQuery,
        data: dict[str, Any]
    ) -> Any:
        async with self.session_maker() as session:
            data["session"] = session
            try:
                return await handler(event, data)
            except Exception as e:
                await session.rollback()
                logger.error("database_error", error=str(e))
                raise
