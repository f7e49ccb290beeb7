# app/bot/middlewares/logging.py
"""
Middleware для логирования всех событий.
"""

from typing import Any, Awaitable, Callable

from aiogram import BaseMiddleware
from aiogram.types import CallbackQuery, Message

import structlog

logger = structlog.get_logger()


def _message_kind(message: Message) -> str:
    if message.location:
        return "location"
    if message.contact:
        return "contact"
    if message.text:
        return "text"
    return "other"


class LoggingMiddleware(BaseMiddleware):
    """Middleware который логирует все события."""

    async def __call__(
        self,
        handler: Callable[[Message | CallbackQuery, dict[str, Any]], Awaitable[Any]],
        event: Message | CallbackQuery,
        data: dict[str, Any]
    ) -> Any:
        if isinstance(event, Message):
            # Номер телефона и координаты в лог не пишем
            logger.info(
                "message_received",
                chat_id=event.chat.id,
                username=event.from_user.username if event.from_user else None,
                kind=_message_kind(event),
                text=event.text[:50] if event.text else None
            )
        elif isinstance(event, CallbackQuery):
            logger.info(
                "callback_received",
                user_id=event.from_user.id,
                callback_data=event.data
            )

        return await handler(event, data)
