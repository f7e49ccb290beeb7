# app/bot/messenger.py
"""
📤 ИСХОДЯЩИЕ СООБЩЕНИЯ

Машина состояний отправляет сообщения через Messenger,
а не напрямую через Bot.

Ошибки Telegram логируются и не пробрасываются: отправка
просто возвращает None / False. Повторных попыток нет.
"""

from abc import ABC, abstractmethod
from typing import Optional, Union

from aiogram import Bot
from aiogram.exceptions import TelegramAPIError
from aiogram.types import ForceReply, InlineKeyboardMarkup, ReplyKeyboardMarkup, ReplyKeyboardRemove

import structlog

logger = structlog.get_logger()

Markup = Union[InlineKeyboardMarkup, ReplyKeyboardMarkup, ReplyKeyboardRemove, ForceReply]


class Messenger(ABC):

    @abstractmethod
    async def send_text(self, chat_id: int, text: str, reply_markup: Optional[Markup] = None) -> Optional[int]:
        """Отправить сообщение. Возвращает message_id или None при ошибке."""

    @abstractmethod
    async def edit_text(
        self,
        chat_id: int,
        message_id: int,
        text: str,
        reply_markup: Optional[InlineKeyboardMarkup] = None,
    ) -> bool:
        ...

    @abstractmethod
    async def edit_reply_markup(
        self,
        chat_id: int,
        message_id: int,
        reply_markup: Optional[InlineKeyboardMarkup] = None,
    ) -> bool:
        """reply_markup=None убирает inline-кнопки у сообщения."""


class AiogramMessenger(Messenger):
    """Отправка через aiogram Bot (parse_mode задаётся в DefaultBotProperties)."""

    def __init__(self, bot: Bot):
        self.bot = bot

    async def send_text(self, chat_id, text, reply_markup=None):
        try:
            message = await self.bot.send_message(chat_id=chat_id, text=text, reply_markup=reply_markup)
            return message.message_id
        except TelegramAPIError as e:
            logger.error("send_message_failed", chat_id=chat_id, error=str(e))
            return None

    async def edit_text(self, chat_id, message_id, text, reply_markup=None):
        try:
            await self.bot.edit_message_text(
                text=text,
                chat_id=chat_id,
                message_id=message_id,
                reply_markup=reply_markup,
            )
            return True
        except TelegramAPIError as e:
            logger.error("edit_message_failed", chat_id=chat_id, message_id=message_id, error=str(e))
            return False

    async def edit_reply_markup(self, chat_id, message_id, reply_markup=None):
        try:
            await self.bot.edit_message_reply_markup(
                chat_id=chat_id,
                message_id=message_id,
                reply_markup=reply_markup,
            )
            return True
        except TelegramAPIError as e:
            logger.error("edit_markup_failed", chat_id=chat_id, message_id=message_id, error=str(e))
            return False
