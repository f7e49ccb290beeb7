# app/bot/handlers/client.py
"""
Обработчики для клиента (заказчика).

Aiogram здесь только транспорт: апдейт превращается в событие
(app/bot/events.py) и уходит в ConversationStateMachine,
которая уже решает что ответить.

В обработчик приходят:
- session  — AsyncSession (DatabaseMiddleware)
- bot      — сам бот (aiogram)
- sessions — SessionStore (dp["sessions"])
- attempts — счётчик запросов OTP (dp["attempts"])
"""

from aiogram import Bot, Router, types
from sqlalchemy.ext.asyncio import AsyncSession

from app.bot.events import event_from_callback, event_from_message
from app.bot.i18n import localizer
from app.bot.messenger import AiogramMessenger
from app.bot.services import (
    AddressService,
    AuthService,
    CartService,
    CatalogService,
    OrderDraftService,
    OrderService,
    UserService,
)
from app.bot.session import SessionStore
from app.bot.state_machine import ConversationStateMachine

import structlog

logger = structlog.get_logger()

router = Router()


def build_state_machine(
    session: AsyncSession,
    bot: Bot,
    sessions: SessionStore,
    attempts,
) -> ConversationStateMachine:
    """Все сервисы одного апдейта работают в одной DB-сессии."""
    return ConversationStateMachine(
        sessions=sessions,
        messenger=AiogramMessenger(bot),
        localizer=localizer,
        users=UserService(session),
        auth=AuthService(session, attempts),
        catalog=CatalogService(session),
        addresses=AddressService(session),
        carts=CartService(session),
        orders=OrderService(session),
        drafts=OrderDraftService(session),
    )


# ==========================================
# СООБЩЕНИЯ (текст, контакт, геолокация)
# ==========================================

@router.message()
async def on_message(
    message: types.Message,
    session: AsyncSession,
    bot: Bot,
    sessions: SessionStore,
    attempts,
):
    event = event_from_message(message)
    if event is None:
        logger.debug("message_ignored", chat_id=message.chat.id)
        return

    machine = build_state_machine(session, bot, sessions, attempts)
    await machine.handle(event)


# ==========================================
# CALLBACK-КНОПКИ
# ==========================================

@router.callback_query()
async def on_callback(
    callback: types.CallbackQuery,
    session: AsyncSession,
    bot: Bot,
    sessions: SessionStore,
    attempts,
):
    # Убираем "часики" на кнопке сразу
    await callback.answer()

    event = event_from_callback(callback)
    if event is None:
        logger.debug("callback_ignored", user_id=callback.from_user.id, data=callback.data)
        return

    machine = build_state_machine(session, bot, sessions, attempts)
    await machine.handle(event)
