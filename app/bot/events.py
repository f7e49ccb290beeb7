# app/bot/events.py
"""
Входящие события бота.

Хэндлеры aiogram превращают апдейт Telegram в одно из событий ниже,
дальше с ним работает только машина состояний (без aiogram-типов).
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple, Union

from aiogram import types


@dataclass(frozen=True)
class TextMessage:
    chat_id: int
    text: str
    reply_to_text: Optional[str] = None
    # Текст сообщения, на которое ответили (для OTP через ForceReply)
    first_name: Optional[str] = None


@dataclass(frozen=True)
class LocationShared:
    chat_id: int
    latitude: float
    longitude: float


@dataclass(frozen=True)
class ContactShared:
    chat_id: int
    phone_number: str
    belongs_to_sender: bool
    first_name: Optional[str] = None


@dataclass(frozen=True)
class CallbackAction:
    """
    Нажатие inline-кнопки.

    data разбирается по ":": "add_to_cart:12:3" → command="add_to_cart", args=("12", "3")
    """
    chat_id: int
    data: str
    message_id: Optional[int] = None
    command: str = field(init=False)
    args: Tuple[str, ...] = field(init=False)

    def __post_init__(self):
        command, *args = self.data.split(":")
        object.__setattr__(self, "command", command)
        object.__setattr__(self, "args", tuple(args))

    @property
    def has_args(self) -> bool:
        return ":" in self.data


BotEvent = Union[TextMessage, LocationShared, ContactShared, CallbackAction]


# ==========================================
# КОНВЕРТАЦИЯ ИЗ AIOGRAM
# ==========================================

def event_from_message(message: types.Message) -> Optional[BotEvent]:
    """Message → событие. None для неподдерживаемых типов (стикеры, фото...)."""
    chat_id = message.chat.id
    sender = message.from_user

    if message.location is not None:
        return LocationShared(
            chat_id=chat_id,
            latitude=message.location.latitude,
            longitude=message.location.longitude,
        )

    if message.contact is not None:
        return ContactShared(
            chat_id=chat_id,
            phone_number=message.contact.phone_number,
            belongs_to_sender=(
                sender is not None and message.contact.user_id == sender.id
            ),
            first_name=sender.first_name if sender else None,
        )

    if message.text is not None:
        reply = message.reply_to_message
        return TextMessage(
            chat_id=chat_id,
            text=message.text,
            reply_to_text=reply.text if reply is not None else None,
            first_name=sender.first_name if sender else None,
        )

    return None


def event_from_callback(callback: types.CallbackQuery) -> Optional[CallbackAction]:
    if callback.message is None or not callback.data:
        return None

    return CallbackAction(
        chat_id=callback.message.chat.id,
        data=callback.data,
        message_id=callback.message.message_id,
    )
