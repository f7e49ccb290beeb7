# app/bot/session.py
"""
🧠 СЕССИИ ЧАТОВ

Хранилище состояния диалога по chat id:
- текущее / предыдущее состояние (BotState)
- состояние меню (MenuState)
- временные данные (телефон, otp_id, координаты...)
- закэшированный пользователь
- язык

Любой метод с неизвестным chat id не падает, а работает
с сессией по умолчанию (START, MAIN_MENU, пустые данные, язык по умолчанию).

Сессии лежат в FSM-хранилище aiogram (MemoryStorage / RedisStorage):
BotState это FSM-состояние ключа чата, остальное это FSM-данные.
Истечение простаивающих сессий делает само хранилище (TTL в RedisStorage).
"""

from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from dataclasses import asdict, dataclass, field
from typing import Any, AsyncContextManager, AsyncIterator, Dict, Optional

from aiogram.fsm.storage.base import BaseEventIsolation, BaseStorage, StorageKey
from aiogram.fsm.storage.memory import MemoryStorage, SimpleEventIsolation

from config.settings import config
from app.bot.states import BotState, MenuState

import structlog

logger = structlog.get_logger()


@dataclass(frozen=True)
class UserRef:
    """Снимок пользователя для быстрых проверок (не ORM-объект)."""
    id: int
    chat_id: int
    username: str
    phone_number: str = ""


@dataclass
class Session:
    chat_id: int
    current_state: BotState = BotState.START
    previous_state: Optional[BotState] = None
    menu_state: MenuState = MenuState.MAIN_MENU
    temporary_data: Dict[str, str] = field(default_factory=dict)
    cached_user: Optional[UserRef] = None
    locale: str = field(default_factory=lambda: config.default_locale)

    def to_data(self) -> Dict[str, Any]:
        """FSM-данные (JSON-совместимые, RedisStorage хранит их как JSON)."""
        return {
            "previous_state": self.previous_state.value if self.previous_state else None,
            "menu_state": self.menu_state.value,
            "temporary_data": dict(self.temporary_data),
            "user": asdict(self.cached_user) if self.cached_user else None,
            "locale": self.locale,
        }

    @classmethod
    def from_storage(cls, chat_id: int, state: Optional[str], data: Dict[str, Any]) -> "Session":
        user = data.get("user")
        previous = data.get("previous_state")
        return cls(
            chat_id=chat_id,
            current_state=_bot_state(chat_id, state) or BotState.START,
            previous_state=_bot_state(chat_id, previous),
            menu_state=MenuState(data.get("menu_state") or MenuState.MAIN_MENU.value),
            temporary_data=dict(data.get("temporary_data") or {}),
            cached_user=UserRef(**user) if user else None,
            locale=data.get("locale") or config.default_locale,
        )


def _bot_state(chat_id: int, value: Optional[str]) -> Optional[BotState]:
    if not value:
        return None
    try:
        return BotState(value)
    except ValueError:
        logger.warning("unknown_session_state", chat_id=chat_id, state=value)
        return None


# ==========================================
# ИНТЕРФЕЙС
# ==========================================

class SessionStore(ABC):
    """Хранилище сессий, которое получает машина состояний."""

    @abstractmethod
    async def load(self, chat_id: int) -> Session:
        """Сессия чата; по умолчанию, если её нет."""

    @abstractmethod
    async def save(self, session: Session) -> None:
        ...

    @abstractmethod
    async def delete(self, chat_id: int) -> None:
        ...

    @abstractmethod
    def lock(self, chat_id: int) -> AsyncContextManager[None]:
        """Блокировка чата: события одного чата обрабатываются по очереди."""

    @asynccontextmanager
    async def edit(self, chat_id: int) -> AsyncIterator[Session]:
        session = await self.load(chat_id)
        yield session
        await self.save(session)

    async def touch(self, chat_id: int) -> Session:
        """Перезаписать сессию: продлевает TTL активного чата."""
        async with self.edit(chat_id) as session:
            return session

    # ---------- состояние ----------

    async def get_state(self, chat_id: int) -> BotState:
        return (await self.load(chat_id)).current_state

    async def set_state(self, chat_id: int, state: BotState) -> None:
        async with self.edit(chat_id) as session:
            if session.current_state != state:
                session.previous_state = session.current_state
            session.current_state = state

    async def get_previous_state(self, chat_id: int) -> Optional[BotState]:
        return (await self.load(chat_id)).previous_state

    async def set_previous_state(self, chat_id: int, state: BotState) -> None:
        async with self.edit(chat_id) as session:
            session.previous_state = state

    async def get_menu_state(self, chat_id: int) -> MenuState:
        return (await self.load(chat_id)).menu_state

    async def set_menu_state(self, chat_id: int, state: MenuState) -> None:
        async with self.edit(chat_id) as session:
            session.menu_state = state

    # ---------- временные данные ----------

    async def set_temporary_data(self, chat_id: int, key: str, value: str) -> None:
        async with self.edit(chat_id) as session:
            session.temporary_data[key] = value

    async def get_temporary_data(self, chat_id: int, key: str) -> Optional[str]:
        return (await self.load(chat_id)).temporary_data.get(key)

    async def clear_temporary_data(self, chat_id: int) -> None:
        """Чистит только временные данные; состояние и пользователь остаются."""
        async with self.edit(chat_id) as session:
            session.temporary_data.clear()

    # ---------- пользователь и язык ----------

    async def cache_user(self, user: UserRef) -> None:
        async with self.edit(user.chat_id) as session:
            session.cached_user = user

    async def get_user(self, chat_id: int) -> Optional[UserRef]:
        return (await self.load(chat_id)).cached_user

    async def set_locale(self, chat_id: int, locale: str) -> None:
        async with self.edit(chat_id) as session:
            session.locale = locale

    async def get_locale(self, chat_id: int) -> str:
        return (await self.load(chat_id)).locale


# ==========================================
# РЕАЛИЗАЦИЯ: FSM-хранилище aiogram
# ==========================================

class FsmSessionStore(SessionStore):
    """
    Сессии в BaseStorage aiogram, по StorageKey на чат.

    Тот же storage передаётся в Dispatcher, так что FSMContext
    чата видит BotState как своё состояние.
    """

    def __init__(
        self,
        storage: Optional[BaseStorage] = None,
        isolation: Optional[BaseEventIsolation] = None,
        bot_id: int = 0,
    ):
        self.storage = storage or MemoryStorage()
        self.isolation = isolation or SimpleEventIsolation()
        self.bot_id = bot_id

    def key(self, chat_id: int) -> StorageKey:
        # Бот работает в личных чатах: chat id совпадает с user id
        return StorageKey(bot_id=self.bot_id, chat_id=chat_id, user_id=chat_id)

    async def load(self, chat_id: int) -> Session:
        key = self.key(chat_id)
        state = await self.storage.get_state(key)
        data = await self.storage.get_data(key)
        return Session.from_storage(chat_id, state, data)

    async def save(self, session: Session) -> None:
        key = self.key(session.chat_id)
        await self.storage.set_state(key, session.current_state.value)
        await self.storage.set_data(key, session.to_data())

    async def delete(self, chat_id: int) -> None:
        key = self.key(chat_id)
        await self.storage.set_state(key, None)
        await self.storage.set_data(key, {})
        logger.info("session_deleted", chat_id=chat_id)

    def lock(self, chat_id: int) -> AsyncContextManager[None]:
        return self.isolation.lock(self.key(chat_id))
