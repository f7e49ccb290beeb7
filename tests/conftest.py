"""
Общие фикстуры тестов.

База — SQLite в памяти (aiosqlite + StaticPool: все соединения видят
одну и ту же базу). Telegram, SMS и Redis заменены фейками.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, List, Optional

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.bot.events import CallbackAction, ContactShared, LocationShared, TextMessage
from app.bot.i18n import localizer
from app.bot.messenger import Messenger
from app.bot.services import (
    AddressService,
    AuthService,
    CartService,
    CatalogService,
    OrderDraftService,
    OrderService,
    UserService,
)
from app.bot.session import FsmSessionStore
from app.bot.state_machine import ConversationStateMachine
from infrastructure.database.models import Address, Base, Category, Product, Restaurant
from infrastructure.database.repositories import UserRepository, UserStateRepository

CHAT_ID = 1001
PHONE = "+998901234567"

TEST_BCRYPT_ROUNDS = 4


# ==========================================
# ФЕЙКИ
# ==========================================

@dataclass
class SentMessage:
    chat_id: int
    text: str
    reply_markup: Any
    message_id: int


class FakeMessenger(Messenger):
    """Запоминает всё, что бот отправил."""

    def __init__(self):
        self.sent: List[SentMessage] = []
        self.edits: List[SentMessage] = []
        self.markup_edits: List[tuple] = []
        self.fail_sends = False
        self._next_id = 100

    async def send_text(self, chat_id, text, reply_markup=None):
        if self.fail_sends:
            return None
        self._next_id += 1
        self.sent.append(SentMessage(chat_id, text, reply_markup, self._next_id))
        return self._next_id

    async def edit_text(self, chat_id, message_id, text, reply_markup=None):
        self.edits.append(SentMessage(chat_id, text, reply_markup, message_id))
        return True

    async def edit_reply_markup(self, chat_id, message_id, reply_markup=None):
        self.markup_edits.append((chat_id, message_id, reply_markup))
        return True

    @property
    def texts(self) -> List[str]:
        return [message.text for message in self.sent]

    @property
    def last(self) -> SentMessage:
        return self.sent[-1]


class FakeAttemptCounter:
    def __init__(self):
        self.counts = {}

    async def hit(self, name: str) -> int:
        self.counts[name] = self.counts.get(name, 0) + 1
        return self.counts[name]


class RecordingSmsSender:
    def __init__(self):
        self.messages: List[tuple] = []

    async def send(self, phone_number: str, text: str) -> None:
        self.messages.append((phone_number, text))

    @property
    def last_code(self) -> str:
        return self.messages[-1][1].split(": ")[-1]


def callback_data(markup) -> List[str]:
    """Все callback_data inline-клавиатуры."""
    return [button.callback_data for row in markup.inline_keyboard for button in row]


def button_texts(markup) -> List[str]:
    """Подписи reply-клавиатуры."""
    return [button.text for row in markup.keyboard for button in row]


def t(key: str, *args, locale: str = "uz") -> str:
    return localizer.resolve(key, locale, *args)


# ==========================================
# БАЗА
# ==========================================

@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def seeded(session_maker):
    """
    Ресторан 1: Burgers (Cheeseburger 50000), Drinks (Cola 10000).
    Ресторан 2: Other (Plov 20000) для проверки "чужих" блюд.
    """
    async with session_maker() as session:
        session.add_all([
            Restaurant(id=1, name="RestoranPro"),
            Restaurant(id=2, name="Other place"),
        ])
        session.add_all([
            Category(id=1, restaurant_id=1, name="Burgers", name_uz="Burgerlar", name_ru="Бургеры"),
            Category(id=2, restaurant_id=1, name="Drinks", name_uz="Ichimliklar", name_ru="Напитки"),
            Category(id=3, restaurant_id=2, name="Other", name_uz="", name_ru=""),
        ])
        session.add_all([
            Product(id=1, category_id=1, name="Cheeseburger", name_uz="Chizburger", name_ru="Чизбургер",
                    description="Beef & cheese", price=Decimal("50000")),
            Product(id=2, category_id=2, name="Cola", name_uz="Kola", name_ru="Кола",
                    price=Decimal("10000")),
            Product(id=3, category_id=3, name="Plov", price=Decimal("20000")),
        ])
        await session.commit()


@pytest.fixture
async def session(session_maker, seeded):
    async with session_maker() as session:
        yield session


async def create_customer(
    session: AsyncSession,
    chat_id: int = CHAT_ID,
    phone: str = PHONE,
    verified: bool = True,
    username: str = "Ali",
):
    users = UserRepository(session)
    user = await users.get_or_create(chat_id, username=username)
    user.phone_number = phone
    await users.save(user)
    if verified:
        await UserStateRepository(session).update_data(user.id, phone_verified="true")
    return user


async def add_address(session: AsyncSession, user_id: int, line: str = "Navoi 5", city: str = "Tashkent") -> Address:
    address = Address(user_id=user_id, address_line=line, city=city, latitude=41.3, longitude=69.2)
    session.add(address)
    await session.commit()
    return address


@pytest.fixture
async def customer(session):
    return await create_customer(session)


# ==========================================
# БОТ
# ==========================================

class BotHarness:
    """
    Как handlers/client.py: на каждое событие новая DB-сессия
    и новая машина состояний, SessionStore общий.
    """

    def __init__(self, session_maker, sessions, messenger, attempts, sms):
        self.session_maker = session_maker
        self.sessions = sessions
        self.messenger = messenger
        self.attempts = attempts
        self.sms = sms

    def machine(self, session: AsyncSession) -> ConversationStateMachine:
        return ConversationStateMachine(
            sessions=self.sessions,
            messenger=self.messenger,
            localizer=localizer,
            users=UserService(session),
            auth=AuthService(
                session,
                self.attempts,
                sms_sender=self.sms,
                bcrypt_rounds=TEST_BCRYPT_ROUNDS,
            ),
            catalog=CatalogService(session, restaurant_id=1),
            addresses=AddressService(session),
            carts=CartService(session),
            orders=OrderService(session),
            drafts=OrderDraftService(session),
            restaurant_id=1,
        )

    async def send(self, event) -> None:
        async with self.session_maker() as session:
            await self.machine(session).handle(event)

    async def text(self, text: str, reply_to: Optional[str] = None, chat_id: int = CHAT_ID) -> None:
        await self.send(TextMessage(chat_id=chat_id, text=text, reply_to_text=reply_to, first_name="Ali"))

    async def click(self, data: str, message_id: Optional[int] = None, chat_id: int = CHAT_ID) -> None:
        await self.send(CallbackAction(chat_id=chat_id, data=data, message_id=message_id))

    async def contact(self, phone: str, own: bool = True, chat_id: int = CHAT_ID) -> None:
        await self.send(ContactShared(chat_id=chat_id, phone_number=phone, belongs_to_sender=own, first_name="Ali"))

    async def location(self, latitude: float = 41.31, longitude: float = 69.24, chat_id: int = CHAT_ID) -> None:
        await self.send(LocationShared(chat_id=chat_id, latitude=latitude, longitude=longitude))

    async def state(self, chat_id: int = CHAT_ID):
        return await self.sessions.get_state(chat_id)


@pytest.fixture
def messenger():
    return FakeMessenger()


@pytest.fixture
def sms():
    return RecordingSmsSender()


@pytest.fixture
def attempts():
    return FakeAttemptCounter()


@pytest.fixture
def bot(session_maker, seeded, messenger, attempts, sms):
    return BotHarness(session_maker, FsmSessionStore(), messenger, attempts, sms)
