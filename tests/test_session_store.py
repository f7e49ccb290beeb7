"""Сессии чатов в FSM-хранилище aiogram: состояние, временные данные, TTL."""

import asyncio

from aiogram.fsm.storage.memory import MemoryStorage
from aiogram.fsm.storage.redis import RedisEventIsolation, RedisStorage
from redis.asyncio.client import Redis

from app.bot.session import FsmSessionStore, UserRef
from app.bot.states import BotState, MenuState
from config.settings import config
from infrastructure.redis_storage import build_event_isolation, build_fsm_storage


async def test_new_chat_starts_in_start_state():
    store = FsmSessionStore()

    assert await store.get_state(42) is BotState.START
    assert await store.get_menu_state(42) is MenuState.MAIN_MENU
    assert await store.get_previous_state(42) is None
    assert await store.get_user(42) is None
    assert await store.get_locale(42) == config.default_locale


async def test_set_state_remembers_previous_state():
    store = FsmSessionStore()

    await store.set_state(42, BotState.AWAITING_LANGUAGE)
    await store.set_state(42, BotState.AWAITING_PHONE)

    assert await store.get_state(42) is BotState.AWAITING_PHONE
    assert await store.get_previous_state(42) is BotState.AWAITING_LANGUAGE


async def test_temporary_data_is_per_chat_and_clearable():
    store = FsmSessionStore()

    await store.set_temporary_data(1, "otp_id", "17")
    await store.set_temporary_data(2, "otp_id", "99")

    assert await store.get_temporary_data(1, "otp_id") == "17"
    assert await store.get_temporary_data(2, "otp_id") == "99"

    await store.clear_temporary_data(1)
    assert await store.get_temporary_data(1, "otp_id") is None
    assert await store.get_temporary_data(2, "otp_id") == "99"


async def test_locale_and_cached_user():
    store = FsmSessionStore()
    ref = UserRef(id=5, chat_id=42, username="Ali", phone_number="+998901234567")

    await store.set_locale(42, "ru")
    await store.cache_user(ref)

    assert await store.get_locale(42) == "ru"
    assert await store.get_user(42) == ref


async def test_session_lives_in_fsm_storage():
    storage = MemoryStorage()
    store = FsmSessionStore(storage, bot_id=7)
    await store.set_state(42, BotState.REGISTERED)
    await store.set_temporary_data(42, "otp_id", "17")

    key = store.key(42)
    assert await storage.get_state(key) == "REGISTERED"
    assert (await storage.get_data(key))["temporary_data"] == {"otp_id": "17"}

    # новый экземпляр поверх того же хранилища видит ту же сессию
    again = FsmSessionStore(storage, bot_id=7)
    assert await again.get_state(42) is BotState.REGISTERED


async def test_unknown_stored_state_falls_back_to_start():
    storage = MemoryStorage()
    store = FsmSessionStore(storage)
    await storage.set_state(store.key(42), "SomeOtherFlow:step")

    assert await store.get_state(42) is BotState.START


async def test_delete_resets_session():
    storage = MemoryStorage()
    store = FsmSessionStore(storage)
    await store.set_state(42, BotState.REGISTERED)
    await store.set_locale(42, "ru")

    await store.delete(42)

    assert await storage.get_state(store.key(42)) is None
    assert await store.get_state(42) is BotState.START
    assert await store.get_locale(42) == config.default_locale


async def test_lock_serializes_one_chat_only():
    store = FsmSessionStore()
    order = []

    async def work(chat_id, name):
        async with store.lock(chat_id):
            order.append(f"{name}:in")
            await asyncio.sleep(0.01)
            order.append(f"{name}:out")

    await asyncio.gather(work(1, "a"), work(1, "b"))
    assert order == ["a:in", "a:out", "b:in", "b:out"]

    order.clear()
    await asyncio.gather(work(1, "a"), work(2, "b"))
    assert order[:2] == ["a:in", "b:in"]


def test_redis_storage_expires_idle_sessions(monkeypatch):
    monkeypatch.setattr(config, "session_storage", "redis")
    client = Redis.from_url("redis://localhost:6379/0")

    storage = build_fsm_storage(client)

    assert isinstance(storage, RedisStorage)
    assert storage.state_ttl == config.session_ttl_seconds
    assert storage.data_ttl == config.session_ttl_seconds
    assert isinstance(build_event_isolation(client), RedisEventIsolation)


def test_memory_storage_for_local_runs(monkeypatch):
    monkeypatch.setattr(config, "session_storage", "memory")

    assert isinstance(build_fsm_storage(), MemoryStorage)
