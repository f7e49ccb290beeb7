# infrastructure/redis_storage.py
"""
🔴 REDIS

Redis хранит:
- сессии диалогов (FSM-хранилище aiogram): состояние + данные чата,
  у каждой записи TTL, простаивающий чат забывается сам
- счётчики попыток запроса OTP: ключ живёт окно (по умолчанию 24 часа)

Пример:
- +998901234567 запросил код → otp_attempts:+998901234567 = 1 (TTL 24ч)
- ... 10 запросов → 11-й отклоняется до истечения TTL

Без Redis (SESSION_STORAGE=memory) сессии живут в MemoryStorage
и теряются при перезагрузке бота.
"""

from typing import Optional

from aiogram.fsm.storage.base import BaseEventIsolation, BaseStorage
from aiogram.fsm.storage.memory import MemoryStorage, SimpleEventIsolation
from aiogram.fsm.storage.redis import RedisEventIsolation, RedisStorage
from redis.asyncio.client import Redis

from config.settings import config

import structlog

logger = structlog.get_logger()


# ==========================================
# КЛИЕНТ
# ==========================================

# from_url не открывает соединение, оно появится при первой команде
redis = Redis.from_url(
    config.redis_url,
    encoding="utf-8",
    decode_responses=True
)


# ==========================================
# FSM-ХРАНИЛИЩЕ СЕССИЙ
# ==========================================

def build_fsm_storage(client: Optional[Redis] = None) -> BaseStorage:
    """RedisStorage с TTL на состояние и данные, либо MemoryStorage."""
    if config.session_storage == "memory":
        logger.warning("memory_session_storage", message="⚠️ Сессии в памяти: потеряются при перезапуске")
        return MemoryStorage()

    return RedisStorage(
        redis=client or redis,
        state_ttl=config.session_ttl_seconds,
        data_ttl=config.session_ttl_seconds,
    )


def build_event_isolation(client: Optional[Redis] = None) -> BaseEventIsolation:
    """Блокировка чата: в Redis, если сессии там же, иначе в процессе."""
    if config.session_storage == "memory":
        return SimpleEventIsolation()
    return RedisEventIsolation(redis=client or redis)


# ==========================================
# СЧЁТЧИК ПОПЫТОК
# ==========================================

class RedisAttemptCounter:
    """
    Счётчик с окном: INCR + EXPIRE на первом инкременте.

    Используется AuthService для лимита запросов OTP.
    """

    def __init__(self, client: Redis, prefix: str = "otp_attempts", window_seconds: int | None = None):
        self.client = client
        self.prefix = prefix
        self.window_seconds = window_seconds or config.otp_attempts_window_seconds

    def _key(self, name: str) -> str:
        return f"{self.prefix}:{name}"

    async def hit(self, name: str) -> int:
        """Увеличить счётчик и вернуть новое значение."""
        key = self._key(name)
        count = await self.client.incr(key)
        if count == 1:
            await self.client.expire(key, self.window_seconds)
        return count


# ==========================================
# ФУНКЦИЯ: проверить соединение
# ==========================================

async def check_redis_connection() -> bool:
    """
    Проверяет что Redis живой и отвечает.
    Вызывается при старте приложения для диагностики.
    """
    try:
        await redis.ping()
        return True
    except Exception as e:
        logger.error("redis_connection_error", error=str(e))
        return False


__all__ = [
    "redis",
    "build_fsm_storage",
    "build_event_isolation",
    "RedisAttemptCounter",
    "check_redis_connection",
]
