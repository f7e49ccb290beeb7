"""Инфраструктура приложения."""

from .logger import logger, setup_logging
from .redis_storage import (
    redis,
    build_event_isolation,
    build_fsm_storage,
    RedisAttemptCounter,
    check_redis_connection,
)
from .database import engine, async_session_maker, get_db_session, init_db, close_db

__all__ = [
    "logger",
    "setup_logging",
    "redis",
    "build_fsm_storage",
    "build_event_isolation",
    "RedisAttemptCounter",
    "check_redis_connection",
    "engine",
    "async_session_maker",
    "get_db_session",
    "init_db",
    "close_db",
]
