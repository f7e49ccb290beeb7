"""
🗄️ DATABASE ИНИЦИАЛИЗАЦИЯ

Экспортируем все нужные функции и объекты.
"""

from infrastructure.database.base import (
    engine,
    async_session_maker,
    get_db_session,
    init_db,
    close_db,
)
from infrastructure.database.models import Base

__all__ = [
    "Base",
    "engine",
    "async_session_maker",
    "get_db_session",
    "init_db",
    "close_db",
]
