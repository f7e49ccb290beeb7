# infrastructure/database/base.py
"""
🗄️ ПОДКЛЮЧЕНИЕ К БАЗЕ ДАННЫХ

engine              — пул соединений (asyncpg в проде, aiosqlite локально)
async_session_maker — фабрика сессий, одна сессия на апдейт / HTTP-запрос
"""

from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from config.settings import config
from infrastructure.database.models import Base

import structlog

logger = structlog.get_logger()


# ==========================================
# ENGINE + SESSION FACTORY
# ==========================================

engine = create_async_engine(
    config.async_database_url,
    echo=False,
    pool_pre_ping=True,
)

# expire_on_commit=False: объекты остаются читаемыми после commit()
async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db_session() -> AsyncIterator[AsyncSession]:
    """
    Dependency для FastAPI.

    Пример:
        @router.get("/orders/{order_id}")
        async def get_order(order_id: int, session: AsyncSession = Depends(get_db_session)):
            ...
    """
    async with async_session_maker() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


# ==========================================
# СОЗДАНИЕ / ЗАКРЫТИЕ
# ==========================================

async def init_db():
    """Создаёт таблицы если их нет (идемпотентно)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("database_tables_ready")


async def close_db():
    """Закрывает пул соединений."""
    await engine.dispose()
    logger.info("database_engine_disposed")
