# main.py
"""
🚀 ГЛАВНЫЙ ФАЙЛ ЗАПУСКА

Запускает одновременно:
- Telegram-бота (long polling, aiogram)
- REST API (FastAPI через uvicorn)

Команда для запуска:
    python main.py
"""

import asyncio

import uvicorn
from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.types import BotCommand

from app.api.app import app
from app.bot.handlers import main_router
from app.bot.middlewares import DatabaseMiddleware, LoggingMiddleware
from app.bot.session import FsmSessionStore
from config.settings import config
from infrastructure.database.base import init_db
from infrastructure.logger import setup_logging
from infrastructure.redis_storage import (
    RedisAttemptCounter,
    build_event_isolation,
    build_fsm_storage,
    check_redis_connection,
    redis,
)

import structlog

logger = structlog.get_logger()

BOT_COMMANDS = [
    BotCommand(command="start", description="Start / Boshlash"),
    BotCommand(command="menu", description="Main menu / Asosiy menyu"),
    BotCommand(command="settings", description="Language / Til"),
    BotCommand(command="deletedata", description="Delete my data"),
    BotCommand(command="help", description="Help / Yordam"),
]


# ==========================================
# 🤖 BOT STARTUP & SHUTDOWN
# ==========================================

async def on_startup(bot: Bot):
    logger.info("bot_starting", message="🤖 Бот стартует...")

    try:
        await bot.set_my_commands(BOT_COMMANDS)
    except Exception as e:
        logger.error("set_commands_failed", error=str(e))

    if not await check_redis_connection():
        logger.warning("redis_unavailable", message="⚠️ Redis недоступен: сессии и запрос OTP работать не будут")


async def on_shutdown(bot: Bot):
    logger.info("bot_shutdown", message="🔴 Бот выключается...")

    try:
        await bot.session.close()
        await redis.aclose()
    except Exception as e:
        logger.error("bot_shutdown_error", error=str(e))


def build_dispatcher(bot: Bot) -> Dispatcher:
    """
    Диспетчер + общие объекты процесса:
    dp["sessions"] и dp["attempts"] попадают в обработчики по имени аргумента.

    Сессии диалогов лежат в FSM-хранилище диспетчера.
    События чата по очереди пропускает машина состояний (sessions.lock
    на тот же StorageKey), events_isolation диспетчера не включается.
    """
    storage = build_fsm_storage()
    dp = Dispatcher(storage=storage)
    dp["sessions"] = FsmSessionStore(storage, build_event_isolation(), bot_id=bot.id)
    dp["attempts"] = RedisAttemptCounter(redis)

    # Первый добавленный = первый в цепочке
    for observer in (dp.message, dp.callback_query):
        observer.middleware(LoggingMiddleware())
        observer.middleware(DatabaseMiddleware())

    dp.include_router(main_router)
    dp.startup.register(on_startup)
    dp.shutdown.register(on_shutdown)
    return dp


# ==========================================
# 🚀 ГЛАВНАЯ ФУНКЦИЯ ЗАПУСКА
# ==========================================

async def main():
    setup_logging()
    logger.info("application_start", message="🟢 Приложение стартует")

    if not config.bot_token:
        logger.error("bot_token_missing", message="❌ BOT_TOKEN не установлен в .env")
        raise ValueError("BOT_TOKEN не найден в переменных окружения")

    await init_db()
    logger.info("database_ready", message="✅ База данных готова")

    bot = Bot(
        token=config.bot_token,
        default=DefaultBotProperties(parse_mode="HTML")
    )
    dp = build_dispatcher(bot)

    async def run_bot():
        logger.info("polling_started", message="👂 Бот начинает слушать сообщения...")
        await dp.start_polling(bot)

    async def run_api():
        server = uvicorn.Server(uvicorn.Config(
            app,
            host=config.api_host,
            port=config.api_port,
            log_level="info",
        ))
        logger.info("fastapi_starting", host=config.api_host, port=config.api_port)
        await server.serve()

    # Если один упадёт, упадут оба
    await asyncio.gather(run_bot(), run_api())


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("app_interrupted", message="⛔ Приложение остановлено (Ctrl+C)")
