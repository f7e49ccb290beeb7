# infrastructure/logger.py
"""
📝 ЛОГИРОВАНИЕ

Структурированные логи через structlog.
Каждая запись = имя события + ключевые поля:

    logger.info("order_created", order_id=42, total="114000.00")
"""

import logging
import sys

import structlog

from config.settings import config


# ==========================================
# ИНИЦИАЛИЗАЦИЯ STRUCTLOG
# ==========================================

def setup_logging(level: int | None = None):
    """
    Инициализирует логирование.

    Вызывается один раз при старте приложения (main.py).
    В debug-режиме пишем DEBUG, иначе INFO.
    """

    if level is None:
        level = logging.DEBUG if config.debug else logging.INFO

    # Сначала стандартный logging: structlog пишет через него
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level,
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(ensure_ascii=False)
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # aiogram и uvicorn слишком болтливы на DEBUG
    logging.getLogger("aiogram.event").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


# ==========================================
# ПОЛУЧЕНИЕ ЛОГГЕРА
# ==========================================

logger = structlog.get_logger()
