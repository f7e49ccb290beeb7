# app/bot/middlewares/__init__.py
"""
🔄 MIDDLEWARE (перехватчики)

Middleware срабатывают для КАЖДОГО сообщения и callback'а:
- LoggingMiddleware  — логирование
- DatabaseMiddleware — AsyncSession в контекст обработчика
"""

from .database import DatabaseMiddleware
from .logging import LoggingMiddleware

__all__ = [
    "LoggingMiddleware",
    "DatabaseMiddleware",
]
