# app/bot/handlers/__init__.py
"""
🤖 BOT HANDLERS (обработчики)

Все апдейты клиента идут через один роутер (client.py),
команды /start, /help, /menu, /settings, /deletedata
разбирает машина состояний.
"""

from aiogram import Router

from .client import router as client_router

# Router = маршрутизатор для обработки апдейтов
main_router = Router()
main_router.include_router(client_router)

__all__ = ["main_router"]
