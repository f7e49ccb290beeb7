"""Telegram-бот: события, сессии, машина состояний, сервисы."""
