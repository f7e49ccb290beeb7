"""Настройки приложения."""

from .settings import Settings, config

__all__ = ["Settings", "config"]
