# config/settings.py
"""
Settings файл - здесь живут все настройки приложения.

Логика: когда приложение запускается, оно читает .env файл
и создает объект 'config' со всеми необходимыми значениями.

Если какое-то значение из .env потеряется или будет неправильного типа,
Pydantic сразу выдаст ошибку и подскажет что не так.
"""

from decimal import Decimal
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Основной класс настроек.

    Все значения можно переопределить через .env
    (имена полей без учета регистра: BOT_TOKEN, DATABASE_URL и т.д.)
    """

    # ==========================================
    # TELEGRAM BOT
    # ==========================================
    bot_token: str = ""
    bot_username: str = "restoranpro_bot"

    # ==========================================
    # DATABASE
    # ==========================================
    database_url: str = "sqlite+aiosqlite:///./restoranpro.db"

    # ==========================================
    # REDIS
    # ==========================================
    redis_url: str = "redis://localhost:6379/0"

    # ==========================================
    # API
    # ==========================================
    api_host: str = "0.0.0.0"
    api_port: int = 5000

    # ==========================================
    # AUTH (JWT + OTP)
    # ==========================================
    jwt_secret: str = "change-me"
    jwt_algorithm: str = "HS256"
    access_token_minutes: int = 15
    refresh_token_days: int = 7

    otp_length: int = 6
    otp_lifetime_seconds: int = 60
    otp_max_attempts: int = 10
    otp_attempts_window_seconds: int = 24 * 60 * 60
    bcrypt_rounds: int = 12

    # ==========================================
    # ЛОКАЛИЗАЦИЯ И СЕССИИ БОТА
    # ==========================================
    default_locale: str = "uz"
    # redis: сессии переживают перезапуск и истекают по TTL
    # memory: только для локального запуска, без TTL
    session_storage: Literal["redis", "memory"] = "redis"
    session_ttl_seconds: int = 24 * 60 * 60

    # ==========================================
    # ЗАКАЗЫ
    # ==========================================
    restaurant_id: int = 1
    currency: str = "UZS"
    service_charge_rate: Decimal = Decimal("0.05")
    delivery_fee: Decimal = Decimal("10000")
    discount: Decimal = Decimal("1000")

    # ==========================================
    # ENVIRONMENT
    # ==========================================
    environment: Literal["development", "production"] = "development"
    debug: bool = True

    # Конфигурация Pydantic
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        case_sensitive=False
    )

    @property
    def async_database_url(self) -> str:
        """Convert standard PostgreSQL URL to asyncpg format"""
        url = self.database_url
        if url.startswith("postgresql://"):
            url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
        if "sslmode=disable" in url:
            url = url.replace("?sslmode=disable", "")
        return url


config = Settings()
