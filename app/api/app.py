# app/api/app.py
"""
FastAPI приложение: REST API RestoranPro.

Те же сервисы, что и у бота (app/bot/services), наружу через /api/v1.
Ошибки предметной области (RestoranProError) превращаются в
{"code": ..., "message": ...} с HTTP-статусом ошибки.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.api.routes import api_router
from app.exceptions import RestoranProError
from infrastructure.database.base import close_db, init_db

import structlog

logger = structlog.get_logger()


# ==========================================
# LIFESPAN
# ==========================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Создаём таблицы при старте, закрываем пул при выключении."""
    await init_db()
    logger.info("api_started")
    try:
        yield
    finally:
        await close_db()
        logger.info("api_stopped")


def create_app(use_lifespan: bool = True) -> FastAPI:
    app = FastAPI(
        title="RestoranPro API",
        description="REST API для заказа еды (общие сервисы с Telegram-ботом)",
        version="1.0.0",
        lifespan=lifespan if use_lifespan else None,
    )

    # ==========================================
    # ОШИБКИ
    # ==========================================

    @app.exception_handler(RestoranProError)
    async def restoranpro_error_handler(request: Request, exc: RestoranProError):
        logger.warning(
            "api_error",
            path=request.url.path,
            code=int(exc.code),
            error=exc.message,
        )
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    # ==========================================
    # ENDPOINT: Health check
    # ==========================================

    @app.get("/health")
    async def health_check():
        """
        GET /health
        → {"status": "ok", "service": "restoranpro_bot"}
        """
        return {"status": "ok", "service": "restoranpro_bot"}

    app.include_router(api_router)
    return app


app = create_app()
