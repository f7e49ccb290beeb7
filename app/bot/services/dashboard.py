# app/bot/services/dashboard.py
"""
📊 Продажи для панели ресторана.

Продажа = заказ, который не отклонён и не отменён; считается его total_amount.
Периоды берутся по дате создания заказа (UTC), даты включительно.
"""

from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable

from sqlalchemy.ext.asyncio import AsyncSession

from app.bot.services.orders import CENT, day_bounds
from app.exceptions import ResourceNotFoundError
from infrastructure.database.models import utcnow
from infrastructure.database.repositories import OrderRepository

import structlog

logger = structlog.get_logger()

ZERO = Decimal("0.00")


class SalesService:

    def __init__(self, session: AsyncSession, now: Callable[[], datetime] = utcnow):
        self.orders = OrderRepository(session)
        self.now = now

    async def total_for_current_month(self) -> Decimal:
        today = self.now().date()
        total = await self.total_between(today.replace(day=1), today)
        logger.info("monthly_sales_calculated", month=today.strftime("%Y-%m"), total=str(total))
        return total

    async def total_for_current_day(self) -> Decimal:
        """Сегодня ещё не было продаж → ResourceNotFoundError."""
        today = self.now().date()
        created_from, created_to = day_bounds(today, today)
        total = await self.orders.total_sales(created_from, created_to)
        if total is None:
            raise ResourceNotFoundError(f"No sales for {today}")
        return Decimal(total).quantize(CENT)

    async def total_between(self, start: date, end: date) -> Decimal:
        created_from, created_to = day_bounds(start, end)
        total = await self.orders.total_sales(created_from, created_to)
        return ZERO if total is None else Decimal(total).quantize(CENT)

    async def average_daily(self, start: date, end: date) -> Decimal:
        """
        Средняя выручка за день среди дней, в которые были продажи.

        Пример: 100 в понедельник, 300 в среду, вторник без заказов → 200.
        """
        created_from, created_to = day_bounds(start, end)
        by_day = {}
        for created_at, amount in await self.orders.sales_rows(created_from, created_to):
            day = created_at.date()
            by_day[day] = by_day.get(day, ZERO) + Decimal(amount)

        if not by_day:
            return ZERO
        average = sum(by_day.values(), ZERO) / len(by_day)
        return average.quantize(CENT, rounding=ROUND_HALF_UP)
