"""Суммы продаж: месяц, день, период и средняя выручка за день."""

from datetime import date, datetime
from decimal import Decimal

import pytest
from sqlalchemy import update

from app.bot.services.dashboard import SalesService
from app.bot.services.orders import OrderService
from app.exceptions import InvalidInputError, ResourceNotFoundError
from conftest import add_address
from infrastructure.database.models import Order, OrderStatus
from test_order_service import order_request

NOW = datetime(2026, 3, 15, 12, 0)


async def place(session, user_id, address_id, items, created_at, restaurant_id=1):
    order = await OrderService(session).create_order(user_id, order_request(address_id, items, restaurant_id))
    await session.execute(update(Order).where(Order.id == order.id).values(created_at=created_at))
    await session.commit()
    return order


@pytest.fixture
async def sales_history(session, customer):
    """
    2 марта: 114000 + 19500, 15 марта: 30000.
    Отменённые заказы 27 февраля и 10 марта в продажи не входят.
    """
    address = await add_address(session, customer.id)
    await place(session, customer.id, address.id, [(1, 2)], datetime(2026, 3, 2, 10, 0))
    await place(session, customer.id, address.id, [(2, 1)], datetime(2026, 3, 2, 18, 0))
    await place(session, customer.id, address.id, [(3, 1)], datetime(2026, 3, 15, 9, 0), restaurant_id=2)

    orders = OrderService(session)
    for created_at in (datetime(2026, 2, 27, 12, 0), datetime(2026, 3, 10, 12, 0)):
        cancelled = await place(session, customer.id, address.id, [(1, 2)], created_at)
        await orders.update_order_status(cancelled.id, OrderStatus.CANCELLED)


def sales(session, now=NOW):
    return SalesService(session, now=lambda: now)


async def test_total_for_current_month(session, sales_history):
    assert await sales(session).total_for_current_month() == Decimal("163500.00")


async def test_total_for_current_day(session, sales_history):
    assert await sales(session).total_for_current_day() == Decimal("30000.00")


async def test_day_without_sales(session, sales_history):
    with pytest.raises(ResourceNotFoundError):
        await sales(session, now=datetime(2026, 3, 16, 8, 0)).total_for_current_day()


async def test_sales_between_dates(session, sales_history):
    service = sales(session)

    assert await service.total_between(date(2026, 3, 1), date(2026, 3, 14)) == Decimal("133500.00")
    assert await service.total_between(date(2026, 3, 2), date(2026, 3, 2)) == Decimal("133500.00")
    assert await service.total_between(date(2026, 2, 1), date(2026, 2, 28)) == Decimal("0.00")


async def test_average_counts_only_days_with_sales(session, sales_history):
    service = sales(session)

    assert await service.average_daily(date(2026, 3, 1), date(2026, 3, 14)) == Decimal("133500.00")
    assert await service.average_daily(date(2026, 3, 1), date(2026, 3, 31)) == Decimal("81750.00")
    assert await service.average_daily(date(2026, 1, 1), date(2026, 1, 31)) == Decimal("0.00")


async def test_reversed_range_is_rejected(session):
    with pytest.raises(InvalidInputError):
        await sales(session).total_between(date(2026, 3, 5), date(2026, 3, 1))
