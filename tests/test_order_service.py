from datetime import date, datetime
from decimal import Decimal

import pytest
from sqlalchemy import func, select, update

from app.bot.services.orders import OrderService
from app.exceptions import (
    BusinessValidationError,
    ForbiddenError,
    InvalidInputError,
    ResourceNotFoundError,
    UserNotFoundError,
)
from app.schemas import CreateOrderRequest, OrderItemRequest, OrderSearch
from conftest import add_address, create_customer
from infrastructure.database.models import Order, OrderStatus, PaymentOption


def order_request(address_id, items, restaurant_id=1):
    return CreateOrderRequest(
        restaurant_id=restaurant_id,
        address_id=address_id,
        items=[OrderItemRequest(product_id=product_id, quantity=quantity) for product_id, quantity in items],
    )


async def count_orders(session) -> int:
    return (await session.execute(select(func.count(Order.id)))).scalar_one()


async def test_create_order_computes_totals(session, customer):
    address = await add_address(session, customer.id)

    order = await OrderService(session).create_order(customer.id, order_request(address.id, [(1, 2)]))

    assert order.status is OrderStatus.PENDING
    assert order.subtotal == Decimal("100000.00")
    assert order.service_charge == Decimal("5000.00")
    assert order.delivery_fee == Decimal("10000.00")
    assert order.discount == Decimal("1000.00")
    assert order.total_amount == Decimal("114000.00")
    assert [(item.product_id, item.quantity) for item in order.items] == [(1, 2)]
    assert order.items[0].unit_price == Decimal("50000.00")


@pytest.mark.parametrize("quantity", [0, -3])
async def test_non_positive_quantity_is_rejected_before_write(session, customer, quantity):
    address = await add_address(session, customer.id)

    with pytest.raises(InvalidInputError):
        await OrderService(session).create_order(customer.id, order_request(address.id, [(1, 1), (2, quantity)]))

    assert await count_orders(session) == 0


async def test_empty_order_is_rejected(session, customer):
    address = await add_address(session, customer.id)

    with pytest.raises(InvalidInputError):
        await OrderService(session).create_order(customer.id, order_request(address.id, []))


async def test_unknown_user(session):
    with pytest.raises(UserNotFoundError):
        await OrderService(session).create_order(404, order_request(1, [(1, 1)]))


async def test_address_of_another_user_is_forbidden(session, customer):
    other = await create_customer(session, chat_id=2002, phone="+998907654321")
    address = await add_address(session, other.id)

    with pytest.raises(ForbiddenError):
        await OrderService(session).create_order(customer.id, order_request(address.id, [(1, 1)]))
    assert await count_orders(session) == 0


async def test_unknown_product(session, customer):
    address = await add_address(session, customer.id)

    with pytest.raises(ResourceNotFoundError):
        await OrderService(session).create_order(customer.id, order_request(address.id, [(999, 1)]))


async def test_product_of_another_restaurant(session, customer):
    address = await add_address(session, customer.id)

    with pytest.raises(InvalidInputError):
        await OrderService(session).create_order(customer.id, order_request(address.id, [(3, 1)]))


async def test_customer_orders_and_status_flow(session, customer):
    address = await add_address(session, customer.id)
    orders = OrderService(session)
    created = await orders.create_order(customer.id, order_request(address.id, [(2, 1)]))

    assert [order.id for order in await orders.get_customer_orders(customer.id)] == [created.id]

    updated = await orders.update_order_status(created.id, OrderStatus.IN_PROGRESS)
    assert updated.status is OrderStatus.IN_PROGRESS

    with pytest.raises(BusinessValidationError):
        await orders.update_order_status(created.id, OrderStatus.PENDING)


async def test_missing_order(session):
    with pytest.raises(ResourceNotFoundError):
        await OrderService(session).get_order(12345)


# ==========================================
# ЗАКАЗЫ РЕСТОРАНА И ПОИСК
# ==========================================

async def place(session, user_id, address_id, items, restaurant_id=1, created_at=None):
    order = await OrderService(session).create_order(user_id, order_request(address_id, items, restaurant_id))
    if created_at is not None:
        await session.execute(update(Order).where(Order.id == order.id).values(created_at=created_at))
        await session.commit()
    return order


async def test_restaurant_orders(session, customer):
    address = await add_address(session, customer.id)
    first = await place(session, customer.id, address.id, [(1, 1)])
    await place(session, customer.id, address.id, [(3, 1)], restaurant_id=2)
    second = await place(session, customer.id, address.id, [(2, 3)])

    orders = await OrderService(session).get_restaurant_orders(1)

    assert [order.id for order in orders] == [second.id, first.id]


async def test_orders_of_unknown_restaurant(session):
    with pytest.raises(ResourceNotFoundError):
        await OrderService(session).get_restaurant_orders(404)


async def test_search_orders_by_filters(session, customer):
    other = await create_customer(session, chat_id=2002, phone="+998907654321")
    address = await add_address(session, customer.id)
    other_address = await add_address(session, other.id)
    burger = await place(session, customer.id, address.id, [(1, 1)], created_at=datetime(2026, 3, 1, 10, 0))
    cola = await place(session, customer.id, address.id, [(2, 1)], created_at=datetime(2026, 3, 5, 23, 30))
    plov = await place(session, other.id, other_address.id, [(3, 1)], restaurant_id=2,
                       created_at=datetime(2026, 3, 6, 0, 0))
    orders = OrderService(session)
    await orders.update_order_status(cola.id, OrderStatus.IN_PROGRESS)

    async def ids(**filters):
        return {order.id for order in await orders.search_orders(OrderSearch(**filters))}

    assert await ids() == {burger.id, cola.id, plov.id}
    assert await ids(status=OrderStatus.IN_PROGRESS) == {cola.id}
    assert await ids(customer_id=other.id) == {plov.id}
    assert await ids(restaurant_id=1, status=OrderStatus.PENDING) == {burger.id}
    assert await ids(order_id=plov.id, restaurant_id=1) == set()
    assert await ids(payment_option=PaymentOption.CARD) == set()
    # даты включительно: заказ в 23:30 попадает в свой день
    assert await ids(start_date=date(2026, 3, 5), end_date=date(2026, 3, 5)) == {cola.id}
    assert await ids(start_date=date(2026, 3, 2)) == {cola.id, plov.id}
    assert await ids(end_date=date(2026, 3, 1)) == {burger.id}


async def test_search_orders_rejects_reversed_dates(session):
    with pytest.raises(InvalidInputError):
        await OrderService(session).search_orders(
            OrderSearch(start_date=date(2026, 3, 5), end_date=date(2026, 3, 1))
        )
