# app/bot/services/orders.py
"""
Сервис заказов.

Бизнес-логика для работы с заказами:
- Расчёт суммы (calculate_totals): один и тот же для бота и API
- Создание заказа из корзины / запроса
- Получение, поиск и смена статуса
- Черновик заказа (выбранный адрес): OrderDraftService
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import (
    BusinessValidationError,
    ForbiddenError,
    InvalidInputError,
    ResourceNotFoundError,
    UserNotFoundError,
)
from app.schemas import CreateOrderRequest, OrderDTO, OrderSearch
from config.settings import config
from infrastructure.database.models import Order, OrderData, OrderItem, OrderStatus, PaymentOption
from infrastructure.database.repositories import (
    AddressRepository,
    OrderDataRepository,
    OrderRepository,
    ProductRepository,
    RestaurantRepository,
    UserRepository,
)

import structlog

logger = structlog.get_logger()

CENT = Decimal("0.01")


# ==========================================
# РАСЧЁТ СУММЫ
# ==========================================

@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    service_charge: Decimal
    delivery_fee: Decimal
    discount: Decimal
    total: Decimal


def calculate_totals(
    subtotal: Decimal,
    service_charge_rate: Optional[Decimal] = None,
    delivery_fee: Optional[Decimal] = None,
    discount: Optional[Decimal] = None,
) -> OrderTotals:
    """
    total = subtotal + subtotal × 5% + доставка − скидка

    Пример (настройки по умолчанию):
        calculate_totals(Decimal("100000")).total == Decimal("114000.00")
    """
    rate = config.service_charge_rate if service_charge_rate is None else service_charge_rate
    delivery_fee = config.delivery_fee if delivery_fee is None else delivery_fee
    discount = config.discount if discount is None else discount

    subtotal = Decimal(subtotal).quantize(CENT, rounding=ROUND_HALF_UP)
    service_charge = (subtotal * rate).quantize(CENT, rounding=ROUND_HALF_UP)
    delivery_fee = Decimal(delivery_fee).quantize(CENT)
    discount = Decimal(discount).quantize(CENT)

    return OrderTotals(
        subtotal=subtotal,
        service_charge=service_charge,
        delivery_fee=delivery_fee,
        discount=discount,
        total=subtotal + service_charge + delivery_fee - discount,
    )


def subtotal_of(lines: Iterable[tuple]) -> Decimal:
    """Сумма (цена, количество) по строкам."""
    return sum((Decimal(price) * quantity for price, quantity in lines), Decimal("0"))


def day_bounds(start: Optional[date], end: Optional[date]) -> Tuple[Optional[datetime], Optional[datetime]]:
    """
    Даты (включительно) → полуинтервал [начало start, начало дня после end).

    Обе даты заданы и end раньше start → InvalidInputError.
    """
    if start and end and end < start:
        raise InvalidInputError(f"End date {end} is before start date {start}")
    created_from = datetime.combine(start, time.min) if start else None
    created_to = datetime.combine(end + timedelta(days=1), time.min) if end else None
    return created_from, created_to


# ==========================================
# ПЕРЕХОДЫ СТАТУСОВ
# ==========================================

ALLOWED_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.IN_PROGRESS, OrderStatus.REJECTED, OrderStatus.CANCELLED},
    OrderStatus.IN_PROGRESS: {OrderStatus.ACCEPTED, OrderStatus.CANCELLED},
    OrderStatus.ACCEPTED: {OrderStatus.COMPLETED, OrderStatus.CANCELLED},
}


class OrderService:
    """Сервис для работы с заказами."""

    def __init__(self, session: AsyncSession):
        self.orders = OrderRepository(session)
        self.users = UserRepository(session)
        self.restaurants = RestaurantRepository(session)
        self.addresses = AddressRepository(session)
        self.products = ProductRepository(session)

    # ==========================================
    # СОЗДАТЬ ЗАКАЗ
    # ==========================================

    async def create_order(self, user_id: int, request: CreateOrderRequest) -> OrderDTO:
        """
        Проверяет запрос, считает сумму и сохраняет заказ (статус PENDING).

        Все проверки выполняются ДО записи: при любой ошибке
        в БД ничего не появляется.
        """
        if not request.items:
            raise InvalidInputError("Order has no items")
        for item in request.items:
            if item.quantity <= 0:
                raise InvalidInputError(f"Quantity must be positive (product {item.product_id})")

        if await self.users.get_by_id(user_id) is None:
            raise UserNotFoundError(f"User {user_id} not found")

        if await self.restaurants.get_by_id(request.restaurant_id) is None:
            raise ResourceNotFoundError(f"Restaurant {request.restaurant_id} not found")

        address = await self.addresses.get_by_id(request.address_id)
        if address is None:
            raise ResourceNotFoundError(f"Address {request.address_id} not found")
        if address.user_id != user_id:
            raise ForbiddenError("Address belongs to another user")

        product_ids = {item.product_id for item in request.items}
        products = {product.id: product for product in await self.products.get_many(list(product_ids))}

        missing = sorted(product_ids - products.keys())
        if missing:
            raise ResourceNotFoundError(f"Products not found: {missing}")

        foreign = sorted(
            product.id for product in products.values()
            if product.category.restaurant_id != request.restaurant_id
        )
        if foreign:
            raise InvalidInputError(f"Products {foreign} do not belong to restaurant {request.restaurant_id}")

        totals = calculate_totals(subtotal_of(
            (products[item.product_id].price, item.quantity) for item in request.items
        ))

        order = Order(
            user_id=user_id,
            restaurant_id=request.restaurant_id,
            address_id=request.address_id,
            payment_option=request.payment_option,
            status=OrderStatus.PENDING,
            subtotal=totals.subtotal,
            service_charge=totals.service_charge,
            delivery_fee=totals.delivery_fee,
            discount=totals.discount,
            total_amount=totals.total,
            items=[
                OrderItem(
                    product_id=item.product_id,
                    quantity=item.quantity,
                    unit_price=products[item.product_id].price,
                )
                for item in request.items
            ],
        )
        order = await self.orders.create(order)

        logger.info(
            "order_created",
            order_id=order.id,
            user_id=user_id,
            total=str(order.total_amount),
        )
        return OrderDTO.model_validate(order)

    # ==========================================
    # ПОЛУЧИТЬ ЗАКАЗ(Ы)
    # ==========================================

    async def get_order(self, order_id: int) -> OrderDTO:
        order = await self.orders.get_by_id(order_id)
        if order is None:
            logger.warning("order_not_found", order_id=order_id)
            raise ResourceNotFoundError(f"Order {order_id} not found")
        return OrderDTO.model_validate(order)

    async def get_customer_orders(self, user_id: int) -> List[OrderDTO]:
        orders = await self.orders.list_for_user(user_id)
        logger.info("user_orders_fetched", user_id=user_id, count=len(orders))
        return [OrderDTO.model_validate(order) for order in orders]

    async def get_restaurant_orders(self, restaurant_id: int) -> List[OrderDTO]:
        if await self.restaurants.get_by_id(restaurant_id) is None:
            raise ResourceNotFoundError(f"Restaurant {restaurant_id} not found")
        orders = await self.orders.list_for_restaurant(restaurant_id)
        logger.info("restaurant_orders_fetched", restaurant_id=restaurant_id, count=len(orders))
        return [OrderDTO.model_validate(order) for order in orders]

    async def search_orders(self, search: OrderSearch) -> List[OrderDTO]:
        created_from, created_to = day_bounds(search.start_date, search.end_date)
        orders = await self.orders.search(
            created_from=created_from,
            created_to=created_to,
            status=search.status,
            payment_option=search.payment_option,
            order_id=search.order_id,
            user_id=search.customer_id,
            restaurant_id=search.restaurant_id,
        )
        logger.info("orders_searched", filters=search.model_dump(exclude_none=True), count=len(orders))
        return [OrderDTO.model_validate(order) for order in orders]

    # ==========================================
    # ОБНОВИТЬ СТАТУС ЗАКАЗА
    # ==========================================

    async def update_order_status(self, order_id: int, new_status: OrderStatus) -> OrderDTO:
        order = await self.orders.get_by_id(order_id)
        if order is None:
            raise ResourceNotFoundError(f"Order {order_id} not found")

        if new_status not in ALLOWED_TRANSITIONS.get(order.status, set()):
            raise BusinessValidationError(
                f"Cannot change status from {order.status.value} to {new_status.value}"
            )

        old_status = order.status
        order.status = new_status
        await self.orders.save(order)

        logger.info(
            "order_status_updated",
            order_id=order_id,
            old_status=old_status.value,
            new_status=new_status.value,
        )
        return await self.get_order(order_id)


# ==========================================
# ЧЕРНОВИК ЗАКАЗА
# ==========================================

class OrderDraftService:
    """
    Выбранный при оформлении адрес (и способ оплаты).
    Одна строка order_data на пользователя: повторный выбор её обновляет.
    """

    def __init__(self, session: AsyncSession):
        self.drafts = OrderDataRepository(session)
        self.users = UserRepository(session)
        self.addresses = AddressRepository(session)

    async def _user_id(self, chat_id: int) -> int:
        user = await self.users.get_by_chat_id(chat_id)
        if user is None:
            raise ResourceNotFoundError(f"User not found for chat {chat_id}")
        return user.id

    async def set_address(self, chat_id: int, address_id: int) -> OrderData:
        user_id = await self._user_id(chat_id)

        address = await self.addresses.get_by_id(address_id)
        if address is None:
            raise ResourceNotFoundError(f"Address {address_id} not found")
        if address.user_id != user_id:
            raise ForbiddenError("Address belongs to another user")

        draft = await self.drafts.get_for_user(user_id)
        if draft is None:
            draft = OrderData(user_id=user_id, payment_option=PaymentOption.CASH)
        draft.address_id = address_id

        draft = await self.drafts.save(draft)
        logger.info("order_draft_address_set", user_id=user_id, address_id=address_id)
        return draft

    async def get_address_id(self, chat_id: int) -> Optional[int]:
        user_id = await self._user_id(chat_id)
        draft = await self.drafts.get_for_user(user_id)
        return draft.address_id if draft else None

    async def get_payment_option(self, chat_id: int) -> PaymentOption:
        user_id = await self._user_id(chat_id)
        draft = await self.drafts.get_for_user(user_id)
        return draft.payment_option if draft else PaymentOption.CASH
