# app/api/routes/orders.py
"""
📦 /api/v1/orders

Клиент видит только свои заказы, admin видит любые.
Статус меняет только admin (с проверкой допустимого перехода).
Заказы ресторана и поиск тоже только для admin.
"""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import CurrentUser, get_current_user, require_admin
from app.bot.services.orders import OrderService
from app.exceptions import ForbiddenError
from app.schemas import CreateOrderRequest, OrderDTO, OrderSearch, OrderStatusUpdate
from infrastructure.database.models import OrderStatus, PaymentOption
from infrastructure.database.base import get_db_session

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("", response_model=OrderDTO, status_code=status.HTTP_201_CREATED)
async def create_order(
    request: CreateOrderRequest,
    session: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(get_current_user),
):
    return await OrderService(session).create_order(user.id, request)


@router.get("/customer/{user_id}", response_model=List[OrderDTO])
async def get_customer_orders(
    user_id: int,
    session: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(get_current_user),
):
    if user.id != user_id and not user.is_admin:
        raise ForbiddenError("Cannot view orders of another user")
    return await OrderService(session).get_customer_orders(user_id)


@router.get("/restaurant/{restaurant_id}", response_model=List[OrderDTO])
async def get_restaurant_orders(
    restaurant_id: int,
    session: AsyncSession = Depends(get_db_session),
    _: CurrentUser = Depends(require_admin),
):
    return await OrderService(session).get_restaurant_orders(restaurant_id)


@router.get("/search", response_model=List[OrderDTO])
async def search_orders(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    status: Optional[OrderStatus] = None,
    payment_option: Optional[PaymentOption] = None,
    order_id: Optional[int] = None,
    customer_id: Optional[int] = None,
    restaurant_id: Optional[int] = None,
    session: AsyncSession = Depends(get_db_session),
    _: CurrentUser = Depends(require_admin),
):
    search = OrderSearch(
        start_date=start_date,
        end_date=end_date,
        status=status,
        payment_option=payment_option,
        order_id=order_id,
        customer_id=customer_id,
        restaurant_id=restaurant_id,
    )
    return await OrderService(session).search_orders(search)


@router.get("/{order_id}", response_model=OrderDTO)
async def get_order(
    order_id: int,
    session: AsyncSession = Depends(get_db_session),
    user: CurrentUser = Depends(get_current_user),
):
    order = await OrderService(session).get_order(order_id)
    if order.user_id != user.id and not user.is_admin:
        raise ForbiddenError("Cannot view orders of another user")
    return order


@router.put("/{order_id}/status", response_model=OrderDTO)
async def update_order_status(
    order_id: int,
    request: OrderStatusUpdate,
    session: AsyncSession = Depends(get_db_session),
    _: CurrentUser = Depends(require_admin),
):
    return await OrderService(session).update_order_status(order_id, request.status)
