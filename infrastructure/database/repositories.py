# infrastructure/database/repositories.py
"""
Repository паттерн.

Вместо того чтобы писать:
    session.execute(select(...))
    session.commit()
везде в коде, мы создаем методы:
    repo.get_by_chat_id(123)
    repo.create(order)

Сервисы (app/bot/services) работают только через репозитории.
Связи, которые понадобятся после запроса, грузим через selectinload():
в async-сессии ленивая загрузка недоступна.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import select, update, delete, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from .models import (
    Address,
    Cart,
    CartItem,
    Category,
    Order,
    OrderData,
    OrderStatus,
    OtpCode,
    PaymentOption,
    Product,
    Restaurant,
    User,
    UserRole,
    UserState,
)

import structlog

logger = structlog.get_logger()


# ==========================================
# REPOSITORY: User
# ==========================================

class UserRepository:
    """Все операции с пользователями идут через этот класс."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, user_id: int) -> Optional[User]:
        stmt = select(User).where(User.id == user_id, User.deleted.is_(False))
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def get_by_chat_id(self, chat_id: int) -> Optional[User]:
        stmt = select(User).where(
            User.telegram_chat_id == chat_id,
            User.deleted.is_(False),
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def get_by_phone(self, phone_number: str) -> Optional[User]:
        stmt = select(User).where(
            User.phone_number == phone_number,
            User.deleted.is_(False),
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def get_or_create(self, chat_id: int, username: str = "Customer") -> User:
        """
        Получить пользователя по chat id, или создать если его нет.

        Новому пользователю сразу создаём строку user_states.
        Если chat id принадлежал удалённому пользователю, освобождаем его.
        """
        user = await self.get_by_chat_id(chat_id)
        if user:
            return user

        # chat id уникален, у soft-deleted записи его снимаем
        await self.session.execute(
            update(User)
            .where(User.telegram_chat_id == chat_id, User.deleted.is_(True))
            .values(telegram_chat_id=None)
        )

        user = User(
            username=username or "Customer",
            phone_number="",
            password_hash="",
            role=UserRole.CUSTOMER,
            telegram_chat_id=chat_id,
        )
        self.session.add(user)
        await self.session.flush()

        self.session.add(UserState(user_id=user.id, current_state="START", data={}))
        await self.session.commit()

        logger.info("user_created", user_id=user.id, chat_id=chat_id)
        return user

    async def save(self, user: User) -> User:
        self.session.add(user)
        await self.session.commit()
        return user

    async def soft_delete(self, user: User) -> None:
        user.deleted = True
        user.phone_number = ""
        self.session.add(user)
        await self.session.commit()


# ==========================================
# REPOSITORY: UserState
# ==========================================

class UserStateRepository:
    """Снимок состояния диалога (переживает перезапуск бота)."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_user_id(self, user_id: int) -> Optional[UserState]:
        stmt = select(UserState).where(UserState.user_id == user_id)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def update_data(self, user_id: int, **values: str) -> UserState:
        """
        Дописать ключи в data. Создаёт строку если её нет.

        JSON-колонку переприсваиваем целиком, иначе SQLAlchemy
        не увидит изменение словаря.
        """
        state = await self.get_by_user_id(user_id)
        if state is None:
            state = UserState(user_id=user_id, current_state="START", data={})
            self.session.add(state)

        state.data = {**(state.data or {}), **values}
        await self.session.commit()
        return state

    async def set_current_state(self, user_id: int, state_name: str) -> None:
        stmt = (
            update(UserState)
            .where(UserState.user_id == user_id)
            .values(current_state=state_name)
        )
        await self.session.execute(stmt)
        await self.session.commit()


# ==========================================
# REPOSITORY: Catalog (Restaurant / Category / Product)
# ==========================================

class RestaurantRepository:

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, restaurant_id: int) -> Optional[Restaurant]:
        stmt = select(Restaurant).where(
            Restaurant.id == restaurant_id,
            Restaurant.deleted.is_(False),
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()


class CategoryRepository:

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, category_id: int) -> Optional[Category]:
        stmt = select(Category).where(
            Category.id == category_id,
            Category.deleted.is_(False),
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def list_by_restaurant(self, restaurant_id: int) -> List[Category]:
        stmt = (
            select(Category)
            .where(Category.restaurant_id == restaurant_id, Category.deleted.is_(False))
            .order_by(Category.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def create(self, category: Category) -> Category:
        self.session.add(category)
        await self.session.commit()
        logger.info("category_created", category_id=category.id)
        return category

    async def soft_delete(self, category: Category) -> None:
        category.deleted = True
        self.session.add(category)
        await self.session.commit()
        logger.info("category_deleted", category_id=category.id)


class ProductRepository:

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, product_id: int) -> Optional[Product]:
        stmt = select(Product).where(
            Product.id == product_id,
            Product.deleted.is_(False),
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def get_many(self, product_ids: List[int]) -> List[Product]:
        """Продукты вместе с категорией (нужна для проверки ресторана)."""
        stmt = (
            select(Product)
            .where(Product.id.in_(product_ids), Product.deleted.is_(False))
            .options(selectinload(Product.category))
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_by_category(self, category_id: int) -> List[Product]:
        stmt = (
            select(Product)
            .where(
                Product.category_id == category_id,
                Product.deleted.is_(False),
                Product.available.is_(True),
            )
            .order_by(Product.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def search(
        self,
        name: Optional[str] = None,
        category_id: Optional[int] = None,
        min_price: Optional[Decimal] = None,
        max_price: Optional[Decimal] = None,
    ) -> List[Product]:
        """Фильтры складываются через AND; не заданный фильтр не участвует."""
        stmt = select(Product).where(Product.deleted.is_(False), Product.available.is_(True))
        if name:
            stmt = stmt.where(Product.name.ilike(f"%{name}%"))
        if category_id is not None:
            stmt = stmt.where(Product.category_id == category_id)
        if min_price is not None:
            stmt = stmt.where(Product.price >= min_price)
        if max_price is not None:
            stmt = stmt.where(Product.price <= max_price)

        result = await self.session.execute(stmt.order_by(Product.id))
        return list(result.scalars().all())

    async def create(self, product: Product) -> Product:
        self.session.add(product)
        await self.session.commit()
        logger.info("product_created", product_id=product.id)
        return product

    async def soft_delete(self, product: Product) -> None:
        product.deleted = True
        self.session.add(product)
        await self.session.commit()
        logger.info("product_deleted", product_id=product.id)


# ==========================================
# REPOSITORY: Address
# ==========================================

class AddressRepository:

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, address_id: int) -> Optional[Address]:
        stmt = select(Address).where(Address.id == address_id, Address.deleted.is_(False))
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def list_for_user(self, user_id: int) -> List[Address]:
        stmt = (
            select(Address)
            .where(Address.user_id == user_id, Address.deleted.is_(False))
            .order_by(Address.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def create(self, address: Address) -> Address:
        self.session.add(address)
        await self.session.commit()
        logger.info("address_saved", address_id=address.id, user_id=address.user_id)
        return address

    async def soft_delete_for_user(self, user_id: int) -> None:
        stmt = update(Address).where(Address.user_id == user_id).values(deleted=True)
        await self.session.execute(stmt)
        await self.session.commit()


# ==========================================
# REPOSITORY: Cart
# ==========================================

class CartRepository:
    """
    Корзина пользователя.

    Всегда грузим вместе с позициями и продуктами (selectinload),
    чтобы посчитать сумму без дополнительных запросов.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_for_user(self, user_id: int) -> Optional[Cart]:
        stmt = (
            select(Cart)
            .where(Cart.user_id == user_id)
            .options(selectinload(Cart.items).selectinload(CartItem.product))
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def get_or_create_for_user(self, user_id: int) -> Cart:
        cart = await self.get_for_user(user_id)
        if cart:
            return cart

        self.session.add(Cart(user_id=user_id))
        await self.session.commit()
        return await self.get_for_user(user_id)

    async def add_line(self, cart: Cart, product_id: int, quantity: int) -> None:
        self.session.add(CartItem(cart_id=cart.id, product_id=product_id, quantity=quantity))
        await self.session.commit()

    async def set_line_quantity(self, item: CartItem, quantity: int) -> None:
        item.quantity = quantity
        self.session.add(item)
        await self.session.commit()

    async def remove_line(self, item: CartItem) -> None:
        await self.session.delete(item)
        await self.session.commit()

    async def clear(self, cart: Cart) -> None:
        await self.session.execute(delete(CartItem).where(CartItem.cart_id == cart.id))
        await self.session.commit()


# ==========================================
# REPOSITORY: OrderData (черновик заказа)
# ==========================================

class OrderDataRepository:

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_for_user(self, user_id: int) -> Optional[OrderData]:
        stmt = select(OrderData).where(OrderData.user_id == user_id)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def save(self, draft: OrderData) -> OrderData:
        self.session.add(draft)
        await self.session.commit()
        return draft

    async def delete_for_user(self, user_id: int) -> None:
        await self.session.execute(delete(OrderData).where(OrderData.user_id == user_id))
        await self.session.commit()


# ==========================================
# REPOSITORY: Order
# ==========================================

class OrderRepository:
    """
    Заказы.

    Заказ и его позиции сохраняются ОДНИМ commit'ом:
    либо всё, либо ничего.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, order: Order) -> Order:
        self.session.add(order)
        try:
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        return await self.get_by_id(order.id)

    async def get_by_id(self, order_id: int) -> Optional[Order]:
        stmt = (
            select(Order)
            .where(Order.id == order_id)
            .options(selectinload(Order.items))
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def list_for_user(self, user_id: int) -> List[Order]:
        stmt = (
            select(Order)
            .where(Order.user_id == user_id)
            .options(selectinload(Order.items))
            .order_by(Order.created_at.desc(), Order.id.desc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_for_restaurant(self, restaurant_id: int) -> List[Order]:
        return await self.search(restaurant_id=restaurant_id)

    async def search(
        self,
        created_from: Optional[datetime] = None,
        created_to: Optional[datetime] = None,
        status: Optional[OrderStatus] = None,
        payment_option: Optional[PaymentOption] = None,
        order_id: Optional[int] = None,
        user_id: Optional[int] = None,
        restaurant_id: Optional[int] = None,
    ) -> List[Order]:
        """
        Поиск заказов по любому набору фильтров (AND).

        created_from включительно, created_to не включительно.
        """
        stmt = select(Order).options(selectinload(Order.items))
        if created_from is not None:
            stmt = stmt.where(Order.created_at >= created_from)
        if created_to is not None:
            stmt = stmt.where(Order.created_at < created_to)
        if status is not None:
            stmt = stmt.where(Order.status == status)
        if payment_option is not None:
            stmt = stmt.where(Order.payment_option == payment_option)
        if order_id is not None:
            stmt = stmt.where(Order.id == order_id)
        if user_id is not None:
            stmt = stmt.where(Order.user_id == user_id)
        if restaurant_id is not None:
            stmt = stmt.where(Order.restaurant_id == restaurant_id)

        result = await self.session.execute(stmt.order_by(Order.created_at.desc(), Order.id.desc()))
        return list(result.scalars().all())

    # ---------- продажи ----------

    def _sold(self, created_from: datetime, created_to: datetime):
        # Отклонённые и отменённые заказы в продажи не входят
        return (
            Order.created_at >= created_from,
            Order.created_at < created_to,
            Order.status.not_in([OrderStatus.REJECTED, OrderStatus.CANCELLED]),
        )

    async def total_sales(self, created_from: datetime, created_to: datetime) -> Optional[Decimal]:
        """Сумма total_amount; None если продаж не было."""
        stmt = select(func.sum(Order.total_amount)).where(*self._sold(created_from, created_to))
        return (await self.session.execute(stmt)).scalar_one_or_none()

    async def sales_rows(self, created_from: datetime, created_to: datetime) -> List[Tuple[datetime, Decimal]]:
        stmt = (
            select(Order.created_at, Order.total_amount)
            .where(*self._sold(created_from, created_to))
            .order_by(Order.created_at)
        )
        result = await self.session.execute(stmt)
        return [(created_at, amount) for created_at, amount in result.all()]

    async def save(self, order: Order) -> Order:
        self.session.add(order)
        await self.session.commit()
        return order


# ==========================================
# REPOSITORY: OtpCode
# ==========================================

class OtpRepository:

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, otp_id: int) -> Optional[OtpCode]:
        stmt = select(OtpCode).where(OtpCode.id == otp_id)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def create(self, otp: OtpCode) -> OtpCode:
        self.session.add(otp)
        await self.session.commit()
        return otp

    async def mark_checked(self, otp: OtpCode) -> None:
        otp.checked = True
        self.session.add(otp)
        await self.session.commit()
