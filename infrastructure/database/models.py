# infrastructure/database/models.py
"""
Здесь мы описываем структуру таблиц в базе данных.
SQLAlchemy автоматически создаст эти таблицы при первом запуске.

Каждый класс = одна таблица в БД
Каждое поле класса = один столбец в таблице
"""

from datetime import datetime, timezone
from enum import Enum as PyEnum

from sqlalchemy import (
    BigInteger,    # Большие целые числа (для Telegram chat id)
    Integer,       # Целые числа
    String,        # Текст фиксированной длины
    Text,          # Текст любой длины
    DateTime,      # Дата и время
    ForeignKey,    # Связь с другой таблицей
    Enum,          # Перечисление
    Boolean,       # true/false
    Numeric,       # Деньги (без потерь точности)
    Float,         # Координаты
    JSON,          # JSON данные
    Column
)
from sqlalchemy.orm import declarative_base, relationship


# Base — базовый класс для всех моделей
Base = declarative_base()


def utcnow() -> datetime:
    """Текущее время в UTC без tzinfo (так его хранит БД)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# ==========================================
# ENUMS (Перечисления)
# ==========================================

class UserRole(str, PyEnum):
    """Роль пользователя."""
    CUSTOMER = "customer"
    ADMIN = "admin"


class OrderStatus(str, PyEnum):
    """
    Статусы заказа.

    PENDING → IN_PROGRESS → ACCEPTED → COMPLETED
    Отменить можно на любом шаге до COMPLETED, отклонить только PENDING.
    """
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    ACCEPTED = "accepted"
    COMPLETED = "completed"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class PaymentOption(str, PyEnum):
    """Способ оплаты. Бот всегда ставит CASH (оплата курьеру)."""
    CASH = "cash"
    CARD = "card"


# ==========================================
# МОДЕЛЬ: User (Таблица users)
# ==========================================

class User(Base):
    """
    Таблица пользователей.

    Пользователь бота создаётся при выборе языка (phone_number пустой),
    телефон записывается после подтверждения OTP.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)

    username = Column(String, nullable=False, default="Customer")
    # Имя из Telegram (или "Customer")

    phone_number = Column(String, nullable=False, default="", index=True)
    # Подтвержденный номер (+998XXXXXXXXX), пусто до OTP

    password_hash = Column(String, nullable=False, default="")
    # bcrypt-хэш пароля (для входа через API), пусто у пользователей бота

    role = Column(Enum(UserRole), default=UserRole.CUSTOMER, nullable=False)

    telegram_chat_id = Column(BigInteger, nullable=True, unique=True, index=True)

    deleted = Column(Boolean, default=False, nullable=False, index=True)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    state = relationship("UserState", back_populates="user", uselist=False)
    addresses = relationship("Address", back_populates="user")
    orders = relationship("Order", back_populates="user")


# ==========================================
# МОДЕЛЬ: UserState (Таблица user_states)
# ==========================================

class UserState(Base):
    """
    Сохранённый снимок состояния диалога.

    В памяти бота живёт полноценная сессия, а здесь только то,
    что должно пережить перезапуск: последнее состояние, язык
    и флаг phone_verified.
    """
    __tablename__ = "user_states"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)

    current_state = Column(String, default="START", nullable=False)
    data = Column(JSON, default=dict, nullable=False)
    # {"locale": "ru", "phone_verified": "true"}

    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="state")


# ==========================================
# КАТАЛОГ: Restaurant / Category / Product
# ==========================================

class Restaurant(Base):
    __tablename__ = "restaurants"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False)
    address = Column(Text, nullable=True)
    deleted = Column(Boolean, default=False, nullable=False)

    categories = relationship("Category", back_populates="restaurant")


class Category(Base):
    """Категория меню. Название хранится на трёх языках."""
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, autoincrement=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False, index=True)

    name = Column(String, nullable=False)
    name_uz = Column(String, nullable=False, default="")
    name_ru = Column(String, nullable=False, default="")

    deleted = Column(Boolean, default=False, nullable=False)

    restaurant = relationship("Restaurant", back_populates="categories")
    products = relationship("Product", back_populates="category")


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, autoincrement=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False, index=True)

    name = Column(String, nullable=False)
    name_uz = Column(String, nullable=False, default="")
    name_ru = Column(String, nullable=False, default="")
    description = Column(Text, nullable=False, default="")

    price = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="UZS")

    available = Column(Boolean, default=True, nullable=False)
    deleted = Column(Boolean, default=False, nullable=False)

    category = relationship("Category", back_populates="products")


# ==========================================
# МОДЕЛЬ: Address (Таблица addresses)
# ==========================================

class Address(Base):
    __tablename__ = "addresses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    address_line = Column(Text, nullable=False)
    city = Column(String, nullable=False, default="Unknown")
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    deleted = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    user = relationship("User", back_populates="addresses")


# ==========================================
# КОРЗИНА: Cart / CartItem
# ==========================================

class Cart(Base):
    """Одна корзина на пользователя."""
    __tablename__ = "carts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)

    items = relationship(
        "CartItem",
        back_populates="cart",
        cascade="all, delete-orphan",
        order_by="CartItem.id",
    )


class CartItem(Base):
    __tablename__ = "cart_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    cart_id = Column(Integer, ForeignKey("carts.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    quantity = Column(Integer, nullable=False, default=1)

    cart = relationship("Cart", back_populates="items")
    product = relationship("Product")


# ==========================================
# ЧЕРНОВИК ЗАКАЗА: OrderData
# ==========================================

class OrderData(Base):
    """
    Выбранный адрес и способ оплаты до подтверждения заказа.
    Ровно одна строка на пользователя.
    """
    __tablename__ = "order_data"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    address_id = Column(Integer, ForeignKey("addresses.id"), nullable=True)
    payment_option = Column(Enum(PaymentOption), default=PaymentOption.CASH, nullable=False)

    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


# ==========================================
# МОДЕЛЬ: Order / OrderItem
# ==========================================

class Order(Base):
    """
    Заказ.

    total_amount = subtotal + service_charge + delivery_fee - discount
    """
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, autoincrement=True)

    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False)
    address_id = Column(Integer, ForeignKey("addresses.id"), nullable=False)

    payment_option = Column(Enum(PaymentOption), nullable=False, default=PaymentOption.CASH)
    status = Column(
        Enum(OrderStatus),
        default=OrderStatus.PENDING,
        nullable=False,
        index=True  # часто фильтруем по статусу
    )

    subtotal = Column(Numeric(12, 2), nullable=False)
    service_charge = Column(Numeric(12, 2), nullable=False)
    delivery_fee = Column(Numeric(12, 2), nullable=False)
    discount = Column(Numeric(12, 2), nullable=False)
    total_amount = Column(Numeric(12, 2), nullable=False)

    created_at = Column(DateTime, default=utcnow, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="orders")
    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)

    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=False)
    # Цена на момент заказа

    order = relationship("Order", back_populates="items")
    product = relationship("Product")


# ==========================================
# МОДЕЛЬ: OtpCode (Таблица otp_codes)
# ==========================================

class OtpCode(Base):
    """Отправленный SMS-код. Сам код не храним, только bcrypt-хэш."""
    __tablename__ = "otp_codes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    phone_number = Column(String, nullable=False, index=True)
    code_hash = Column(String, nullable=False)

    sent_at = Column(DateTime, default=utcnow, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    checked = Column(Boolean, default=False, nullable=False)
