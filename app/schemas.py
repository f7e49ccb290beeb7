# app/schemas.py
"""
Pydantic-модели (DTO) для API и сервисов.

FastAPI валидирует входящие запросы по этим моделям,
сервисы возвращают их наружу вместо ORM-объектов.
"""

from datetime import date
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from infrastructure.database.models import OrderStatus, PaymentOption


# ==========================================
# AUTH
# ==========================================

class OtpRequest(BaseModel):
    phone_number: str
    chat_id: Optional[int] = None


class OtpResponse(BaseModel):
    sms_code_id: int


class OtpLoginRequest(BaseModel):
    phone_number: str
    code: str
    otp_id: int
    chat_id: Optional[int] = None


class LoginRequest(BaseModel):
    phone_number: str
    password: str


class RefreshTokenRequest(BaseModel):
    refresh_token: str


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


# ==========================================
# CATALOG
# ==========================================

class CategoryCreate(BaseModel):
    name: str
    name_uz: str = ""
    name_ru: str = ""
    restaurant_id: Optional[int] = None


class CategoryDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    restaurant_id: int
    name: str
    name_uz: str
    name_ru: str


class ProductCreate(BaseModel):
    category_id: int
    name: str
    name_uz: str = ""
    name_ru: str = ""
    description: str = ""
    price: Decimal = Field(gt=0)
    currency: str = "UZS"


class ProductDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    category_id: int
    name: str
    name_uz: str
    name_ru: str
    description: str
    price: Decimal
    currency: str


# ==========================================
# ADDRESS
# ==========================================

class AddressCreate(BaseModel):
    address_line: str
    city: str = "Unknown"
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class AddressDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    address_line: str
    city: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None


# ==========================================
# CART
# ==========================================

class CartLine(BaseModel):
    product: ProductDTO
    quantity: int

    @property
    def line_total(self) -> Decimal:
        return self.product.price * self.quantity


class CartView(BaseModel):
    """Содержимое корзины в порядке добавления."""
    items: List[CartLine] = []

    @property
    def is_empty(self) -> bool:
        return not self.items

    @property
    def subtotal(self) -> Decimal:
        return sum((line.line_total for line in self.items), Decimal("0"))


# ==========================================
# ORDERS
# ==========================================

class OrderItemRequest(BaseModel):
    product_id: int
    quantity: int


class CreateOrderRequest(BaseModel):
    restaurant_id: int
    address_id: int
    items: List[OrderItemRequest]
    payment_option: PaymentOption = PaymentOption.CASH


class OrderItemDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    product_id: int
    quantity: int
    unit_price: Decimal


class OrderDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    restaurant_id: int
    address_id: int
    payment_option: PaymentOption
    status: OrderStatus
    subtotal: Decimal
    service_charge: Decimal
    delivery_fee: Decimal
    discount: Decimal
    total_amount: Decimal
    items: List[OrderItemDTO]


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class OrderSearch(BaseModel):
    """Фильтры поиска заказов; пустой фильтр не участвует. Даты включительно."""
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: Optional[OrderStatus] = None
    payment_option: Optional[PaymentOption] = None
    order_id: Optional[int] = None
    customer_id: Optional[int] = None
    restaurant_id: Optional[int] = None


# ==========================================
# DASHBOARD
# ==========================================

class SalesTotal(BaseModel):
    total_sales: Decimal = Field(serialization_alias="totalSales")


class SalesRange(BaseModel):
    total_sales: Decimal = Field(serialization_alias="totalSales")
    average_daily_sales: Decimal = Field(serialization_alias="averageDailySales")
