"""Сервисы бизнес-логики (общие для бота и API)."""

from .addresses import AddressService
from .auth import AuthService, LoggingSmsSender, TokenIssuer
from .cart import CartService
from .catalog import CatalogService
from .dashboard import SalesService
from .orders import OrderDraftService, OrderService, OrderTotals, calculate_totals
from .user_service import UserService

__all__ = [
    "AddressService",
    "AuthService",
    "LoggingSmsSender",
    "TokenIssuer",
    "CartService",
    "CatalogService",
    "OrderDraftService",
    "OrderService",
    "OrderTotals",
    "SalesService",
    "calculate_totals",
    "UserService",
]
