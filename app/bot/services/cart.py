# app/bot/services/cart.py
"""
🛒 КОРЗИНА

Корзина привязана к чату (через пользователя этого чата).
Повторное добавление того же блюда увеличивает количество
в существующей строке, а не создаёт новую.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import InvalidInputError, ResourceNotFoundError
from app.schemas import CartLine, CartView, ProductDTO
from infrastructure.database.models import Cart
from infrastructure.database.repositories import CartRepository, ProductRepository, UserRepository

import structlog

logger = structlog.get_logger()


class CartService:

    def __init__(self, session: AsyncSession):
        self.carts = CartRepository(session)
        self.products = ProductRepository(session)
        self.users = UserRepository(session)

    async def _cart_for_chat(self, chat_id: int) -> Cart:
        user = await self.users.get_by_chat_id(chat_id)
        if user is None:
            raise ResourceNotFoundError(f"User not found for chat {chat_id}")
        return await self.carts.get_or_create_for_user(user.id)

    @staticmethod
    def _view(cart: Cart) -> CartView:
        return CartView(items=[
            CartLine(product=ProductDTO.model_validate(item.product), quantity=item.quantity)
            for item in cart.items
        ])

    # ==========================================
    # ОПЕРАЦИИ
    # ==========================================

    async def add_item(self, chat_id: int, product_id: int, quantity: int) -> CartView:
        """Добавить блюдо: суммируем с существующей строкой или добавляем новую."""
        if quantity <= 0:
            raise InvalidInputError("Quantity must be positive")

        product = await self.products.get_by_id(product_id)
        if product is None:
            raise ResourceNotFoundError(f"Product {product_id} not found")

        cart = await self._cart_for_chat(chat_id)
        existing = next((item for item in cart.items if item.product_id == product_id), None)

        if existing is not None:
            await self.carts.set_line_quantity(existing, existing.quantity + quantity)
        else:
            await self.carts.add_line(cart, product_id, quantity)

        logger.info("cart_item_added", chat_id=chat_id, product_id=product_id, quantity=quantity)
        return await self.get_cart(chat_id)

    async def update_item_quantity(self, chat_id: int, product_id: int, quantity: int) -> CartView:
        """Задать количество строки. 0 и меньше удаляет строку."""
        cart = await self._cart_for_chat(chat_id)
        existing = next((item for item in cart.items if item.product_id == product_id), None)
        if existing is None:
            raise ResourceNotFoundError(f"Product {product_id} is not in the cart")

        if quantity <= 0:
            await self.carts.remove_line(existing)
        else:
            await self.carts.set_line_quantity(existing, quantity)
        return await self.get_cart(chat_id)

    async def remove_item(self, chat_id: int, product_id: int) -> CartView:
        return await self.update_item_quantity(chat_id, product_id, 0)

    async def get_cart(self, chat_id: int) -> CartView:
        cart = await self._cart_for_chat(chat_id)
        return self._view(cart)

    async def clear_cart(self, chat_id: int) -> None:
        cart = await self._cart_for_chat(chat_id)
        await self.carts.clear(cart)
        logger.info("cart_cleared", chat_id=chat_id)
