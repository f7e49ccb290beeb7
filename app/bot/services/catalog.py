# app/bot/services/catalog.py
"""
Каталог: категории и блюда ресторана.
"""

from decimal import Decimal
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import DuplicateResourceError, InvalidInputError, ResourceNotFoundError
from app.schemas import CategoryCreate, ProductCreate
from config.settings import config
from infrastructure.database.models import Category, Product
from infrastructure.database.repositories import (
    CategoryRepository,
    ProductRepository,
    RestaurantRepository,
)


class CatalogService:

    def __init__(self, session: AsyncSession, restaurant_id: Optional[int] = None):
        self.restaurant_id = restaurant_id or config.restaurant_id
        self.restaurants = RestaurantRepository(session)
        self.categories = CategoryRepository(session)
        self.products = ProductRepository(session)

    async def categories_by_restaurant(self, restaurant_id: Optional[int] = None) -> List[Category]:
        return await self.categories.list_by_restaurant(restaurant_id or self.restaurant_id)

    async def products_by_category(self, category_id: int) -> List[Product]:
        return await self.products.list_by_category(category_id)

    async def product_by_id(self, product_id: int) -> Optional[Product]:
        return await self.products.get_by_id(product_id)

    async def category_by_id(self, category_id: int) -> Optional[Category]:
        return await self.categories.get_by_id(category_id)

    async def search_products(
        self,
        name: Optional[str] = None,
        category_id: Optional[int] = None,
        min_price: Optional[Decimal] = None,
        max_price: Optional[Decimal] = None,
    ) -> List[Product]:
        if min_price is not None and max_price is not None and max_price < min_price:
            raise InvalidInputError(f"Max price {max_price} is below min price {min_price}")
        return await self.products.search(name, category_id, min_price, max_price)

    # ==========================================
    # ПОИСК ПО НАЗВАНИЮ (текст reply-кнопки)
    # ==========================================

    @staticmethod
    def _name_for(item, locale: str) -> str:
        # Пустой перевод → на кнопке показано name
        if locale == "uz":
            return item.name_uz or item.name
        if locale == "ru":
            return item.name_ru or item.name
        return item.name

    async def find_category_by_name(self, name: str, locale: str) -> Optional[Category]:
        for category in await self.categories_by_restaurant():
            if self._name_for(category, locale) == name:
                return category
        return None

    async def find_product_by_name(self, category_id: int, name: str, locale: str) -> Optional[Product]:
        for product in await self.products_by_category(category_id):
            if self._name_for(product, locale) == name:
                return product
        return None

    # ==========================================
    # СОЗДАНИЕ (API)
    # ==========================================

    async def create_category(self, request: CategoryCreate) -> Category:
        restaurant_id = request.restaurant_id or self.restaurant_id
        if await self.restaurants.get_by_id(restaurant_id) is None:
            raise ResourceNotFoundError(f"Restaurant {restaurant_id} not found")
        existing = await self.categories.list_by_restaurant(restaurant_id)
        if any(category.name == request.name for category in existing):
            raise DuplicateResourceError(f"Category {request.name!r} already exists")

        return await self.categories.create(Category(
            restaurant_id=restaurant_id,
            name=request.name,
            name_uz=request.name_uz,
            name_ru=request.name_ru,
        ))

    async def create_product(self, request: ProductCreate) -> Product:
        if await self.categories.get_by_id(request.category_id) is None:
            raise ResourceNotFoundError(f"Category {request.category_id} not found")

        return await self.products.create(Product(
            category_id=request.category_id,
            name=request.name,
            name_uz=request.name_uz,
            name_ru=request.name_ru,
            description=request.description,
            price=request.price,
            currency=request.currency,
        ))

    # ==========================================
    # УДАЛЕНИЕ (soft delete, API)
    # ==========================================

    async def delete_category(self, category_id: int) -> None:
        category = await self.categories.get_by_id(category_id)
        if category is None:
            raise ResourceNotFoundError(f"Category {category_id} not found")
        await self.categories.soft_delete(category)

    async def delete_product(self, product_id: int) -> None:
        product = await self.products.get_by_id(product_id)
        if product is None:
            raise ResourceNotFoundError(f"Product {product_id} not found")
        await self.products.soft_delete(product)
