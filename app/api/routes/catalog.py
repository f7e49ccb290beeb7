# app/api/routes/catalog.py
"""
🍽 Категории и блюда.

Читать может любой авторизованный пользователь,
создавать и удалять (soft delete) может только admin.
"""

from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import CurrentUser, get_current_user, require_admin
from app.bot.services.catalog import CatalogService
from app.exceptions import ResourceNotFoundError
from app.schemas import CategoryCreate, CategoryDTO, ProductCreate, ProductDTO
from infrastructure.database.base import get_db_session

router = APIRouter(tags=["catalog"])


@router.get("/categories", response_model=List[CategoryDTO])
async def list_categories(
    restaurant_id: Optional[int] = None,
    session: AsyncSession = Depends(get_db_session),
    _: CurrentUser = Depends(get_current_user),
):
    return await CatalogService(session).categories_by_restaurant(restaurant_id)


@router.post("/categories", response_model=CategoryDTO, status_code=status.HTTP_201_CREATED)
async def create_category(
    request: CategoryCreate,
    session: AsyncSession = Depends(get_db_session),
    _: CurrentUser = Depends(require_admin),
):
    return await CatalogService(session).create_category(request)


@router.get("/categories/{category_id}/products", response_model=List[ProductDTO])
async def list_products(
    category_id: int,
    session: AsyncSession = Depends(get_db_session),
    _: CurrentUser = Depends(get_current_user),
):
    catalog = CatalogService(session)
    if await catalog.category_by_id(category_id) is None:
        raise ResourceNotFoundError(f"Category {category_id} not found")
    return await catalog.products_by_category(category_id)


@router.get("/products/search", response_model=List[ProductDTO])
async def search_products(
    name: Optional[str] = None,
    category_id: Optional[int] = None,
    min_price: Optional[Decimal] = None,
    max_price: Optional[Decimal] = None,
    session: AsyncSession = Depends(get_db_session),
    _: CurrentUser = Depends(get_current_user),
):
    return await CatalogService(session).search_products(name, category_id, min_price, max_price)


@router.get("/products/{product_id}", response_model=ProductDTO)
async def get_product(
    product_id: int,
    session: AsyncSession = Depends(get_db_session),
    _: CurrentUser = Depends(get_current_user),
):
    product = await CatalogService(session).product_by_id(product_id)
    if product is None:
        raise ResourceNotFoundError(f"Product {product_id} not found")
    return product


@router.post("/products", response_model=ProductDTO, status_code=status.HTTP_201_CREATED)
async def create_product(
    request: ProductCreate,
    session: AsyncSession = Depends(get_db_session),
    _: CurrentUser = Depends(require_admin),
):
    return await CatalogService(session).create_product(request)


@router.delete("/categories/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_category(
    category_id: int,
    session: AsyncSession = Depends(get_db_session),
    _: CurrentUser = Depends(require_admin),
):
    await CatalogService(session).delete_category(category_id)


@router.delete("/products/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_product(
    product_id: int,
    session: AsyncSession = Depends(get_db_session),
    _: CurrentUser = Depends(require_admin),
):
    await CatalogService(session).delete_product(product_id)
