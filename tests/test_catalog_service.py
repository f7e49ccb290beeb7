from decimal import Decimal

import pytest

from app.bot.services.catalog import CatalogService
from app.exceptions import InvalidInputError, ResourceNotFoundError


async def ids(catalog, **filters):
    return [product.id for product in await catalog.search_products(**filters)]


async def test_search_products(session):
    catalog = CatalogService(session)

    assert await ids(catalog) == [1, 2, 3]
    assert await ids(catalog, name="COLA") == [2]
    assert await ids(catalog, name="burg") == [1]
    assert await ids(catalog, category_id=2) == [2]
    assert await ids(catalog, min_price=Decimal("20000")) == [1, 3]
    assert await ids(catalog, max_price=Decimal("20000")) == [2, 3]
    assert await ids(catalog, min_price=Decimal("15000"), max_price=Decimal("30000")) == [3]
    assert await ids(catalog, name="plov", category_id=1) == []


async def test_search_rejects_reversed_price_range(session):
    with pytest.raises(InvalidInputError):
        await CatalogService(session).search_products(min_price=Decimal("5"), max_price=Decimal("1"))


async def test_deleted_product_disappears_from_menu(session):
    catalog = CatalogService(session)

    await catalog.delete_product(2)

    assert await catalog.product_by_id(2) is None
    assert await catalog.products_by_category(2) == []
    assert await ids(catalog) == [1, 3]

    with pytest.raises(ResourceNotFoundError):
        await catalog.delete_product(2)


async def test_deleted_category_disappears_from_menu(session):
    catalog = CatalogService(session)

    await catalog.delete_category(2)

    assert [category.name for category in await catalog.categories_by_restaurant()] == ["Burgers"]
    with pytest.raises(ResourceNotFoundError):
        await catalog.delete_category(2)
