from decimal import Decimal

import pytest

from app.bot.services.cart import CartService
from app.exceptions import InvalidInputError, ResourceNotFoundError
from conftest import CHAT_ID


async def test_adding_same_product_twice_merges_into_one_line(session, customer):
    carts = CartService(session)

    await carts.add_item(CHAT_ID, 1, 2)
    cart = await carts.add_item(CHAT_ID, 1, 3)

    assert len(cart.items) == 1
    assert cart.items[0].product.id == 1
    assert cart.items[0].quantity == 5
    assert cart.subtotal == Decimal("250000")


async def test_lines_keep_insertion_order(session, customer):
    carts = CartService(session)

    await carts.add_item(CHAT_ID, 2, 1)
    cart = await carts.add_item(CHAT_ID, 1, 1)

    assert [line.product.id for line in cart.items] == [2, 1]


@pytest.mark.parametrize("quantity", [0, -1])
async def test_non_positive_quantity_is_rejected(session, customer, quantity):
    with pytest.raises(InvalidInputError):
        await CartService(session).add_item(CHAT_ID, 1, quantity)

    assert (await CartService(session).get_cart(CHAT_ID)).is_empty


async def test_unknown_product_is_rejected(session, customer):
    with pytest.raises(ResourceNotFoundError):
        await CartService(session).add_item(CHAT_ID, 999, 1)


async def test_cart_requires_registered_user(session):
    with pytest.raises(ResourceNotFoundError):
        await CartService(session).get_cart(555)


async def test_update_quantity_and_remove(session, customer):
    carts = CartService(session)
    await carts.add_item(CHAT_ID, 1, 2)
    await carts.add_item(CHAT_ID, 2, 1)

    cart = await carts.update_item_quantity(CHAT_ID, 1, 4)
    assert [(line.product.id, line.quantity) for line in cart.items] == [(1, 4), (2, 1)]

    cart = await carts.remove_item(CHAT_ID, 2)
    assert [(line.product.id, line.quantity) for line in cart.items] == [(1, 4)]


async def test_clear_cart(session, customer):
    carts = CartService(session)
    await carts.add_item(CHAT_ID, 1, 2)

    await carts.clear_cart(CHAT_ID)

    assert (await carts.get_cart(CHAT_ID)).is_empty
