from decimal import Decimal

import pytest

from app.bot.services.orders import calculate_totals, subtotal_of
from app.bot.state_machine import adjust_quantity, format_money


def test_order_total_for_reference_subtotal():
    totals = calculate_totals(Decimal("100000"), Decimal("0.05"), Decimal("10000"), Decimal("1000"))

    assert totals.service_charge == Decimal("5000.00")
    assert totals.delivery_fee == Decimal("10000.00")
    assert totals.discount == Decimal("1000.00")
    assert totals.total == Decimal("114000.00")


def test_default_settings_give_same_total():
    assert calculate_totals(Decimal("100000")).total == Decimal("114000.00")


def test_service_charge_is_rounded_to_cents():
    totals = calculate_totals(Decimal("333.33"), Decimal("0.05"), Decimal("0"), Decimal("0"))

    assert totals.service_charge == Decimal("16.67")
    assert totals.total == Decimal("350.00")


def test_subtotal_of_lines():
    assert subtotal_of([(Decimal("50000"), 2), (Decimal("10000"), 3)]) == Decimal("130000")


@pytest.mark.parametrize(
    "action, quantity, expected",
    [
        ("increase_quantity", 1, 2),
        ("decrease_quantity", 3, 2),
        ("decrease_quantity", 1, 1),
        ("decrease_quantity", 0, 1),
    ],
)
def test_adjust_quantity_never_below_one(action, quantity, expected):
    assert adjust_quantity(action, quantity) == expected


def test_format_money():
    assert format_money(Decimal("114000.00")) == "114000"
    assert format_money(Decimal("16.5")) == "16.50"
