from decimal import Decimal

import pytest

from pizzeria_orders.errors import InvalidLineItem
from pizzeria_orders.totals import compute_totals, validate_line_items

from .conftest import make_item


def test_subtotal_and_total_with_delivery_fee():
    items = [make_item(1, "10", 2), make_item(2, "5", 1)]

    totals = compute_totals(items, Decimal("3.99"))

    assert totals.subtotal == Decimal("25.00")
    assert totals.delivery_fee == Decimal("3.99")
    assert totals.total == Decimal("28.99")


def test_pickup_forces_zero_delivery_fee():
    totals = compute_totals([make_item(1, "12.50", 2)], Decimal("3.99"), pickup=True)

    assert totals.delivery_fee == Decimal("0.00")
    assert totals.total == totals.subtotal == Decimal("25.00")


def test_total_is_subtotal_plus_fee_for_fractional_prices():
    items = [make_item(1, "10.99", 3), make_item(2, "0.10", 7)]

    totals = compute_totals(items, "5")

    assert totals.subtotal == Decimal("33.67")
    assert totals.total == totals.subtotal + totals.delivery_fee


def test_free_items_are_allowed():
    totals = compute_totals([make_item(1, "0", 1)], Decimal("3.99"))

    assert totals.subtotal == Decimal("0.00")
    assert totals.total == Decimal("3.99")


def test_negative_price_is_rejected():
    with pytest.raises(InvalidLineItem, match="price cannot be negative"):
        compute_totals([make_item(1, "-1", 1)], Decimal("3.99"))


@pytest.mark.parametrize("quantity", [0, -2])
def test_non_positive_quantity_is_rejected(quantity):
    with pytest.raises(InvalidLineItem, match="quantity must be positive"):
        compute_totals([make_item(1, "10", quantity)], Decimal("3.99"))


def test_negative_delivery_fee_is_rejected():
    with pytest.raises(InvalidLineItem):
        compute_totals([make_item(1, "10", 1)], Decimal("-1"))


def test_validate_line_items_requires_at_least_one_item():
    with pytest.raises(InvalidLineItem, match="at least one item"):
        validate_line_items([])


def test_validate_line_items_limits():
    with pytest.raises(InvalidLineItem, match="more than 100 items"):
        validate_line_items([make_item(i) for i in range(101)])

    with pytest.raises(InvalidLineItem, match="quantity exceeds maximum"):
        validate_line_items([make_item(1, "10", 101)])

    with pytest.raises(InvalidLineItem, match="price exceeds maximum"):
        validate_line_items([make_item(1, "1000000.01", 1)])


def test_validate_line_items_accepts_normal_order():
    validate_line_items([make_item(1, "10", 2), make_item(2, "5", 1, special_instructions="no onions")])


def test_total_up_to_money_column_maximum_is_accepted():
    totals = compute_totals([make_item(1, "999999.96", 100)], Decimal("3.99"))

    assert totals.total == Decimal("99999999.99")


def test_total_above_money_column_maximum_is_rejected():
    with pytest.raises(InvalidLineItem, match="exceeds maximum"):
        compute_totals([make_item(1, "999999.97", 100)], Decimal("3.99"))

    # Largest price and quantity that pass item validation still overflow
    items = [make_item(1, "1000000", 100)]
    validate_line_items(items)
    with pytest.raises(InvalidLineItem):
        compute_totals(items, Decimal("0"), pickup=True)
