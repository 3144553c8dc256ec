"""
Order total calculation and line item validation.

Pure functions: no I/O, no clock, same input gives the same output.
"""
from decimal import ROUND_HALF_UP, Decimal
from typing import List, NamedTuple

from . import schemas
from .errors import InvalidLineItem

CENT = Decimal("0.01")

MAX_ITEMS = 100
MAX_QUANTITY = 100
MAX_UNIT_PRICE = Decimal("1000000")
# Largest amount the Numeric(10, 2) money columns can hold
MAX_ORDER_TOTAL = Decimal("99999999.99")


class Totals(NamedTuple):
    subtotal: Decimal
    delivery_fee: Decimal
    total: Decimal


def to_cents(amount) -> Decimal:
    return Decimal(str(amount)).quantize(CENT, rounding=ROUND_HALF_UP)


def validate_line_items(items: List[schemas.LineItem]) -> None:
    """
    Validate order items for business rules.

    Args:
        items: List of order items

    Raises:
        InvalidLineItem: with a message naming the offending item
    """
    if not items:
        raise InvalidLineItem("Order must contain at least one item")

    if len(items) > MAX_ITEMS:
        raise InvalidLineItem(f"Order cannot contain more than {MAX_ITEMS} items")

    for item in items:
        if item.quantity <= 0:
            raise InvalidLineItem(f"Item {item.id}: quantity must be positive")

        if item.quantity > MAX_QUANTITY:
            raise InvalidLineItem(f"Item {item.id}: quantity exceeds maximum ({MAX_QUANTITY})")

        if item.unit_price < 0:
            raise InvalidLineItem(f"Item {item.id}: price cannot be negative")

        if item.unit_price > MAX_UNIT_PRICE:
            raise InvalidLineItem(f"Item {item.id}: price exceeds maximum (1,000,000)")


def compute_totals(items: List[schemas.LineItem], delivery_fee, pickup: bool = False) -> Totals:
    """
    Compute the monetary fields of an order.

    subtotal is the sum of unit price times quantity; total is subtotal plus
    the delivery fee, which is forced to zero for pickup orders.

    Raises:
        InvalidLineItem: negative price, non-positive quantity, negative fee
            or a total above MAX_ORDER_TOTAL
    """
    subtotal = Decimal("0")
    for item in items:
        if item.unit_price < 0:
            raise InvalidLineItem(f"Item {item.id}: price cannot be negative")
        if item.quantity <= 0:
            raise InvalidLineItem(f"Item {item.id}: quantity must be positive")
        subtotal += Decimal(str(item.unit_price)) * item.quantity

    fee = Decimal("0") if pickup else Decimal(str(delivery_fee))
    if fee < 0:
        raise InvalidLineItem("Delivery fee cannot be negative")

    subtotal = to_cents(subtotal)
    fee = to_cents(fee)
    total = subtotal + fee
    if total > MAX_ORDER_TOTAL:
        raise InvalidLineItem(f"Order total {total} exceeds maximum ({MAX_ORDER_TOTAL})")
    return Totals(subtotal=subtotal, delivery_fee=fee, total=total)
