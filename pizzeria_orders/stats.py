"""
Dashboard statistics over orders.
"""
from collections import Counter
from decimal import Decimal
from typing import List

from . import schemas
from .schemas import OrderStatus

ACTIVE_STATUSES = (OrderStatus.PENDING, OrderStatus.PREPARING, OrderStatus.IN_TRANSIT)
TOP_ITEMS = 5
RECENT_ORDERS = 10


def compute_admin_stats(orders: List[schemas.Order]) -> schemas.AdminStats:
    """
    Summarize orders for the admin dashboard.

    Returns:
        AdminStats with order counts, revenue, status breakdown, the best
        selling items by quantity and the most recent orders
    """
    total_revenue = sum((order.total for order in orders), Decimal("0"))
    status_breakdown = Counter(order.status.value for order in orders)
    active_orders = sum(1 for order in orders if order.status in ACTIVE_STATUSES)

    # Top selling items, keyed by menu item id
    quantities = Counter()
    names = {}
    for order in orders:
        for item in order.items:
            quantities[item.id] += item.quantity
            names.setdefault(item.id, item.name)
    top_selling_items = [
        schemas.TopSellingItem(id=item_id, name=names[item_id], quantity=quantity)
        for item_id, quantity in quantities.most_common(TOP_ITEMS)
    ]

    recent_orders = sorted(orders, key=lambda o: (o.created_at, o.id), reverse=True)[:RECENT_ORDERS]

    return schemas.AdminStats(
        total_orders=len(orders),
        total_revenue=total_revenue,
        active_orders=active_orders,
        status_breakdown=dict(status_breakdown),
        top_selling_items=top_selling_items,
        recent_orders=recent_orders,
    )
