"""
Pydantic schemas for request/response validation in the Orders service.

These schemas define the structure of data for API requests and responses,
and the order records the stores hand back to the lifecycle core.
"""
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

PICKUP_ADDRESS = "pickup"


class Role(str, Enum):
    """Roles an authenticated actor can hold."""
    CUSTOMER = "customer"
    ADMIN = "admin"
    ADMIN_MASTER = "admin_master"


class OrderStatus(str, Enum):
    """Lifecycle states of an order, as spelled on the wire."""
    PENDING = "pending"
    PREPARING = "preparing"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (OrderStatus.DELIVERED, OrderStatus.CANCELLED)


class PaymentMethod(str, Enum):
    CREDIT_CARD = "credit_card"
    CASH_ON_DELIVERY = "cash_on_delivery"
    PAYPAL = "paypal"


class LineItem(BaseModel):
    """
    Schema for an order line item.

    Serialized with camelCase keys, which is also the shape stored in the
    order's ``items`` column.
    """
    id: int = Field(..., description="Menu item identifier")
    name: str = Field(..., min_length=1)
    unit_price: Decimal = Field(..., alias="unitPrice", description="Price per unit")
    quantity: int = Field(..., description="Quantity ordered")
    special_instructions: Optional[str] = Field(None, alias="specialInstructions")
    image_url: Optional[str] = Field(None, alias="imageUrl")

    class Config:
        populate_by_name = True


class OrderCreate(BaseModel):
    """Schema for placing a new order."""
    items: List[LineItem] = Field(..., description="Order line items")
    payment_method: PaymentMethod
    address: Optional[str] = None
    pickup: bool = Field(False, description="Collect in store instead of delivery")


class OrderStatusUpdate(BaseModel):
    """Body of a status change request. Checked against OrderStatus by the lifecycle."""
    status: str


class OrderDraft(BaseModel):
    """An order with computed totals that has not been persisted yet."""
    owner_id: Optional[int] = None
    items: List[LineItem]
    subtotal: Decimal
    delivery_fee: Decimal
    total: Decimal
    status: OrderStatus = OrderStatus.PENDING
    payment_method: PaymentMethod
    address: Optional[str] = None

    @property
    def is_pickup(self) -> bool:
        return self.address == PICKUP_ADDRESS


class Order(OrderDraft):
    """
    Schema for order responses, includes all database fields.

    Attributes:
        id (int): Order's unique identifier
        owner_id (int): ID of the user who placed the order, None for guests
        items (List[LineItem]): Order line items
        subtotal (Decimal): Sum of unit price times quantity
        delivery_fee (Decimal): Fee charged for delivery, 0 for pickup
        total (Decimal): subtotal + delivery_fee
        status (OrderStatus): Lifecycle status
        payment_method (PaymentMethod): How the customer pays
        address (str): Delivery address or "pickup"
        created_at (datetime): When the order was created
        updated_at (datetime): When the order last changed
    """
    id: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class OrderEvent(BaseModel):
    """
    Schema for order timeline events.

    Attributes:
        id (int): Event ID
        order_id (int): Order identifier
        event_type (str): Type of event (created, status_changed)
        description (str): Human-readable event description
        old_value (str): Previous value (optional)
        new_value (str): New value (optional)
        user_id (int): User who triggered the event (optional)
        created_at (datetime): When the event occurred
    """
    id: int
    order_id: int
    event_type: str
    description: str
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    user_id: Optional[int] = None
    created_at: datetime

    class Config:
        from_attributes = True


class AdminActionLog(BaseModel):
    """Audit record of an administrative mutation."""
    id: int
    admin_id: int
    action: str
    entity_type: str
    entity_id: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    ip_address: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class TopSellingItem(BaseModel):
    id: int
    name: str
    quantity: int


class AdminStats(BaseModel):
    """Dashboard figures computed over all orders."""
    total_orders: int
    total_revenue: Decimal
    active_orders: int
    status_breakdown: Dict[str, int]
    top_selling_items: List[TopSellingItem]
    recent_orders: List[Order]
