"""
SQLAlchemy ORM models for the Orders service.

Defines the database schema for orders, their timeline and the admin audit log.
"""
from datetime import datetime
from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, Numeric, String, Text
from .database import Base


class Order(Base):
    """
    Order model representing a customer order.

    Attributes:
        id (int): Primary key, auto-incrementing order ID
        owner_id (int): ID of the user who placed the order, NULL for guest orders
        items (list): Line items in their persisted camelCase shape
        subtotal (Decimal): Sum of line item prices
        delivery_fee (Decimal): Delivery fee, 0 for pickup
        total (Decimal): subtotal + delivery_fee
        status (str): Lifecycle status ("pending", "preparing", ...)
        payment_method (str): "credit_card", "cash_on_delivery" or "paypal"
        address (str): Delivery address or "pickup"
        created_at (datetime): Timestamp when the order was created
        updated_at (datetime): Timestamp of the last mutation
    """
    __tablename__ = "orders"
    # Never hand out the id of a hard-deleted order again
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    owner_id = Column(Integer, nullable=True, index=True)
    items = Column(JSON, nullable=False, default=list)
    subtotal = Column(Numeric(10, 2), nullable=False)
    delivery_fee = Column(Numeric(10, 2), nullable=False)
    total = Column(Numeric(10, 2), nullable=False)
    status = Column(String, nullable=False, default="pending")
    payment_method = Column(String, nullable=False)
    address = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class OrderEvent(Base):
    """
    OrderEvent model representing historical events in an order's lifecycle.

    Attributes:
        id (int): Primary key, auto-incrementing event ID
        order_id (int): Foreign key to the order
        event_type (str): Type of event ("created", "status_changed")
        description (str): Human-readable description of the event
        old_value (str): Previous value (for changes, optional)
        new_value (str): New value (for changes, optional)
        user_id (int): ID of the user who triggered the event (optional)
        created_at (datetime): Timestamp when the event occurred
    """
    __tablename__ = "order_events"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    event_type = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    old_value = Column(String, nullable=True)
    new_value = Column(String, nullable=True)
    user_id = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class AdminLog(Base):
    """Append-only audit record of an administrative mutation."""
    __tablename__ = "admin_logs"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    admin_id = Column(Integer, nullable=False, index=True)
    action = Column(String, nullable=False)
    entity_type = Column(String, nullable=False)
    entity_id = Column(String, nullable=True)
    details = Column(JSON, nullable=True)
    ip_address = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
