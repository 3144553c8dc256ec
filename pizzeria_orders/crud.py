"""
CRUD (Create, Read, Update, Delete) operations for the Orders service.

This module contains all database operations for orders, their timeline
events and the admin action log. Writers only flush; callers commit the
whole operation with commit(). Database failures are rolled back and
re-raised as PersistenceError.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional
import logging

from sqlalchemy import delete as sqla_delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import models, schemas
from .errors import PersistenceError

# Set up logging
logger = logging.getLogger(__name__)


def _flush(db: Session, what: str) -> None:
    try:
        db.flush()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to {what}: {e}")
        raise PersistenceError(f"Failed to {what}") from e


def commit(db: Session) -> None:
    """
    Commit every write flushed since the last commit.

    Writers below only flush, so a service operation made of several writes
    is committed here once, or not at all.
    """
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to commit: {e}")
        raise PersistenceError("Failed to save changes") from e


def rollback(db: Session) -> None:
    """Discard every write flushed since the last commit."""
    db.rollback()


def get_order(db: Session, order_id: int) -> Optional[models.Order]:
    """
    Retrieve a single order by ID.

    Args:
        db: Database session
        order_id: ID of the order to retrieve

    Returns:
        Order object or None if not found
    """
    return db.query(models.Order).filter(models.Order.id == order_id).first()


def get_orders(db: Session) -> List[models.Order]:
    """
    Retrieve all orders, newest first.

    Args:
        db: Database session

    Returns:
        List of Order objects
    """
    return db.query(models.Order).order_by(models.Order.created_at.desc(), models.Order.id.desc()).all()


def get_orders_by_owner(db: Session, owner_id: int) -> List[models.Order]:
    """Retrieve the orders placed by one user, newest first."""
    return (
        db.query(models.Order)
        .filter(models.Order.owner_id == owner_id)
        .order_by(models.Order.created_at.desc(), models.Order.id.desc())
        .all()
    )


def create_order(db: Session, draft: schemas.OrderDraft) -> models.Order:
    """
    Create a new order in the database.

    NOTE: This function assumes totals have already been computed.
    Use totals.compute_totals() before calling this function.

    Args:
        db: Database session
        draft: Order data to persist

    Returns:
        Created Order object with its assigned id
    """
    # Line items are stored in their camelCase wire shape, Decimals as strings
    items_data = [
        item.model_dump(by_alias=True, exclude_none=True, mode="json")
        for item in draft.items
    ]
    now = datetime.utcnow()
    db_order = models.Order(
        owner_id=draft.owner_id,
        items=items_data,
        subtotal=draft.subtotal,
        delivery_fee=draft.delivery_fee,
        total=draft.total,
        status=draft.status.value,
        payment_method=draft.payment_method.value,
        address=draft.address,
        created_at=now,
        updated_at=now,
    )
    db.add(db_order)
    _flush(db, "create order")
    db.refresh(db_order)
    return db_order


def update_order_status(db: Session, order_id: int, status: schemas.OrderStatus) -> Optional[models.Order]:
    """
    Set the status of an existing order and refresh its updated_at.

    Returns:
        Updated Order object or None if not found
    """
    db_order = get_order(db, order_id)
    if db_order is None:
        return None

    db_order.status = status.value
    db_order.updated_at = datetime.utcnow()
    _flush(db, f"update status of order {order_id}")
    db.refresh(db_order)
    return db_order


def delete_order(db: Session, order_id: int) -> bool:
    """
    Delete an order from the database.

    This also deletes any associated order_events rows to satisfy the
    foreign key constraint.

    Args:
        db: Database session
        order_id: ID of the order to delete

    Returns:
        True if order was deleted, False if not found
    """
    db_order = get_order(db, order_id)
    if db_order is None:
        return False

    try:
        # Delete dependent timeline events first to avoid FK constraint errors
        db.execute(
            sqla_delete(models.OrderEvent).where(models.OrderEvent.order_id == order_id)
        )
        # Flush to ensure child rows are removed before deleting parent
        db.flush()
        db.delete(db_order)
        db.flush()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to delete order {order_id}: {e}")
        raise PersistenceError(f"Failed to delete order {order_id}") from e
    return True


def record_order_event(
    db: Session,
    order_id: int,
    event_type: str,
    description: str,
    old_value: str = None,
    new_value: str = None,
    user_id: int = None
) -> models.OrderEvent:
    """
    Append an event to an order's timeline.

    Args:
        db: Database session
        order_id: Order identifier
        event_type: Type of event (e.g., "created", "status_changed")
        description: Human-readable description
        old_value: Previous value (optional)
        new_value: New value (optional)
        user_id: User who triggered the event (optional)
    """
    event = models.OrderEvent(
        order_id=order_id,
        event_type=event_type,
        description=description,
        old_value=old_value,
        new_value=new_value,
        user_id=user_id,
        created_at=datetime.utcnow(),
    )
    db.add(event)
    _flush(db, f"record {event_type} event for order {order_id}")
    db.refresh(event)
    return event


def get_order_events(db: Session, order_id: int) -> List[models.OrderEvent]:
    """Timeline of an order in chronological order."""
    return (
        db.query(models.OrderEvent)
        .filter(models.OrderEvent.order_id == order_id)
        .order_by(models.OrderEvent.created_at.asc(), models.OrderEvent.id.asc())
        .all()
    )


def log_admin_action(
    db: Session,
    admin_id: int,
    action: str,
    entity_type: str,
    entity_id: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
    ip_address: Optional[str] = None,
) -> models.AdminLog:
    """Append an entry to the admin action log. Entries are never updated."""
    entry = models.AdminLog(
        admin_id=admin_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        details=details,
        ip_address=ip_address,
        created_at=datetime.utcnow(),
    )
    db.add(entry)
    _flush(db, f"log admin action '{action}'")
    db.refresh(entry)
    return entry


def get_admin_logs(db: Session, admin_id: Optional[int] = None) -> List[models.AdminLog]:
    """Admin log entries, newest first, optionally for a single admin."""
    query = db.query(models.AdminLog)
    if admin_id is not None:
        query = query.filter(models.AdminLog.admin_id == admin_id)
    return query.order_by(models.AdminLog.created_at.desc(), models.AdminLog.id.desc()).all()
