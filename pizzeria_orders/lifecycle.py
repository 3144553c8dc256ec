"""
Order lifecycle.

OrderService places orders, moves them between statuses and hard-deletes
them. Status rules:

    pending -> preparing -> in_transit -> delivered
    cancelled is reachable from any status that is not terminal

delivered and cancelled are terminal. Between non-terminal statuses admins
may move an order backward or skip ahead. Setting the current status again is
a successful no-op that sends no notification.
"""
import logging
from contextlib import contextmanager
from decimal import Decimal
from typing import List, Optional

from . import access, schemas
from .auth import Actor
from .errors import Forbidden, IllegalTransition, InvalidOrder, InvalidStatus, NotFound, Unauthenticated
from .notifications import NotificationDispatcher, Recipient
from .schemas import PICKUP_ADDRESS, OrderStatus
from .stats import compute_admin_stats
from .store import OrderStore
from .totals import compute_totals, validate_line_items

logger = logging.getLogger(__name__)


def parse_status(value) -> OrderStatus:
    """
    Parse a wire status string into an OrderStatus.

    Raises:
        InvalidStatus: if the value is not one of the known statuses
    """
    if isinstance(value, OrderStatus):
        return value
    try:
        return OrderStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in OrderStatus)
        raise InvalidStatus(f"Invalid status '{value}'. Expected one of: {allowed}")


def _recipient_for(order: schemas.Order) -> Optional[Recipient]:
    if order.owner_id is None:
        return None
    return Recipient(id=order.owner_id)


class OrderService:
    """
    Order operations on behalf of an actor.

    Args:
        store: Where orders, timeline events and admin logs are persisted
        notifications: Dispatcher for customer notifications
        delivery_fee: Fee charged on delivery orders
    """

    def __init__(self, store: OrderStore, notifications: NotificationDispatcher, delivery_fee: Decimal):
        self.store = store
        self.notifications = notifications
        self.delivery_fee = delivery_fee

    @contextmanager
    def _atomic(self):
        """Commit the writes made inside the block, or roll all of them back."""
        try:
            yield
            self.store.commit()
        except Exception:
            self.store.rollback()
            raise

    def place_order(self, request: schemas.OrderCreate, actor: Optional[Actor]) -> schemas.Order:
        """
        Create a pending order owned by the actor.

        Raises:
            Unauthenticated: anonymous request
            InvalidLineItem: malformed or out of bounds items
            InvalidOrder: delivery order without an address
        """
        if actor is None:
            raise Unauthenticated("You must be logged in to create an order")

        validate_line_items(request.items)

        address = (request.address or "").strip()
        pickup = request.pickup or address.lower() == PICKUP_ADDRESS
        if not pickup and not address:
            raise InvalidOrder("Delivery address is required unless the order is for pickup")

        totals = compute_totals(request.items, self.delivery_fee, pickup=pickup)
        draft = schemas.OrderDraft(
            owner_id=actor.id,
            items=request.items,
            subtotal=totals.subtotal,
            delivery_fee=totals.delivery_fee,
            total=totals.total,
            status=OrderStatus.PENDING,
            payment_method=request.payment_method,
            address=PICKUP_ADDRESS if pickup else address,
        )
        with self._atomic():
            order = self.store.create(draft)
            self.store.record_event(
                order_id=order.id,
                event_type="created",
                description=f"Order created with status '{order.status.value}'",
                new_value=order.status.value,
                user_id=actor.id,
            )
        logger.info(f"Order #{order.id} created by user {actor.id}, total {order.total}")
        self.notifications.notify_created(order, Recipient(id=actor.id, name=actor.email))
        return order

    def get_order(self, order_id: int, actor: Optional[Actor]) -> schemas.Order:
        """
        Raises:
            Unauthenticated: anonymous request
            NotFound: unknown id
            Forbidden: the order belongs to someone else
        """
        if actor is None:
            raise Unauthenticated("You must be logged in to view an order")
        order = self.store.get(order_id)
        if order is None:
            raise NotFound()
        access.ensure_can_view(actor, order)
        return order

    def list_orders(self, actor: Optional[Actor]) -> List[schemas.Order]:
        return access.visible_orders(actor, self.store)

    def timeline(self, order_id: int, actor: Optional[Actor]) -> List[schemas.OrderEvent]:
        order = self.get_order(order_id, actor)
        return self.store.list_events(order.id)

    def transition(
        self,
        order: schemas.Order,
        new_status,
        actor: Optional[Actor],
        ip_address: Optional[str] = None,
    ) -> schemas.Order:
        """
        Move an order to a new status.

        Args:
            order: The order as currently stored
            new_status: Target status, an OrderStatus or its wire string
            actor: Who asks for the change
            ip_address: Client address recorded in the admin log

        Returns:
            The updated order, or the order unchanged when the status is the same

        Raises:
            Unauthenticated / Forbidden: actor may not change statuses
            InvalidStatus: unknown target status
            IllegalTransition: the order is delivered or cancelled
            NotFound: the order disappeared before the update
            PersistenceError: the change could not be saved; nothing was stored
        """
        access.ensure_can_mutate_status(actor, order)
        target = parse_status(new_status)

        if target == order.status:
            logger.info(f"Order #{order.id} already {target.value}, nothing to do")
            return order

        if order.status.is_terminal:
            raise IllegalTransition(
                f"Order #{order.id} is {order.status.value} and cannot move to {target.value}"
            )

        old_value, new_value = order.status.value, target.value
        with self._atomic():
            updated = self.store.update_status(order.id, target)
            if updated is None:
                raise NotFound()
            self.store.record_event(
                order_id=order.id,
                event_type="status_changed",
                description=f"Status changed from '{old_value}' to '{new_value}'",
                old_value=old_value,
                new_value=new_value,
                user_id=actor.id,
            )
            self.store.log_admin_action(
                admin_id=actor.id,
                action="update_order_status",
                entity_type="order",
                entity_id=str(order.id),
                details={"from": old_value, "to": new_value},
                ip_address=ip_address,
            )
        logger.info(f"Order #{order.id} moved from {old_value} to {new_value} by user {actor.id}")
        self.notifications.notify_status_changed(updated, _recipient_for(updated))
        return updated

    def update_status(
        self,
        order_id: int,
        new_status,
        actor: Optional[Actor],
        ip_address: Optional[str] = None,
    ) -> schemas.Order:
        """Load an order by id and transition it."""
        if actor is None:
            raise Unauthenticated("You must be logged in to update an order")
        order = self.store.get(order_id)
        if order is None:
            raise NotFound()
        return self.transition(order, new_status, actor, ip_address=ip_address)

    def hard_delete(self, order_id: int, actor: Optional[Actor], ip_address: Optional[str] = None) -> None:
        """
        Permanently remove an order, bypassing the lifecycle.

        Raises:
            Unauthenticated / Forbidden: actor is not the master admin
            NotFound: unknown id
        """
        access.ensure_can_hard_delete(actor)
        order = self.store.get(order_id)
        if order is None:
            raise NotFound()

        with self._atomic():
            if not self.store.hard_delete(order_id):
                raise NotFound()
            self.store.log_admin_action(
                admin_id=actor.id,
                action="delete_order",
                entity_type="order",
                entity_id=str(order_id),
                details={"status": order.status.value, "total": str(order.total)},
                ip_address=ip_address,
            )
        logger.warning(f"Order #{order_id} hard-deleted by user {actor.id}")

    def admin_logs(self, actor: Optional[Actor], admin_id: Optional[int] = None) -> List[schemas.AdminActionLog]:
        if not access.is_admin(actor):
            raise Forbidden("Admin privileges required")
        return self.store.list_admin_logs(admin_id)

    def admin_stats(self, actor: Optional[Actor]) -> schemas.AdminStats:
        if not access.is_admin(actor):
            raise Forbidden("Admin privileges required")
        return compute_admin_stats(self.store.list_all())
