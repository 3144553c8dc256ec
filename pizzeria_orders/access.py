"""
Order access control.

Decides which actor may read, change the status of, or hard-delete an order.
The ``can_*`` predicates answer the question; the ``ensure_*`` helpers raise
Unauthenticated or Forbidden so a denial is never silent.
"""
from typing import List, Optional

from . import schemas
from .auth import Actor
from .errors import Forbidden, Unauthenticated
from .schemas import Role
from .store import OrderStore


def _authenticated(actor: Optional[Actor]) -> Actor:
    if actor is None:
        raise Unauthenticated()
    return actor


def can_view(actor: Optional[Actor], order: schemas.Order) -> bool:
    actor = _authenticated(actor)
    if actor.role is Role.ADMIN or actor.role is Role.ADMIN_MASTER:
        return True
    if actor.role is Role.CUSTOMER:
        return order.owner_id is not None and order.owner_id == actor.id
    raise AssertionError(f"Unhandled role: {actor.role}")


def can_mutate_status(actor: Optional[Actor], order: schemas.Order) -> bool:
    actor = _authenticated(actor)
    if actor.role is Role.ADMIN or actor.role is Role.ADMIN_MASTER:
        return True
    if actor.role is Role.CUSTOMER:
        return False
    raise AssertionError(f"Unhandled role: {actor.role}")


def can_hard_delete(actor: Optional[Actor]) -> bool:
    actor = _authenticated(actor)
    if actor.role is Role.ADMIN_MASTER:
        return True
    if actor.role is Role.ADMIN or actor.role is Role.CUSTOMER:
        return False
    raise AssertionError(f"Unhandled role: {actor.role}")


def is_admin(actor: Optional[Actor]) -> bool:
    actor = _authenticated(actor)
    return actor.role in (Role.ADMIN, Role.ADMIN_MASTER)


def ensure_can_view(actor: Optional[Actor], order: schemas.Order) -> None:
    if not can_view(actor, order):
        raise Forbidden("Not authorized to access this order")


def ensure_can_mutate_status(actor: Optional[Actor], order: schemas.Order) -> None:
    if not can_mutate_status(actor, order):
        raise Forbidden("Only admins can update order status")


def ensure_can_hard_delete(actor: Optional[Actor]) -> None:
    if not can_hard_delete(actor):
        raise Forbidden("Only the master admin can delete orders")


def visible_orders(actor: Optional[Actor], store: OrderStore) -> List[schemas.Order]:
    """Admins see every order; customers only their own."""
    actor = _authenticated(actor)
    if is_admin(actor):
        return store.list_all()
    return store.list_by_owner(actor.id)

