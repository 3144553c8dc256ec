"""
Order Store contract and its implementations.

``OrderStore`` is what the lifecycle core talks to. ``SqlOrderStore`` backs
the service with SQLAlchemy; ``InMemoryOrderStore`` is an arena where an
order's id is its slot index plus one.
"""
from abc import ABC, abstractmethod
from datetime import datetime
from itertools import count
from threading import Lock
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from . import crud, schemas


class OrderStore(ABC):
    """Persistence of orders, their timeline and the admin action log."""

    @abstractmethod
    def create(self, draft: schemas.OrderDraft) -> schemas.Order:
        """Persist a new order, assigning its id and timestamps."""

    @abstractmethod
    def get(self, order_id: int) -> Optional[schemas.Order]:
        """Return the order or None when the id is unknown."""

    @abstractmethod
    def list_all(self) -> List[schemas.Order]:
        """All orders, newest first."""

    @abstractmethod
    def list_by_owner(self, owner_id: int) -> List[schemas.Order]:
        """Orders placed by one user, newest first."""

    @abstractmethod
    def update_status(self, order_id: int, status: schemas.OrderStatus) -> Optional[schemas.Order]:
        """Set the status and refresh updated_at. None when the id is unknown."""

    @abstractmethod
    def hard_delete(self, order_id: int) -> bool:
        """Remove the order and its timeline. False when the id is unknown."""

    @abstractmethod
    def record_event(
        self,
        order_id: int,
        event_type: str,
        description: str,
        old_value: Optional[str] = None,
        new_value: Optional[str] = None,
        user_id: Optional[int] = None,
    ) -> schemas.OrderEvent:
        """Append an event to an order's timeline."""

    @abstractmethod
    def list_events(self, order_id: int) -> List[schemas.OrderEvent]:
        """Timeline of an order, oldest first."""

    @abstractmethod
    def log_admin_action(
        self,
        admin_id: int,
        action: str,
        entity_type: str,
        entity_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None,
    ) -> schemas.AdminActionLog:
        """Append an entry to the admin action log."""

    @abstractmethod
    def list_admin_logs(self, admin_id: Optional[int] = None) -> List[schemas.AdminActionLog]:
        """Admin log entries, newest first."""

    @abstractmethod
    def commit(self) -> None:
        """Make every write since the last commit durable."""

    @abstractmethod
    def rollback(self) -> None:
        """Discard every write since the last commit."""


class SqlOrderStore(OrderStore):
    """OrderStore over a SQLAlchemy session."""

    def __init__(self, db: Session):
        self.db = db

    def create(self, draft):
        return schemas.Order.model_validate(crud.create_order(self.db, draft))

    def get(self, order_id):
        db_order = crud.get_order(self.db, order_id)
        return schemas.Order.model_validate(db_order) if db_order is not None else None

    def list_all(self):
        return [schemas.Order.model_validate(o) for o in crud.get_orders(self.db)]

    def list_by_owner(self, owner_id):
        return [schemas.Order.model_validate(o) for o in crud.get_orders_by_owner(self.db, owner_id)]

    def update_status(self, order_id, status):
        db_order = crud.update_order_status(self.db, order_id, status)
        return schemas.Order.model_validate(db_order) if db_order is not None else None

    def hard_delete(self, order_id):
        return crud.delete_order(self.db, order_id)

    def record_event(self, order_id, event_type, description, old_value=None, new_value=None, user_id=None):
        event = crud.record_order_event(
            self.db,
            order_id=order_id,
            event_type=event_type,
            description=description,
            old_value=old_value,
            new_value=new_value,
            user_id=user_id,
        )
        return schemas.OrderEvent.model_validate(event)

    def list_events(self, order_id):
        return [schemas.OrderEvent.model_validate(e) for e in crud.get_order_events(self.db, order_id)]

    def log_admin_action(self, admin_id, action, entity_type, entity_id=None, details=None, ip_address=None):
        entry = crud.log_admin_action(
            self.db,
            admin_id=admin_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            details=details,
            ip_address=ip_address,
        )
        return schemas.AdminActionLog.model_validate(entry)

    def list_admin_logs(self, admin_id=None):
        return [schemas.AdminActionLog.model_validate(e) for e in crud.get_admin_logs(self.db, admin_id)]

    def commit(self):
        crud.commit(self.db)

    def rollback(self):
        crud.rollback(self.db)


class InMemoryOrderStore(OrderStore):
    """
    Arena-backed store for tests and local runs.

    Slots are never reused, so ids stay unique and monotonic even after hard
    deletes. Records are copied in and out; callers never share state with
    the arena. The first write after a commit snapshots the arena so that
    rollback() can restore it.
    """

    def __init__(self):
        self._orders: List[Optional[schemas.Order]] = []
        self._events: List[schemas.OrderEvent] = []
        self._admin_logs: List[schemas.AdminActionLog] = []
        self._event_ids = count(1)
        self._snapshot = None
        self._lock = Lock()

    def _begin(self) -> None:
        # Records are replaced, never mutated, so shallow copies are enough
        if self._snapshot is None:
            self._snapshot = (list(self._orders), list(self._events), list(self._admin_logs))

    def commit(self):
        with self._lock:
            self._snapshot = None

    def rollback(self):
        with self._lock:
            if self._snapshot is not None:
                self._orders, self._events, self._admin_logs = self._snapshot
                self._snapshot = None

    def create(self, draft):
        with self._lock:
            self._begin()
            now = datetime.utcnow()
            order = schemas.Order(
                id=len(self._orders) + 1,
                created_at=now,
                updated_at=now,
                **draft.model_dump(),
            )
            self._orders.append(order)
            return order.model_copy(deep=True)

    def _slot(self, order_id: int) -> Optional[schemas.Order]:
        if 1 <= order_id <= len(self._orders):
            return self._orders[order_id - 1]
        return None

    def get(self, order_id):
        with self._lock:
            order = self._slot(order_id)
            return order.model_copy(deep=True) if order is not None else None

    def _newest_first(self, orders):
        return sorted(
            (o.model_copy(deep=True) for o in orders),
            key=lambda o: (o.created_at, o.id),
            reverse=True,
        )

    def list_all(self):
        with self._lock:
            return self._newest_first(o for o in self._orders if o is not None)

    def list_by_owner(self, owner_id):
        with self._lock:
            return self._newest_first(
                o for o in self._orders if o is not None and o.owner_id == owner_id
            )

    def update_status(self, order_id, status):
        with self._lock:
            order = self._slot(order_id)
            if order is None:
                return None
            self._begin()
            updated = order.model_copy(update={"status": status, "updated_at": datetime.utcnow()})
            self._orders[order_id - 1] = updated
            return updated.model_copy(deep=True)

    def hard_delete(self, order_id):
        with self._lock:
            if self._slot(order_id) is None:
                return False
            self._begin()
            self._orders[order_id - 1] = None
            self._events = [e for e in self._events if e.order_id != order_id]
            return True

    def record_event(self, order_id, event_type, description, old_value=None, new_value=None, user_id=None):
        with self._lock:
            self._begin()
            event = schemas.OrderEvent(
                id=next(self._event_ids),
                order_id=order_id,
                event_type=event_type,
                description=description,
                old_value=old_value,
                new_value=new_value,
                user_id=user_id,
                created_at=datetime.utcnow(),
            )
            self._events.append(event)
            return event.model_copy()

    def list_events(self, order_id):
        with self._lock:
            return [e.model_copy() for e in self._events if e.order_id == order_id]

    def log_admin_action(self, admin_id, action, entity_type, entity_id=None, details=None, ip_address=None):
        with self._lock:
            self._begin()
            entry = schemas.AdminActionLog(
                id=len(self._admin_logs) + 1,
                admin_id=admin_id,
                action=action,
                entity_type=entity_type,
                entity_id=entity_id,
                details=details,
                ip_address=ip_address,
                created_at=datetime.utcnow(),
            )
            self._admin_logs.append(entry)
            return entry.model_copy(deep=True)

    def list_admin_logs(self, admin_id=None):
        with self._lock:
            entries = [e for e in self._admin_logs if admin_id is None or e.admin_id == admin_id]
            return [e.model_copy(deep=True) for e in reversed(entries)]
