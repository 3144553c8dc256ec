"""
Shared test fixtures for the Orders service test suite.
"""
import os

# Must be set before the service modules read their configuration
os.environ["DATABASE_URL"] = "sqlite://"

from decimal import Decimal
from typing import List

import pytest
from fastapi.testclient import TestClient

from pizzeria_orders import schemas
from pizzeria_orders.auth import Actor, create_access_token
from pizzeria_orders.config import Settings, get_settings
from pizzeria_orders.database import Base, SessionLocal, engine, get_db
from pizzeria_orders.lifecycle import OrderService
from pizzeria_orders.main import app, get_notifications
from pizzeria_orders.notifications import Notification, NotificationChannel, NotificationDispatcher
from pizzeria_orders.schemas import Role
from pizzeria_orders.store import InMemoryOrderStore

DELIVERY_FEE = Decimal("3.99")


class RecordingChannel(NotificationChannel):
    """Keeps every notification it is asked to send."""

    def __init__(self):
        self.sent: List[Notification] = []

    def send(self, notification: Notification) -> None:
        self.sent.append(notification)


def make_item(item_id=1, price="10", quantity=1, name=None, **extra) -> schemas.LineItem:
    return schemas.LineItem(
        id=item_id,
        name=name or f"Pizza {item_id}",
        unit_price=Decimal(price),
        quantity=quantity,
        **extra,
    )


def make_order_request(items=None, address="12 Baker Street", pickup=False, payment_method="credit_card"):
    return schemas.OrderCreate(
        items=items or [make_item(1, "10", 2), make_item(2, "5", 1)],
        payment_method=payment_method,
        address=address,
        pickup=pickup,
    )


# ============================================================================
# Actors
# ============================================================================


@pytest.fixture
def customer() -> Actor:
    return Actor(id=1, email="ana@example.com", role=Role.CUSTOMER)


@pytest.fixture
def other_customer() -> Actor:
    return Actor(id=2, email="bruno@example.com", role=Role.CUSTOMER)


@pytest.fixture
def admin() -> Actor:
    return Actor(id=10, email="admin@example.com", role=Role.ADMIN)


@pytest.fixture
def admin_master() -> Actor:
    return Actor(id=99, email="master@example.com", role=Role.ADMIN_MASTER)


# ============================================================================
# Core
# ============================================================================


@pytest.fixture
def channel() -> RecordingChannel:
    return RecordingChannel()


@pytest.fixture
def dispatcher(channel) -> NotificationDispatcher:
    return NotificationDispatcher(channel, enabled=True)


@pytest.fixture
def store() -> InMemoryOrderStore:
    return InMemoryOrderStore()


@pytest.fixture
def service(store, dispatcher) -> OrderService:
    return OrderService(store, dispatcher, delivery_fee=DELIVERY_FEE)


@pytest.fixture
def pending_order(service, customer):
    return service.place_order(make_order_request(), customer)


# ============================================================================
# Database and HTTP
# ============================================================================


@pytest.fixture
def db_session():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db_session, channel):
    settings = Settings(delivery_fee=DELIVERY_FEE, send_customer_notifications=True, webhook_urls=[])

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_notifications] = lambda: NotificationDispatcher(channel, enabled=True)
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def auth_headers(actor: Actor) -> dict:
    token = create_access_token({"sub": str(actor.id), "email": actor.email, "role": actor.role.value})
    return {"Authorization": f"Bearer {token}"}
