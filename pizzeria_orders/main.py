"""
Pizzeria Orders Service API

This module implements a FastAPI-based microservice for placing pizza orders
and tracking them through their lifecycle, with SQLAlchemy persistence.

Endpoints:
    GET /healthz: Health check endpoint for orchestration systems
    POST /orders: Place a new order
    GET /orders: List orders (admins see all, customers their own)
    GET /orders/{order_id}: Get a single order by ID
    PUT /orders/{order_id}/status: Change an order's status (admins)
    DELETE /orders/{order_id}: Hard-delete an order (master admin)
    GET /orders/{order_id}/timeline: Lifecycle events of an order
    GET /admin/stats: Dashboard statistics (admins)
    GET /admin/logs: Admin action log (admins)

Attributes:
    app (FastAPI): The FastAPI application instance configured with the title "orders-service"
"""
import logging
from typing import List, Optional

from fastapi import Depends, FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from . import models, schemas
from .auth import Actor, get_current_actor
from .config import LOG_LEVEL, Settings, get_settings
from .database import engine, get_db
from .errors import OrderServiceError
from .lifecycle import OrderService
from .notifications import NotificationDispatcher
from .store import SqlOrderStore

logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)

# Create database tables
models.Base.metadata.create_all(bind=engine)

app = FastAPI(title="orders-service")


@app.exception_handler(OrderServiceError)
def order_service_error_handler(request: Request, exc: OrderServiceError):
    """Render domain errors as {"detail": ...} with their status code."""
    headers = None
    if exc.status_code == status.HTTP_401_UNAUTHORIZED:
        headers = {"WWW-Authenticate": "Bearer"}
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.detail}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail}, headers=headers)


@app.exception_handler(RequestValidationError)
def validation_error_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies and path parameters are client errors (400)."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": jsonable_encoder(exc.errors())},
    )


def get_store(db: Session = Depends(get_db)) -> SqlOrderStore:
    return SqlOrderStore(db)


def get_notifications(settings: Settings = Depends(get_settings)) -> NotificationDispatcher:
    return NotificationDispatcher.from_settings(settings)


def get_order_service(
    store: SqlOrderStore = Depends(get_store),
    notifications: NotificationDispatcher = Depends(get_notifications),
    settings: Settings = Depends(get_settings),
) -> OrderService:
    return OrderService(store, notifications, delivery_fee=settings.delivery_fee)


def client_ip(request: Request) -> Optional[str]:
    return request.client.host if request.client else None


@app.get("/healthz", response_model=dict)
def health():
    """
    Health check endpoint for the orders service.

    Returns:
        dict: {"status": "healthy"} when the service is operational.
    """
    return {"status": "healthy"}


@app.post("/orders", response_model=schemas.Order, status_code=status.HTTP_201_CREATED)
def create_order(
    order: schemas.OrderCreate,
    service: OrderService = Depends(get_order_service),
    actor: Optional[Actor] = Depends(get_current_actor)
):
    """
    Place a new order for the authenticated user.

    Totals are computed server side from the line items and the configured
    delivery fee; pickup orders pay no delivery fee.

    Raises:
        401 if not authenticated
        400 if items, payment method or address are invalid
    """
    return service.place_order(order, actor)


@app.get("/orders", response_model=List[schemas.Order])
def list_orders(
    service: OrderService = Depends(get_order_service),
    actor: Optional[Actor] = Depends(get_current_actor)
):
    """List orders (authenticated users see their own, admins see all)."""
    return service.list_orders(actor)


@app.get("/orders/{order_id}", response_model=schemas.Order)
def get_order(
    order_id: int,
    service: OrderService = Depends(get_order_service),
    actor: Optional[Actor] = Depends(get_current_actor)
):
    """
    Get a single order by ID (owner or admin).

    Raises:
        401 if not authenticated
        403 if the order belongs to another customer
        404 if order not found
    """
    return service.get_order(order_id, actor)


@app.put("/orders/{order_id}/status", response_model=schemas.Order)
def update_order_status(
    order_id: int,
    body: schemas.OrderStatusUpdate,
    request: Request,
    service: OrderService = Depends(get_order_service),
    actor: Optional[Actor] = Depends(get_current_actor)
):
    """
    Change the status of an order (admins only).

    Raises:
        400 if the status is unknown or the order is delivered/cancelled
        401 if not authenticated
        403 if the actor is not an admin
        404 if order not found
    """
    return service.update_status(order_id, body.status, actor, ip_address=client_ip(request))


@app.delete("/orders/{order_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_order(
    order_id: int,
    request: Request,
    service: OrderService = Depends(get_order_service),
    actor: Optional[Actor] = Depends(get_current_actor)
):
    """
    Permanently delete an order (master admin only).

    Raises:
        401 if not authenticated
        403 if the actor is not the master admin
        404 if order not found
    """
    service.hard_delete(order_id, actor, ip_address=client_ip(request))


@app.get("/orders/{order_id}/timeline", response_model=List[schemas.OrderEvent])
def get_order_timeline(
    order_id: int,
    service: OrderService = Depends(get_order_service),
    actor: Optional[Actor] = Depends(get_current_actor)
):
    """Get the timeline of events for an order (owner or admin)."""
    return service.timeline(order_id, actor)


@app.get("/admin/stats", response_model=schemas.AdminStats)
def get_admin_stats(
    service: OrderService = Depends(get_order_service),
    actor: Optional[Actor] = Depends(get_current_actor)
):
    """Order statistics for the admin dashboard."""
    return service.admin_stats(actor)


@app.get("/admin/logs", response_model=List[schemas.AdminActionLog])
def get_admin_logs(
    admin_id: Optional[int] = None,
    service: OrderService = Depends(get_order_service),
    actor: Optional[Actor] = Depends(get_current_actor)
):
    """Admin action log, newest first, optionally filtered by admin."""
    return service.admin_logs(actor, admin_id=admin_id)
