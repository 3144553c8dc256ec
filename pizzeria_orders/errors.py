"""
Error taxonomy for the Orders service.

Every error the order core can raise carries the HTTP status code it maps to,
so the API layer renders them with a single exception handler.
"""
from fastapi import status


class OrderServiceError(Exception):
    """Base class for errors surfaced to API callers."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Order request failed"

    def __init__(self, detail: str = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class Unauthenticated(OrderServiceError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Authentication required"


class Forbidden(OrderServiceError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Not authorized to perform this action"


class NotFound(OrderServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Order not found"


class InvalidStatus(OrderServiceError):
    default_detail = "Invalid status"


class IllegalTransition(OrderServiceError):
    default_detail = "Illegal status transition"


class InvalidLineItem(OrderServiceError):
    default_detail = "Invalid line item"


class InvalidOrder(OrderServiceError):
    default_detail = "Invalid order"


class PersistenceError(OrderServiceError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Failed to persist order"


class NotificationDeliveryFailure(Exception):
    """
    Raised by notification channels when delivery fails.

    Never surfaced to API callers: the dispatcher logs it and moves on.
    """
