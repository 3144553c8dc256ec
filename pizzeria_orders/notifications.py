"""
Customer notifications for order events.

The dispatcher turns order events into messages for the customer and hands
them to a channel. Delivery is best effort: when notifications are switched
off nothing is sent, and a failing channel is logged, never raised to the
caller.
"""
import json
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel, Field

from . import schemas
from .config import Settings
from .errors import NotificationDeliveryFailure

logger = logging.getLogger(__name__)

ORDER_CREATED = "order_created"
ORDER_STATUS_UPDATED = "order_status_updated"

STATUS_MESSAGES = {
    schemas.OrderStatus.PENDING: "Your order #{id} was received and is waiting to be prepared.",
    schemas.OrderStatus.PREPARING: "Your order #{id} is being prepared.",
    schemas.OrderStatus.IN_TRANSIT: "Your order #{id} is out for delivery. It will arrive soon!",
    schemas.OrderStatus.DELIVERED: "Your order #{id} was delivered. Enjoy your meal!",
    schemas.OrderStatus.CANCELLED: "Your order #{id} was cancelled. Contact us for more information.",
}


class Recipient(BaseModel):
    """The customer a notification is addressed to."""
    id: int
    name: Optional[str] = None


class Notification(BaseModel):
    type: str
    recipient_id: int
    message: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=datetime.utcnow)


def status_message(order: schemas.Order) -> str:
    template = STATUS_MESSAGES.get(order.status)
    if template is None:
        status = getattr(order.status, "value", order.status)
        return f"Your order #{order.id} status was updated to {status}."
    return template.format(id=order.id)


class NotificationChannel(ABC):
    """Delivery backend for notifications."""

    @abstractmethod
    def send(self, notification: Notification) -> None:
        """
        Deliver one notification.

        Raises:
            NotificationDeliveryFailure: if the notification could not be delivered
        """


class LogChannel(NotificationChannel):
    """Writes notifications to the service log."""

    def send(self, notification: Notification) -> None:
        logger.info(f"Notification sent: {json.dumps(notification.model_dump(mode='json'))}")


class WebhookChannel(NotificationChannel):
    """
    Posts notifications to every registered webhook URL.

    Every URL is attempted; if any of them fails, NotificationDeliveryFailure
    is raised once all have been tried.
    """

    def __init__(self, urls: List[str], timeout: float = 5.0, client: Optional[httpx.Client] = None):
        self.urls = list(urls)
        self.timeout = timeout
        self._client = client

    def _payload(self, notification: Notification) -> Dict[str, Any]:
        data = notification.model_dump(mode="json")
        return {
            "event": notification.type,
            "data": data,
            "timestamp": data["created_at"],
        }

    def _post_all(self, client: httpx.Client, payload: Dict[str, Any]) -> List[str]:
        failures = []
        for url in self.urls:
            try:
                response = client.post(
                    url,
                    json=payload,
                    headers={"Content-Type": "application/json"}
                )
                if response.status_code >= 400:
                    logger.warning(f"Webhook failed for {url}: HTTP {response.status_code}")
                    failures.append(url)
            except httpx.HTTPError as e:
                logger.warning(f"Webhook error for {url}: {str(e)}")
                failures.append(url)
        return failures

    def send(self, notification: Notification) -> None:
        payload = self._payload(notification)
        if self._client is not None:
            failures = self._post_all(self._client, payload)
        else:
            with httpx.Client(timeout=self.timeout) as client:
                failures = self._post_all(client, payload)

        if failures:
            raise NotificationDeliveryFailure(
                f"Delivery failed for {len(failures)} of {len(self.urls)} webhook(s): {', '.join(failures)}"
            )


class NotificationDispatcher:
    """
    Sends customer notifications for order events.

    Args:
        channel: Where notifications are delivered
        enabled: The store's "send customer notifications" preference
    """

    def __init__(self, channel: NotificationChannel, enabled: bool):
        self.channel = channel
        self.enabled = enabled

    @classmethod
    def from_settings(cls, settings: Settings) -> "NotificationDispatcher":
        if settings.webhook_urls:
            channel = WebhookChannel(settings.webhook_urls, timeout=settings.webhook_timeout)
        else:
            channel = LogChannel()
        return cls(channel, enabled=settings.send_customer_notifications)

    def _deliver(self, notification: Notification) -> bool:
        try:
            self.channel.send(notification)
            return True
        except NotificationDeliveryFailure as e:
            logger.error(f"Notification {notification.type} for user {notification.recipient_id} not delivered: {e}")
            return False
        except Exception:
            logger.exception(f"Unexpected error sending {notification.type} to user {notification.recipient_id}")
            return False

    def notify_created(self, order: schemas.Order, user: Optional[Recipient]) -> bool:
        """
        Notify the customer that their order was received.

        Returns:
            True if the notification was delivered, False if notifications are
            disabled, the order has no recipient, or delivery failed
        """
        if not self.enabled or user is None:
            return False

        logger.info(f"Order #{order.id} created for user {user.id}")
        return self._deliver(Notification(
            type=ORDER_CREATED,
            recipient_id=user.id,
            message=(
                f"Your order #{order.id} was received and is being processed. "
                f"Order total: {order.total:.2f}"
            ),
            metadata={"order_id": order.id, "order_total": str(order.total)},
        ))

    def notify_status_changed(self, order: schemas.Order, user: Optional[Recipient]) -> bool:
        """Notify the customer that their order moved to a new status."""
        if not self.enabled or user is None:
            return False

        status = getattr(order.status, "value", order.status)
        logger.info(f"Order #{order.id} status updated to {status}")
        return self._deliver(Notification(
            type=ORDER_STATUS_UPDATED,
            recipient_id=user.id,
            message=status_message(order),
            metadata={"order_id": order.id, "order_status": status},
        ))
