"""Best-effort customer notifications.

Dispatching only enqueues a Celery task. Whatever happens afterwards (broker
down, SMTP refusal, missing credentials) is logged and never undoes the
state change that triggered the email, nor changes the API response.
"""

import enum
import logging
from typing import TYPE_CHECKING, Any

from merchant.workers.tasks.notifications import send_notification

if TYPE_CHECKING:
    from merchant.models.order import Order

logger = logging.getLogger(__name__)


class NotificationKind(str, enum.Enum):
    """Emails the storefront sends to its customers."""

    VERIFICATION = "verification"
    ORDER_PROCESSED = "order_processed"
    ORDER_CONFIRMED = "order_confirmed"


class NotificationDispatcher:
    """Fire-and-forget sender for customer emails."""

    def dispatch(
        self,
        kind: NotificationKind,
        client_id: str,
        recipient: str | None,
        data: dict[str, Any],
    ) -> bool:
        """Enqueue an email. Returns False when nothing was enqueued."""
        if not recipient:
            logger.warning("No recipient for %s email (client %s)", kind.value, client_id)
            return False
        try:
            send_notification.delay(kind.value, client_id, recipient, data)
        except Exception:
            logger.exception("Failed to enqueue %s email to %s", kind.value, recipient)
            return False
        logger.info("Queued %s email to %s", kind.value, recipient)
        return True

    def verification(
        self, client_id: str, recipient: str, customer_name: str, token: str
    ) -> bool:
        return self.dispatch(
            NotificationKind.VERIFICATION,
            client_id,
            recipient,
            {"customer_name": customer_name, "verification_token": token},
        )

    def order_processed(self, order: "Order") -> bool:
        customer = order.customer
        return self.dispatch(
            NotificationKind.ORDER_PROCESSED,
            order.client_id,
            customer.email if customer else None,
            {
                "customer_name": customer.first_name if customer else "",
                "order_id": str(order.id),
                "tracking_link": order.tracking_link,
                "tracking_code": order.tracking_code,
            },
        )

    def order_confirmed(self, order: "Order") -> bool:
        customer = order.customer
        items = [
            {
                "name": item.product.name if item.product else "Item",
                "variant": item.variant.value if item.variant else None,
                "quantity": item.quantity,
                "unit_price": str(item.unit_price),
            }
            for item in order.items
        ]
        return self.dispatch(
            NotificationKind.ORDER_CONFIRMED,
            order.client_id,
            customer.email if customer else None,
            {
                "customer_name": customer.first_name if customer else "",
                "order_id": str(order.id),
                "items": items,
                "delivery_price": str(order.delivery_price),
                "total_price": str(order.total_price),
            },
        )


def get_notification_dispatcher() -> NotificationDispatcher:
    """FastAPI dependency."""
    return NotificationDispatcher()
