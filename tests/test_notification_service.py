"""Tests for the best-effort notification dispatcher."""

from collections.abc import Callable
from typing import Any
from unittest.mock import MagicMock

import pytest

from merchant.models import Customer
from merchant.services.notification_service import NotificationDispatcher, NotificationKind


def test_dispatch_enqueues(sent_notifications: MagicMock) -> None:
    queued = NotificationDispatcher().dispatch(
        NotificationKind.VERIFICATION, "client-a", "a@example.com", {"k": "v"}
    )

    assert queued is True
    sent_notifications.assert_called_once_with(
        "verification", "client-a", "a@example.com", {"k": "v"}
    )


def test_missing_recipient_is_not_enqueued(sent_notifications: MagicMock) -> None:
    dispatcher = NotificationDispatcher()
    assert dispatcher.dispatch(NotificationKind.ORDER_PROCESSED, "c", None, {}) is False
    sent_notifications.assert_not_called()


def test_broker_error_is_swallowed(sent_notifications: MagicMock) -> None:
    sent_notifications.side_effect = ConnectionError("redis unreachable")

    assert NotificationDispatcher().verification("c", "a@example.com", "Ada", "tok") is False


@pytest.mark.asyncio
async def test_order_confirmed_payload(
    sent_notifications: MagicMock,
    customer: Customer,
    product_factory: Callable[..., Any],
    order_factory: Callable[..., Any],
) -> None:
    product = await product_factory(name="Mug", price="4.00")
    order = await order_factory(customer=customer, lines=[(product, 3)], delivery="2.00")

    assert NotificationDispatcher().order_confirmed(order) is True

    kind, client_id, recipient, data = sent_notifications.call_args.args
    assert (kind, client_id, recipient) == ("order_confirmed", "client-a", customer.email)
    assert data["items"] == [
        {"name": "Mug", "variant": None, "quantity": 3, "unit_price": "4.00"}
    ]
    assert data["total_price"] == str(order.total_price)
