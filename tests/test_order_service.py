"""Unit tests for OrderService.

Tests order creation and pricing, atomic persistence, status updates with
their notification, and payment recording (idempotence, stock decrement).
"""

from collections.abc import Callable
from decimal import Decimal
from typing import Any
from unittest.mock import MagicMock, patch
from uuid import uuid4

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from merchant.core.errors import NotFoundError, NotPersistedError, ValidationError
from merchant.models import Client, Customer, Order, OrderItem, OrderStatus, VariantKind
from merchant.schemas.order import OrderCreate, OrderStatusUpdate, PaymentNotification
from merchant.services.notification_service import NotificationDispatcher
from merchant.services.order_service import OrderService
from tests.conftest import TEST_CLIENT_ID


@pytest.fixture
def notifier() -> MagicMock:
    return MagicMock(spec=NotificationDispatcher)


@pytest.fixture
def service(db_session: AsyncSession, notifier: MagicMock) -> OrderService:
    return OrderService(db_session, notifier)


class TestCreateOrder:
    """Tests for OrderService.create_order()."""

    @pytest.mark.asyncio
    async def test_total_is_sum_of_lines_plus_delivery(
        self,
        service: OrderService,
        customer: Customer,
        product_factory: Callable[..., Any],
    ) -> None:
        """Two of A at 10 and one of B at 5 with delivery 3 costs 28."""
        product_a = await product_factory(name="A", price="10.00")
        product_b = await product_factory(name="B", price="5.00")

        order = await service.create_order(
            TEST_CLIENT_ID,
            OrderCreate.model_validate(
                {
                    "orderItems": [
                        {"product": str(product_a.id), "quantity": 2},
                        {"product": str(product_b.id), "quantity": 1},
                    ],
                    "customer": str(customer.id),
                    "delivery": "3",
                    "deliveryType": "courier",
                }
            ),
        )

        assert order.total_price == Decimal("28")
        assert order.status == OrderStatus.CREATED
        assert order.paid is False
        assert order.delivery_type == "courier"
        assert sorted(i.quantity for i in order.items) == [1, 2]
        assert order.customer is not None and order.customer.id == customer.id

    @pytest.mark.asyncio
    async def test_items_keep_checkout_order(
        self,
        service: OrderService,
        session_factory: async_sessionmaker[AsyncSession],
        customer: Customer,
        product_factory: Callable[..., Any],
    ) -> None:
        products = [await product_factory(name=name) for name in ("Zebra", "Apple", "Mango")]

        created = await service.create_order(
            TEST_CLIENT_ID,
            OrderCreate.model_validate(
                {
                    "orderItems": [{"product": str(p.id), "quantity": 1} for p in products],
                    "customer": str(customer.id),
                }
            ),
        )

        async with session_factory() as fresh:
            order = (await fresh.execute(select(Order).where(Order.id == created.id))).scalar_one()
            assert [i.position for i in order.items] == [0, 1, 2]
            assert [i.product.name for i in order.items] == ["Zebra", "Apple", "Mango"]

    @pytest.mark.asyncio
    async def test_price_comes_from_catalog(
        self,
        service: OrderService,
        customer: Customer,
        product_factory: Callable[..., Any],
    ) -> None:
        """Any client-sent price is ignored; only the stored price counts."""
        product = await product_factory(price="7.50")

        order = await service.create_order(
            TEST_CLIENT_ID,
            OrderCreate.model_validate(
                {
                    "orderItems": [{"product": str(product.id), "quantity": 2, "price": "0.01"}],
                    "customer": str(customer.id),
                }
            ),
        )

        assert order.total_price == Decimal("15.00")
        assert order.items[0].unit_price == Decimal("7.50")

    @pytest.mark.asyncio
    async def test_variant_is_recorded(
        self,
        service: OrderService,
        customer: Customer,
        product_factory: Callable[..., Any],
    ) -> None:
        product = await product_factory(variants=[(VariantKind.SIZE, "M", 4)])
        variant = product.variants[0]

        order = await service.create_order(
            TEST_CLIENT_ID,
            OrderCreate.model_validate(
                {
                    "orderItems": [
                        {"product": str(product.id), "size": str(variant.id), "quantity": 1}
                    ],
                    "customer": str(customer.id),
                }
            ),
        )

        assert order.items[0].variant_id == variant.id
        assert order.items[0].variant.value == "M"

    @pytest.mark.asyncio
    async def test_unknown_product_persists_nothing(
        self,
        db_session: AsyncSession,
        service: OrderService,
        customer: Customer,
        product_factory: Callable[..., Any],
    ) -> None:
        product = await product_factory()

        with pytest.raises(ValidationError):
            await service.create_order(
                TEST_CLIENT_ID,
                OrderCreate.model_validate(
                    {
                        "orderItems": [
                            {"product": str(product.id), "quantity": 1},
                            {"product": str(uuid4()), "quantity": 1},
                        ],
                        "customer": str(customer.id),
                    }
                ),
            )

        assert (await db_session.execute(select(func.count(Order.id)))).scalar() == 0
        assert (await db_session.execute(select(func.count(OrderItem.id)))).scalar() == 0

    @pytest.mark.asyncio
    async def test_variant_of_another_product_is_rejected(
        self,
        service: OrderService,
        customer: Customer,
        product_factory: Callable[..., Any],
    ) -> None:
        shirt = await product_factory(variants=[(VariantKind.SIZE, "L", 1)])
        mug = await product_factory(name="Mug")

        with pytest.raises(ValidationError, match="Variant"):
            await service.create_order(
                TEST_CLIENT_ID,
                OrderCreate.model_validate(
                    {
                        "orderItems": [
                            {
                                "product": str(mug.id),
                                "variant": str(shirt.variants[0].id),
                                "quantity": 1,
                            }
                        ],
                        "customer": str(customer.id),
                    }
                ),
            )

    @pytest.mark.asyncio
    async def test_unknown_customer_is_rejected(
        self, service: OrderService, product_factory: Callable[..., Any]
    ) -> None:
        product = await product_factory()
        with pytest.raises(ValidationError, match="customer"):
            await service.create_order(
                TEST_CLIENT_ID,
                OrderCreate.model_validate(
                    {
                        "orderItems": [{"product": str(product.id), "quantity": 1}],
                        "customer": str(uuid4()),
                    }
                ),
            )

    @pytest.mark.asyncio
    async def test_commit_failure_rolls_back_everything(
        self,
        db_session: AsyncSession,
        service: OrderService,
        customer: Customer,
        product_factory: Callable[..., Any],
    ) -> None:
        product = await product_factory()
        data = OrderCreate.model_validate(
            {
                "orderItems": [{"product": str(product.id), "quantity": 1}],
                "customer": str(customer.id),
            }
        )

        with (
            patch.object(
                db_session,
                "commit",
                side_effect=OperationalError("INSERT", {}, Exception("disk full")),
            ),
            pytest.raises(NotPersistedError),
        ):
            await service.create_order(TEST_CLIENT_ID, data)

        assert (await db_session.execute(select(func.count(Order.id)))).scalar() == 0
        assert (await db_session.execute(select(func.count(OrderItem.id)))).scalar() == 0


class TestUpdateStatus:
    """Tests for OrderService.update_status()."""

    @pytest.mark.asyncio
    async def test_processed_sets_tracking_and_notifies(
        self,
        service: OrderService,
        notifier: MagicMock,
        tenant: Client,
        customer: Customer,
        product_factory: Callable[..., Any],
        order_factory: Callable[..., Any],
    ) -> None:
        product = await product_factory()
        order = await order_factory(customer=customer, lines=[(product, 1)])

        updated = await service.update_status(
            TEST_CLIENT_ID,
            order.id,
            OrderStatusUpdate.model_validate(
                {
                    "status": 1,
                    "orderTrackingLink": "https://track.test/abc",
                    "orderTrackingCode": "ABC",
                }
            ),
        )

        assert updated.status == OrderStatus.PROCESSED
        assert updated.tracking_link == "https://track.test/abc"
        assert updated.tracking_code == "ABC"
        notifier.order_processed.assert_called_once()
        assert notifier.order_processed.call_args.args[0].id == order.id

    @pytest.mark.asyncio
    async def test_other_status_does_not_notify(
        self,
        service: OrderService,
        notifier: MagicMock,
        tenant: Client,
        customer: Customer,
        product_factory: Callable[..., Any],
        order_factory: Callable[..., Any],
    ) -> None:
        product = await product_factory()
        order = await order_factory(customer=customer, lines=[(product, 1)])

        await service.update_status(
            TEST_CLIENT_ID, order.id, OrderStatusUpdate(status=OrderStatus.CREATED)
        )

        notifier.order_processed.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_client_record_still_updates(
        self,
        service: OrderService,
        notifier: MagicMock,
        customer: Customer,
        product_factory: Callable[..., Any],
        order_factory: Callable[..., Any],
    ) -> None:
        product = await product_factory()
        order = await order_factory(customer=customer, lines=[(product, 1)])

        updated = await service.update_status(
            TEST_CLIENT_ID, order.id, OrderStatusUpdate(status=OrderStatus.PROCESSED)
        )

        assert updated.status == OrderStatus.PROCESSED
        notifier.order_processed.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_order(self, service: OrderService) -> None:
        with pytest.raises(NotFoundError):
            await service.update_status(
                TEST_CLIENT_ID, uuid4(), OrderStatusUpdate(status=OrderStatus.PROCESSED)
            )


class TestRecordPayment:
    """Tests for OrderService.record_payment()."""

    @pytest.mark.asyncio
    async def test_paid_decrements_stock_and_notifies(
        self,
        db_session: AsyncSession,
        service: OrderService,
        notifier: MagicMock,
        customer: Customer,
        product_factory: Callable[..., Any],
        order_factory: Callable[..., Any],
    ) -> None:
        product = await product_factory(count_in_stock=10)
        order = await order_factory(customer=customer, lines=[(product, 3)])

        paid = await service.record_payment(
            PaymentNotification(order_id=order.id, paid=True, total_price=Decimal("31.00"))
        )

        assert paid.paid is True
        assert paid.status == OrderStatus.PAID
        assert paid.total_price == Decimal("31.00")
        await db_session.refresh(product)
        assert product.count_in_stock == 7
        notifier.order_confirmed.assert_called_once()

    @pytest.mark.asyncio
    async def test_replay_does_not_decrement_twice(
        self,
        db_session: AsyncSession,
        service: OrderService,
        notifier: MagicMock,
        customer: Customer,
        product_factory: Callable[..., Any],
        order_factory: Callable[..., Any],
    ) -> None:
        product = await product_factory(count_in_stock=10)
        order = await order_factory(customer=customer, lines=[(product, 2)])
        notification = PaymentNotification(order_id=order.id, paid=True)

        await service.record_payment(notification)
        again = await service.record_payment(notification)

        assert again.paid is True
        await db_session.refresh(product)
        assert product.count_in_stock == 8
        assert notifier.order_confirmed.call_count == 1

    @pytest.mark.asyncio
    async def test_variant_quantity_is_decremented(
        self,
        db_session: AsyncSession,
        service: OrderService,
        customer: Customer,
        product_factory: Callable[..., Any],
    ) -> None:
        product = await product_factory(
            count_in_stock=5, variants=[(VariantKind.COLOR, "red", 4)]
        )
        variant = product.variants[0]
        order = await service.create_order(
            TEST_CLIENT_ID,
            OrderCreate.model_validate(
                {
                    "orderItems": [
                        {"product": str(product.id), "variant": str(variant.id), "quantity": 3}
                    ],
                    "customer": str(customer.id),
                }
            ),
        )

        await service.record_payment(PaymentNotification(order_id=order.id, paid=True))

        await db_session.refresh(product)
        await db_session.refresh(variant)
        assert product.count_in_stock == 2
        assert variant.quantity == 1

    @pytest.mark.asyncio
    async def test_stock_never_goes_negative(
        self,
        db_session: AsyncSession,
        service: OrderService,
        customer: Customer,
        product_factory: Callable[..., Any],
        order_factory: Callable[..., Any],
    ) -> None:
        product = await product_factory(count_in_stock=1)
        order = await order_factory(customer=customer, lines=[(product, 4)])

        paid = await service.record_payment(PaymentNotification(order_id=order.id, paid=True))

        assert paid.paid is True
        await db_session.refresh(product)
        assert product.count_in_stock == 0

    @pytest.mark.asyncio
    async def test_unpaid_notification_only_records_total(
        self,
        db_session: AsyncSession,
        service: OrderService,
        notifier: MagicMock,
        customer: Customer,
        product_factory: Callable[..., Any],
        order_factory: Callable[..., Any],
    ) -> None:
        product = await product_factory(count_in_stock=10)
        order = await order_factory(customer=customer, lines=[(product, 1)])

        result = await service.record_payment(
            PaymentNotification(order_id=order.id, paid=False, total_price=Decimal("12.00"))
        )

        assert result.paid is False
        assert result.total_price == Decimal("12.00")
        await db_session.refresh(product)
        assert product.count_in_stock == 10
        notifier.order_confirmed.assert_not_called()

    @pytest.mark.asyncio
    async def test_unpaid_notification_does_not_clear_payment(
        self,
        service: OrderService,
        customer: Customer,
        product_factory: Callable[..., Any],
        order_factory: Callable[..., Any],
    ) -> None:
        product = await product_factory()
        order = await order_factory(
            customer=customer, lines=[(product, 1)], status=OrderStatus.PAID, paid=True
        )

        result = await service.record_payment(
            PaymentNotification(order_id=order.id, paid=False, total_price=Decimal("1.00"))
        )

        assert result.paid is True
        assert result.total_price == Decimal("10.00")

    @pytest.mark.asyncio
    async def test_unknown_order(self, service: OrderService) -> None:
        with pytest.raises(NotFoundError):
            await service.record_payment(PaymentNotification(order_id=uuid4(), paid=True))


class TestDeleteAndAggregates:
    @pytest.mark.asyncio
    async def test_totals_and_count(
        self,
        service: OrderService,
        customer: Customer,
        product_factory: Callable[..., Any],
        order_factory: Callable[..., Any],
    ) -> None:
        product = await product_factory(price="10.00")
        await order_factory(customer=customer, lines=[(product, 1)])
        await order_factory(customer=customer, lines=[(product, 2)], delivery="5")

        assert await service.order_count(TEST_CLIENT_ID) == 2
        assert await service.total_sales(TEST_CLIENT_ID) == Decimal("35")

    @pytest.mark.asyncio
    async def test_delete_removes_items(
        self,
        db_session: AsyncSession,
        service: OrderService,
        customer: Customer,
        product_factory: Callable[..., Any],
        order_factory: Callable[..., Any],
    ) -> None:
        product = await product_factory()
        order = await order_factory(customer=customer, lines=[(product, 1)])

        await service.delete_order(TEST_CLIENT_ID, order.id)

        assert (await db_session.execute(select(func.count(OrderItem.id)))).scalar() == 0
        with pytest.raises(NotFoundError):
            await service.delete_order(TEST_CLIENT_ID, order.id)
