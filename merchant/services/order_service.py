"""Order lifecycle: checkout, status changes, and payment."""

import logging
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from merchant.core.errors import NotFoundError, NotPersistedError, ValidationError
from merchant.models.order import Order, OrderItem, OrderStatus
from merchant.models.product import Product, ProductVariant
from merchant.schemas.order import OrderCreate, OrderStatusUpdate, PaymentNotification
from merchant.services.notification_service import NotificationDispatcher
from merchant.services.repository import TenantRepository

logger = logging.getLogger(__name__)


class OrderService:
    """Business rules for orders of one database session.

    Lifecycle is ``CREATED -> PROCESSED -> PAID``; transitions happen only on
    an admin status update or the payment webhook.
    """

    def __init__(
        self,
        db: AsyncSession,
        notifier: NotificationDispatcher | None = None,
    ) -> None:
        self.db = db
        self.notifier = notifier or NotificationDispatcher()

    async def create_order(self, client_id: str, data: OrderCreate) -> Order:
        """Price the requested lines and persist items and order together.

        Each line is priced from the product's current price; the total is
        the sum of ``price * quantity`` plus the delivery price.

        Raises:
            ValidationError: customer, product or variant not in this tenant.
            NotPersistedError: the transaction did not commit. Nothing is
                left behind in that case.
        """
        repo = TenantRepository(self.db, client_id)

        customer = await repo.get_customer(data.customer)
        if customer is None:
            raise ValidationError("Invalid customer")

        items: list[OrderItem] = []
        subtotal = Decimal("0")
        for position, line in enumerate(data.order_items):
            product = await repo.get_product(line.product)
            if product is None:
                raise ValidationError(f"Product {line.product} not found")

            variant_id = None
            if line.variant is not None:
                variant = await repo.get_variant(product.id, line.variant)
                if variant is None:
                    raise ValidationError(
                        f"Variant {line.variant} not found for product {product.id}"
                    )
                variant_id = variant.id

            items.append(
                OrderItem(
                    product_id=product.id,
                    variant_id=variant_id,
                    quantity=line.quantity,
                    unit_price=product.price,
                    position=position,
                )
            )
            subtotal += product.price * line.quantity

        order = Order(
            client_id=client_id,
            customer_id=customer.id,
            items=items,
            address=data.address,
            postal_code=data.postal_code,
            phone=data.phone,
            delivery_type=data.delivery_type,
            delivery_price=data.delivery,
            total_price=subtotal + data.delivery,
            status=int(data.status),
            paid=False,
        )
        self.db.add(order)

        # Items and order share one transaction: all rows or none
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.exception("Failed to persist order for client %s", client_id)
            raise NotPersistedError("The order cannot be created") from e

        logger.info(
            "Order %s created: client=%s items=%d total=%s",
            order.id,
            client_id,
            len(items),
            order.total_price,
        )
        return await self._reload(repo, order.id)

    async def update_status(
        self,
        client_id: str,
        order_id: UUID,
        data: OrderStatusUpdate,
    ) -> Order:
        """Change status and tracking; email the customer when processed.

        A missing client record only skips the email.

        Raises:
            NotFoundError: no such order for this tenant.
        """
        repo = TenantRepository(self.db, client_id)
        order = await repo.get_order(order_id)
        if order is None:
            raise NotFoundError("Order not found")

        order.status = int(data.status)
        if data.tracking_link is not None:
            order.tracking_link = data.tracking_link
        if data.tracking_code is not None:
            order.tracking_code = data.tracking_code

        await self._commit(f"update order {order_id}")
        order = await self._reload(repo, order_id)

        if data.status == OrderStatus.PROCESSED:
            client = await repo.get_client()
            if client is None:
                logger.error("Client %s not found, processed email not sent", client_id)
            else:
                self.notifier.order_processed(order)

        return order

    async def record_payment(self, data: PaymentNotification) -> Order:
        """Apply a payment notification.

        Only the first ``paid=true`` notification for an order takes effect:
        the flag flips with a conditional update, so replays (or concurrent
        deliveries) do not decrement stock a second time. Short stock is
        floored at zero rather than refusing a payment that already happened.

        Raises:
            NotFoundError: no such order.
        """
        stmt = (
            select(Order)
            .where(Order.id == data.order_id)
            .execution_options(populate_existing=True)
        )
        order = (await self.db.execute(stmt)).scalar_one_or_none()
        if order is None:
            raise NotFoundError("Order not found")

        if not data.paid:
            if data.total_price is not None and not order.paid:
                order.total_price = data.total_price
                await self._commit(f"record total for order {order.id}")
            return order

        order_id, client_id, items = order.id, order.client_id, list(order.items)

        values: dict[str, object] = {"paid": True, "status": int(OrderStatus.PAID)}
        if data.total_price is not None:
            values["total_price"] = data.total_price

        mark_paid = (
            update(Order)
            .where(Order.id == order_id, Order.paid.is_(False))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(mark_paid)
        if result.rowcount == 0:
            await self.db.rollback()
            logger.info("Order %s already paid, ignoring repeated notification", order_id)
            return await self._reload_any(order_id)

        for item in items:
            await self._decrement_stock(client_id, item)

        await self._commit(f"record payment for order {order_id}")
        order = await self._reload_any(order_id)
        logger.info("Order %s paid: total=%s", order.id, order.total_price)

        self.notifier.order_confirmed(order)
        return order

    async def delete_order(self, client_id: str, order_id: UUID) -> None:
        repo = TenantRepository(self.db, client_id)
        if not await repo.delete_order(order_id):
            raise NotFoundError("Order not found")
        logger.info("Order %s deleted by client %s", order_id, client_id)

    async def total_sales(self, client_id: str) -> Decimal:
        return await TenantRepository(self.db, client_id).sum_order_totals()

    async def order_count(self, client_id: str) -> int:
        return await TenantRepository(self.db, client_id).count_orders()

    async def _decrement_stock(self, client_id: str, item: OrderItem) -> None:
        """Subtract the item's quantity in SQL, never read-modify-write.

        Stock never goes below zero: when less than the ordered quantity is
        left, it is set to zero and the oversell is logged.
        """
        if item.product_id is None:
            logger.warning("Order item %s has no product, stock unchanged", item.id)
            return

        product_scope = (Product.id == item.product_id, Product.client_id == client_id)
        stmt = (
            update(Product)
            .where(*product_scope, Product.count_in_stock >= item.quantity)
            .values(count_in_stock=Product.count_in_stock - item.quantity)
            .returning(Product.id)
            .execution_options(synchronize_session=False)
        )
        if (await self.db.execute(stmt)).scalar_one_or_none() is None:
            floor = (
                update(Product)
                .where(*product_scope)
                .values(count_in_stock=0)
                .returning(Product.id)
                .execution_options(synchronize_session=False)
            )
            if (await self.db.execute(floor)).scalar_one_or_none() is None:
                logger.warning("Product %s no longer exists, stock unchanged", item.product_id)
                return
            logger.warning(
                "Product %s oversold by order item %s: stock set to 0",
                item.product_id,
                item.id,
            )

        if item.variant_id is None:
            return

        variant_scope = (
            ProductVariant.id == item.variant_id,
            ProductVariant.product_id == item.product_id,
        )
        stmt = (
            update(ProductVariant)
            .where(*variant_scope, ProductVariant.quantity >= item.quantity)
            .values(quantity=ProductVariant.quantity - item.quantity)
            .returning(ProductVariant.id)
            .execution_options(synchronize_session=False)
        )
        if (await self.db.execute(stmt)).scalar_one_or_none() is None:
            floor = (
                update(ProductVariant)
                .where(*variant_scope)
                .values(quantity=0)
                .returning(ProductVariant.id)
                .execution_options(synchronize_session=False)
            )
            if (await self.db.execute(floor)).scalar_one_or_none() is not None:
                logger.warning(
                    "Variant %s oversold by order item %s: quantity set to 0",
                    item.variant_id,
                    item.id,
                )

    async def _commit(self, action: str) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.exception("Failed to %s", action)
            raise NotPersistedError(f"Failed to {action}") from e

    async def _reload(self, repo: TenantRepository, order_id: UUID) -> Order:
        order = await repo.get_order(order_id)
        if order is None:
            raise NotPersistedError("Order disappeared after write")
        return order

    async def _reload_any(self, order_id: UUID) -> Order:
        stmt = (
            select(Order)
            .where(Order.id == order_id)
            .execution_options(populate_existing=True)
        )
        return (await self.db.execute(stmt)).scalar_one()
