"""Order and order item models."""

import enum
import uuid
from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from merchant.models.base import Base, TenantScopedMixin

if TYPE_CHECKING:
    from merchant.models.customer import Customer
    from merchant.models.product import Product, ProductVariant


class OrderStatus(enum.IntEnum):
    """Order lifecycle. Stored as an integer; storefront clients send the number."""

    CREATED = 0
    PROCESSED = 1
    PAID = 2


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Order(TenantScopedMixin, Base):
    """A checkout placed by a customer of one client.

    ``total_price`` is computed at creation from the products' prices at that
    moment plus ``delivery_price``; the payment webhook may overwrite it with
    the amount actually charged.
    """

    __tablename__ = "orders"

    customer_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("customers.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # Shipping
    address: Mapped[str | None] = mapped_column(String(500), nullable=True)
    postal_code: Mapped[str | None] = mapped_column(String(50), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    delivery_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    delivery_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0, nullable=False)

    total_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    status: Mapped[int] = mapped_column(
        Integer,
        default=OrderStatus.CREATED,
        nullable=False,
    )
    paid: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Carrier tracking, set when the order is processed
    tracking_link: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    tracking_code: Mapped[str | None] = mapped_column(String(255), nullable=True)

    date_ordered: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        nullable=False,
        index=True,
    )

    # Relationships
    customer: Mapped["Customer | None"] = relationship(
        "Customer",
        back_populates="orders",
        lazy="selectin",
    )
    items: Mapped[list["OrderItem"]] = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.position",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Order {self.id} ({OrderStatus(self.status).name})>"


class OrderItem(Base):
    """One line of an order."""

    __tablename__ = "order_items"

    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    product_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("products.id", ondelete="SET NULL"),
        nullable=True,
    )
    variant_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("product_variants.id", ondelete="SET NULL"),
        nullable=True,
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    # Line order as submitted at checkout
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Relationships
    order: Mapped["Order"] = relationship("Order", back_populates="items")
    product: Mapped["Product | None"] = relationship("Product", lazy="selectin")
    variant: Mapped["ProductVariant | None"] = relationship("ProductVariant", lazy="selectin")

    @property
    def subtotal(self) -> Decimal:
        return self.unit_price * self.quantity

    def __repr__(self) -> str:
        return f"<OrderItem {self.product_id} x{self.quantity}>"
