"""Customer model for storefront shoppers."""

from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from merchant.models.base import Base, TenantScopedMixin

if TYPE_CHECKING:
    from merchant.models.order import Order


class Customer(TenantScopedMixin, Base):
    """A shopper registered with one client's storefront.

    Email addresses are unique per client; the same person registering with
    two storefronts gets two unrelated customer records.
    """

    __tablename__ = "customers"

    first_name: Mapped[str] = mapped_column(String(255), nullable=False)
    last_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    # Address
    street: Mapped[str | None] = mapped_column(String(255), nullable=True)
    apartment: Mapped[str | None] = mapped_column(String(255), nullable=True)
    city: Mapped[str | None] = mapped_column(String(255), nullable=True)
    address: Mapped[str | None] = mapped_column(String(500), nullable=True)
    postal_code: Mapped[str | None] = mapped_column(String(50), nullable=True)

    is_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    orders: Mapped[list["Order"]] = relationship(
        "Order",
        back_populates="customer",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("ix_customers_client_email", "client_id", "email", unique=True),
    )

    def __repr__(self) -> str:
        return f"<Customer {self.email} ({self.client_id})>"
