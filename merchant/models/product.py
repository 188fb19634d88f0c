"""Product and product variant models."""

import enum
import uuid
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import JSON, Boolean, Enum, Float, ForeignKey, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from merchant.models.base import Base, TenantScopedMixin

if TYPE_CHECKING:
    from merchant.models.category import Category


class VariantKind(str, enum.Enum):
    """The option axis a variant belongs to."""

    SIZE = "size"
    COLOR = "color"
    MATERIAL = "material"
    STYLE = "style"
    TITLE = "title"


class Product(TenantScopedMixin, Base):
    """A product in one client's catalog.

    Stock is tracked twice: ``count_in_stock`` for the product as a whole and
    ``quantity`` on each variant. Payment decrements both.
    """

    __tablename__ = "products"

    name: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    rich_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    brand: Mapped[str | None] = mapped_column(String(255), nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    category_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("categories.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    count_in_stock: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    rating: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    num_reviews: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_featured: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Public URLs on the image host, in upload order
    images: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)

    # Relationships
    category: Mapped["Category | None"] = relationship("Category", lazy="selectin")
    variants: Mapped[list["ProductVariant"]] = relationship(
        "ProductVariant",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductVariant.position",
        lazy="selectin",
    )

    def variants_of(self, kind: VariantKind) -> list["ProductVariant"]:
        return [v for v in self.variants if v.kind == kind]

    def __repr__(self) -> str:
        return f"<Product {self.name} ({self.client_id})>"


class ProductVariant(Base):
    """One option of a product (e.g. size "M") with its own stock and price delta."""

    __tablename__ = "product_variants"

    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    kind: Mapped[VariantKind] = mapped_column(
        Enum(
            VariantKind,
            name="variant_kind",
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=False,
    )
    value: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    product: Mapped["Product"] = relationship("Product", back_populates="variants")

    def __repr__(self) -> str:
        return f"<ProductVariant {self.kind.value}={self.value}>"
