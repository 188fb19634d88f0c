"""Product, variant and category schemas."""

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from pydantic import AliasChoices, Field, field_validator

from merchant.models.product import VariantKind
from merchant.schemas.common import BaseSchema

if TYPE_CHECKING:
    from merchant.models.product import Product


class CategoryCreate(BaseSchema):
    """Schema for creating a category."""

    name: str = Field(..., min_length=1, max_length=255)
    icon: str | None = Field(default=None, max_length=255)
    color: str | None = Field(default=None, max_length=50)


class CategoryResponse(BaseSchema):
    id: UUID
    name: str
    icon: str | None
    color: str | None


class VariantInput(BaseSchema):
    """A variant after normalisation of the submitted form value."""

    value: str = ""
    price: Decimal = Decimal("0")
    quantity: int = 0


class VariantResponse(BaseSchema):
    id: UUID
    kind: VariantKind
    value: str
    price: Decimal
    quantity: int


class ProductFields(BaseSchema):
    """Scalar product fields submitted with a create or update form.

    On update every field is optional; ``None`` means "keep the stored value".
    """

    name: str | None = Field(
        default=None,
        validation_alias=AliasChoices("name", "productName"),
    )
    description: str | None = None
    rich_description: str | None = Field(
        default=None,
        validation_alias=AliasChoices("rich_description", "richDescription"),
    )
    brand: str | None = None
    price: Decimal | None = None
    category: UUID | None = Field(
        default=None,
        validation_alias=AliasChoices("category", "category_id"),
    )
    count_in_stock: int | None = Field(
        default=None,
        validation_alias=AliasChoices("count_in_stock", "countInStock"),
    )
    rating: float | None = None
    num_reviews: int | None = Field(
        default=None,
        validation_alias=AliasChoices("num_reviews", "numReviews"),
    )
    is_featured: bool | None = Field(
        default=None,
        validation_alias=AliasChoices("is_featured", "isFeatured"),
    )

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            raise ValueError("Product name is required")
        return v.strip() if v is not None else v

    @field_validator("price")
    @classmethod
    def price_positive(cls, v: Decimal | None) -> Decimal | None:
        if v is not None and v <= 0:
            raise ValueError("Price must be a positive number")
        return v

    @field_validator("count_in_stock")
    @classmethod
    def stock_non_negative(cls, v: int | None) -> int | None:
        if v is not None and v < 0:
            raise ValueError("Count in stock must be a non-negative integer")
        return v


class ProductResponse(BaseSchema):
    """Product with its variants grouped by kind."""

    id: UUID
    client_id: str
    name: str
    description: str | None
    rich_description: str | None
    brand: str | None
    price: Decimal
    category_id: UUID | None
    category: CategoryResponse | None
    count_in_stock: int
    rating: float
    num_reviews: int
    is_featured: bool
    images: list[str]
    sizes: list[VariantResponse] = []
    colors: list[VariantResponse] = []
    materials: list[VariantResponse] = []
    styles: list[VariantResponse] = []
    titles: list[VariantResponse] = []
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_product(cls, product: "Product") -> "ProductResponse":
        def _group(kind: VariantKind) -> list[VariantResponse]:
            return [VariantResponse.model_validate(v) for v in product.variants_of(kind)]

        return cls(
            id=product.id,
            client_id=product.client_id,
            name=product.name,
            description=product.description,
            rich_description=product.rich_description,
            brand=product.brand,
            price=product.price,
            category_id=product.category_id,
            category=(
                CategoryResponse.model_validate(product.category) if product.category else None
            ),
            count_in_stock=product.count_in_stock,
            rating=product.rating,
            num_reviews=product.num_reviews,
            is_featured=product.is_featured,
            images=list(product.images or []),
            sizes=_group(VariantKind.SIZE),
            colors=_group(VariantKind.COLOR),
            materials=_group(VariantKind.MATERIAL),
            styles=_group(VariantKind.STYLE),
            titles=_group(VariantKind.TITLE),
            created_at=product.created_at,
            updated_at=product.updated_at,
        )


class ProductSummary(BaseSchema):
    """Product fields embedded in order items."""

    id: UUID
    name: str
    price: Decimal
    images: list[str]
