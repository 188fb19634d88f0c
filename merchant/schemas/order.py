"""Order request and response schemas.

Request models accept the camelCase keys sent by existing storefronts
(``orderItems``, ``deliveryType``, ``orderTrackingLink``, ``orderId``, ...).
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import AliasChoices, Field

from merchant.models.order import OrderStatus
from merchant.schemas.common import BaseSchema
from merchant.schemas.customer import CustomerSummary
from merchant.schemas.product import ProductSummary, VariantResponse


class OrderItemCreate(BaseSchema):
    """A requested line: product, optional variant, quantity."""

    product: UUID = Field(..., validation_alias=AliasChoices("product", "product_id"))
    variant: UUID | None = Field(
        default=None,
        validation_alias=AliasChoices("variant", "variant_id", "size"),
    )
    quantity: int = Field(..., ge=1)


class OrderCreate(BaseSchema):
    """Checkout payload."""

    order_items: list[OrderItemCreate] = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("order_items", "orderItems"),
    )
    customer: UUID = Field(..., validation_alias=AliasChoices("customer", "customer_id"))
    delivery: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        validation_alias=AliasChoices("delivery", "delivery_price"),
    )
    delivery_type: str | None = Field(
        default=None,
        max_length=100,
        validation_alias=AliasChoices("delivery_type", "deliveryType"),
    )
    address: str | None = Field(default=None, max_length=500)
    postal_code: str | None = Field(
        default=None,
        max_length=50,
        validation_alias=AliasChoices("postal_code", "postalCode"),
    )
    phone: str | None = Field(default=None, max_length=50)
    status: OrderStatus = OrderStatus.CREATED


class OrderStatusUpdate(BaseSchema):
    """Admin status change with optional carrier tracking."""

    status: OrderStatus
    tracking_link: str | None = Field(
        default=None,
        max_length=1000,
        validation_alias=AliasChoices("tracking_link", "orderTrackingLink"),
    )
    tracking_code: str | None = Field(
        default=None,
        max_length=255,
        validation_alias=AliasChoices("tracking_code", "orderTrackingCode"),
    )


class PaymentNotification(BaseSchema):
    """Payment webhook body."""

    order_id: UUID = Field(..., validation_alias=AliasChoices("order_id", "orderId"))
    paid: bool
    total_price: Decimal | None = Field(
        default=None,
        ge=0,
        validation_alias=AliasChoices("total_price", "totalPrice"),
    )


class OrderItemResponse(BaseSchema):
    id: UUID
    product_id: UUID | None
    variant_id: UUID | None
    quantity: int
    unit_price: Decimal
    product: ProductSummary | None = None
    variant: VariantResponse | None = None


class OrderResponse(BaseSchema):
    """Order with customer and items populated."""

    id: UUID
    client_id: str
    customer_id: UUID | None
    customer: CustomerSummary | None = None
    items: list[OrderItemResponse]
    address: str | None
    postal_code: str | None
    phone: str | None
    delivery_type: str | None
    delivery_price: Decimal
    total_price: Decimal
    status: int
    paid: bool
    tracking_link: str | None
    tracking_code: str | None
    date_ordered: datetime


class PaymentResponse(BaseSchema):
    success: bool = True
    order: OrderResponse


class TotalSalesResponse(BaseSchema):
    totalsales: Decimal


class OrderCountResponse(BaseSchema):
    order_count: int
