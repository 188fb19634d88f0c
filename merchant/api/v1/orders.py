"""Order endpoints: checkout, admin status changes, and the payment webhook."""

from uuid import UUID

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from merchant.core.config import settings
from merchant.core.deps import CurrentTenant, Orders, TenantRepo
from merchant.core.rate_limit import PAYMENT_WEBHOOK_LIMIT, limiter
from merchant.core.security import verify_signature
from merchant.schemas.common import MessageResponse
from merchant.schemas.order import (
    OrderCountResponse,
    OrderCreate,
    OrderResponse,
    OrderStatusUpdate,
    PaymentNotification,
    PaymentResponse,
    TotalSalesResponse,
)

router = APIRouter()


async def verify_payment_signature(
    request: Request,
    x_webhook_signature: str | None = Header(default=None),
) -> None:
    """Check the HMAC of the raw body when a webhook secret is configured."""
    secret = settings.payment_webhook_secret
    if not secret:
        return
    body = await request.body()
    if not x_webhook_signature or not verify_signature(body, x_webhook_signature, secret):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid webhook signature",
        )


@router.get("", response_model=list[OrderResponse])
async def list_orders(repo: TenantRepo) -> list[OrderResponse]:
    """All orders of the tenant, newest first."""
    orders = await repo.find_orders()
    return [OrderResponse.model_validate(o) for o in orders]


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order(
    data: OrderCreate,
    tenant: CurrentTenant,
    service: Orders,
) -> OrderResponse:
    """Create an order; line prices come from the catalog, not the request."""
    order = await service.create_order(tenant.client_id, data)
    return OrderResponse.model_validate(order)


@router.post(
    "/update-order-payment",
    response_model=PaymentResponse,
    dependencies=[Depends(verify_payment_signature)],
)
@limiter.limit(PAYMENT_WEBHOOK_LIMIT)
async def update_order_payment(
    request: Request,  # noqa: ARG001  (slowapi reads it)
    data: PaymentNotification,
    service: Orders,
) -> PaymentResponse:
    """Payment provider callback.

    Repeated ``paid=true`` notifications for the same order are accepted but
    have no further effect.
    """
    order = await service.record_payment(data)
    return PaymentResponse(order=OrderResponse.model_validate(order))


@router.get("/get/totalsales", response_model=TotalSalesResponse)
async def get_total_sales(tenant: CurrentTenant, service: Orders) -> TotalSalesResponse:
    return TotalSalesResponse(totalsales=await service.total_sales(tenant.client_id))


@router.get("/get/count", response_model=OrderCountResponse)
async def get_order_count(tenant: CurrentTenant, service: Orders) -> OrderCountResponse:
    return OrderCountResponse(order_count=await service.order_count(tenant.client_id))


@router.get("/get/userorders/{customer_id}", response_model=list[OrderResponse])
async def list_customer_orders(customer_id: UUID, repo: TenantRepo) -> list[OrderResponse]:
    orders = await repo.find_orders_for_customer(customer_id)
    return [OrderResponse.model_validate(o) for o in orders]


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: UUID, repo: TenantRepo) -> OrderResponse:
    order = await repo.get_order(order_id)
    if order is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
    return OrderResponse.model_validate(order)


@router.put("/{order_id}", response_model=OrderResponse)
async def update_order_status(
    order_id: UUID,
    data: OrderStatusUpdate,
    tenant: CurrentTenant,
    service: Orders,
) -> OrderResponse:
    """Set status and tracking. Moving to PROCESSED emails the customer."""
    order = await service.update_status(tenant.client_id, order_id, data)
    return OrderResponse.model_validate(order)


@router.delete("/{order_id}", response_model=MessageResponse)
async def delete_order(
    order_id: UUID,
    tenant: CurrentTenant,
    service: Orders,
) -> MessageResponse:
    await service.delete_order(tenant.client_id, order_id)
    return MessageResponse(message="The order is deleted")
