"""Customer account endpoints."""

from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, Request, status

from merchant.core.deps import CurrentCustomer, CurrentTenant, Customers, TenantRepo
from merchant.core.rate_limit import LOGIN_LIMIT, REGISTRATION_LIMIT, limiter
from merchant.schemas.common import MessageResponse
from merchant.schemas.customer import (
    CustomerCountResponse,
    CustomerCreate,
    CustomerLogin,
    CustomerRegistration,
    CustomerResponse,
    CustomerUpdate,
    TokenResponse,
)

router = APIRouter()


@router.get("", response_model=list[CustomerResponse])
async def list_customers(repo: TenantRepo) -> list[CustomerResponse]:
    customers = await repo.list_customers()
    return [CustomerResponse.model_validate(c) for c in customers]


@router.post("", response_model=CustomerResponse, status_code=status.HTTP_201_CREATED)
async def create_customer(
    data: CustomerCreate,
    tenant: CurrentTenant,
    service: Customers,
) -> CustomerResponse:
    """Create a customer with a full profile (admin side)."""
    customer = await service.register(tenant.client_id, data)
    return CustomerResponse.model_validate(customer)


@router.post(
    "/registration",
    response_model=CustomerResponse,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit(REGISTRATION_LIMIT)
async def register_customer(
    request: Request,  # noqa: ARG001  (slowapi reads it)
    data: CustomerRegistration,
    tenant: CurrentTenant,
    service: Customers,
) -> CustomerResponse:
    """Storefront sign-up. A verification email is queued."""
    customer = await service.register(tenant.client_id, data)
    return CustomerResponse.model_validate(customer)


@router.post("/login", response_model=TokenResponse)
@limiter.limit(LOGIN_LIMIT)
async def login(
    request: Request,  # noqa: ARG001  (slowapi reads it)
    data: CustomerLogin,
    tenant: CurrentTenant,
    service: Customers,
) -> TokenResponse:
    token = await service.login(tenant.client_id, data)
    return TokenResponse(token=token)


@router.get("/verify", response_model=MessageResponse)
async def verify_email(
    service: Customers,
    token: str = Query(..., min_length=1),
) -> MessageResponse:
    """Confirm an email address from the link in the verification email."""
    await service.verify_email(token)
    return MessageResponse(message="Email verified")


@router.get("/get/count", response_model=CustomerCountResponse)
async def get_customer_count(repo: TenantRepo) -> CustomerCountResponse:
    return CustomerCountResponse(customer_count=await repo.count_customers())


@router.get("/me", response_model=CustomerResponse)
async def get_me(caller: CurrentCustomer, service: Customers) -> CustomerResponse:
    """Profile of the customer holding the session token."""
    try:
        customer_id = UUID(caller.customer_id)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid customer token",
        ) from e
    customer = await service.get(caller.client_id, customer_id)
    return CustomerResponse.model_validate(customer)


@router.get("/{customer_id}", response_model=CustomerResponse)
async def get_customer(
    customer_id: UUID,
    tenant: CurrentTenant,
    service: Customers,
) -> CustomerResponse:
    customer = await service.get(tenant.client_id, customer_id)
    return CustomerResponse.model_validate(customer)


@router.put("/{customer_id}", response_model=CustomerResponse)
async def update_customer(
    customer_id: UUID,
    data: CustomerUpdate,
    tenant: CurrentTenant,
    service: Customers,
) -> CustomerResponse:
    customer = await service.update(tenant.client_id, customer_id, data)
    return CustomerResponse.model_validate(customer)


@router.delete("/{customer_id}", response_model=MessageResponse)
async def delete_customer(
    customer_id: UUID,
    tenant: CurrentTenant,
    service: Customers,
) -> MessageResponse:
    await service.delete(tenant.client_id, customer_id)
    return MessageResponse(message="The customer is deleted")
