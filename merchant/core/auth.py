"""Bearer token authentication for FastAPI routes."""

from datetime import timedelta
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, HTTPException
from fastapi.security import APIKeyHeader

from merchant.core.config import get_settings
from merchant.core.errors import ForbiddenError, UnauthorizedError
from merchant.core.logging_config import client_id_var
from merchant.core.security import CustomerContext, TenantContext, TokenAuthority

# Raw Authorization header; the "Bearer " scheme is checked by TokenAuthority
authorization_header = APIKeyHeader(
    name="Authorization",
    auto_error=False,
    description="Bearer <token>",
)


@lru_cache
def get_token_authority() -> TokenAuthority:
    """Build the token authority once from settings."""
    settings = get_settings()
    return TokenAuthority(
        secret=settings.secret_key,
        email_secret=settings.email_secret_key,
        verification_ttl=timedelta(minutes=settings.verification_token_ttl_minutes),
    )


def _to_http(exc: UnauthorizedError | ForbiddenError) -> HTTPException:
    return HTTPException(
        status_code=exc.status_code,
        detail=exc.detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_tenant(
    authorization: str | None = Depends(authorization_header),
    authority: TokenAuthority = Depends(get_token_authority),
) -> TenantContext:
    """Resolve the tenant from the Authorization header.

    Raises:
        HTTPException: 401 when the header is missing or malformed,
            403 when the token does not verify.
    """
    try:
        tenant = authority.authenticate(authorization)
    except (UnauthorizedError, ForbiddenError) as e:
        raise _to_http(e) from e
    client_id_var.set(tenant.client_id)
    return tenant


async def get_current_customer(
    authorization: str | None = Depends(authorization_header),
    authority: TokenAuthority = Depends(get_token_authority),
) -> CustomerContext:
    """Resolve tenant and customer from a customer session token."""
    try:
        customer = authority.authenticate_customer(authorization)
    except (UnauthorizedError, ForbiddenError) as e:
        raise _to_http(e) from e
    client_id_var.set(customer.client_id)
    return customer


# Type aliases for dependency injection
CurrentTenant = Annotated[TenantContext, Depends(get_current_tenant)]
CurrentCustomer = Annotated[CustomerContext, Depends(get_current_customer)]
Authority = Annotated[TokenAuthority, Depends(get_token_authority)]
