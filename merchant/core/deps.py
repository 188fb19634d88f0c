"""Dependency injection for FastAPI routes."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

# Re-export auth dependencies for convenience
from merchant.core.auth import (
    Authority,
    CurrentCustomer,
    CurrentTenant,
    get_current_customer,
    get_current_tenant,
    get_token_authority,
)
from merchant.core.database import get_async_session
from merchant.core.security import TenantContext, TokenAuthority
from merchant.integrations.blob_storage import GitHubImageStore, get_image_store
from merchant.services.catalog_service import CatalogService
from merchant.services.customer_service import CustomerService
from merchant.services.notification_service import (
    NotificationDispatcher,
    get_notification_dispatcher,
)
from merchant.services.order_service import OrderService
from merchant.services.repository import TenantRepository


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Alias for get_async_session so tests can override a single dependency."""
    async for session in get_async_session():
        yield session


# Database session dependency
DBSession = Annotated[AsyncSession, Depends(get_db)]
Notifier = Annotated[NotificationDispatcher, Depends(get_notification_dispatcher)]


def get_tenant_repository(tenant: CurrentTenant, db: DBSession) -> TenantRepository:
    """Repository bound to the caller's tenant."""
    return TenantRepository(db, tenant.client_id)


def get_order_service(db: DBSession, notifier: Notifier) -> OrderService:
    return OrderService(db, notifier)


def get_customer_service(
    db: DBSession,
    notifier: Notifier,
    authority: TokenAuthority = Depends(get_token_authority),
) -> CustomerService:
    return CustomerService(db, authority, notifier)


def get_catalog_service(
    db: DBSession,
    image_store: GitHubImageStore = Depends(get_image_store),
) -> CatalogService:
    return CatalogService(db, image_store)


TenantRepo = Annotated[TenantRepository, Depends(get_tenant_repository)]
Orders = Annotated[OrderService, Depends(get_order_service)]
Customers = Annotated[CustomerService, Depends(get_customer_service)]
Catalog = Annotated[CatalogService, Depends(get_catalog_service)]


__all__ = [
    "Authority",
    "Catalog",
    "CurrentCustomer",
    "CurrentTenant",
    "Customers",
    "DBSession",
    "Notifier",
    "Orders",
    "TenantContext",
    "TenantRepo",
    "get_catalog_service",
    "get_current_customer",
    "get_current_tenant",
    "get_customer_service",
    "get_db",
    "get_order_service",
    "get_tenant_repository",
]
