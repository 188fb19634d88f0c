"""API v1 router combining all route modules."""

from typing import Any

from fastapi import APIRouter

from merchant.api.v1 import categories, customers, health, orders, products
from merchant.schemas.common import ErrorResponse

# Documented error shape for every tenant-scoped resource
TENANT_ERRORS: dict[int | str, dict[str, Any]] = {
    400: {"model": ErrorResponse, "description": "Invalid input"},
    401: {"model": ErrorResponse, "description": "Missing or malformed bearer token"},
    403: {"model": ErrorResponse, "description": "Token rejected"},
    404: {"model": ErrorResponse, "description": "Not found for this tenant"},
}

api_router = APIRouter()

# Include health check routes (no prefix)
api_router.include_router(health.router)

# Orders (tenant token; the payment webhook is verified by signature instead)
api_router.include_router(
    orders.router,
    prefix="/orders",
    tags=["orders"],
    responses=TENANT_ERRORS,
)

# Customer accounts
api_router.include_router(
    customers.router,
    prefix="/customers",
    tags=["customers"],
    responses=TENANT_ERRORS,
)

# Catalog
api_router.include_router(
    categories.router,
    prefix="/categories",
    tags=["categories"],
    responses=TENANT_ERRORS,
)
api_router.include_router(
    products.router,
    prefix="/products",
    tags=["products"],
    responses={**TENANT_ERRORS, 502: {"model": ErrorResponse, "description": "Image host failed"}},
)
