"""Product category endpoints."""

from fastapi import APIRouter, status

from merchant.core.deps import Catalog, CurrentTenant, TenantRepo
from merchant.schemas.product import CategoryCreate, CategoryResponse

router = APIRouter()


@router.get("", response_model=list[CategoryResponse])
async def list_categories(repo: TenantRepo) -> list[CategoryResponse]:
    categories = await repo.list_categories()
    return [CategoryResponse.model_validate(c) for c in categories]


@router.post("", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
async def create_category(
    data: CategoryCreate,
    tenant: CurrentTenant,
    service: Catalog,
) -> CategoryResponse:
    category = await service.create_category(tenant.client_id, data)
    return CategoryResponse.model_validate(category)
