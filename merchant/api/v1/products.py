"""Product catalog endpoints.

Writes are multipart forms: scalar fields, variant lists as JSON strings
under ``sizes``/``colors``/``materials``/``styles``/``titles``, and up to five
files under ``images``.
"""

from typing import Any
from uuid import UUID

from fastapi import APIRouter, HTTPException, Path, Request, status
from starlette.datastructures import FormData, UploadFile

from merchant.core.deps import Catalog, CurrentTenant, TenantRepo
from merchant.core.errors import ValidationError
from merchant.models.product import VariantKind
from merchant.schemas.common import MessageResponse
from merchant.schemas.product import ProductResponse
from merchant.services.catalog_service import MAX_IMAGE_BYTES, ImageFile

router = APIRouter()

VARIANT_FIELDS = {f"{kind.value}s": kind for kind in VariantKind}
IMAGE_FIELD = "images"


async def _read_product_form(
    request: Request,
) -> tuple[dict[str, Any], dict[VariantKind, Any], list[ImageFile]]:
    """Split a product form into scalar fields, variant lists and images."""
    form: FormData = await request.form()

    fields: dict[str, Any] = {}
    variants: dict[VariantKind, Any] = {}
    for key, value in form.multi_items():
        if key == IMAGE_FIELD or isinstance(value, UploadFile):
            continue
        if key in VARIANT_FIELDS:
            variants[VARIANT_FIELDS[key]] = value
        elif value != "":
            fields[key] = value

    images = []
    for upload in form.getlist(IMAGE_FIELD):
        if not isinstance(upload, UploadFile):
            continue
        # Multipart parsing already spooled the file; refuse before reading it in
        if upload.size is not None and upload.size > MAX_IMAGE_BYTES:
            raise ValidationError("File size exceeds 5 MB limit")
        images.append(
            ImageFile(
                filename=upload.filename or "image",
                content_type=upload.content_type,
                content=await upload.read(),
            )
        )
    return fields, variants, images


@router.get("", response_model=list[ProductResponse])
async def list_products(repo: TenantRepo) -> list[ProductResponse]:
    products = await repo.list_products()
    return [ProductResponse.from_product(p) for p in products]


@router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(
    request: Request,
    tenant: CurrentTenant,
    service: Catalog,
) -> ProductResponse:
    """Create a product. At least one image is required."""
    fields, variants, images = await _read_product_form(request)
    product = await service.create_product(tenant.client_id, fields, variants, images)
    return ProductResponse.from_product(product)


@router.get("/get/featured/{count}", response_model=list[ProductResponse])
async def list_featured_products(
    repo: TenantRepo,
    count: int = Path(..., ge=0),
) -> list[ProductResponse]:
    """Featured products, newest first. A count of 0 returns all of them."""
    products = await repo.list_featured_products(count)
    return [ProductResponse.from_product(p) for p in products]


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(product_id: UUID, repo: TenantRepo) -> ProductResponse:
    product = await repo.get_product(product_id)
    if product is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")
    return ProductResponse.from_product(product)


@router.put("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: UUID,
    request: Request,
    tenant: CurrentTenant,
    service: Catalog,
) -> ProductResponse:
    """Partial update. Uploaded images are appended to the existing ones."""
    fields, variants, images = await _read_product_form(request)
    product = await service.update_product(
        tenant.client_id, product_id, fields, variants, images
    )
    return ProductResponse.from_product(product)


@router.delete("/{product_id}", response_model=MessageResponse)
async def delete_product(
    product_id: UUID,
    tenant: CurrentTenant,
    service: Catalog,
) -> MessageResponse:
    await service.delete_product(tenant.client_id, product_id)
    return MessageResponse(message="The product is deleted")
