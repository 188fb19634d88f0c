"""Product catalog writes: validation, variants, and image uploads."""

import asyncio
import json
import logging
import time
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any
from uuid import UUID, uuid4

import pydantic
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from merchant.core.errors import NotFoundError, NotPersistedError, ValidationError
from merchant.integrations.blob_storage import GitHubImageStore
from merchant.models.category import Category
from merchant.models.product import Product, ProductVariant, VariantKind
from merchant.schemas.product import CategoryCreate, ProductFields, VariantInput
from merchant.services.repository import TenantRepository

logger = logging.getLogger(__name__)

MAX_IMAGE_BYTES = 5 * 1024 * 1024  # 5 MB
MAX_IMAGES_PER_REQUEST = 5

FILE_TYPE_MAP = {
    "image/png": "png",
    "image/jpeg": "jpeg",
    "image/jpg": "jpg",
}


@dataclass(frozen=True)
class ImageFile:
    """An uploaded image read into memory."""

    filename: str
    content_type: str | None
    content: bytes


def parse_variants(raw: Any) -> list[VariantInput]:
    """Normalise a submitted variant list to ``{value, price, quantity}`` records.

    Accepts a JSON string, a single object, or a list of objects. Anything
    that cannot be read as such yields an empty list so the product write
    still goes through.
    """
    if raw is None or raw == "":
        return []
    if isinstance(raw, str | bytes):
        try:
            raw = json.loads(raw)
        except ValueError:
            logger.warning("Failed to parse variant data as JSON: %.100r", raw)
            return []
    if isinstance(raw, dict):
        raw = [raw]
    if not isinstance(raw, list):
        logger.warning("Ignoring variant data of type %s", type(raw).__name__)
        return []

    variants = []
    for entry in raw:
        if not isinstance(entry, dict):
            logger.warning("Ignoring malformed variant list entry: %.100r", entry)
            return []
        value = entry.get("value")
        variants.append(
            VariantInput(
                value=value.strip() if isinstance(value, str) else "",
                price=_to_decimal(entry.get("price")),
                quantity=_to_int(entry.get("quantity")),
            )
        )
    return variants


def _to_decimal(value: Any) -> Decimal:
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return Decimal("0")
    return result if result.is_finite() else Decimal("0")


def _to_int(value: Any) -> int:
    try:
        return int(float(str(value)))
    except (TypeError, ValueError, OverflowError):
        return 0


def _validation_message(exc: pydantic.ValidationError) -> str:
    messages = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"])
        messages.append(f"{field}: {error['msg'].removeprefix('Value error, ')}")
    return "; ".join(messages)


class CatalogService:
    """Creates and updates products and categories for one tenant at a time."""

    def __init__(self, db: AsyncSession, image_store: GitHubImageStore) -> None:
        self.db = db
        self.image_store = image_store

    async def create_category(self, client_id: str, data: CategoryCreate) -> Category:
        category = Category(client_id=client_id, **data.model_dump())
        self.db.add(category)
        await self._commit("create category")
        await self.db.refresh(category)
        return category

    async def create_product(
        self,
        client_id: str,
        raw_fields: dict[str, Any],
        variants: dict[VariantKind, Any],
        images: list[ImageFile],
    ) -> Product:
        """Validate and persist a new product.

        Raises:
            ValidationError: missing/invalid fields, unknown category, no
                images, or an image of the wrong type or size.
            UpstreamError: the image host failed.
        """
        fields = self._validate_fields(raw_fields)
        missing = [
            name
            for name in ("name", "price", "category", "count_in_stock")
            if getattr(fields, name) is None
        ]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")
        if not images:
            raise ValidationError("No images in the request")

        repo = TenantRepository(self.db, client_id)
        category = await self._require_category(repo, fields.category)
        image_urls = await self._upload_images(images)

        product = Product(
            client_id=client_id,
            name=fields.name,
            description=fields.description,
            rich_description=fields.rich_description,
            brand=fields.brand,
            price=fields.price,
            category_id=category.id,
            count_in_stock=fields.count_in_stock,
            rating=fields.rating or 0,
            num_reviews=fields.num_reviews or 0,
            is_featured=bool(fields.is_featured),
            images=image_urls,
            variants=[],
        )
        for kind in VariantKind:
            product.variants.extend(self._build_variants(kind, variants.get(kind)))

        self.db.add(product)
        await self._commit("create product")
        logger.info("Product %s created for client %s", product.id, client_id)
        return await self._reload(repo, product.id)

    async def update_product(
        self,
        client_id: str,
        product_id: UUID,
        raw_fields: dict[str, Any],
        variants: dict[VariantKind, Any],
        images: list[ImageFile],
    ) -> Product:
        """Apply a partial update; new images are appended to existing ones.

        A variant kind present in ``variants`` replaces that kind's variants;
        kinds that are absent are left as stored.
        """
        fields = self._validate_fields(raw_fields)
        repo = TenantRepository(self.db, client_id)

        product = await repo.get_product(product_id)
        if product is None:
            raise NotFoundError("Product not found")

        if fields.category is not None:
            category = await self._require_category(repo, fields.category)
            product.category_id = category.id

        for name in (
            "name",
            "description",
            "rich_description",
            "brand",
            "price",
            "count_in_stock",
            "rating",
            "num_reviews",
            "is_featured",
        ):
            value = getattr(fields, name)
            if value is not None:
                setattr(product, name, value)

        if images:
            new_urls = await self._upload_images(images)
            product.images = [*(product.images or []), *new_urls]

        for kind, raw in variants.items():
            if raw is None:
                continue
            kept = [v for v in product.variants if v.kind != kind]
            product.variants = kept + self._build_variants(kind, raw)

        await self._commit(f"update product {product_id}")
        return await self._reload(repo, product_id)

    async def delete_product(self, client_id: str, product_id: UUID) -> None:
        if not await TenantRepository(self.db, client_id).delete_product(product_id):
            raise NotFoundError("Product not found")
        logger.info("Product %s deleted by client %s", product_id, client_id)

    @staticmethod
    def _validate_fields(raw_fields: dict[str, Any]) -> ProductFields:
        try:
            return ProductFields.model_validate(raw_fields)
        except pydantic.ValidationError as e:
            raise ValidationError(_validation_message(e)) from e

    @staticmethod
    async def _require_category(repo: TenantRepository, category_id: UUID | None) -> Category:
        category = await repo.get_category(category_id) if category_id else None
        if category is None:
            raise ValidationError("Invalid category ID")
        return category

    @staticmethod
    def _build_variants(kind: VariantKind, raw: Any) -> list[ProductVariant]:
        return [
            ProductVariant(
                kind=kind,
                value=v.value,
                price=v.price,
                quantity=v.quantity,
                position=position,
            )
            for position, v in enumerate(parse_variants(raw))
        ]

    async def _upload_images(self, images: list[ImageFile]) -> list[str]:
        """Check every image first, then upload them concurrently."""
        if len(images) > MAX_IMAGES_PER_REQUEST:
            raise ValidationError(f"At most {MAX_IMAGES_PER_REQUEST} images per request")

        names = []
        stamp = int(time.time() * 1000)
        for image in images:
            extension = FILE_TYPE_MAP.get(image.content_type or "")
            if extension is None:
                raise ValidationError("Invalid file type: only PNG and JPEG images are accepted")
            if len(image.content) > MAX_IMAGE_BYTES:
                raise ValidationError("File size exceeds 5 MB limit")
            base = (image.filename or "image").rsplit(".", 1)[0]
            # Suffix keeps same-named files of one request on separate paths
            names.append(f"{'-'.join(base.split())}-{stamp}-{uuid4().hex[:8]}.{extension}")

        return list(
            await asyncio.gather(
                *(
                    self.image_store.upload(image.content, name)
                    for image, name in zip(images, names, strict=True)
                )
            )
        )

    async def _commit(self, action: str) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.exception("Failed to %s", action)
            raise NotPersistedError(f"Failed to {action}") from e

    @staticmethod
    async def _reload(repo: TenantRepository, product_id: UUID) -> Product:
        product = await repo.get_product(product_id)
        if product is None:
            raise NotPersistedError("Product disappeared after write")
        return product
