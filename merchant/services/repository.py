"""Tenant-scoped data access.

Primary keys are not tenant-prefixed, so a lookup by id alone would happily
return another client's record. Every query issued here filters on the
repository's ``client_id``; callers never pass the tenant per call and so
cannot forget it.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from merchant.models.category import Category
from merchant.models.client import Client
from merchant.models.customer import Customer
from merchant.models.order import Order
from merchant.models.product import Product, ProductVariant


class TenantRepository:
    """Reads and deletes for one client's customers, orders and catalog."""

    def __init__(self, db: AsyncSession, client_id: str) -> None:
        if not client_id:
            raise ValueError("client_id is required")
        self.db = db
        self.client_id = client_id

    # -- client ------------------------------------------------------------

    async def get_client(self) -> Client | None:
        """Load the tenant's own account record."""
        stmt = select(Client).where(Client.client_id == self.client_id)
        return (await self.db.execute(stmt)).scalar_one_or_none()

    # -- orders ------------------------------------------------------------

    async def find_orders(self) -> list[Order]:
        """All orders of the tenant, newest first."""
        stmt = (
            select(Order)
            .where(Order.client_id == self.client_id)
            .order_by(Order.date_ordered.desc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def find_orders_for_customer(self, customer_id: UUID) -> list[Order]:
        stmt = (
            select(Order)
            .where(
                Order.client_id == self.client_id,
                Order.customer_id == customer_id,
            )
            .order_by(Order.date_ordered.desc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_order(self, order_id: UUID) -> Order | None:
        stmt = (
            select(Order)
            .where(Order.id == order_id, Order.client_id == self.client_id)
            .execution_options(populate_existing=True)
        )
        return (await self.db.execute(stmt)).scalar_one_or_none()

    async def delete_order(self, order_id: UUID) -> bool:
        """Delete an order of this tenant. Returns False if there was none."""
        order = await self.get_order(order_id)
        if order is None:
            return False
        await self.db.delete(order)
        await self.db.commit()
        return True

    async def count_orders(self) -> int:
        stmt = select(func.count()).select_from(Order).where(Order.client_id == self.client_id)
        return (await self.db.execute(stmt)).scalar() or 0

    async def sum_order_totals(self) -> Decimal:
        """Sum of ``total_price`` over the tenant's orders; zero when there are none."""
        stmt = select(func.coalesce(func.sum(Order.total_price), 0)).where(
            Order.client_id == self.client_id
        )
        total = (await self.db.execute(stmt)).scalar()
        return Decimal(str(total or 0))

    # -- customers ---------------------------------------------------------

    async def list_customers(self) -> list[Customer]:
        stmt = (
            select(Customer)
            .where(Customer.client_id == self.client_id)
            .order_by(Customer.created_at.desc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_customer(self, customer_id: UUID) -> Customer | None:
        stmt = select(Customer).where(
            Customer.id == customer_id,
            Customer.client_id == self.client_id,
        )
        return (await self.db.execute(stmt)).scalar_one_or_none()

    async def get_customer_by_email(self, email: str) -> Customer | None:
        stmt = select(Customer).where(
            Customer.client_id == self.client_id,
            func.lower(Customer.email) == email.strip().lower(),
        )
        return (await self.db.execute(stmt)).scalar_one_or_none()

    async def count_customers(self) -> int:
        stmt = (
            select(func.count())
            .select_from(Customer)
            .where(Customer.client_id == self.client_id)
        )
        return (await self.db.execute(stmt)).scalar() or 0

    async def delete_customer(self, customer_id: UUID) -> bool:
        stmt = delete(Customer).where(
            Customer.id == customer_id,
            Customer.client_id == self.client_id,
        )
        result = await self.db.execute(stmt)
        await self.db.commit()
        return bool(result.rowcount)

    # -- catalog -----------------------------------------------------------

    async def list_categories(self) -> list[Category]:
        stmt = (
            select(Category)
            .where(Category.client_id == self.client_id)
            .order_by(Category.name)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_category(self, category_id: UUID) -> Category | None:
        stmt = select(Category).where(
            Category.id == category_id,
            Category.client_id == self.client_id,
        )
        return (await self.db.execute(stmt)).scalar_one_or_none()

    async def list_products(self) -> list[Product]:
        stmt = (
            select(Product)
            .where(Product.client_id == self.client_id)
            .order_by(Product.created_at.desc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def list_featured_products(self, count: int) -> list[Product]:
        stmt = (
            select(Product)
            .where(Product.client_id == self.client_id, Product.is_featured.is_(True))
            .order_by(Product.created_at.desc())
        )
        if count > 0:
            stmt = stmt.limit(count)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_product(self, product_id: UUID) -> Product | None:
        stmt = (
            select(Product)
            .where(Product.id == product_id, Product.client_id == self.client_id)
            .execution_options(populate_existing=True)
        )
        return (await self.db.execute(stmt)).scalar_one_or_none()

    async def get_variant(self, product_id: UUID, variant_id: UUID) -> ProductVariant | None:
        """A variant, only if it belongs to the given product of this tenant."""
        stmt = (
            select(ProductVariant)
            .join(Product, ProductVariant.product_id == Product.id)
            .where(
                ProductVariant.id == variant_id,
                ProductVariant.product_id == product_id,
                Product.client_id == self.client_id,
            )
        )
        return (await self.db.execute(stmt)).scalar_one_or_none()

    async def delete_product(self, product_id: UUID) -> bool:
        product = await self.get_product(product_id)
        if product is None:
            return False
        await self.db.delete(product)
        await self.db.commit()
        return True
