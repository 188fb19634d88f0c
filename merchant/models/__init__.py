"""SQLAlchemy models."""

from merchant.models.base import Base, TenantScopedMixin
from merchant.models.category import Category
from merchant.models.client import Client
from merchant.models.customer import Customer
from merchant.models.order import Order, OrderItem, OrderStatus
from merchant.models.product import Product, ProductVariant, VariantKind

__all__ = [
    # Base
    "Base",
    "TenantScopedMixin",
    # Tenant
    "Client",
    # Customers
    "Customer",
    # Catalog
    "Category",
    "Product",
    "ProductVariant",
    "VariantKind",
    # Orders
    "Order",
    "OrderItem",
    "OrderStatus",
]
