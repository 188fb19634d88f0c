"""Pytest configuration and fixtures for the Merchant API test suite.

Provides:
- In-memory SQLite database, created fresh for every test
- Real bearer tokens for two tenants (multi-tenancy tests)
- Captured notification enqueues (no broker needed)
- Fake image store
- Disabled rate limiting
- Model factory fixtures for Client, Customer, Category, Product and Order
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "development")

from collections.abc import AsyncGenerator, Callable
from decimal import Decimal
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import UUID

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from merchant.core.auth import get_token_authority
from merchant.core.database import get_async_session
from merchant.core.deps import get_db
from merchant.core.encryption import encrypt_secret
from merchant.core.rate_limit import limiter
from merchant.core.security import TokenAuthority, hash_password
from merchant.integrations.blob_storage import get_image_store
from merchant.main import app
from merchant.models import (
    Base,
    Category,
    Client,
    Customer,
    Order,
    OrderItem,
    OrderStatus,
    Product,
    ProductVariant,
    VariantKind,
)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
TEST_CLIENT_ID = "client-a"
OTHER_CLIENT_ID = "client-b"
TEST_PASSWORD = "s3cret-pass"

# ---------------------------------------------------------------------------
# Disable rate limiting globally for tests
# ---------------------------------------------------------------------------
limiter.enabled = False

# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Fresh in-memory database per test.

    StaticPool keeps the single in-memory connection alive across sessions so
    the app's sessions and the test's session see the same data.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Session for test setup and direct service tests."""
    async with session_factory() as session:
        yield session


# ---------------------------------------------------------------------------
# Notifications and image hosting
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def sent_notifications() -> Any:
    """Capture every enqueued email instead of talking to a broker."""
    with patch("merchant.services.notification_service.send_notification") as task:
        task.delay = MagicMock()
        yield task.delay


@pytest.fixture
def image_store() -> MagicMock:
    """Image host stand-in returning predictable URLs."""
    store = MagicMock()

    async def _upload(content: bytes, filename: str) -> str:  # noqa: ARG001
        return f"https://img.test/uploads/{filename}"

    store.upload = AsyncMock(side_effect=_upload)
    return store


# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------


@pytest.fixture
def authority() -> TokenAuthority:
    return get_token_authority()


@pytest.fixture
def tenant_headers(authority: TokenAuthority) -> dict[str, str]:
    return {"Authorization": f"Bearer {authority.issue_tenant_token(TEST_CLIENT_ID)}"}


@pytest.fixture
def other_tenant_headers(authority: TokenAuthority) -> dict[str, str]:
    return {"Authorization": f"Bearer {authority.issue_tenant_token(OTHER_CLIENT_ID)}"}


# ---------------------------------------------------------------------------
# HTTP clients
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def unauthed_client(
    session_factory: async_sessionmaker[AsyncSession],
    image_store: MagicMock,
) -> AsyncGenerator[AsyncClient, None]:
    """Async test client on the test database. Sends no credentials."""

    async def _override_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as s:
            yield s

    app.dependency_overrides[get_async_session] = _override_session
    app.dependency_overrides[get_db] = _override_session
    app.dependency_overrides[get_image_store] = lambda: image_store

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(
    unauthed_client: AsyncClient,
    tenant_headers: dict[str, str],
) -> AsyncClient:
    """Test client sending the tenant token of TEST_CLIENT_ID."""
    unauthed_client.headers.update(tenant_headers)
    return unauthed_client


@pytest_asyncio.fixture
async def plain_client() -> AsyncGenerator[AsyncClient, None]:
    """Minimal async test client with NO dependency overrides."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


# ---------------------------------------------------------------------------
# Model Factories
# ---------------------------------------------------------------------------


@pytest.fixture
def client_factory(db_session: AsyncSession) -> Callable[..., Any]:
    """Factory that creates Client (tenant) records."""

    async def _create(
        *,
        client_id: str = TEST_CLIENT_ID,
        name: str = "Test Shop",
        business_email: str | None = "shop@example.com",
        email_password: str | None = "mail-password",
        return_url: str | None = "https://shop.example.com",
    ) -> Client:
        record = Client(
            client_id=client_id,
            name=name,
            business_email=business_email,
            business_email_password=encrypt_secret(email_password) if email_password else None,
            return_url=return_url,
        )
        db_session.add(record)
        await db_session.commit()
        await db_session.refresh(record)
        return record

    return _create


@pytest.fixture
def customer_factory(db_session: AsyncSession) -> Callable[..., Any]:
    """Factory that creates Customer instances."""

    async def _create(
        *,
        client_id: str = TEST_CLIENT_ID,
        first_name: str = "Ada",
        email: str = "ada@example.com",
        password: str = TEST_PASSWORD,
        is_verified: bool = True,
    ) -> Customer:
        customer = Customer(
            client_id=client_id,
            first_name=first_name,
            last_name="Lovelace",
            email=email,
            phone="555-0100",
            password_hash=hash_password(password),
            is_verified=is_verified,
        )
        db_session.add(customer)
        await db_session.commit()
        await db_session.refresh(customer)
        return customer

    return _create


@pytest.fixture
def category_factory(db_session: AsyncSession) -> Callable[..., Any]:
    """Factory that creates Category instances."""

    async def _create(*, client_id: str = TEST_CLIENT_ID, name: str = "Shirts") -> Category:
        category = Category(client_id=client_id, name=name, icon="shirt", color="#333")
        db_session.add(category)
        await db_session.commit()
        await db_session.refresh(category)
        return category

    return _create


@pytest.fixture
def product_factory(db_session: AsyncSession) -> Callable[..., Any]:
    """Factory that creates Product instances with optional variants.

    ``variants`` is a list of ``(kind, value, quantity)`` tuples.
    """

    async def _create(
        *,
        client_id: str = TEST_CLIENT_ID,
        name: str = "Test Product",
        price: str = "10.00",
        count_in_stock: int = 10,
        category_id: UUID | None = None,
        is_featured: bool = False,
        variants: list[tuple[VariantKind, str, int]] | None = None,
    ) -> Product:
        product = Product(
            client_id=client_id,
            name=name,
            price=Decimal(price),
            count_in_stock=count_in_stock,
            category_id=category_id,
            is_featured=is_featured,
            images=["https://img.test/uploads/one.png"],
            variants=[
                ProductVariant(kind=kind, value=value, quantity=qty, price=Decimal("0"), position=i)
                for i, (kind, value, qty) in enumerate(variants or [])
            ],
        )
        db_session.add(product)
        await db_session.commit()
        await db_session.refresh(product)
        return product

    return _create


@pytest.fixture
def order_factory(db_session: AsyncSession) -> Callable[..., Any]:
    """Factory that creates an Order with one line per ``(product, quantity)``."""

    async def _create(
        *,
        customer: Customer,
        lines: list[tuple[Product, int]],
        client_id: str = TEST_CLIENT_ID,
        delivery: str = "0",
        status: OrderStatus = OrderStatus.CREATED,
        paid: bool = False,
    ) -> Order:
        items = [
            OrderItem(product_id=p.id, quantity=q, unit_price=p.price, position=i)
            for i, (p, q) in enumerate(lines)
        ]
        total = sum((p.price * q for p, q in lines), Decimal("0")) + Decimal(delivery)
        order = Order(
            client_id=client_id,
            customer_id=customer.id,
            items=items,
            delivery_price=Decimal(delivery),
            total_price=total,
            status=int(status),
            paid=paid,
        )
        db_session.add(order)
        await db_session.commit()
        await db_session.refresh(order)
        return order

    return _create


# ---------------------------------------------------------------------------
# Convenience fixtures (pre-built models)
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def tenant(client_factory: Callable[..., Any]) -> Client:
    """The tenant the default test token belongs to."""
    return await client_factory()


@pytest_asyncio.fixture
async def other_tenant(client_factory: Callable[..., Any]) -> Client:
    """A DIFFERENT tenant (for multi-tenancy tests)."""
    return await client_factory(
        client_id=OTHER_CLIENT_ID,
        name="Other Shop",
        business_email="other@example.com",
    )


@pytest_asyncio.fixture
async def customer(customer_factory: Callable[..., Any]) -> Customer:
    return await customer_factory()


@pytest_asyncio.fixture
async def category(category_factory: Callable[..., Any]) -> Category:
    return await category_factory()
