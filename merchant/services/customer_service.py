"""Customer registration, verification, login and profile updates."""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from merchant.core.errors import (
    ForbiddenError,
    NotFoundError,
    NotPersistedError,
    UnauthorizedError,
    ValidationError,
)
from merchant.core.security import TokenAuthority, hash_password, verify_password
from merchant.models.customer import Customer
from merchant.schemas.customer import (
    CustomerCreate,
    CustomerLogin,
    CustomerRegistration,
    CustomerUpdate,
)
from merchant.services.notification_service import NotificationDispatcher
from merchant.services.repository import TenantRepository

logger = logging.getLogger(__name__)

INVALID_VERIFICATION = "Invalid or expired token"
INVALID_CREDENTIALS = "Invalid email address or password"


class CustomerService:
    """Customer account operations."""

    def __init__(
        self,
        db: AsyncSession,
        authority: TokenAuthority,
        notifier: NotificationDispatcher | None = None,
    ) -> None:
        self.db = db
        self.authority = authority
        self.notifier = notifier or NotificationDispatcher()

    async def register(
        self,
        client_id: str,
        data: CustomerRegistration | CustomerCreate,
    ) -> Customer:
        """Create a customer and send the verification email.

        Raises:
            ValidationError: the email is already registered with this client.
        """
        repo = TenantRepository(self.db, client_id)
        email = data.email.strip().lower()
        if await repo.get_customer_by_email(email) is not None:
            raise ValidationError("Email address is already registered")

        fields = data.model_dump(exclude={"password", "email"})
        customer = Customer(
            client_id=client_id,
            email=email,
            password_hash=hash_password(data.password),
            is_verified=False,
            **fields,
        )
        self.db.add(customer)
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise ValidationError("Email address is already registered") from e
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.exception("Failed to save customer for client %s", client_id)
            raise NotPersistedError("Error saving customer") from e
        await self.db.refresh(customer)

        token = self.authority.issue_verification_token(str(customer.id))
        self.notifier.verification(client_id, customer.email, customer.first_name, token)
        logger.info("Customer %s registered with client %s", customer.id, client_id)
        return customer

    async def verify_email(self, token: str) -> Customer:
        """Mark the customer in a verification token as verified.

        Single use: a second call with the same token fails because the
        customer is already verified.

        Raises:
            ValidationError: token invalid or expired, unknown customer, or
                already verified.
        """
        try:
            customer_id = UUID(self.authority.decode_verification_token(token))
        except (ForbiddenError, ValueError) as e:
            raise ValidationError(INVALID_VERIFICATION) from e

        stmt = select(Customer).where(Customer.id == customer_id)
        customer = (await self.db.execute(stmt)).scalar_one_or_none()
        if customer is None or customer.is_verified:
            raise ValidationError(INVALID_VERIFICATION)

        customer.is_verified = True
        await self.db.commit()
        logger.info("Customer %s verified", customer_id)
        return customer

    async def login(self, client_id: str, data: CustomerLogin) -> str:
        """Check credentials within the tenant and issue a customer token.

        Raises:
            UnauthorizedError: unknown email or wrong password.
        """
        repo = TenantRepository(self.db, client_id)
        customer = await repo.get_customer_by_email(data.email)
        if customer is None or not verify_password(data.password, customer.password_hash):
            raise UnauthorizedError(INVALID_CREDENTIALS)
        return self.authority.issue_customer_token(client_id, str(customer.id))

    async def update(self, client_id: str, customer_id: UUID, data: CustomerUpdate) -> Customer:
        """Apply non-empty fields; a new password is re-hashed."""
        repo = TenantRepository(self.db, client_id)
        customer = await repo.get_customer(customer_id)
        if customer is None:
            raise NotFoundError("Customer not found")

        changes = {k: v for k, v in data.model_dump(exclude={"password"}).items() if v}
        if "email" in changes:
            changes["email"] = changes["email"].strip().lower()
            other = await repo.get_customer_by_email(changes["email"])
            if other is not None and other.id != customer.id:
                raise ValidationError("Email address is already registered")
        for field, value in changes.items():
            setattr(customer, field, value)
        if data.password:
            customer.password_hash = hash_password(data.password)

        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.exception("Failed to update customer %s", customer_id)
            raise NotPersistedError("Error updating customer") from e
        await self.db.refresh(customer)
        return customer

    async def get(self, client_id: str, customer_id: UUID) -> Customer:
        customer = await TenantRepository(self.db, client_id).get_customer(customer_id)
        if customer is None:
            raise NotFoundError("Customer not found")
        return customer

    async def delete(self, client_id: str, customer_id: UUID) -> None:
        if not await TenantRepository(self.db, client_id).delete_customer(customer_id):
            raise NotFoundError("Customer not found")
        logger.info("Customer %s deleted by client %s", customer_id, client_id)
