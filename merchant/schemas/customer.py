"""Customer request and response schemas.

Request models accept both snake_case and the camelCase keys used by
existing storefront clients (``customerFirstName``, ``emailAddress``, ...).
"""

from datetime import datetime
from uuid import UUID

from pydantic import AliasChoices, Field

from merchant.schemas.common import BaseSchema


class CustomerRegistration(BaseSchema):
    """Storefront sign-up: name, email and password only."""

    first_name: str = Field(
        ...,
        min_length=1,
        max_length=255,
        validation_alias=AliasChoices("first_name", "customerFirstName"),
    )
    last_name: str | None = Field(
        default=None,
        max_length=255,
        validation_alias=AliasChoices("last_name", "customerLastName"),
    )
    email: str = Field(
        ...,
        min_length=3,
        max_length=255,
        validation_alias=AliasChoices("email", "emailAddress"),
    )
    password: str = Field(..., min_length=1, max_length=128)


class CustomerCreate(CustomerRegistration):
    """Admin-side customer creation with full contact details."""

    phone: str | None = Field(
        default=None,
        max_length=50,
        validation_alias=AliasChoices("phone", "phoneNumber"),
    )
    street: str | None = Field(default=None, max_length=255)
    apartment: str | None = Field(default=None, max_length=255)
    city: str | None = Field(default=None, max_length=255)
    address: str | None = Field(default=None, max_length=500)
    postal_code: str | None = Field(
        default=None,
        max_length=50,
        validation_alias=AliasChoices("postal_code", "postalCode"),
    )


class CustomerUpdate(BaseSchema):
    """Partial profile update. Omitted or empty fields keep their value."""

    first_name: str | None = Field(
        default=None,
        max_length=255,
        validation_alias=AliasChoices("first_name", "customerFirstName"),
    )
    last_name: str | None = Field(
        default=None,
        max_length=255,
        validation_alias=AliasChoices("last_name", "customerLastName"),
    )
    email: str | None = Field(
        default=None,
        max_length=255,
        validation_alias=AliasChoices("email", "emailAddress"),
    )
    phone: str | None = Field(
        default=None,
        max_length=50,
        validation_alias=AliasChoices("phone", "phoneNumber"),
    )
    password: str | None = Field(default=None, max_length=128)
    address: str | None = Field(default=None, max_length=500)
    postal_code: str | None = Field(
        default=None,
        max_length=50,
        validation_alias=AliasChoices("postal_code", "postalCode"),
    )


class CustomerLogin(BaseSchema):
    """Credentials posted by the storefront login form."""

    email: str = Field(..., validation_alias=AliasChoices("email", "emailAddress"))
    password: str


class CustomerResponse(BaseSchema):
    """Customer profile. Never includes the password hash."""

    id: UUID
    client_id: str
    first_name: str
    last_name: str | None
    email: str
    phone: str | None
    street: str | None
    apartment: str | None
    city: str | None
    address: str | None
    postal_code: str | None
    is_verified: bool
    created_at: datetime


class CustomerSummary(BaseSchema):
    """Customer fields embedded in order listings."""

    id: UUID
    first_name: str
    email: str
    phone: str | None


class TokenResponse(BaseSchema):
    """Customer session token."""

    token: str


class CustomerCountResponse(BaseSchema):
    success: bool = True
    customer_count: int
