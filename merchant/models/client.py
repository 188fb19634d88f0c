"""Client model: the tenant business account."""

from sqlalchemy import Boolean, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from merchant.models.base import Base


class Client(Base):
    """A business running a storefront on this backend.

    ``client_id`` is the tenant identifier embedded in bearer tokens. All
    customers, orders, products and categories carry it. The mail password is
    stored encrypted and is only decrypted by the notification worker.
    """

    __tablename__ = "clients"

    client_id: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Outbound mail identity
    business_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    business_email_password: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )  # Encrypted

    # Storefront URL used for links in customer emails
    return_url: Mapped[str | None] = mapped_column(String(500), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<Client {self.name} ({self.client_id})>"
