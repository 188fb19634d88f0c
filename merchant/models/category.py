"""Product category model."""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from merchant.models.base import Base, TenantScopedMixin


class Category(TenantScopedMixin, Base):
    """A client-defined product category."""

    __tablename__ = "categories"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    icon: Mapped[str | None] = mapped_column(String(255), nullable=True)
    color: Mapped[str | None] = mapped_column(String(50), nullable=True)

    def __repr__(self) -> str:
        return f"<Category {self.name}>"
