"""Declarative base shared by every table, plus the tenant-ownership mixin."""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, MetaData, String, Uuid, func
from sqlalchemy.orm import DeclarativeBase, Mapped, declared_attr, mapped_column

# Constraint names must be deterministic for alembic autogenerate
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    """UUID primary key and server-side timestamps for every row.

    ``Uuid`` maps to the native type on PostgreSQL and to CHAR(32) elsewhere,
    which keeps the models usable against SQLite in tests.
    """

    metadata = MetaData(naming_convention=NAMING_CONVENTION)

    id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.id}>"


class TenantScopedMixin:
    """Adds the owning tenant's identifier.

    Primary keys are not tenant-prefixed, so every query on a model with this
    mixin must filter on ``client_id``.
    """

    @declared_attr
    def client_id(cls) -> Mapped[str]:  # noqa: N805
        return mapped_column(String(255), nullable=False, index=True)
