"""
Declarative base & shared mixins for all models.

Every RBAC table gets:
- An integer surrogate primary key, assigned by the database on insert.
- `created_at` / `updated_at` timestamps (UTC, auto-managed) where the
  row is editable.

Using a mixin keeps individual model files focused on domain fields.
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """SQLAlchemy declarative base. All models inherit from this."""
    pass


class TimestampMixin:
    """Adds created_at / updated_at to any model that inherits it."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
        nullable=False,
    )


class IntegerPrimaryKeyMixin:
    """Adds an autoincrement integer `id` primary key."""

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
