from __future__ import annotations

"""
User ↔ role assignment.

Users live outside this service, so `user_id` is an opaque string and
not a foreign key.  The (user_id, role_id) pair is unique: a user
holds a given role at most once.  Rows are created and deleted, never
edited, so there is no `updated_at`.
"""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from typing import TYPE_CHECKING

from rbac_core.models.base import Base, IntegerPrimaryKeyMixin, utcnow

if TYPE_CHECKING:
    from rbac_core.models.role import Role


class UserRoleAssignment(Base, IntegerPrimaryKeyMixin):
    __tablename__ = "rbac_user_role"
    __table_args__ = (
        UniqueConstraint("user_id", "role_id", name="uq_rbac_user_role"),
    )

    user_id: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    role_id: Mapped[int] = mapped_column(
        ForeignKey("rbac_role.id", ondelete="RESTRICT"),
        index=True,
        nullable=False,
    )
    assign_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        index=True,
        nullable=False,
    )

    # ── Relationships ────────────────────────────────────────────────
    role: Mapped["Role"] = relationship(lazy="selectin")  # noqa: F821

    @validates("user_id")
    def _validate_user_id(self, key: str, value: str) -> str:
        if not value:
            raise ValueError("User id must not be empty")
        if len(value) > 255:
            raise ValueError("User id must be at most 255 characters")
        return value

    def __str__(self) -> str:
        return f"User {self.user_id} has role {self.role.code}"

    def __repr__(self) -> str:
        return f"<UserRoleAssignment {self.user_id} -> {self.role_id}>"
