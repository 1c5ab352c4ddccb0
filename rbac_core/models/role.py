from __future__ import annotations

"""
Role model & the role ↔ permission association table.

Roles are named bundles of permissions.  `rbac_role_permission` is a
plain association table (no extra columns) and is owned by the Role
side: only `Role.permissions` writes to it.

`parent_role_id` / `hierarchy_level` are stored metadata only.  Nothing
resolves inherited permissions through them.
"""

from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, Column, ForeignKey, Integer, String, Table, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from rbac_core.models.base import Base, IntegerPrimaryKeyMixin, TimestampMixin

if TYPE_CHECKING:
    from rbac_core.models.assignment import UserRoleAssignment
    from rbac_core.models.permission import Permission

MAX_HIERARCHY_LEVEL = 10
MAX_DESCRIPTION_LENGTH = 1000

# ── Association table ────────────────────────────────────────────────
role_permissions = Table(
    "rbac_role_permission",
    Base.metadata,
    Column("role_id", ForeignKey("rbac_role.id", ondelete="CASCADE"), primary_key=True),
    Column(
        "permission_id",
        ForeignKey("rbac_permission.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class Role(Base, IntegerPrimaryKeyMixin, TimestampMixin):
    __tablename__ = "rbac_role"
    __table_args__ = (
        CheckConstraint(
            f"hierarchy_level IS NULL OR (hierarchy_level >= 0 AND hierarchy_level <= {MAX_HIERARCHY_LEVEL})",
            name="ck_rbac_role_hierarchy_level",
        ),
    )

    code: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    parent_role_id: Mapped[int | None] = mapped_column(Integer, index=True, nullable=True)
    hierarchy_level: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # ── Relationships ────────────────────────────────────────────────
    permissions: Mapped[list["Permission"]] = relationship(  # noqa: F821
        secondary=role_permissions,
        lazy="selectin",
    )
    # Back view for counting and the delete guards.  Only joined in
    # queries, never loaded as a collection.
    user_assignments: Mapped[list["UserRoleAssignment"]] = relationship(  # noqa: F821
        viewonly=True,
        lazy="raise",
    )

    @validates("code", "name")
    def _validate_required(self, key: str, value: str) -> str:
        if not value or not value.strip():
            raise ValueError(f"Role {key} must not be blank")
        if len(value) > 255:
            raise ValueError(f"Role {key} must be at most 255 characters")
        return value

    @validates("description")
    def _validate_description(self, key: str, value: str | None) -> str | None:
        if value is not None and len(value) > MAX_DESCRIPTION_LENGTH:
            raise ValueError(f"Role description must be at most {MAX_DESCRIPTION_LENGTH} characters")
        return value

    @validates("parent_role_id")
    def _validate_parent(self, key: str, value: int | None) -> int | None:
        if value is not None and value < 0:
            raise ValueError("Parent role id must be zero or positive")
        return value

    @validates("hierarchy_level")
    def _validate_level(self, key: str, value: int | None) -> int | None:
        if value is not None and not 0 <= value <= MAX_HIERARCHY_LEVEL:
            raise ValueError(f"Hierarchy level must be between 0 and {MAX_HIERARCHY_LEVEL}")
        return value

    # ── Permission collection ────────────────────────────────────────
    def has_permission(self, permission: "Permission") -> bool:
        return permission in self.permissions

    def add_permission(self, permission: "Permission") -> None:
        if permission not in self.permissions:
            self.permissions.append(permission)

    def remove_permission(self, permission: "Permission") -> None:
        if permission in self.permissions:
            self.permissions.remove(permission)

    def __str__(self) -> str:
        return self.name or self.code or ""

    def __repr__(self) -> str:
        return f"<Role {self.code}>"
