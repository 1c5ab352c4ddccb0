from __future__ import annotations

"""
Permission model.

Permissions are *immutable codes* that map to a single capability
(e.g. `PERMISSION_USER_EDIT`).  Roles own the role ↔ permission
association; `Permission.roles` is a read-only back view.
"""

import re
from typing import TYPE_CHECKING

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from rbac_core.models.base import Base, IntegerPrimaryKeyMixin, TimestampMixin

if TYPE_CHECKING:
    from rbac_core.models.role import Role

PERMISSION_CODE_PATTERN = re.compile(r"^PERMISSION_[A-Z_]+$")


class Permission(Base, IntegerPrimaryKeyMixin, TimestampMixin):
    __tablename__ = "rbac_permission"

    code: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # ── Relationships ────────────────────────────────────────────────
    roles: Mapped[list["Role"]] = relationship(  # noqa: F821
        secondary="rbac_role_permission",
        viewonly=True,
        lazy="selectin",
    )

    @validates("code")
    def _validate_code(self, key: str, value: str) -> str:
        if not PERMISSION_CODE_PATTERN.match(value or ""):
            raise ValueError(
                f"Permission code {value!r} must start with PERMISSION_ and "
                "contain only uppercase letters and underscores"
            )
        return value

    @validates("name")
    def _validate_name(self, key: str, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("Permission name must not be blank")
        return value

    def __str__(self) -> str:
        return self.code

    def __repr__(self) -> str:
        return f"<Permission {self.code}>"
