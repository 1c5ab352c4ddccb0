"""
Models package. Import every model so SQLAlchemy's Base.metadata
knows about all tables (critical for `create_all` / Alembic).
"""

from rbac_core.models.base import Base, IntegerPrimaryKeyMixin, TimestampMixin
from rbac_core.models.role import Role, role_permissions
from rbac_core.models.permission import Permission
from rbac_core.models.assignment import UserRoleAssignment

__all__ = [
    "Base",
    "IntegerPrimaryKeyMixin",
    "TimestampMixin",
    "Role",
    "role_permissions",
    "Permission",
    "UserRoleAssignment",
]
