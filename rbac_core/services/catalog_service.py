"""
Catalog service: creating, editing, listing and searching roles & permissions.

Grants, assignments and deletes go through `PermissionManager`; this
module only covers the administrative definition of the catalog.
Codes are fixed at creation; only names, descriptions and the
(advisory) hierarchy fields can be edited.
"""

import logging

from rbac_core.core.exceptions import (
    DuplicateCodeError,
    PermissionNotFoundError,
    RoleNotFoundError,
)
from rbac_core.models import Permission, Role, UserRoleAssignment
from rbac_core.repositories.sqlalchemy_store import SqlAlchemyRbacStore

logger = logging.getLogger(__name__)

# Sentinel so callers can clear a field by passing None explicitly.
_UNSET = object()


async def create_role(
    store: SqlAlchemyRbacStore,
    code: str,
    name: str,
    description: str | None = None,
    parent_role_id: int | None = None,
    hierarchy_level: int | None = None,
) -> Role:
    if await store.find_role_by_code(code) is not None:
        raise DuplicateCodeError("Role", code)

    role = Role(
        code=code,
        name=name,
        description=description,
        parent_role_id=parent_role_id,
        hierarchy_level=hierarchy_level,
    )
    role.permissions = []
    await store.save(role)
    logger.info("Created role %s", code)
    return role


async def create_permission(
    store: SqlAlchemyRbacStore,
    code: str,
    name: str,
    description: str | None = None,
) -> Permission:
    if await store.find_permission_by_code(code) is not None:
        raise DuplicateCodeError("Permission", code)

    permission = Permission(code=code, name=name, description=description)
    await store.save(permission)
    logger.info("Created permission %s", code)
    return permission


async def update_role(
    store: SqlAlchemyRbacStore,
    code: str,
    name: str | None = None,
    description=_UNSET,
    parent_role_id=_UNSET,
    hierarchy_level=_UNSET,
) -> Role:
    role = await store.find_role_by_code(code)
    if role is None:
        raise RoleNotFoundError.for_role_code(code)

    if name is not None:
        role.name = name
    if description is not _UNSET:
        role.description = description
    if parent_role_id is not _UNSET:
        role.parent_role_id = parent_role_id
    if hierarchy_level is not _UNSET:
        role.hierarchy_level = hierarchy_level

    await store.save(role)
    return role


async def update_permission(
    store: SqlAlchemyRbacStore,
    code: str,
    name: str | None = None,
    description=_UNSET,
) -> Permission:
    permission = await store.find_permission_by_code(code)
    if permission is None:
        raise PermissionNotFoundError.for_permission_code(code)

    if name is not None:
        permission.name = name
    if description is not _UNSET:
        permission.description = description

    await store.save(permission)
    return permission


async def list_roles(store: SqlAlchemyRbacStore) -> list[tuple[Role, int]]:
    """All roles with the number of assignments each one has."""
    return await store.roles_with_user_count()


async def list_permissions(store: SqlAlchemyRbacStore) -> list[tuple[Permission, int]]:
    """All permissions with the number of roles granting each one."""
    return await store.permissions_with_role_count()


# ── Search & browsing ────────────────────────────────────────────────
async def search_roles(store: SqlAlchemyRbacStore, query: str, limit: int = 10) -> list[Role]:
    """Roles whose code or name contains `query` (case-insensitive)."""
    return await store.search_roles(query, limit)


async def search_permissions(
    store: SqlAlchemyRbacStore, query: str, limit: int = 10
) -> list[Permission]:
    return await store.search_permissions(query, limit)


async def list_root_roles(store: SqlAlchemyRbacStore) -> list[Role]:
    return await store.find_root_roles()


async def list_child_roles(store: SqlAlchemyRbacStore, code: str) -> list[Role]:
    """
    Roles whose `parent_role_id` points at `code`.

    Browsing only: children do not inherit the parent's permissions.
    """
    role = await store.find_role_by_code(code)
    if role is None:
        raise RoleNotFoundError.for_role_code(code)
    return await store.find_roles_by_parent(role.id)


async def list_unassigned_permissions(store: SqlAlchemyRbacStore) -> list[Permission]:
    return await store.find_unassigned_permissions()


async def list_recent_assignments(
    store: SqlAlchemyRbacStore, limit: int = 50
) -> list[UserRoleAssignment]:
    return await store.find_recent_assignments(limit)
