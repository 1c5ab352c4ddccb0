"""
RBAC controller: catalog, grants, assignments and bulk operations.

Every route requires the RBAC admin permission via
`Depends(require_permission(...))`.  Controllers are THIN; they
delegate to `PermissionManager` / `catalog_service` and return schemas.
Domain exceptions are translated to HTTP responses by the handlers
registered in `rbac_core.main`.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from rbac_core.core.config import settings
from rbac_core.core.database import get_db
from rbac_core.models import Permission, Role
from rbac_core.rbac.dependencies import get_permission_manager, require_permission
from rbac_core.repositories.sqlalchemy_store import SqlAlchemyRbacStore
from rbac_core.schemas import (
    AssignmentOut,
    BulkMappingRequest,
    BulkOperationResultOut,
    ChangeResponse,
    CreatePermissionRequest,
    CreateRoleRequest,
    MessageResponse,
    PermissionCheckOut,
    PermissionOut,
    RoleOut,
    UpdatePermissionRequest,
    UpdateRoleRequest,
    UserPermissionsOut,
)
from rbac_core.services import catalog_service
from rbac_core.services.permission_manager import PermissionManager

router = APIRouter(
    prefix="/api/rbac",
    tags=["RBAC"],
    dependencies=[Depends(require_permission(settings.RBAC_ADMIN_PERMISSION))],
)


def get_store(db: AsyncSession = Depends(get_db)) -> SqlAlchemyRbacStore:
    return SqlAlchemyRbacStore(db)


def _role_out(role: Role, user_count: int | None = None) -> RoleOut:
    return RoleOut(
        id=role.id,
        code=role.code,
        name=role.name,
        description=role.description,
        parent_role_id=role.parent_role_id,
        hierarchy_level=role.hierarchy_level,
        permissions=sorted(p.code for p in role.permissions),
        user_count=user_count,
        created_at=role.created_at,
    )


def _permission_out(permission: Permission, role_count: int | None = None) -> PermissionOut:
    return PermissionOut(
        id=permission.id,
        code=permission.code,
        name=permission.name,
        description=permission.description,
        role_count=role_count,
        created_at=permission.created_at,
    )


# ── Roles ────────────────────────────────────────────────────────────
@router.get("/roles", response_model=list[RoleOut])
async def list_roles(
    q: str | None = Query(default=None, min_length=1),
    limit: int = Query(default=10, ge=1, le=100),
    store: SqlAlchemyRbacStore = Depends(get_store),
):
    """All roles with user counts, or a name / code search when `q` is given."""
    if q is not None:
        return [_role_out(role) for role in await catalog_service.search_roles(store, q, limit)]
    rows = await catalog_service.list_roles(store)
    return [_role_out(role, count) for role, count in rows]


@router.get("/roles/roots", response_model=list[RoleOut])
async def list_root_roles(store: SqlAlchemyRbacStore = Depends(get_store)):
    return [_role_out(role) for role in await catalog_service.list_root_roles(store)]


@router.get("/roles/{role_code}/children", response_model=list[RoleOut])
async def list_child_roles(role_code: str, store: SqlAlchemyRbacStore = Depends(get_store)):
    return [_role_out(role) for role in await catalog_service.list_child_roles(store, role_code)]


@router.post("/roles", response_model=RoleOut, status_code=status.HTTP_201_CREATED)
async def create_role(
    body: CreateRoleRequest,
    store: SqlAlchemyRbacStore = Depends(get_store),
):
    role = await catalog_service.create_role(store, **body.model_dump())
    return _role_out(role, 0)


@router.patch("/roles/{role_code}", response_model=RoleOut)
async def update_role(
    role_code: str,
    body: UpdateRoleRequest,
    store: SqlAlchemyRbacStore = Depends(get_store),
):
    role = await catalog_service.update_role(
        store, role_code, **body.model_dump(exclude_unset=True)
    )
    return _role_out(role)


@router.delete("/roles/{role_code}", response_model=MessageResponse)
async def delete_role(
    role_code: str,
    manager: PermissionManager = Depends(get_permission_manager),
):
    await manager.delete_role(role_code)
    return MessageResponse(detail="Role deleted")


# ── Permissions ──────────────────────────────────────────────────────
@router.get("/permissions", response_model=list[PermissionOut])
async def list_permissions(
    q: str | None = Query(default=None, min_length=1),
    limit: int = Query(default=10, ge=1, le=100),
    store: SqlAlchemyRbacStore = Depends(get_store),
):
    if q is not None:
        permissions = await catalog_service.search_permissions(store, q, limit)
        return [_permission_out(permission) for permission in permissions]
    rows = await catalog_service.list_permissions(store)
    return [_permission_out(permission, count) for permission, count in rows]


@router.get("/permissions/unassigned", response_model=list[PermissionOut])
async def list_unassigned_permissions(store: SqlAlchemyRbacStore = Depends(get_store)):
    permissions = await catalog_service.list_unassigned_permissions(store)
    return [_permission_out(permission, 0) for permission in permissions]


@router.post("/permissions", response_model=PermissionOut, status_code=status.HTTP_201_CREATED)
async def create_permission(
    body: CreatePermissionRequest,
    store: SqlAlchemyRbacStore = Depends(get_store),
):
    permission = await catalog_service.create_permission(store, **body.model_dump())
    return _permission_out(permission, 0)


@router.patch("/permissions/{permission_code}", response_model=PermissionOut)
async def update_permission(
    permission_code: str,
    body: UpdatePermissionRequest,
    store: SqlAlchemyRbacStore = Depends(get_store),
):
    permission = await catalog_service.update_permission(
        store, permission_code, **body.model_dump(exclude_unset=True)
    )
    return _permission_out(permission)


@router.delete("/permissions/{permission_code}", response_model=MessageResponse)
async def delete_permission(
    permission_code: str,
    manager: PermissionManager = Depends(get_permission_manager),
):
    await manager.delete_permission(permission_code)
    return MessageResponse(detail="Permission deleted")


# ── Grants ───────────────────────────────────────────────────────────
@router.put("/roles/{role_code}/permissions/{permission_code}", response_model=ChangeResponse)
async def grant_permission(
    role_code: str,
    permission_code: str,
    manager: PermissionManager = Depends(get_permission_manager),
):
    return ChangeResponse(changed=await manager.add_permission_to_role(role_code, permission_code))


@router.delete("/roles/{role_code}/permissions/{permission_code}", response_model=ChangeResponse)
async def remove_permission(
    role_code: str,
    permission_code: str,
    manager: PermissionManager = Depends(get_permission_manager),
):
    changed = await manager.remove_permission_from_role(role_code, permission_code)
    return ChangeResponse(changed=changed)


# ── Assignments ──────────────────────────────────────────────────────
@router.put("/users/{user_id}/roles/{role_code}", response_model=ChangeResponse)
async def assign_role(
    user_id: str,
    role_code: str,
    manager: PermissionManager = Depends(get_permission_manager),
):
    return ChangeResponse(changed=await manager.assign_role_to_user(user_id, role_code))


@router.delete("/users/{user_id}/roles/{role_code}", response_model=ChangeResponse)
async def revoke_role(
    user_id: str,
    role_code: str,
    manager: PermissionManager = Depends(get_permission_manager),
):
    return ChangeResponse(changed=await manager.revoke_role_from_user(user_id, role_code))


@router.get("/assignments/recent", response_model=list[AssignmentOut])
async def list_recent_assignments(
    limit: int = Query(default=50, ge=1, le=500),
    store: SqlAlchemyRbacStore = Depends(get_store),
):
    assignments = await catalog_service.list_recent_assignments(store, limit)
    return [
        AssignmentOut(user_id=a.user_id, role_code=a.role.code, assign_time=a.assign_time)
        for a in assignments
    ]


@router.get("/users/{user_id}/permissions", response_model=UserPermissionsOut)
async def get_user_permissions(
    user_id: str,
    manager: PermissionManager = Depends(get_permission_manager),
):
    roles = await manager.get_user_roles(user_id)
    permissions = await manager.get_user_permissions(user_id)
    return UserPermissionsOut(
        user_id=user_id,
        roles=[r.code for r in roles],
        permissions=sorted(permissions),
    )


@router.get("/users/{user_id}/permissions/{permission_code}", response_model=PermissionCheckOut)
async def check_user_permission(
    user_id: str,
    permission_code: str,
    manager: PermissionManager = Depends(get_permission_manager),
):
    granted = await manager.has_permission(user_id, permission_code)
    return PermissionCheckOut(user_id=user_id, permission=permission_code, granted=granted)


# ── Bulk ─────────────────────────────────────────────────────────────
@router.post("/bulk/assign", response_model=BulkOperationResultOut)
async def bulk_assign(
    body: BulkMappingRequest,
    manager: PermissionManager = Depends(get_permission_manager),
):
    result = await manager.bulk_assign_roles(body.mapping)
    return BulkOperationResultOut(**result.to_dict())


@router.post("/bulk/revoke", response_model=BulkOperationResultOut)
async def bulk_revoke(
    body: BulkMappingRequest,
    manager: PermissionManager = Depends(get_permission_manager),
):
    result = await manager.bulk_revoke_roles(body.mapping)
    return BulkOperationResultOut(**result.to_dict())


@router.post("/bulk/grant", response_model=BulkOperationResultOut)
async def bulk_grant(
    body: BulkMappingRequest,
    manager: PermissionManager = Depends(get_permission_manager),
):
    result = await manager.bulk_grant_permissions(body.mapping)
    return BulkOperationResultOut(**result.to_dict())
