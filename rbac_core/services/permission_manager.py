"""
Permission manager, the only writer of the role / permission /
assignment graph.

Rules enforced here:
- Mutations are idempotent: repeating one reports `False` instead of
  raising (assign twice, revoke twice, grant twice, remove twice).
- Assigning is the one check-then-insert path that needs race
  protection.  It locks the role row and runs inside a transaction,
  opening one only when the store is not already inside a unit of work.
- Roles and permissions are deleted only when nothing references them.
- Bulk calls record per-item failures and keep going.

Usage:
    manager = PermissionManager(SqlAlchemyRbacStore(db))
    await manager.assign_role_to_user("user-42", "ROLE_EDITOR")
    await manager.has_permission("user-42", "PERMISSION_ARTICLE_EDIT")
"""

import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Mapping, Sequence
from contextlib import asynccontextmanager
from typing import Any

from rbac_core.core.exceptions import (
    DeletionConflictError,
    PermissionNotFoundError,
    RoleNotFoundError,
)
from rbac_core.models import Role, UserRoleAssignment
from rbac_core.rbac.principal import UserRef, resolve_user_id
from rbac_core.repositories.protocols import Entity, RbacStore
from rbac_core.services.audit_service import AuditLogger, LoggingAuditLogger
from rbac_core.services.bulk_result import BulkFailure, BulkOperationResult

logger = logging.getLogger(__name__)


class PermissionManager:
    def __init__(self, store: RbacStore, audit: AuditLogger | None = None):
        self.store = store
        self.audit = audit or LoggingAuditLogger()
        # Audit events raised inside a unit of work, published on commit.
        self._pending_audit: list[tuple[str, dict[str, Any]]] = []

    # ── Transaction helpers ──────────────────────────────────────────
    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """
        Run the block in a transaction.

        If the store already has a unit of work open, the block joins it
        and the owner of that unit commits or rolls back.  Audit events
        emitted inside the unit are held back until the owning
        `transaction()` commits, and dropped if it rolls back.
        """
        if self.store.in_transaction():
            yield
            return

        await self.store.begin()
        try:
            yield
            await self.store.commit()
        except Exception:
            self._pending_audit.clear()
            await self.store.rollback()
            raise

        self._flush_audit()

    async def _write(self, entity: Entity, *, delete: bool = False) -> None:
        """Persist one change, committing unless a unit of work is open."""
        owns_commit = not self.store.in_transaction()
        try:
            if delete:
                await self.store.delete(entity)
            else:
                await self.store.save(entity)
            if owns_commit:
                await self.store.commit()
        except Exception:
            if owns_commit:
                await self.store.rollback()
            raise

    def _audit(self, action: str, **data: Any) -> None:
        data["operation_id"] = self.audit.generate_operation_id()
        if self.store.in_transaction():
            self._pending_audit.append((action, data))
        else:
            self.audit.log_permission_change(action, data)

    def _flush_audit(self) -> None:
        pending, self._pending_audit = self._pending_audit, []
        for action, data in pending:
            self.audit.log_permission_change(action, data)

    # ── User ↔ role ──────────────────────────────────────────────────
    async def assign_role_to_user(self, user: UserRef, role_code: str) -> bool:
        """Give `user` the role.  Returns False if they already hold it."""
        user_id = resolve_user_id(user)

        role = await self.store.find_role_by_code(role_code, lock=True)
        if role is None:
            raise RoleNotFoundError.for_role_code(role_code)

        async with self.transaction():
            existing = await self.store.find_assignment(user_id, role_code)
            if existing is not None:
                return False

            await self.store.save(UserRoleAssignment(user_id=user_id, role=role))

        self._audit("role.assigned", user_id=user_id, role_code=role_code)
        return True

    async def revoke_role_from_user(self, user: UserRef, role_code: str) -> bool:
        """Take the role away.  Returns False if the user did not hold it."""
        user_id = resolve_user_id(user)

        existing = await self.store.find_assignment(user_id, role_code)
        if existing is None:
            return False

        await self._write(existing, delete=True)
        self._audit("role.revoked", user_id=user_id, role_code=role_code)
        return True

    # ── Role ↔ permission ────────────────────────────────────────────
    async def add_permission_to_role(self, role_code: str, permission_code: str) -> bool:
        role = await self.store.find_role_by_code(role_code)
        if role is None:
            raise RoleNotFoundError.for_role_code(role_code)

        permission = await self.store.find_permission_by_code(permission_code)
        if permission is None:
            raise PermissionNotFoundError.for_permission_code(permission_code)

        if role.has_permission(permission):
            return False

        role.add_permission(permission)
        await self._write(role)
        self._audit("permission.granted", role_code=role_code, permission_code=permission_code)
        return True

    async def remove_permission_from_role(self, role_code: str, permission_code: str) -> bool:
        """
        Withdraw a permission from a role.

        A missing role or permission is not an error here: the role
        already does not grant the permission, so there is nothing to do.
        """
        role = await self.store.find_role_by_code(role_code)
        if role is None:
            return False

        permission = await self.store.find_permission_by_code(permission_code)
        if permission is None:
            return False

        if not role.has_permission(permission):
            return False

        role.remove_permission(permission)
        await self._write(role)
        self._audit("permission.revoked", role_code=role_code, permission_code=permission_code)
        return True

    # ── Queries ──────────────────────────────────────────────────────
    async def get_user_permissions(self, user: UserRef) -> set[str]:
        return await self.store.list_permission_codes_for_user(resolve_user_id(user))

    async def has_permission(self, user: UserRef, permission_code: str) -> bool:
        return permission_code in await self.get_user_permissions(user)

    async def get_user_roles(self, user: UserRef) -> list[Role]:
        assignments = await self.store.find_assignments_for_user(resolve_user_id(user))
        return [assignment.role for assignment in assignments]

    # ── Guarded deletes ──────────────────────────────────────────────
    async def can_delete_role(self, role_code: str) -> bool:
        return await self.store.count_assignments_for_role(role_code) == 0

    async def can_delete_permission(self, permission_code: str) -> bool:
        blocking = await self.store.list_blocking_role_codes_for_permission(permission_code)
        return len(blocking) == 0

    async def delete_role(self, role_code: str) -> None:
        # Guard and delete are separate steps; an assignment created in
        # between is not detected.
        if not await self.can_delete_role(role_code):
            user_ids = await self.store.list_assigned_user_ids_for_role(role_code)
            raise DeletionConflictError.for_role_deletion(role_code, user_ids)

        role = await self.store.find_role_by_code(role_code)
        if role is None:
            return

        await self._write(role, delete=True)
        self._audit("role.deleted", role_code=role_code)

    async def delete_permission(self, permission_code: str) -> None:
        if not await self.can_delete_permission(permission_code):
            role_codes = await self.store.list_blocking_role_codes_for_permission(permission_code)
            raise DeletionConflictError.for_permission_deletion(permission_code, role_codes)

        permission = await self.store.find_permission_by_code(permission_code)
        if permission is None:
            return

        await self._write(permission, delete=True)
        self._audit("permission.deleted", permission_code=permission_code)

    # ── Bulk operations ──────────────────────────────────────────────
    async def _run_bulk(
        self,
        mapping: Mapping[str, Sequence[str]],
        operation: Callable[[str, str], Awaitable[bool]],
    ) -> BulkOperationResult:
        successes = 0
        failures: list[BulkFailure] = []

        for key, values in mapping.items():
            for value in values:
                try:
                    if await operation(key, value):
                        successes += 1
                except Exception as exc:
                    logger.debug("Bulk item %s:%s failed: %s", key, value, exc)
                    failures.append(BulkFailure(item=f"{key}:{value}", error=str(exc)))

        return BulkOperationResult(
            success_count=successes,
            failure_count=len(failures),
            failures=tuple(failures),
        )

    def _audit_bulk(self, action: str, result: BulkOperationResult) -> None:
        self._audit(
            action,
            success_count=result.success_count,
            failure_count=result.failure_count,
        )

    async def bulk_assign_roles(self, user_roles: Mapping[str, Sequence[str]]) -> BulkOperationResult:
        """
        Assign roles to many users in one transaction.

        Every referenced role row is locked up front in code order, so
        concurrent batches naming the same roles queue instead of
        deadlocking.  Each item runs in a savepoint: a failing item is
        rolled back on its own and recorded, the rest of the batch
        carries on.  Only an exception escaping the loop rolls the whole
        batch back.
        """
        role_codes = sorted({code for codes in user_roles.values() for code in codes})

        async with self.transaction():
            await self.store.lock_roles(role_codes)
            result = await self._run_bulk(user_roles, self._assign_in_savepoint)

        self._audit_bulk("bulk.roles.assigned", result)
        return result

    async def _assign_in_savepoint(self, user: UserRef, role_code: str) -> bool:
        queued = len(self._pending_audit)
        try:
            async with self.store.savepoint():
                return await self.assign_role_to_user(user, role_code)
        except Exception:
            del self._pending_audit[queued:]
            raise

    async def bulk_revoke_roles(self, user_roles: Mapping[str, Sequence[str]]) -> BulkOperationResult:
        # No outer transaction: every revoke commits on its own.
        result = await self._run_bulk(user_roles, self.revoke_role_from_user)
        self._audit_bulk("bulk.roles.revoked", result)
        return result

    async def bulk_grant_permissions(
        self, role_permissions: Mapping[str, Sequence[str]]
    ) -> BulkOperationResult:
        result = await self._run_bulk(role_permissions, self.add_permission_to_role)
        self._audit_bulk("bulk.permissions.granted", result)
        return result
