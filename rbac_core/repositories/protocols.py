"""
Persistence contract the permission manager depends on.

The manager never touches a session directly; it goes through an
`RbacStore`.  `SqlAlchemyRbacStore` is the production implementation,
tests substitute mocks.

Transaction control is explicit: `in_transaction()` reports whether a
unit of work was opened through `begin()` and is still open, not
whether the underlying connection happens to have one.
"""

from collections.abc import Sequence
from contextlib import AbstractAsyncContextManager
from typing import Protocol, Union, runtime_checkable

from rbac_core.models import Permission, Role, UserRoleAssignment

Entity = Union[Role, Permission, UserRoleAssignment]


@runtime_checkable
class RbacStore(Protocol):
    # ── Lookups ──────────────────────────────────────────────────────
    async def find_role_by_code(self, code: str, lock: bool = False) -> Role | None:
        """Return the role with `code`; `lock` requests a row lock."""
        ...

    async def find_permission_by_code(self, code: str) -> Permission | None: ...

    async def find_assignment(self, user_id: str, role_code: str) -> UserRoleAssignment | None: ...

    async def find_assignments_for_user(self, user_id: str) -> list[UserRoleAssignment]: ...

    async def list_permission_codes_for_user(self, user_id: str) -> set[str]:
        """Distinct permission codes granted through every role the user holds."""
        ...

    # ── Delete guards ────────────────────────────────────────────────
    async def count_assignments_for_role(self, role_code: str) -> int: ...

    async def list_assigned_user_ids_for_role(self, role_code: str) -> list[str]: ...

    async def list_blocking_role_codes_for_permission(self, permission_code: str) -> list[str]: ...

    # ── Writes ───────────────────────────────────────────────────────
    async def save(self, entity: Entity) -> None: ...

    async def delete(self, entity: Entity) -> None: ...

    async def lock_roles(self, codes: Sequence[str]) -> None:
        """Row-lock the named roles, in the order given."""
        ...

    # ── Transaction control ──────────────────────────────────────────
    def savepoint(self) -> AbstractAsyncContextManager[None]: ...

    async def begin(self) -> None: ...

    async def commit(self) -> None: ...

    async def rollback(self) -> None: ...

    def in_transaction(self) -> bool: ...
