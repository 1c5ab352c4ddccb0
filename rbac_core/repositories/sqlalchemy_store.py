"""
SQLAlchemy implementation of `RbacStore`.

Wraps a single `AsyncSession`.  Writes flush immediately so later
lookups in the same unit of work see them; committing is left to the
caller (normally the permission manager).
"""

import logging
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from rbac_core.models import Permission, Role, UserRoleAssignment, role_permissions
from rbac_core.repositories.protocols import Entity

logger = logging.getLogger(__name__)


class SqlAlchemyRbacStore:
    def __init__(self, session: AsyncSession):
        self.session = session
        self._unit_of_work = False

    # ── Lookups ──────────────────────────────────────────────────────
    async def find_role_by_code(self, code: str, lock: bool = False) -> Role | None:
        stmt = select(Role).where(Role.code == code)
        if lock:
            # Serialises concurrent assignments to the same role.
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def find_permission_by_code(self, code: str) -> Permission | None:
        result = await self.session.execute(select(Permission).where(Permission.code == code))
        return result.scalar_one_or_none()

    async def find_assignment(self, user_id: str, role_code: str) -> UserRoleAssignment | None:
        stmt = (
            select(UserRoleAssignment)
            .join(UserRoleAssignment.role)
            .where(UserRoleAssignment.user_id == user_id, Role.code == role_code)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def find_assignments_for_user(self, user_id: str) -> list[UserRoleAssignment]:
        stmt = (
            select(UserRoleAssignment)
            .join(UserRoleAssignment.role)
            .where(UserRoleAssignment.user_id == user_id)
            .order_by(Role.name)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_permission_codes_for_user(self, user_id: str) -> set[str]:
        stmt = (
            select(Permission.code)
            .join(role_permissions, role_permissions.c.permission_id == Permission.id)
            .join(UserRoleAssignment, UserRoleAssignment.role_id == role_permissions.c.role_id)
            .where(UserRoleAssignment.user_id == user_id)
            .distinct()
        )
        result = await self.session.execute(stmt)
        return set(result.scalars().all())

    # ── Delete guards ────────────────────────────────────────────────
    # Both go through Role.user_assignments, the role's read-only view of
    # who holds it.
    async def count_assignments_for_role(self, role_code: str) -> int:
        stmt = (
            select(func.count(func.distinct(UserRoleAssignment.user_id)))
            .select_from(Role)
            .join(Role.user_assignments)
            .where(Role.code == role_code)
        )
        result = await self.session.execute(stmt)
        return int(result.scalar_one())

    async def list_assigned_user_ids_for_role(self, role_code: str) -> list[str]:
        stmt = (
            select(UserRoleAssignment.user_id)
            .select_from(Role)
            .join(Role.user_assignments)
            .where(Role.code == role_code)
            .order_by(UserRoleAssignment.user_id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_blocking_role_codes_for_permission(self, permission_code: str) -> list[str]:
        stmt = (
            select(Role.code)
            .join(role_permissions, role_permissions.c.role_id == Role.id)
            .join(Permission, Permission.id == role_permissions.c.permission_id)
            .where(Permission.code == permission_code)
            .order_by(Role.code)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    # ── Catalog queries ──────────────────────────────────────────────
    async def search_roles(self, query: str = "", limit: int = 10) -> list[Role]:
        stmt = select(Role).order_by(Role.name).limit(limit)
        if query:
            pattern = f"%{query}%"
            stmt = stmt.where(or_(Role.name.ilike(pattern), Role.code.ilike(pattern)))
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def search_permissions(self, query: str = "", limit: int = 10) -> list[Permission]:
        stmt = select(Permission).order_by(Permission.name).limit(limit)
        if query:
            pattern = f"%{query}%"
            stmt = stmt.where(
                or_(Permission.name.ilike(pattern), Permission.code.ilike(pattern))
            )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def find_permissions_for_role(self, role_code: str) -> list[Permission]:
        stmt = (
            select(Permission)
            .join(role_permissions, role_permissions.c.permission_id == Permission.id)
            .join(Role, Role.id == role_permissions.c.role_id)
            .where(Role.code == role_code)
            .order_by(Permission.name)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def find_unassigned_permissions(self) -> list[Permission]:
        stmt = (
            select(Permission)
            .outerjoin(role_permissions, role_permissions.c.permission_id == Permission.id)
            .where(role_permissions.c.role_id.is_(None))
            .order_by(Permission.name)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def find_assignments_for_role(self, role_code: str) -> list[UserRoleAssignment]:
        stmt = (
            select(UserRoleAssignment)
            .join(UserRoleAssignment.role)
            .where(Role.code == role_code)
            .order_by(UserRoleAssignment.assign_time.desc(), UserRoleAssignment.id.desc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def find_recent_assignments(self, limit: int = 50) -> list[UserRoleAssignment]:
        stmt = (
            select(UserRoleAssignment)
            .order_by(UserRoleAssignment.assign_time.desc(), UserRoleAssignment.id.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def roles_with_user_count(self) -> list[tuple[Role, int]]:
        stmt = (
            select(Role, func.count(UserRoleAssignment.id))
            .outerjoin(Role.user_assignments)
            .group_by(Role.id)
            .order_by(Role.name)
        )
        result = await self.session.execute(stmt)
        return [(role, int(count)) for role, count in result.all()]

    async def permissions_with_role_count(self) -> list[tuple[Permission, int]]:
        stmt = (
            select(Permission, func.count(role_permissions.c.role_id))
            .outerjoin(role_permissions, role_permissions.c.permission_id == Permission.id)
            .group_by(Permission.id)
            .order_by(Permission.name)
        )
        result = await self.session.execute(stmt)
        return [(permission, int(count)) for permission, count in result.all()]

    async def find_root_roles(self) -> list[Role]:
        stmt = select(Role).where(Role.parent_role_id.is_(None)).order_by(Role.name)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def find_roles_by_parent(self, parent_role_id: int) -> list[Role]:
        stmt = (
            select(Role)
            .where(Role.parent_role_id == parent_role_id)
            .order_by(Role.hierarchy_level, Role.name)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    # ── Writes ───────────────────────────────────────────────────────
    async def save(self, entity: Entity) -> None:
        self.session.add(entity)
        await self.session.flush()

    async def delete(self, entity: Entity) -> None:
        await self.session.delete(entity)
        await self.session.flush()

    async def lock_roles(self, codes: Sequence[str]) -> None:
        if not codes:
            return
        stmt = select(Role.id).where(Role.code.in_(codes)).order_by(Role.code).with_for_update()
        await self.session.execute(stmt)

    # ── Transaction control ──────────────────────────────────────────
    @asynccontextmanager
    async def savepoint(self) -> AsyncIterator[None]:
        """Nested transaction: released on success, rolled back on error."""
        async with self.session.begin_nested():
            yield

    async def begin(self) -> None:
        if self._unit_of_work:
            raise RuntimeError("A unit of work is already open on this store")
        if not self.session.in_transaction():
            await self.session.begin()
        self._unit_of_work = True

    async def commit(self) -> None:
        try:
            await self.session.commit()
        finally:
            self._unit_of_work = False

    async def rollback(self) -> None:
        try:
            await self.session.rollback()
        finally:
            self._unit_of_work = False
        logger.debug("Rolled back RBAC unit of work")

    def in_transaction(self) -> bool:
        return self._unit_of_work
