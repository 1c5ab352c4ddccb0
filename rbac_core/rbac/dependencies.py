"""
RBAC dependencies: permission enforcement for FastAPI routes.

`require_permission` is a *dependency factory*: call it with one or
more `PERMISSION_*` codes and it returns a dependency that will:

1. Resolve the caller's principal from the bearer token.
2. Ask the `PermissionVoter` about every required code.
3. Return 401 for anonymous callers, 403 when any code is denied,
   with NO detail about which codes are missing.

Usage in a route:
    @router.get("/roles", dependencies=[Depends(require_permission("PERMISSION_RBAC_MANAGE"))])
    async def list_roles(...): ...
"""

import logging

from fastapi import Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from rbac_core.core.database import get_db
from rbac_core.core.security import get_current_principal
from rbac_core.rbac.principal import Principal
from rbac_core.rbac.voter import PermissionVoter, Vote
from rbac_core.repositories.sqlalchemy_store import SqlAlchemyRbacStore
from rbac_core.services.permission_manager import PermissionManager

logger = logging.getLogger("rbac")


def get_permission_manager(db: AsyncSession = Depends(get_db)) -> PermissionManager:
    return PermissionManager(SqlAlchemyRbacStore(db))


class require_permission:
    """
    Dependency factory.

    Can be used as:
        Depends(require_permission("PERMISSION_RBAC_MANAGE"))
        Depends(require_permission("PERMISSION_USER_EDIT", "PERMISSION_USER_VIEW"))
    """

    def __init__(self, *permission_codes: str):
        self.required_codes = permission_codes

    async def __call__(
        self,
        principal: Principal | None = Depends(get_current_principal),
        manager: PermissionManager = Depends(get_permission_manager),
    ) -> Principal:
        if principal is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Not authenticated",
                headers={"WWW-Authenticate": "Bearer"},
            )

        voter = PermissionVoter(manager)
        for code in self.required_codes:
            vote = await voter.decide(code, principal)
            manager.audit.log_permission_check(code, principal.user_id, vote == Vote.GRANTED)
            if vote == Vote.GRANTED:
                continue

            logger.warning(
                "Permission denied for user %s (required: %s, vote: %s)",
                principal.user_id,
                code,
                vote.value,
            )
            # Do NOT reveal which codes are missing
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )

        return principal
