"""
Permission voter: turns a `PERMISSION_*` attribute into a decision.

The voter only speaks for attributes that start with `PERMISSION_`;
anything else (`ROLE_ADMIN`, `IS_AUTHENTICATED`, ...) is left to other
voters by abstaining.  The subject being accessed is accepted for
interface compatibility but does not influence the decision.
"""

import enum
from typing import Any

from rbac_core.rbac.principal import UserRef
from rbac_core.services.permission_manager import PermissionManager

PERMISSION_PREFIX = "PERMISSION_"


class Vote(str, enum.Enum):
    GRANTED = "GRANTED"
    DENIED = "DENIED"
    ABSTAIN = "ABSTAIN"


class PermissionVoter:
    def __init__(self, manager: PermissionManager):
        self.manager = manager

    @staticmethod
    def supports(attribute: str) -> bool:
        return attribute.startswith(PERMISSION_PREFIX)

    async def decide(
        self,
        attribute: str,
        principal: UserRef | None,
        subject: Any = None,
    ) -> Vote:
        if not self.supports(attribute):
            return Vote.ABSTAIN

        # Like the manager, accept a principal or a bare user id.
        user_id = principal if isinstance(principal, str) else getattr(principal, "user_id", None)
        # Anonymous requests never hold permissions.
        if not user_id:
            return Vote.DENIED

        if await self.manager.has_permission(user_id, attribute):
            return Vote.GRANTED
        return Vote.DENIED
