"""
Audit hook for permission changes and permission checks.

The permission manager calls `log_permission_change` after every state
change.  The default implementation writes to a dedicated logger;
where those records end up (file, SIEM, database) is decided by the
host's logging configuration.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Protocol

from rbac_core.core.config import settings


class AuditLogger(Protocol):
    def log_permission_change(self, action: str, data: dict[str, Any]) -> None: ...

    def log_permission_check(self, permission_code: str, user_id: str, result: bool) -> None: ...

    def generate_operation_id(self) -> str: ...


class LoggingAuditLogger:
    """Writes audit records to the `AUDIT_LOGGER_NAME` logger."""

    def __init__(self, logger: logging.Logger | None = None):
        self.logger = logger or logging.getLogger(settings.AUDIT_LOGGER_NAME)

    def log_permission_change(self, action: str, data: dict[str, Any]) -> None:
        context = {
            "action": action,
            "data": data,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        # Destructive changes are surfaced at a higher level.
        if "deleted" in action or "revoked" in action:
            self.logger.warning("Permission change: %s", action, extra={"audit": context})
        else:
            self.logger.info("Permission change: %s", action, extra={"audit": context})

    def log_permission_check(self, permission_code: str, user_id: str, result: bool) -> None:
        context = {
            "permission_code": permission_code,
            "user_id": user_id,
            "result": result,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        if result:
            self.logger.debug("Permission check: %s", permission_code, extra={"audit": context})
        else:
            self.logger.warning("Permission denied: %s", permission_code, extra={"audit": context})

    def generate_operation_id(self) -> str:
        return f"op_{uuid.uuid4().hex}"
