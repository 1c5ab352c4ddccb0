"""Domain exceptions for role / permission management."""

from typing import Any


class AccessControlError(Exception):
    """Base exception for the RBAC core."""

    def __init__(self, message: str = "An access control error occurred"):
        self.message = message
        super().__init__(self.message)


class RoleNotFoundError(AccessControlError, LookupError):
    """Raised when an operation names a role that does not exist."""

    def __init__(self, message: str, role_code: str = ""):
        super().__init__(message)
        self.role_code = role_code

    @classmethod
    def for_role_code(cls, role_code: str) -> "RoleNotFoundError":
        return cls(f'Role with code "{role_code}" not found', role_code)


class PermissionNotFoundError(AccessControlError, LookupError):
    """Raised when an operation names a permission that does not exist."""

    def __init__(self, message: str, permission_code: str = ""):
        super().__init__(message)
        self.permission_code = permission_code

    @classmethod
    def for_permission_code(cls, permission_code: str) -> "PermissionNotFoundError":
        return cls(f'Permission with code "{permission_code}" not found', permission_code)


class DeletionConflictError(AccessControlError):
    """
    Raised when a delete is blocked by live references.

    `affected_entities` holds the blocking identifiers: user ids for a
    role, role codes for a permission.
    """

    def __init__(
        self,
        message: str,
        entity_identifier: str = "",
        affected_entities: list[Any] | None = None,
    ):
        super().__init__(message)
        self.entity_identifier = entity_identifier
        self.affected_entities = list(affected_entities or [])

    @classmethod
    def for_role_deletion(cls, role_code: str, user_ids: list[str]) -> "DeletionConflictError":
        return cls(
            f'Cannot delete role "{role_code}": {len(user_ids)} users are assigned to this role',
            role_code,
            user_ids,
        )

    @classmethod
    def for_permission_deletion(
        cls, permission_code: str, role_codes: list[str]
    ) -> "DeletionConflictError":
        return cls(
            f'Cannot delete permission "{permission_code}": '
            f"{len(role_codes)} roles have this permission",
            permission_code,
            role_codes,
        )


class InvalidUserIdentifierError(AccessControlError, ValueError):
    """Raised when a user identifier is empty."""

    def __init__(self, message: str = "User identifier cannot be empty"):
        super().__init__(message)


class DuplicateCodeError(AccessControlError):
    """Raised when creating a role or permission whose code is taken."""

    def __init__(self, entity: str, code: str):
        super().__init__(f'{entity} with code "{code}" already exists')
        self.entity = entity
        self.code = code
