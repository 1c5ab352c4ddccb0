"""
Pydantic schemas for request / response serialization.

Schemas are deliberately decoupled from SQLAlchemy models so the API
surface can evolve independently of the DB layer.  Field constraints
mirror the model validators so bad input is rejected with a 422 before
it reaches a service.
"""

from datetime import datetime

from pydantic import BaseModel, Field

PERMISSION_CODE_REGEX = r"^PERMISSION_[A-Z_]+$"


# ── Roles ────────────────────────────────────────────────────────────
class CreateRoleRequest(BaseModel):
    code: str = Field(min_length=1, max_length=255)
    name: str = Field(min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=1000)
    parent_role_id: int | None = Field(default=None, ge=0)
    hierarchy_level: int | None = Field(default=None, ge=0, le=10)


class UpdateRoleRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=1000)
    parent_role_id: int | None = Field(default=None, ge=0)
    hierarchy_level: int | None = Field(default=None, ge=0, le=10)


class RoleOut(BaseModel):
    id: int
    code: str
    name: str
    description: str | None = None
    parent_role_id: int | None = None
    hierarchy_level: int | None = None
    permissions: list[str] = []
    user_count: int | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


# ── Permissions ──────────────────────────────────────────────────────
class CreatePermissionRequest(BaseModel):
    code: str = Field(max_length=255, pattern=PERMISSION_CODE_REGEX)
    name: str = Field(min_length=1, max_length=255)
    description: str | None = None


class UpdatePermissionRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None


class PermissionOut(BaseModel):
    id: int
    code: str
    name: str
    description: str | None = None
    role_count: int | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


# ── Assignments ──────────────────────────────────────────────────────
class AssignmentOut(BaseModel):
    user_id: str
    role_code: str
    assign_time: datetime


class UserPermissionsOut(BaseModel):
    user_id: str
    roles: list[str]
    permissions: list[str]


class PermissionCheckOut(BaseModel):
    user_id: str
    permission: str
    granted: bool


# ── Bulk ─────────────────────────────────────────────────────────────
class BulkMappingRequest(BaseModel):
    """`{key: [codes]}`: user id → role codes, or role code → permission codes."""

    mapping: dict[str, list[str]]


class BulkFailureOut(BaseModel):
    item: str
    error: str


class BulkOperationResultOut(BaseModel):
    success_count: int
    failure_count: int
    failures: list[BulkFailureOut] = []


# ── Generic ──────────────────────────────────────────────────────────
class ChangeResponse(BaseModel):
    changed: bool


class MessageResponse(BaseModel):
    detail: str
