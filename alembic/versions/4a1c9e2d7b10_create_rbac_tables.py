"""create rbac tables

Revision ID: 4a1c9e2d7b10
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "4a1c9e2d7b10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create roles, permissions, the role ↔ permission join and user assignments."""
    op.create_table(
        "rbac_role",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("code", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("parent_role_id", sa.Integer(), nullable=True),
        sa.Column("hierarchy_level", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint(
            "hierarchy_level IS NULL OR (hierarchy_level >= 0 AND hierarchy_level <= 10)",
            name="ck_rbac_role_hierarchy_level",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_rbac_role_code", "rbac_role", ["code"], unique=True)
    op.create_index("ix_rbac_role_parent_role_id", "rbac_role", ["parent_role_id"])

    op.create_table(
        "rbac_permission",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("code", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_rbac_permission_code", "rbac_permission", ["code"], unique=True)

    op.create_table(
        "rbac_role_permission",
        sa.Column("role_id", sa.Integer(), nullable=False),
        sa.Column("permission_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["role_id"], ["rbac_role.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["permission_id"], ["rbac_permission.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("role_id", "permission_id"),
    )

    op.create_table(
        "rbac_user_role",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.String(length=255), nullable=False),
        sa.Column("role_id", sa.Integer(), nullable=False),
        sa.Column("assign_time", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["role_id"], ["rbac_role.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "role_id", name="uq_rbac_user_role"),
    )
    op.create_index("ix_rbac_user_role_user_id", "rbac_user_role", ["user_id"])
    op.create_index("ix_rbac_user_role_role_id", "rbac_user_role", ["role_id"])
    op.create_index("ix_rbac_user_role_assign_time", "rbac_user_role", ["assign_time"])


def downgrade() -> None:
    """Drop all RBAC tables."""
    op.drop_index("ix_rbac_user_role_assign_time", table_name="rbac_user_role")
    op.drop_index("ix_rbac_user_role_role_id", table_name="rbac_user_role")
    op.drop_index("ix_rbac_user_role_user_id", table_name="rbac_user_role")
    op.drop_table("rbac_user_role")
    op.drop_table("rbac_role_permission")
    op.drop_index("ix_rbac_permission_code", table_name="rbac_permission")
    op.drop_table("rbac_permission")
    op.drop_index("ix_rbac_role_parent_role_id", table_name="rbac_role")
    op.drop_index("ix_rbac_role_code", table_name="rbac_role")
    op.drop_table("rbac_role")
