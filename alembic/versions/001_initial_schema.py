"""Initial schema - roles, users, assignments and tenant billing tables.

Revision ID: 001
Revises:
Create Date: 2026-10-17

"""

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

_TEXT_ARRAY = postgresql.ARRAY(sa.Text())


def upgrade() -> None:
    op.create_table(
        "role",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("display_name", sa.String(255), nullable=False),
        sa.Column("category", sa.String(50), nullable=False, server_default="custom"),
        sa.Column("permissions", _TEXT_ARRAY, nullable=False, server_default="{}"),
        sa.Column("parent_id", sa.String(64), sa.ForeignKey("role.id"), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("hierarchy_level", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_system_role", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_by", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("parent_id IS NULL OR parent_id <> id", name="ck_role_not_own_parent"),
    )
    op.create_index("ix_role_name", "role", ["name"], unique=True)
    op.create_index("ix_role_parent_id", "role", ["parent_id"])
    op.create_index(
        "ix_role_permissions", "role", ["permissions"], postgresql_using="gin"
    )

    op.create_table(
        "app_user",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("system_role", sa.String(32), nullable=False, server_default="pharmacist"),
        sa.Column("workplace_role", sa.String(32), nullable=True),
        sa.Column("assigned_roles", _TEXT_ARRAY, nullable=False, server_default="{}"),
        sa.Column("direct_permissions", _TEXT_ARRAY, nullable=False, server_default="{}"),
        sa.Column("denied_permissions", _TEXT_ARRAY, nullable=False, server_default="{}"),
        sa.Column("status", sa.String(16), nullable=False, server_default="active"),
        sa.Column("license_status", sa.String(16), nullable=False, server_default="not_required"),
        sa.CheckConstraint(
            "NOT (direct_permissions && denied_permissions)",
            name="ck_app_user_no_permission_overlap",
        ),
    )

    op.create_table(
        "user_role_assignment",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column(
            "user_id", sa.String(64), sa.ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("role_id", sa.String(64), sa.ForeignKey("role.id"), nullable=False),
        sa.Column("workspace_id", sa.String(64), nullable=True),
        sa.Column("is_temporary", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("assigned_by", sa.String(255), nullable=False),
        sa.Column("assigned_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("assignment_reason", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("revoked_by", sa.String(255), nullable=True),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("revocation_reason", sa.Text(), nullable=True),
        sa.CheckConstraint(
            "NOT is_temporary OR expires_at IS NOT NULL",
            name="ck_assignment_temporary_expiry",
        ),
    )
    op.create_index(
        "ix_assignment_user_active", "user_role_assignment", ["user_id", "is_active"]
    )
    op.create_index(
        "ix_assignment_expiry",
        "user_role_assignment",
        ["expires_at"],
        postgresql_where=sa.text("is_active AND expires_at IS NOT NULL"),
    )

    op.create_table(
        "plan",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("tier", sa.String(32), nullable=False),
        sa.Column("features", postgresql.JSONB(), nullable=False, server_default="{}"),
        sa.Column("limits", postgresql.JSONB(), nullable=False, server_default="{}"),
    )

    op.create_table(
        "workspace",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("owner_id", sa.String(64), sa.ForeignKey("app_user.id"), nullable=False),
        sa.Column("current_plan_id", sa.String(64), sa.ForeignKey("plan.id"), nullable=True),
        sa.Column("subscription_status", sa.String(16), nullable=True),
        sa.Column("trial_end_date", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_workspace_owner_id", "workspace", ["owner_id"])

    op.create_table(
        "workspace_member",
        sa.Column(
            "workspace_id",
            sa.String(64),
            sa.ForeignKey("workspace.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "user_id",
            sa.String(64),
            sa.ForeignKey("app_user.id", ondelete="CASCADE"),
            primary_key=True,
        ),
    )
    op.create_index("ix_workspace_member_user_id", "workspace_member", ["user_id"])

    op.create_table(
        "subscription",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column(
            "workspace_id",
            sa.String(64),
            sa.ForeignKey("workspace.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("plan_id", sa.String(64), sa.ForeignKey("plan.id"), nullable=False),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("tier", sa.String(32), nullable=True),
        sa.Column("trial_end", sa.DateTime(timezone=True), nullable=True),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_subscription_workspace_status", "subscription", ["workspace_id", "status"])


def downgrade() -> None:
    op.drop_table("subscription")
    op.drop_table("workspace_member")
    op.drop_table("workspace")
    op.drop_table("plan")
    op.drop_table("user_role_assignment")
    op.drop_table("app_user")
    op.drop_table("role")
