"""Initial migration - tenants, employees, impersonation sessions and audit trail

Revision ID: 001
Revises:
Create Date: 2025-01-01 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
import sqlmodel
from sqlalchemy.dialects.postgresql import JSONB

from alembic import op

revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # 1. Tenants (restaurant accounts)
    op.create_table(
        "tenants",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sqlmodel.sql.sqltypes.AutoString(length=100), nullable=False),
        sa.Column("slug", sqlmodel.sql.sqltypes.AutoString(length=56), nullable=False),
        sa.Column(
            "status",
            sqlmodel.sql.sqltypes.AutoString(length=20),
            nullable=False,
            server_default="active",
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        schema="public",
    )
    op.create_index("ix_tenants_name", "tenants", ["name"], unique=False, schema="public")
    op.create_index("ix_tenants_slug", "tenants", ["slug"], unique=True, schema="public")

    # 2. Employees (console staff)
    op.create_table(
        "employees",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("email", sqlmodel.sql.sqltypes.AutoString(length=255), nullable=False),
        sa.Column("full_name", sqlmodel.sql.sqltypes.AutoString(length=100), nullable=False),
        sa.Column(
            "role",
            sqlmodel.sql.sqltypes.AutoString(length=20),
            nullable=False,
            server_default="VIEWER",
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        schema="public",
    )
    op.create_index("ix_employees_email", "employees", ["email"], unique=True, schema="public")

    # 3. Impersonation sessions (never deleted)
    op.create_table(
        "impersonation_sessions",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("impersonator_id", sa.Uuid(), nullable=False),
        sa.Column("impersonator_role", sa.String(length=20), nullable=False),
        sa.Column("target_tenant_id", sa.Uuid(), nullable=False),
        sa.Column("target_user_id", sa.Uuid(), nullable=True),
        sa.Column("reason", sa.String(length=500), nullable=False),
        sa.Column("ticket_number", sa.String(length=100), nullable=True),
        sa.Column("requested_by", sa.String(length=255), nullable=True),
        sa.Column("urgency_level", sa.String(length=20), nullable=False, server_default="medium"),
        sa.Column("started_at", sa.DateTime(), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("ended_at", sa.DateTime(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="active"),
        sa.Column("end_cause", sa.String(length=20), nullable=True),
        sa.Column("permissions", JSONB(), nullable=False),
        sa.Column("restrictions", JSONB(), nullable=False),
        sa.Column("ip_address", sa.String(length=45), nullable=True),
        sa.Column("user_agent", sa.String(length=500), nullable=True),
        sa.Column("location", sa.String(length=100), nullable=True),
        sa.ForeignKeyConstraint(
            ["impersonator_id"], ["public.employees.id"], ondelete="RESTRICT"
        ),
        sa.ForeignKeyConstraint(["target_tenant_id"], ["public.tenants.id"], ondelete="RESTRICT"),
        sa.CheckConstraint(
            "status IN ('active', 'completed', 'expired', 'terminated')",
            name="ck_impersonation_sessions_status",
        ),
        sa.CheckConstraint(
            "(status = 'active') = (ended_at IS NULL)",
            name="ck_impersonation_sessions_ended_at",
        ),
        sa.PrimaryKeyConstraint("id"),
        schema="public",
    )
    op.create_index(
        "ix_impersonation_sessions_impersonator_id",
        "impersonation_sessions",
        ["impersonator_id"],
        schema="public",
    )
    op.create_index(
        "ix_impersonation_sessions_target_tenant_id",
        "impersonation_sessions",
        ["target_tenant_id"],
        schema="public",
    )
    op.create_index(
        "ix_impersonation_sessions_impersonator_status",
        "impersonation_sessions",
        ["impersonator_id", "status"],
        schema="public",
    )
    op.create_index(
        "ix_impersonation_sessions_status_expires",
        "impersonation_sessions",
        ["status", "expires_at"],
        schema="public",
    )
    op.create_index(
        "ix_impersonation_sessions_tenant_started",
        "impersonation_sessions",
        ["target_tenant_id", "started_at"],
        schema="public",
    )

    # 4. Impersonation audit trail (append-only, purged by retention only)
    op.create_table(
        "impersonation_audit_logs",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("session_id", sa.Uuid(), nullable=False),
        sa.Column("impersonator_id", sa.Uuid(), nullable=False),
        sa.Column("target_tenant_id", sa.Uuid(), nullable=False),
        sa.Column("action", sa.String(length=100), nullable=False),
        sa.Column("action_type", sa.String(length=20), nullable=False),
        sa.Column("resource", sa.String(length=100), nullable=False),
        sa.Column("resource_id", sa.String(length=255), nullable=True),
        sa.Column("description", sa.String(length=1000), nullable=False),
        sa.Column("success", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("error_message", sa.String(length=1000), nullable=True),
        sa.Column("details", JSONB(), nullable=False),
        sa.Column("ip_address", sa.String(length=45), nullable=True),
        sa.Column("user_agent", sa.String(length=500), nullable=True),
        sa.Column("request_id", sa.String(length=36), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(
            ["session_id"], ["public.impersonation_sessions.id"], ondelete="RESTRICT"
        ),
        sa.PrimaryKeyConstraint("id"),
        schema="public",
    )
    op.create_index(
        "ix_impersonation_audit_logs_impersonator_id",
        "impersonation_audit_logs",
        ["impersonator_id"],
        schema="public",
    )
    op.create_index(
        "ix_impersonation_audit_logs_session_created",
        "impersonation_audit_logs",
        ["session_id", "created_at"],
        schema="public",
    )
    op.create_index(
        "ix_impersonation_audit_logs_tenant_created",
        "impersonation_audit_logs",
        ["target_tenant_id", "created_at"],
        schema="public",
    )
    op.create_index(
        "ix_impersonation_audit_logs_type_created",
        "impersonation_audit_logs",
        ["action_type", "created_at"],
        schema="public",
    )


def downgrade() -> None:
    op.drop_index(
        "ix_impersonation_audit_logs_type_created", "impersonation_audit_logs", schema="public"
    )
    op.drop_index(
        "ix_impersonation_audit_logs_tenant_created", "impersonation_audit_logs", schema="public"
    )
    op.drop_index(
        "ix_impersonation_audit_logs_session_created", "impersonation_audit_logs", schema="public"
    )
    op.drop_index(
        "ix_impersonation_audit_logs_impersonator_id", "impersonation_audit_logs", schema="public"
    )
    op.drop_table("impersonation_audit_logs", schema="public")

    op.drop_index(
        "ix_impersonation_sessions_tenant_started", "impersonation_sessions", schema="public"
    )
    op.drop_index(
        "ix_impersonation_sessions_status_expires", "impersonation_sessions", schema="public"
    )
    op.drop_index(
        "ix_impersonation_sessions_impersonator_status", "impersonation_sessions", schema="public"
    )
    op.drop_index(
        "ix_impersonation_sessions_target_tenant_id", "impersonation_sessions", schema="public"
    )
    op.drop_index(
        "ix_impersonation_sessions_impersonator_id", "impersonation_sessions", schema="public"
    )
    op.drop_table("impersonation_sessions", schema="public")

    op.drop_index("ix_employees_email", "employees", schema="public")
    op.drop_table("employees", schema="public")

    op.drop_index("ix_tenants_slug", "tenants", schema="public")
    op.drop_index("ix_tenants_name", "tenants", schema="public")
    op.drop_table("tenants", schema="public")
