"""automation core schema: tenancy, missions, recurrences, incidents, activity, notifications

Revision ID: 0001_automation_core
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa


revision = "0001_automation_core"
down_revision = None
branch_labels = None
depends_on = None


def _has_table(conn, name: str) -> bool:
    return sa.inspect(conn).has_table(name)


def upgrade():
    conn = op.get_bind()

    if not _has_table(conn, "organizations"):
        op.create_table(
            "organizations",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("slug", sa.String(80), nullable=False, unique=True, index=True),
            sa.Column("name", sa.String(160), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        )

    if not _has_table(conn, "app_users"):
        op.create_table(
            "app_users",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("email", sa.String(200), nullable=False, unique=True, index=True),
            sa.Column("display_name", sa.String(160), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        )

    if not _has_table(conn, "org_memberships"):
        op.create_table(
            "org_memberships",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("org_id", sa.Integer(), sa.ForeignKey("organizations.id"), nullable=False, index=True),
            sa.Column("user_id", sa.Integer(), sa.ForeignKey("app_users.id"), nullable=False, index=True),
            sa.Column("role", sa.String(20), nullable=False, server_default="operator"),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.UniqueConstraint("org_id", "user_id", name="uq_org_memberships_org_user"),
        )

    if not _has_table(conn, "properties"):
        op.create_table(
            "properties",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("org_id", sa.Integer(), sa.ForeignKey("organizations.id"), nullable=False, index=True),
            sa.Column("name", sa.String(160), nullable=False),
            sa.Column("address", sa.String(255), nullable=True),
            sa.Column("city", sa.String(120), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        )

    if not _has_table(conn, "recurrence_templates"):
        op.create_table(
            "recurrence_templates",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("org_id", sa.Integer(), sa.ForeignKey("organizations.id"), nullable=False, index=True),
            sa.Column("property_id", sa.Integer(), sa.ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True),
            sa.Column("task_type", sa.String(20), nullable=False),
            sa.Column("priority", sa.String(20), nullable=False, server_default="normal"),
            sa.Column("frequency", sa.String(20), nullable=False),
            sa.Column("day_of_week", sa.Integer(), nullable=True),
            sa.Column("day_of_month", sa.Integer(), nullable=True),
            sa.Column("scheduled_time", sa.String(5), nullable=False, server_default="09:00"),
            sa.Column("assigned_to", sa.Integer(), sa.ForeignKey("app_users.id"), nullable=True),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true(), index=True),
            sa.Column("last_generated_at", sa.DateTime(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.CheckConstraint("day_of_week IS NULL OR (day_of_week BETWEEN 0 AND 6)", name="ck_recurrence_day_of_week"),
            sa.CheckConstraint("day_of_month IS NULL OR (day_of_month BETWEEN 1 AND 31)", name="ck_recurrence_day_of_month"),
        )

    if not _has_table(conn, "scheduled_tasks"):
        op.create_table(
            "scheduled_tasks",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("org_id", sa.Integer(), sa.ForeignKey("organizations.id"), nullable=False, index=True),
            sa.Column("property_id", sa.Integer(), sa.ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True),
            sa.Column("task_type", sa.String(20), nullable=False),
            sa.Column("status", sa.String(20), nullable=False, server_default="todo"),
            sa.Column("priority", sa.String(20), nullable=False, server_default="normal"),
            sa.Column("scheduled_at", sa.DateTime(), nullable=False, index=True),
            sa.Column("assigned_to", sa.Integer(), sa.ForeignKey("app_users.id"), nullable=True, index=True),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column(
                "recurrence_id",
                sa.Integer(),
                sa.ForeignKey("recurrence_templates.id", ondelete="SET NULL"),
                nullable=True,
                index=True,
            ),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        )
        op.create_index(
            "ix_scheduled_tasks_org_assignee_scheduled",
            "scheduled_tasks",
            ["org_id", "assigned_to", "scheduled_at"],
        )

    if not _has_table(conn, "incidents"):
        op.create_table(
            "incidents",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("org_id", sa.Integer(), sa.ForeignKey("organizations.id"), nullable=False, index=True),
            sa.Column("property_id", sa.Integer(), sa.ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True),
            sa.Column("severity", sa.String(20), nullable=False, server_default="minor"),
            sa.Column("status", sa.String(20), nullable=False, server_default="open"),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("opened_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
            sa.Column("resolved_at", sa.DateTime(), nullable=True),
            sa.Column("cost", sa.Float(), nullable=True),
            sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        )
        op.create_index("ix_incidents_status_severity_opened", "incidents", ["status", "severity", "opened_at"])

    if not _has_table(conn, "activity_logs"):
        op.create_table(
            "activity_logs",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("org_id", sa.Integer(), sa.ForeignKey("organizations.id"), nullable=False, index=True),
            sa.Column("entity_type", sa.String(80), nullable=False),
            sa.Column("entity_id", sa.String(80), nullable=False),
            sa.Column("action", sa.String(80), nullable=False),
            sa.Column("actor_user_id", sa.Integer(), sa.ForeignKey("app_users.id"), nullable=True),
            sa.Column("metadata_json", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now(), index=True),
        )
        op.create_index(
            "ix_activity_logs_entity_action_created",
            "activity_logs",
            ["entity_type", "entity_id", "action", "created_at"],
        )

    if not _has_table(conn, "notifications"):
        op.create_table(
            "notifications",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("org_id", sa.Integer(), sa.ForeignKey("organizations.id"), nullable=False, index=True),
            sa.Column("user_id", sa.Integer(), sa.ForeignKey("app_users.id"), nullable=False, index=True),
            sa.Column("notification_type", sa.String(40), nullable=False),
            sa.Column("title", sa.String(255), nullable=False),
            sa.Column("message", sa.Text(), nullable=False),
            sa.Column("entity_type", sa.String(80), nullable=True),
            sa.Column("entity_id", sa.String(80), nullable=True),
            sa.Column("read", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        )


def downgrade():
    op.drop_table("notifications")
    op.drop_table("activity_logs")
    op.drop_table("incidents")
    op.drop_table("scheduled_tasks")
    op.drop_table("recurrence_templates")
    op.drop_table("properties")
    op.drop_table("org_memberships")
    op.drop_table("app_users")
    op.drop_table("organizations")
