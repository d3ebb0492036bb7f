"""initial_schema

Create the workspace tables: clients, sales pipeline, projects with
lifecycle / sprints / tasks, focus sessions, activity feed, deployments
and system config.

Revision ID: 5f1c2a9d7e01
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = "5f1c2a9d7e01"
down_revision = None
branch_labels = None
depends_on = None


def _id():
    return sa.Column("id", sa.String(length=36), nullable=False)


def _timestamps(updated=True):
    cols = [sa.Column("created_at", sa.DateTime(timezone=True), nullable=True)]
    if updated:
        cols.append(sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True))
    return cols


def upgrade():
    bind = op.get_bind()
    existing_tables = set(sa_inspect(bind).get_table_names())

    if "clients" not in existing_tables:
        op.create_table(
            "clients",
            _id(),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("email", sa.String(length=255), nullable=True),
            sa.Column("phone", sa.String(length=50), nullable=True),
            sa.Column("brand_primary", sa.String(length=20), nullable=True),
            sa.Column("brand_secondary", sa.String(length=20), nullable=True),
            sa.Column("brand_accent", sa.String(length=20), nullable=True),
            sa.Column("logo_url", sa.String(length=500), nullable=True),
            sa.Column("brand_assets_url", sa.String(length=500), nullable=True),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column("health_score", sa.Integer(), nullable=False, server_default="100"),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            *_timestamps(),
            sa.PrimaryKeyConstraint("id"),
            sa.CheckConstraint(
                "health_score >= 0 AND health_score <= 100",
                name="ck_clients_health_score_range",
            ),
        )

    if "opportunities" not in existing_tables:
        op.create_table(
            "opportunities",
            _id(),
            sa.Column("client_id", sa.String(length=36), nullable=False),
            sa.Column("title", sa.String(length=300), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("service_type", sa.String(length=20), nullable=True),
            sa.Column("stage", sa.String(length=30), nullable=False, server_default="Draft"),
            sa.Column("estimated_value", sa.Float(), nullable=False, server_default="0"),
            sa.Column("probability", sa.Integer(), nullable=False, server_default="25"),
            sa.Column("expected_close", sa.Date(), nullable=True),
            sa.Column("won_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("lost_reason", sa.Text(), nullable=True),
            *_timestamps(),
            sa.ForeignKeyConstraint(["client_id"], ["clients.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
            sa.CheckConstraint(
                "probability >= 0 AND probability <= 100",
                name="ck_opportunities_probability_range",
            ),
        )
        op.create_index("ix_opportunities_client_id", "opportunities", ["client_id"])

    if "price_offers" not in existing_tables:
        op.create_table(
            "price_offers",
            _id(),
            sa.Column("client_id", sa.String(length=36), nullable=False),
            sa.Column("opportunity_id", sa.String(length=36), nullable=True),
            sa.Column("title", sa.String(length=300), nullable=False),
            sa.Column("items", sa.JSON(), nullable=False),
            sa.Column("total_value", sa.Float(), nullable=False, server_default="0"),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="Draft"),
            sa.Column("valid_until", sa.Date(), nullable=True),
            sa.Column("notes", sa.Text(), nullable=True),
            *_timestamps(),
            sa.ForeignKeyConstraint(["client_id"], ["clients.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["opportunity_id"], ["opportunities.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_price_offers_client_id", "price_offers", ["client_id"])

    if "contracts" not in existing_tables:
        op.create_table(
            "contracts",
            _id(),
            sa.Column("client_id", sa.String(length=36), nullable=False),
            sa.Column("opportunity_id", sa.String(length=36), nullable=True),
            sa.Column("price_offer_id", sa.String(length=36), nullable=True),
            sa.Column("title", sa.String(length=300), nullable=False),
            sa.Column("status", sa.String(length=30), nullable=False, server_default="Draft"),
            sa.Column("pdf_url", sa.String(length=500), nullable=True),
            sa.Column("total_value", sa.Float(), nullable=False, server_default="0"),
            sa.Column("start_date", sa.Date(), nullable=True),
            sa.Column("end_date", sa.Date(), nullable=True),
            sa.Column("terms_md", sa.Text(), nullable=True),
            *_timestamps(),
            sa.ForeignKeyConstraint(["client_id"], ["clients.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["opportunity_id"], ["opportunities.id"], ondelete="SET NULL"),
            sa.ForeignKeyConstraint(["price_offer_id"], ["price_offers.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_contracts_client_id", "contracts", ["client_id"])
        op.create_index("ix_contracts_price_offer_id", "contracts", ["price_offer_id"])

    if "projects" not in existing_tables:
        op.create_table(
            "projects",
            _id(),
            sa.Column("name", sa.String(length=300), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="Understand"),
            sa.Column("progress", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("is_frozen", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("specs_md", sa.Text(), nullable=True),
            sa.Column("client_id", sa.String(length=36), nullable=True),
            sa.Column("contract_id", sa.String(length=36), nullable=True),
            sa.Column("service_type", sa.String(length=20), nullable=True),
            sa.Column("category", sa.String(length=20), nullable=True),
            sa.Column("last_audit_at", sa.DateTime(timezone=True), nullable=True),
            *_timestamps(),
            sa.ForeignKeyConstraint(["client_id"], ["clients.id"], ondelete="SET NULL"),
            sa.ForeignKeyConstraint(["contract_id"], ["contracts.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
            sa.CheckConstraint(
                "progress >= 0 AND progress <= 100",
                name="ck_projects_progress_range",
            ),
        )
        op.create_index("ix_projects_client_id", "projects", ["client_id"])
        op.create_index("ix_projects_status_updated", "projects", ["status", "updated_at"])

    if "lifecycles" not in existing_tables:
        op.create_table(
            "lifecycles",
            _id(),
            sa.Column("project_id", sa.String(length=36), nullable=False),
            sa.Column("current_stage", sa.String(length=20), nullable=False,
                      server_default="Requirements"),
            sa.Column("stage_history", sa.JSON(), nullable=False),
            sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
            *_timestamps(),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_lifecycles_project_id", "lifecycles", ["project_id"])

    if "sprints" not in existing_tables:
        op.create_table(
            "sprints",
            _id(),
            sa.Column("project_id", sa.String(length=36), nullable=False),
            sa.Column("sprint_number", sa.Integer(), nullable=False, server_default="1"),
            sa.Column("goal", sa.Text(), nullable=True),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="planning"),
            sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("planned_end_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("ended_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("scope_changes", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("completed_points", sa.Integer(), nullable=True),
            sa.Column("completed_task_count", sa.Integer(), nullable=True),
            sa.Column("focus_time_minutes", sa.Integer(), nullable=True),
            *_timestamps(),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_sprints_project_status", "sprints", ["project_id", "status"])

    if "tasks" not in existing_tables:
        op.create_table(
            "tasks",
            _id(),
            sa.Column("project_id", sa.String(length=36), nullable=True),
            sa.Column("sprint_id", sa.String(length=36), nullable=True),
            sa.Column("title", sa.String(length=500), nullable=False),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="Todo"),
            sa.Column("priority", sa.String(length=20), nullable=False, server_default="Medium"),
            sa.Column("type", sa.String(length=20), nullable=False, server_default="Implementation"),
            sa.Column("due_date", sa.DateTime(timezone=True), nullable=True),
            sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("added_to_sprint_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("is_current", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("story_points", sa.Integer(), nullable=True),
            sa.Column("time_spent_minutes", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("skip_count", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("block_reason", sa.Text(), nullable=True),
            sa.Column("subtasks", sa.JSON(), nullable=False),
            sa.Column("metadata", sa.JSON(), nullable=True),
            sa.Column("agent_context", sa.JSON(), nullable=True),
            sa.Column("delegated_to", sa.String(length=200), nullable=True),
            sa.Column("delegation_status", sa.String(length=50), nullable=True),
            sa.Column("delegation_notes", sa.Text(), nullable=True),
            *_timestamps(),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["sprint_id"], ["sprints.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_tasks_project_status", "tasks", ["project_id", "status"])
        op.create_index("ix_tasks_sprint", "tasks", ["sprint_id"])

    if "task_dependencies" not in existing_tables:
        op.create_table(
            "task_dependencies",
            _id(),
            sa.Column("task_id", sa.String(length=36), nullable=False),
            sa.Column("depends_on_task_id", sa.String(length=36), nullable=False),
            *_timestamps(updated=False),
            sa.ForeignKeyConstraint(["task_id"], ["tasks.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["depends_on_task_id"], ["tasks.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("task_id", "depends_on_task_id", name="uq_task_dependency_pair"),
            sa.CheckConstraint("task_id <> depends_on_task_id", name="ck_task_dependency_not_self"),
        )
        op.create_index("ix_task_dependencies_task_id", "task_dependencies", ["task_id"])

    if "focus_sessions" not in existing_tables:
        op.create_table(
            "focus_sessions",
            _id(),
            sa.Column("project_id", sa.String(length=36), nullable=False),
            sa.Column("user_id", sa.String(length=36), nullable=True),
            sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("ended_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("session_notes", sa.Text(), nullable=True),
            sa.Column("tasks_completed", sa.Integer(), nullable=False, server_default="0"),
            *_timestamps(),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index(
            "ix_focus_sessions_project_started", "focus_sessions", ["project_id", "started_at"],
        )

    if "audit_logs" not in existing_tables:
        op.create_table(
            "audit_logs",
            _id(),
            sa.Column("level", sa.String(length=10), nullable=False, server_default="Info"),
            sa.Column("message", sa.Text(), nullable=False),
            sa.Column("source", sa.String(length=100), nullable=False, server_default="system"),
            sa.Column("project_id", sa.String(length=36), nullable=True),
            sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("idx_audit_logs_ts", "audit_logs", ["timestamp"])
        op.create_index("ix_audit_logs_project_id", "audit_logs", ["project_id"])

    if "agent_reports" not in existing_tables:
        op.create_table(
            "agent_reports",
            _id(),
            sa.Column("client_id", sa.String(length=36), nullable=True),
            sa.Column("project_id", sa.String(length=36), nullable=True),
            sa.Column("report_type", sa.String(length=50), nullable=False, server_default="note"),
            sa.Column("title", sa.String(length=300), nullable=False),
            sa.Column("body", sa.Text(), nullable=False, server_default=""),
            sa.Column("severity", sa.String(length=10), nullable=False, server_default="info"),
            sa.Column("is_resolved", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
            *_timestamps(updated=False),
            sa.ForeignKeyConstraint(["client_id"], ["clients.id"], ondelete="SET NULL"),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_agent_reports_client_id", "agent_reports", ["client_id"])

    if "deployments" not in existing_tables:
        op.create_table(
            "deployments",
            _id(),
            sa.Column("project_id", sa.String(length=36), nullable=False),
            sa.Column("client_id", sa.String(length=36), nullable=True),
            sa.Column("environment", sa.String(length=20), nullable=False, server_default="Vercel"),
            sa.Column("label", sa.String(length=200), nullable=False),
            sa.Column("url", sa.String(length=500), nullable=True),
            sa.Column("status", sa.String(length=30), nullable=False, server_default="healthy"),
            sa.Column("last_checked_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("metadata", sa.JSON(), nullable=True),
            *_timestamps(updated=False),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["client_id"], ["clients.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_deployments_project_id", "deployments", ["project_id"])

    if "system_config" not in existing_tables:
        op.create_table(
            "system_config",
            sa.Column("key", sa.String(length=100), nullable=False),
            sa.Column("value", sa.JSON(), nullable=False),
            *_timestamps(),
            sa.PrimaryKeyConstraint("key"),
        )


def downgrade():
    for table in (
        "system_config", "deployments", "agent_reports", "audit_logs",
        "focus_sessions", "task_dependencies", "tasks", "sprints",
        "lifecycles", "projects", "contracts", "price_offers",
        "opportunities", "clients",
    ):
        op.drop_table(table)
