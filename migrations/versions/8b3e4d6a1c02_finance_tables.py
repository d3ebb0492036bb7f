"""finance_tables

Add invoices and payments.

Revision ID: 8b3e4d6a1c02
Revises: 5f1c2a9d7e01
Create Date: 2026-10-19 14:00:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = "8b3e4d6a1c02"
down_revision = "5f1c2a9d7e01"
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    existing_tables = set(sa_inspect(bind).get_table_names())

    if "invoices" not in existing_tables:
        op.create_table(
            "invoices",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("client_id", sa.String(length=36), nullable=False),
            sa.Column("project_id", sa.String(length=36), nullable=True),
            sa.Column("amount", sa.Float(), nullable=False, server_default="0"),
            sa.Column("status", sa.String(length=20), nullable=False, server_default="Pending"),
            sa.Column("due_date", sa.DateTime(timezone=True), nullable=True),
            sa.Column("pdf_url", sa.String(length=500), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            sa.ForeignKeyConstraint(["client_id"], ["clients.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_invoices_client_id", "invoices", ["client_id"])
        op.create_index("ix_invoices_project_id", "invoices", ["project_id"])

    if "payments" not in existing_tables:
        op.create_table(
            "payments",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("invoice_id", sa.String(length=36), nullable=False),
            sa.Column("amount", sa.Float(), nullable=False, server_default="0"),
            sa.Column("method", sa.String(length=20), nullable=False, server_default="Transfer"),
            sa.Column("timestamp", sa.DateTime(timezone=True), nullable=True),
            sa.Column("transaction_ref", sa.String(length=200), nullable=True),
            sa.ForeignKeyConstraint(["invoice_id"], ["invoices.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_payments_invoice_id", "payments", ["invoice_id"])


def downgrade():
    op.drop_table("payments")
    op.drop_table("invoices")
