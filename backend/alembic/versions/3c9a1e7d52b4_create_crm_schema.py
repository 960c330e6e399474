"""create crm schema

Revision ID: 3c9a1e7d52b4
Revises:
Create Date: 2026-10-19 09:12:44.318201

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "3c9a1e7d52b4"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    ]


def _owner():
    return sa.Column(
        "created_by_id",
        sa.Integer(),
        sa.ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("password_hash", sa.String(), nullable=False),
        sa.Column("role", sa.String(), nullable=False, server_default="csr"),
        sa.Column("permissions", sa.JSON(), nullable=False),
        _owner(),
        sa.Column("reset_password_token", sa.String(), nullable=True),
        sa.Column("reset_password_expire", sa.DateTime(), nullable=True),
        *_timestamps(),
    )
    op.create_index(op.f("ix_users_id"), "users", ["id"], unique=False)
    op.create_index(op.f("ix_users_email"), "users", ["email"], unique=True)
    op.create_index(
        op.f("ix_users_reset_password_token"), "users", ["reset_password_token"], unique=False
    )

    op.create_table(
        "leads",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("phone", sa.String(), nullable=False),
        sa.Column("source", sa.String(), nullable=False, server_default="Other"),
        sa.Column("status", sa.String(), nullable=False, server_default="New"),
        sa.Column("notes", sa.Text(), nullable=True),
        _owner(),
        *_timestamps(),
    )
    op.create_index(op.f("ix_leads_id"), "leads", ["id"], unique=False)
    op.create_index(op.f("ix_leads_email"), "leads", ["email"], unique=False)
    op.create_index(op.f("ix_leads_created_by_id"), "leads", ["created_by_id"], unique=False)
    op.create_index("ix_leads_created_by_status", "leads", ["created_by_id", "status"])
    op.create_index("ix_leads_created_at", "leads", ["created_at"])

    op.create_table(
        "projects",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("client", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="Pending"),
        sa.Column("budget", sa.Float(), nullable=False),
        sa.Column("start_date", sa.DateTime(), nullable=True),
        sa.Column("end_date", sa.DateTime(), nullable=True),
        _owner(),
        *_timestamps(),
        sa.CheckConstraint("budget >= 0", name="ck_projects_budget_non_negative"),
    )
    op.create_index(op.f("ix_projects_id"), "projects", ["id"], unique=False)
    op.create_index(op.f("ix_projects_created_by_id"), "projects", ["created_by_id"], unique=False)
    op.create_index("ix_projects_created_by_status", "projects", ["created_by_id", "status"])
    op.create_index("ix_projects_created_at", "projects", ["created_at"])

    op.create_table(
        "payments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("invoice_number", sa.String(), nullable=False, unique=True),
        sa.Column("project_id", sa.Integer(), sa.ForeignKey("projects.id"), nullable=False),
        sa.Column("client_name", sa.String(), nullable=False),
        sa.Column("items", sa.JSON(), nullable=False),
        sa.Column("sub_total", sa.Float(), nullable=False),
        sa.Column("tax_percent", sa.Float(), nullable=False),
        sa.Column("tax_amount", sa.Float(), nullable=False),
        sa.Column("total_amount", sa.Float(), nullable=False),
        sa.Column("payment_method", sa.String(), nullable=False, server_default="Other"),
        sa.Column("status", sa.String(), nullable=False, server_default="Pending"),
        sa.Column("payment_date", sa.DateTime(), nullable=True),
        sa.Column("transaction_id", sa.String(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        _owner(),
        *_timestamps(),
        sa.CheckConstraint("sub_total >= 0", name="ck_payments_sub_total_non_negative"),
        sa.CheckConstraint("tax_percent >= 0", name="ck_payments_tax_percent_non_negative"),
        sa.CheckConstraint("tax_amount >= 0", name="ck_payments_tax_amount_non_negative"),
        sa.CheckConstraint("total_amount >= 0", name="ck_payments_total_non_negative"),
    )
    op.create_index(op.f("ix_payments_id"), "payments", ["id"], unique=False)
    op.create_index(op.f("ix_payments_project_id"), "payments", ["project_id"], unique=False)
    op.create_index(op.f("ix_payments_created_by_id"), "payments", ["created_by_id"], unique=False)
    op.create_index("ix_payments_status", "payments", ["status"])
    op.create_index("ix_payments_created_at", "payments", ["created_at"])

    op.create_table(
        "invoices",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("invoice_number", sa.String(), nullable=False, unique=True),
        sa.Column("project_id", sa.Integer(), sa.ForeignKey("projects.id"), nullable=False),
        sa.Column("client_name", sa.String(), nullable=False),
        sa.Column("client_email", sa.String(), nullable=True),
        sa.Column("client_address", sa.String(), nullable=True),
        sa.Column("items", sa.JSON(), nullable=False),
        sa.Column("sub_total", sa.Float(), nullable=False),
        sa.Column("tax", sa.Float(), nullable=False),
        sa.Column("discount", sa.Float(), nullable=False),
        sa.Column("total_amount", sa.Float(), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="Pending"),
        sa.Column("issue_date", sa.DateTime(), nullable=True),
        sa.Column("due_date", sa.DateTime(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        _owner(),
        *_timestamps(),
        sa.CheckConstraint("sub_total >= 0", name="ck_invoices_sub_total_non_negative"),
        sa.CheckConstraint("tax >= 0", name="ck_invoices_tax_non_negative"),
        sa.CheckConstraint("discount >= 0", name="ck_invoices_discount_non_negative"),
        sa.CheckConstraint("total_amount >= 0", name="ck_invoices_total_non_negative"),
    )
    op.create_index(op.f("ix_invoices_id"), "invoices", ["id"], unique=False)
    op.create_index(op.f("ix_invoices_project_id"), "invoices", ["project_id"], unique=False)
    op.create_index(op.f("ix_invoices_created_by_id"), "invoices", ["created_by_id"], unique=False)
    op.create_index("ix_invoices_status", "invoices", ["status"])
    op.create_index("ix_invoices_created_at", "invoices", ["created_at"])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table("invoices")
    op.drop_table("payments")
    op.drop_table("projects")
    op.drop_table("leads")
    op.drop_index(op.f("ix_users_reset_password_token"), table_name="users")
    op.drop_index(op.f("ix_users_email"), table_name="users")
    op.drop_index(op.f("ix_users_id"), table_name="users")
    op.drop_table("users")
