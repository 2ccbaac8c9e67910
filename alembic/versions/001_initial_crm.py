"""Create the CRM record tables: contacts, deals, tasks, activities, quotes.

Revision ID: 001_initial_crm
Revises:
Create Date: 2026-10-19

Cross-record ids (contact_id, deal_id) are plain integer columns with no
foreign key constraints: deleting a contact never cascades, and dangling ids
resolve to "not found" at lookup time.
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001_initial_crm"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        server_default=sa.func.now(),
        nullable=False,
    )


def upgrade() -> None:
    # ── contacts table ──────────────────────────────────────────────────

    op.create_table(
        "contacts",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("company", sa.String(200), nullable=True),
        sa.Column("position", sa.String(200), nullable=True),
        _created_at(),
        sa.Column("last_activity", sa.DateTime(timezone=True), nullable=True),
    )

    # ── deals table ─────────────────────────────────────────────────────

    op.create_table(
        "deals",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(300), nullable=False),
        sa.Column("value", sa.Float(), nullable=True),
        sa.Column("stage", sa.String(50), nullable=False, server_default="lead"),
        sa.Column("probability", sa.Integer(), nullable=False, server_default="10"),
        sa.Column("contact_id", sa.Integer(), nullable=True),
        sa.Column("expected_close_date", sa.Date(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_deals_stage", "deals", ["stage"])

    # ── tasks table ─────────────────────────────────────────────────────

    op.create_table(
        "tasks",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(300), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.Column("priority", sa.String(20), nullable=False, server_default="medium"),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("contact_id", sa.Integer(), nullable=True),
        sa.Column("deal_id", sa.Integer(), nullable=True),
        _created_at(),
    )

    # ── activities table ────────────────────────────────────────────────

    op.create_table(
        "activities",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("type", sa.String(20), nullable=False, server_default="call"),
        sa.Column("subject", sa.String(300), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("contact_id", sa.Integer(), nullable=True),
        sa.Column("deal_id", sa.Integer(), nullable=True),
        _created_at(),
    )

    # ── quotes table ────────────────────────────────────────────────────

    address_columns = [
        sa.Column(f"{prefix}_{part}", sa.String(length), nullable=True)
        for prefix in ("billing", "shipping")
        for part, length in (
            ("name", 200),
            ("street", 300),
            ("city", 100),
            ("state", 100),
            ("country", 100),
            ("pincode", 20),
        )
    ]
    op.create_table(
        "quotes",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("company", sa.String(200), nullable=False),
        sa.Column("contact_id", sa.Integer(), nullable=True),
        sa.Column("deal_id", sa.Integer(), nullable=True),
        sa.Column("quote_date", sa.Date(), nullable=True),
        sa.Column("expires_on", sa.Date(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="Draft"),
        sa.Column("delivery_method", sa.String(20), nullable=True),
        *address_columns,
        _created_at(),
    )


def downgrade() -> None:
    op.drop_table("quotes")
    op.drop_table("activities")
    op.drop_table("tasks")
    op.drop_index("ix_deals_stage", table_name="deals")
    op.drop_table("deals")
    op.drop_table("contacts")
