"""cases, quotes, payments, case histories

Revision ID: 0001_cases_quotes_payments
Revises:
Create Date: 2026-10-17
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "0001_cases_quotes_payments"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "cases",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("client_id", sa.String(length=128), nullable=False),

        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("category", sa.String(length=100), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=sa.text("''")),

        sa.Column("status", sa.String(length=20), nullable=False, server_default=sa.text("'open'")),

        sa.Column("accepted_quote_id", sa.Uuid(), nullable=True),
        sa.Column("accepted_lawyer_id", sa.String(length=128), nullable=True),
        sa.Column("engaged_at", sa.DateTime(timezone=True), nullable=True),

        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("ix_cases_client_id", "cases", ["client_id"])
    op.create_index("ix_cases_status", "cases", ["status"])

    op.create_table(
        "quotes",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("case_id", sa.Uuid(), sa.ForeignKey("cases.id", ondelete="CASCADE"), nullable=False),
        sa.Column("lawyer_id", sa.String(length=128), nullable=False),

        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("days", sa.Integer(), nullable=False),
        sa.Column("note", sa.Text(), nullable=False, server_default=sa.text("''")),

        sa.Column("status", sa.String(length=20), nullable=False, server_default=sa.text("'proposed'")),

        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),

        sa.UniqueConstraint("case_id", "lawyer_id", name="uq_quote_case_lawyer"),
    )
    op.create_index("ix_quote_case_status", "quotes", ["case_id", "status"])

    op.create_table(
        "payments",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("case_id", sa.Uuid(), sa.ForeignKey("cases.id", ondelete="CASCADE"), nullable=False),
        sa.Column("quote_id", sa.Uuid(), sa.ForeignKey("quotes.id", ondelete="CASCADE"), nullable=False),
        sa.Column("client_id", sa.String(length=128), nullable=False),

        sa.Column("provider", sa.String(length=20), nullable=False, server_default=sa.text("'mock'")),
        sa.Column("provider_session_id", sa.String(length=255), nullable=True, unique=True),
        sa.Column("provider_payment_intent", sa.String(length=255), nullable=True, unique=True),

        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default=sa.text("'initiated'")),

        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("ix_payments_case_id", "payments", ["case_id"])
    op.create_index(
        "ux_payment_quote_active",
        "payments",
        ["quote_id"],
        unique=True,
        postgresql_where=sa.text("status <> 'failed'"),
    )

    op.create_table(
        "case_histories",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("case_id", sa.Uuid(), nullable=False),
        sa.Column("actor_id", sa.String(length=128), nullable=False),

        sa.Column("action", sa.String(length=50), nullable=False),
        sa.Column("old_status", sa.String(length=20), nullable=True),
        sa.Column("new_status", sa.String(length=20), nullable=True),
        sa.Column("reason", sa.Text(), nullable=False, server_default=sa.text("''")),

        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("ix_case_history_case_created", "case_histories", ["case_id", "created_at"])
    op.create_index("ix_case_history_actor", "case_histories", ["actor_id"])


def downgrade():
    op.drop_index("ix_case_history_actor", table_name="case_histories")
    op.drop_index("ix_case_history_case_created", table_name="case_histories")
    op.drop_table("case_histories")

    op.drop_index("ux_payment_quote_active", table_name="payments")
    op.drop_index("ix_payments_case_id", table_name="payments")
    op.drop_table("payments")

    op.drop_index("ix_quote_case_status", table_name="quotes")
    op.drop_table("quotes")

    op.drop_index("ix_cases_status", table_name="cases")
    op.drop_index("ix_cases_client_id", table_name="cases")
    op.drop_table("cases")
