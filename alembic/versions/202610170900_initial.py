"""initial schema

Revision ID: 202610170900
Revises:
Create Date: 2026-10-17 09:00:00.000000

"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op


revision = "202610170900"
down_revision = None
branch_labels = None
depends_on = None

DEFAULT_CATEGORIES = [
    "Food",
    "Transport",
    "Shopping",
    "Utilities",
    "Health",
    "Entertainment",
]


def upgrade() -> None:
    op.create_table(
        "transactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("category", sa.String(length=100), nullable=False),
        sa.Column(
            "timestamp",
            sa.DateTime(),
            nullable=False,
            server_default=sa.func.current_timestamp(),
        ),
    )
    op.create_index("ix_transactions_timestamp", "transactions", ["timestamp"])

    categories = op.create_table(
        "categories",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=100), nullable=False, unique=True),
    )
    op.bulk_insert(categories, [{"name": name} for name in DEFAULT_CATEGORIES])

    op.create_table(
        "goals",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("week_start_date", sa.Date(), nullable=False, unique=True),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
    )

    op.create_table(
        "chat_history",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("session_id", sa.String(length=100), nullable=False),
        sa.Column("role", sa.Enum("human", "ai", name="chatrole"), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index(
        "ix_chat_history_session_created",
        "chat_history",
        ["session_id", "created_at"],
    )


def downgrade() -> None:
    op.drop_index("ix_chat_history_session_created", table_name="chat_history")
    op.drop_table("chat_history")
    op.drop_table("goals")
    op.drop_table("categories")
    op.drop_index("ix_transactions_timestamp", table_name="transactions")
    op.drop_table("transactions")
