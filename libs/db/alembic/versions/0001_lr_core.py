# ruff: noqa: I001
"""Ledger core tables and reserved categories.

Revision ID: 0001_lr_core
Revises: None
Create Date: 2026-10-19
"""

from __future__ import annotations  # ruff: noqa: I001

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "0001_lr_core"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # lr_accounts
    op.create_table(
        "lr_accounts",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("bank_id", sa.String(), nullable=False),
        sa.Column("account_number", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("bank_id", "account_number", name="uq_lr_accounts_bank_account"),
    )

    # lr_categories
    op.create_table(
        "lr_categories",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(), nullable=False, unique=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )

    # Reserved categories; ids match the application's lookups by name.
    op.bulk_insert(
        sa.table(
            "lr_categories",
            sa.column("id", sa.Integer()),
            sa.column("name", sa.String()),
        ),
        [
            {"id": 1, "name": "UNKNOWN"},
            {"id": 2, "name": "TRANSFER"},
        ],
    )

    # lr_transactions
    op.create_table(
        "lr_transactions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("account_id", sa.Integer(), sa.ForeignKey("lr_accounts.id"), nullable=False),
        sa.Column(
            "category_id", sa.Integer(), sa.ForeignKey("lr_categories.id"), nullable=False
        ),
        sa.Column("fit_id", sa.String(), nullable=True),
        sa.Column("type", sa.String(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("amount", sa.Numeric(18, 2), nullable=False),
        sa.Column("balance", sa.Numeric(18, 2), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index(
        "ix_lr_tx_dupe_key",
        "lr_transactions",
        ["account_id", "date", "amount", "description"],
    )
    op.create_index("ix_lr_tx_category", "lr_transactions", ["category_id"])

    # lr_transaction_tokens
    op.create_table(
        "lr_transaction_tokens",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "transaction_id",
            sa.Integer(),
            sa.ForeignKey("lr_transactions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("token", sa.String(), nullable=False),
        sa.UniqueConstraint("transaction_id", "token", name="uq_lr_tx_tokens_tx_token"),
    )
    op.create_index("ix_lr_tx_tokens_token", "lr_transaction_tokens", ["token"])

    # lr_transfers
    op.create_table(
        "lr_transfers",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "source_id",
            sa.Integer(),
            sa.ForeignKey("lr_transactions.id"),
            nullable=False,
            unique=True,
        ),
        sa.Column(
            "sink_id",
            sa.Integer(),
            sa.ForeignKey("lr_transactions.id"),
            nullable=False,
            unique=True,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )


def downgrade() -> None:
    op.drop_table("lr_transfers")
    op.drop_index("ix_lr_tx_tokens_token", table_name="lr_transaction_tokens")
    op.drop_table("lr_transaction_tokens")
    op.drop_index("ix_lr_tx_category", table_name="lr_transactions")
    op.drop_index("ix_lr_tx_dupe_key", table_name="lr_transactions")
    op.drop_table("lr_transactions")
    op.drop_table("lr_categories")
    op.drop_table("lr_accounts")
