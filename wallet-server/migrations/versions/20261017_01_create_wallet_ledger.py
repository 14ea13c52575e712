"""create user accounts and wallet transaction history

Revision ID: 3f9c1a7e2b40
Revises:
Create Date: 2026-10-17 09:30:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "3f9c1a7e2b40"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "user_accounts",
        sa.Column("id", sa.String(length=128), primary_key=True),
        sa.Column("display_name", sa.String(length=100), nullable=False, server_default=""),
        sa.Column("balance_paise", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("version", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
        sa.CheckConstraint("balance_paise >= 0", name="ck_user_accounts_balance_non_negative"),
    )

    op.create_table(
        "wallet_transactions",
        sa.Column("account_id", sa.String(length=128), sa.ForeignKey("user_accounts.id"), primary_key=True),
        sa.Column("transaction_id", sa.String(length=64), primary_key=True),
        sa.Column("amount_paise", sa.Integer(), nullable=False),
        sa.Column("direction", sa.String(length=10), nullable=False),
        sa.Column("counterparty_id", sa.String(length=128)),
        sa.Column("counterparty_name", sa.String(length=100), nullable=False),
        sa.Column("idempotency_key", sa.String(length=128)),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("account_id", "idempotency_key", name="uq_wallet_transactions_idempotency_key"),
    )
    op.create_index("ix_wallet_transactions_created_at", "wallet_transactions", ["account_id", "created_at"])


def downgrade() -> None:
    op.drop_index("ix_wallet_transactions_created_at", table_name="wallet_transactions")
    op.drop_table("wallet_transactions")
    op.drop_table("user_accounts")
