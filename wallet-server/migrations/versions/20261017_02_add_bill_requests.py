"""widen money columns and add bill requests

Revision ID: 8d21e5c4a913
Revises: 3f9c1a7e2b40
Create Date: 2026-10-17 14:05:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "8d21e5c4a913"
down_revision = "3f9c1a7e2b40"
branch_labels = None
depends_on = None


def upgrade() -> None:
    with op.batch_alter_table("user_accounts") as batch_op:
        batch_op.alter_column("balance_paise", existing_type=sa.Integer(), type_=sa.BigInteger(), existing_nullable=False)
    with op.batch_alter_table("wallet_transactions") as batch_op:
        batch_op.alter_column("amount_paise", existing_type=sa.Integer(), type_=sa.BigInteger(), existing_nullable=False)

    op.create_table(
        "bill_requests",
        sa.Column("id", sa.String(length=64), primary_key=True),
        sa.Column("requester_id", sa.String(length=128), sa.ForeignKey("user_accounts.id"), nullable=False),
        sa.Column("requester_name", sa.String(length=100), nullable=False),
        sa.Column("description", sa.String(length=200), nullable=False),
        sa.Column("total_paise", sa.BigInteger(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_bill_requests_requester_id", "bill_requests", ["requester_id"])

    op.create_table(
        "bill_shares",
        sa.Column("bill_id", sa.String(length=64), sa.ForeignKey("bill_requests.id"), primary_key=True),
        sa.Column("participant_id", sa.String(length=128), sa.ForeignKey("user_accounts.id"), primary_key=True),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("participant_name", sa.String(length=100), nullable=False),
        sa.Column("amount_paise", sa.BigInteger(), nullable=False),
        sa.Column("status", sa.String(length=10), nullable=False, server_default="pending"),
        sa.Column("transaction_id", sa.String(length=64)),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
        sa.CheckConstraint("amount_paise > 0", name="ck_bill_shares_amount_positive"),
    )
    op.create_index("ix_bill_shares_participant_id", "bill_shares", ["participant_id"])


def downgrade() -> None:
    op.drop_index("ix_bill_shares_participant_id", table_name="bill_shares")
    op.drop_table("bill_shares")
    op.drop_index("ix_bill_requests_requester_id", table_name="bill_requests")
    op.drop_table("bill_requests")

    with op.batch_alter_table("wallet_transactions") as batch_op:
        batch_op.alter_column("amount_paise", existing_type=sa.BigInteger(), type_=sa.Integer(), existing_nullable=False)
    with op.batch_alter_table("user_accounts") as batch_op:
        batch_op.alter_column("balance_paise", existing_type=sa.BigInteger(), type_=sa.Integer(), existing_nullable=False)
