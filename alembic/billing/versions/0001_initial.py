"""initial billing schema

Revision ID: 0001_billing
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision = "0001_billing"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "estimates",
        sa.Column("estimate_id", sa.String(), nullable=False),
        sa.Column("order_id", sa.String(), nullable=False),
        sa.Column("price", sa.Numeric(12, 2), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("estimate_id"),
        sa.CheckConstraint("price > 0", name="ck_estimates_price_positive"),
    )
    op.create_index("ix_estimates_order_id", "estimates", ["order_id"], unique=True)
    op.create_index("ix_estimates_status", "estimates", ["status"])

    op.create_table(
        "billing_payments",
        sa.Column("payment_id", sa.String(), nullable=False),
        sa.Column("estimate_id", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("provider_payload_raw", sa.LargeBinary(), nullable=False),
        sa.Column("provider_payload", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.ForeignKeyConstraint(["estimate_id"], ["estimates.estimate_id"]),
        sa.PrimaryKeyConstraint("payment_id"),
    )
    op.create_index("ix_billing_payments_estimate_id", "billing_payments", ["estimate_id"])
    op.create_index("ix_billing_payments_status", "billing_payments", ["status"])


def downgrade() -> None:
    op.drop_index("ix_billing_payments_status", table_name="billing_payments")
    op.drop_index("ix_billing_payments_estimate_id", table_name="billing_payments")
    op.drop_table("billing_payments")
    op.drop_index("ix_estimates_status", table_name="estimates")
    op.drop_index("ix_estimates_order_id", table_name="estimates")
    op.drop_table("estimates")
