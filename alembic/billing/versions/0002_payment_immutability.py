"""enforce immutable billing payments

Revision ID: 0002_payment_immutability
Revises: 0001_billing
Create Date: 2026-10-19
"""

from alembic import op


revision = "0002_payment_immutability"
down_revision = "0001_billing"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.execute(
        """
        CREATE OR REPLACE FUNCTION prevent_billing_payment_mutation()
        RETURNS trigger
        LANGUAGE plpgsql
        AS $$
        BEGIN
            RAISE EXCEPTION 'billing_payments is append-only; % is not allowed', TG_OP;
        END;
        $$;
        """
    )
    op.execute(
        """
        CREATE TRIGGER trg_billing_payments_immutable
        BEFORE UPDATE OR DELETE ON billing_payments
        FOR EACH ROW
        EXECUTE FUNCTION prevent_billing_payment_mutation();
        """
    )


def downgrade() -> None:
    op.execute("DROP TRIGGER IF EXISTS trg_billing_payments_immutable ON billing_payments;")
    op.execute("DROP FUNCTION IF EXISTS prevent_billing_payment_mutation();")
