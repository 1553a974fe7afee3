"""Billing payment database model.

Rows are append-only: the provider payment id is the primary key and there is
no update path. A change on the provider side is recorded as a new row.
"""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, LargeBinary, String
from sqlalchemy.orm import Mapped, mapped_column

from garagebill.common.db import Base, JSONType


class BillingPayment(Base):
    """One payment attempt/outcome against an estimate."""

    __tablename__ = "billing_payments"

    payment_id: Mapped[str] = mapped_column(String, primary_key=True)
    estimate_id: Mapped[str] = mapped_column(ForeignKey("estimates.estimate_id"), index=True)
    status: Mapped[str] = mapped_column(String, index=True)
    paid_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    # Provider response exactly as received, kept for audit.
    provider_payload_raw: Mapped[bytes] = mapped_column(LargeBinary)
    provider_payload: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
