"""Estimate database model.

One row per service order; the row is the source of truth for the price that
any payment against it will charge.
"""

from datetime import datetime
from decimal import Decimal
from uuid import uuid4

from sqlalchemy import CheckConstraint, DateTime, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from garagebill.common.db import Base


class Estimate(Base):
    """Priced quote for a vehicle-service order."""

    __tablename__ = "estimates"
    __table_args__ = (CheckConstraint("price > 0", name="ck_estimates_price_positive"),)

    estimate_id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid4()))
    order_id: Mapped[str] = mapped_column(String, unique=True, index=True)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    status: Mapped[str] = mapped_column(String, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
