"""Billing payment store backed by SQLAlchemy (insert and read only)."""

import asyncio
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from garagebill.common.errors import ConditionalWriteError
from garagebill.services.estimates.repository import as_utc
from garagebill.services.payments.models import BillingPayment


class PaymentStore(Protocol):
    """Append-only payment persistence; `None` means no matching record."""

    async def create(self, payment: BillingPayment) -> BillingPayment: ...

    async def get_by_id(self, payment_id: str) -> BillingPayment | None: ...

    async def list_by_estimate_id(self, estimate_id: str) -> list[BillingPayment]: ...


def _detached(payment: BillingPayment | None) -> BillingPayment | None:
    if payment is not None:
        payment.paid_at = as_utc(payment.paid_at)
    return payment


class PaymentRepository:
    """SQLAlchemy implementation of `PaymentStore`."""

    def __init__(self, session_factory) -> None:
        self.session_factory = session_factory

    async def create(self, payment: BillingPayment) -> BillingPayment:
        return await asyncio.to_thread(self._create, payment)

    async def get_by_id(self, payment_id: str) -> BillingPayment | None:
        return await asyncio.to_thread(self._get_by_id, payment_id)

    async def list_by_estimate_id(self, estimate_id: str) -> list[BillingPayment]:
        return await asyncio.to_thread(self._list_by_estimate_id, estimate_id)

    def _create(self, payment: BillingPayment) -> BillingPayment:
        with self.session_factory() as db:
            db.add(payment)
            try:
                db.commit()
            except IntegrityError as exc:
                db.rollback()
                raise ConditionalWriteError(f"billing payment already exists payment_id={payment.payment_id}") from exc
        return _detached(payment)

    def _get_by_id(self, payment_id: str) -> BillingPayment | None:
        with self.session_factory() as db:
            return _detached(db.get(BillingPayment, payment_id))

    def _list_by_estimate_id(self, estimate_id: str) -> list[BillingPayment]:
        with self.session_factory() as db:
            payments = db.execute(
                select(BillingPayment)
                .where(BillingPayment.estimate_id == estimate_id)
                .order_by(BillingPayment.paid_at)
            ).scalars().all()
            return [_detached(p) for p in payments]
