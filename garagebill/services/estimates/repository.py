"""Estimate store backed by SQLAlchemy.

Writes are conditional: inserts rely on the primary key and the unique
`order_id` index to reject a second row, updates only touch an existing row
(`UPDATE ... WHERE` plus a rowcount check). Blocking session work runs in a
worker thread so callers can be cancelled at each store call.
"""

import asyncio
from collections.abc import Callable
from datetime import datetime, timezone
from decimal import Decimal
from typing import Protocol

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from garagebill.common.errors import ConditionalWriteError
from garagebill.common.state_machine import EstimateStatus
from garagebill.services.estimates.models import Estimate


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """SQLite drops tzinfo on read; every timestamp we hand out is UTC-aware."""

    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class EstimateStore(Protocol):
    """Keyed estimate persistence; `None` means no matching record."""

    async def create(self, estimate: Estimate) -> Estimate: ...

    async def get_by_id(self, estimate_id: str) -> Estimate | None: ...

    async def get_by_order_id(self, order_id: str) -> Estimate | None: ...

    async def update_status_by_order_id(self, order_id: str, status: EstimateStatus) -> Estimate | None: ...

    async def update_price_by_id(self, estimate_id: str, price: Decimal) -> Estimate | None: ...


def _detached(estimate: Estimate | None) -> Estimate | None:
    if estimate is None:
        return None
    estimate.created_at = as_utc(estimate.created_at)
    estimate.updated_at = as_utc(estimate.updated_at)
    return estimate


class EstimateRepository:
    """SQLAlchemy implementation of `EstimateStore`."""

    def __init__(self, session_factory, clock: Callable[[], datetime] = utcnow) -> None:
        self.session_factory = session_factory
        self.clock = clock

    async def create(self, estimate: Estimate) -> Estimate:
        return await asyncio.to_thread(self._create, estimate)

    async def get_by_id(self, estimate_id: str) -> Estimate | None:
        return await asyncio.to_thread(self._get_by_id, estimate_id)

    async def get_by_order_id(self, order_id: str) -> Estimate | None:
        return await asyncio.to_thread(self._get_by_order_id, order_id)

    async def update_status_by_order_id(self, order_id: str, status: EstimateStatus) -> Estimate | None:
        return await asyncio.to_thread(
            self._update_where, Estimate.order_id == order_id, {"status": EstimateStatus(status).value}
        )

    async def update_price_by_id(self, estimate_id: str, price: Decimal) -> Estimate | None:
        return await asyncio.to_thread(self._update_where, Estimate.estimate_id == estimate_id, {"price": price})

    def _create(self, estimate: Estimate) -> Estimate:
        with self.session_factory() as db:
            db.add(estimate)
            try:
                db.commit()
            except IntegrityError as exc:
                db.rollback()
                raise ConditionalWriteError(
                    f"estimate already exists estimate_id={estimate.estimate_id} order_id={estimate.order_id}"
                ) from exc
        return _detached(estimate)

    def _get_by_id(self, estimate_id: str) -> Estimate | None:
        with self.session_factory() as db:
            return _detached(db.get(Estimate, estimate_id))

    def _get_by_order_id(self, order_id: str) -> Estimate | None:
        with self.session_factory() as db:
            estimate = db.execute(select(Estimate).where(Estimate.order_id == order_id)).scalar_one_or_none()
            return _detached(estimate)

    def _update_where(self, condition, values: dict) -> Estimate | None:
        """Update only if the row exists; returns the row as stored after the write."""

        with self.session_factory() as db:
            result = db.execute(
                update(Estimate)
                .where(condition)
                .values(**values, updated_at=self.clock())
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                db.rollback()
                return None
            estimate = db.execute(select(Estimate).where(condition)).scalar_one()
            db.commit()
        return _detached(estimate)
