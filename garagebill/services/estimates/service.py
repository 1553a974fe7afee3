"""Estimate lifecycle engine.

Owns estimate creation (one per service order), status transitions keyed by
order id and price recalculation keyed by estimate id.
"""

from collections.abc import Callable
from datetime import datetime
from decimal import Decimal
from uuid import uuid4

from garagebill.common.errors import (
    EstimateAlreadyExistsError,
    EstimateNotFoundError,
    InvalidEstimateIDError,
    InvalidEstimateValueError,
    InvalidOrderIDError,
)
from garagebill.common.logging import logger
from garagebill.common.metrics import estimate_transitions_total, estimates_created_total
from garagebill.common.state_machine import EstimateStatus, status_for_action
from garagebill.services.estimates.models import Estimate
from garagebill.services.estimates.repository import EstimateStore, utcnow


def _clean_order_id(order_id: str | None) -> str:
    order_id = (order_id or "").strip()
    if not order_id:
        raise InvalidOrderIDError()
    return order_id


def _clean_estimate_id(estimate_id: str | None) -> str:
    estimate_id = (estimate_id or "").strip()
    if not estimate_id:
        raise InvalidEstimateIDError()
    return estimate_id


def _positive_price(price) -> Decimal:
    try:
        value = Decimal(str(price))
    except (ArithmeticError, ValueError):
        raise InvalidEstimateValueError() from None
    if not value.is_finite() or value <= 0:
        raise InvalidEstimateValueError()
    return value


class EstimateService:
    """Owns the estimate state machine and its invariants."""

    def __init__(
        self,
        store: EstimateStore,
        service_name: str = "billing",
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self.service_name = service_name
        self.clock = clock

    async def calculate_estimate(self, order_id: str, price) -> Estimate:
        """Create the pending estimate for an order; an existing one is never overwritten.

        The lookup below is only a fast path. Two concurrent calls for the same
        order are settled by the store's conditional insert.
        """

        order_id = _clean_order_id(order_id)
        price = _positive_price(price)

        existing = await self.store.get_by_order_id(order_id)
        if existing is not None:
            logger.info("estimate already exists order_id=%s estimate_id=%s", order_id, existing.estimate_id)
            raise EstimateAlreadyExistsError()

        now = self.clock()
        estimate = Estimate(
            estimate_id=str(uuid4()),
            order_id=order_id,
            price=price,
            status=EstimateStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )
        created = await self.store.create(estimate)
        estimates_created_total.labels(service=self.service_name).inc()
        logger.info(
            "estimate created order_id=%s estimate_id=%s price=%s", order_id, created.estimate_id, created.price
        )
        return created

    async def approve_by_order_id(self, order_id: str) -> Estimate:
        return await self._transition_by_order_id(order_id, "approve")

    async def reject_by_order_id(self, order_id: str) -> Estimate:
        return await self._transition_by_order_id(order_id, "reject")

    async def cancel_by_order_id(self, order_id: str) -> Estimate:
        return await self._transition_by_order_id(order_id, "cancel")

    async def _transition_by_order_id(self, order_id: str, action: str) -> Estimate:
        # Any status may move to any other; there is no guard on the current status.
        order_id = _clean_order_id(order_id)
        status = status_for_action(action)

        updated = await self.store.update_status_by_order_id(order_id, status)
        if updated is None:
            logger.info("estimate transition on missing order order_id=%s action=%s", order_id, action)
            raise EstimateNotFoundError()
        estimate_transitions_total.labels(service=self.service_name, status=status.value).inc()
        logger.info(
            "estimate transitioned order_id=%s estimate_id=%s status=%s", order_id, updated.estimate_id, status.value
        )
        return updated

    async def update_price(self, estimate_id: str, new_price) -> Estimate:
        """Recalculate the total of an existing estimate."""

        estimate_id = _clean_estimate_id(estimate_id)
        new_price = _positive_price(new_price)

        updated = await self.store.update_price_by_id(estimate_id, new_price)
        if updated is None:
            raise EstimateNotFoundError()
        logger.info("estimate price updated estimate_id=%s price=%s", estimate_id, new_price)
        return updated

    async def get_by_id(self, estimate_id: str) -> Estimate:
        estimate_id = _clean_estimate_id(estimate_id)
        estimate = await self.store.get_by_id(estimate_id)
        if estimate is None:
            raise EstimateNotFoundError()
        return estimate

    async def get_by_order_id(self, order_id: str) -> Estimate:
        order_id = _clean_order_id(order_id)
        estimate = await self.store.get_by_order_id(order_id)
        if estimate is None:
            raise EstimateNotFoundError()
        return estimate
