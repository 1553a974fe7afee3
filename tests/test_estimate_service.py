"""Estimate engine behavior against the SQLite-backed estimate store."""

import asyncio
from decimal import Decimal

import pytest

from garagebill.common.errors import (
    ConditionalWriteError,
    EstimateAlreadyExistsError,
    EstimateNotFoundError,
    InvalidEstimateIDError,
    InvalidEstimateValueError,
    InvalidOrderIDError,
)
from garagebill.services.estimates.repository import EstimateRepository
from garagebill.services.estimates.service import EstimateService


@pytest.fixture
def repository(session_factory, clock):
    return EstimateRepository(session_factory, clock=clock)


@pytest.fixture
def service(repository, clock):
    return EstimateService(repository, clock=clock)


@pytest.mark.parametrize(
    ("order_id", "price"),
    [("os-1", Decimal("10")), ("  os-2  ", Decimal("77.20")), ("OS/2026/0003", 1999.99)],
)
def test_calculate_then_get_returns_pending_estimate(service, order_id, price):
    created = asyncio.run(service.calculate_estimate(order_id, price))
    fetched = asyncio.run(service.get_by_order_id(order_id))

    assert fetched.estimate_id == created.estimate_id
    assert fetched.order_id == order_id.strip()
    assert fetched.status == "pending"
    assert fetched.price == Decimal(str(price))
    assert fetched.created_at == fetched.updated_at


def test_second_estimate_for_same_order_is_rejected(service):
    asyncio.run(service.calculate_estimate("os-1", Decimal("50.00")))

    with pytest.raises(EstimateAlreadyExistsError):
        asyncio.run(service.calculate_estimate("os-1", Decimal("999.00")))

    assert asyncio.run(service.get_by_order_id("os-1")).price == Decimal("50.00")


def test_blank_order_id_is_invalid_input(service):
    with pytest.raises(InvalidOrderIDError):
        asyncio.run(service.calculate_estimate("  ", 10))


@pytest.mark.parametrize("price", [0, -1, Decimal("-0.01"), "abc", "NaN"])
def test_non_positive_price_is_invalid_value(service, price):
    with pytest.raises(InvalidEstimateValueError):
        asyncio.run(service.calculate_estimate("os-1", price))


def test_store_conditional_insert_rejects_concurrent_duplicate(repository, clock):
    """Both callers pass the existence pre-check; the unique order id stops the second insert."""

    class BlindLookupStore:
        def __getattr__(self, name):
            return getattr(repository, name)

        async def get_by_order_id(self, order_id):
            return None

    racing = EstimateService(BlindLookupStore(), clock=clock)
    asyncio.run(racing.calculate_estimate("os-race", 10))

    with pytest.raises(ConditionalWriteError):
        asyncio.run(racing.calculate_estimate("os-race", 20))
    assert asyncio.run(repository.get_by_order_id("os-race")).price == Decimal("10.00")


def test_approve_missing_order_is_not_found(service):
    with pytest.raises(EstimateNotFoundError):
        asyncio.run(service.approve_by_order_id("os-missing"))


def test_approve_sets_status_and_refreshes_timestamp(service):
    created = asyncio.run(service.calculate_estimate("os-1", 10))

    approved = asyncio.run(service.approve_by_order_id(" os-1 "))

    assert approved.estimate_id == created.estimate_id
    assert approved.status == "approved"
    assert approved.updated_at > created.created_at
    assert approved.created_at == created.created_at


@pytest.mark.parametrize(
    ("method", "expected"),
    [("reject_by_order_id", "rejected"), ("cancel_by_order_id", "cancelled")],
)
def test_reject_and_cancel(service, method, expected):
    asyncio.run(service.calculate_estimate("os-1", 10))

    updated = asyncio.run(getattr(service, method)("os-1"))

    assert updated.status == expected
    assert asyncio.run(service.get_by_order_id("os-1")).status == expected


def test_transitions_are_not_guarded_by_current_status(service):
    asyncio.run(service.calculate_estimate("os-1", 10))
    asyncio.run(service.cancel_by_order_id("os-1"))

    reopened = asyncio.run(service.approve_by_order_id("os-1"))

    assert reopened.status == "approved"


def test_transition_blank_order_id(service):
    with pytest.raises(InvalidOrderIDError):
        asyncio.run(service.reject_by_order_id(""))


def test_update_price(service):
    created = asyncio.run(service.calculate_estimate("os-1", 10))

    updated = asyncio.run(service.update_price(created.estimate_id, "42.50"))

    assert updated.price == Decimal("42.50")
    assert updated.status == "pending"
    assert updated.updated_at > created.updated_at


def test_update_price_validation_and_missing(service):
    with pytest.raises(InvalidEstimateIDError):
        asyncio.run(service.update_price(" ", 10))
    with pytest.raises(InvalidEstimateValueError):
        asyncio.run(service.update_price("est-1", 0))
    with pytest.raises(EstimateNotFoundError):
        asyncio.run(service.update_price("est-missing", 10))


def test_get_by_id(service):
    created = asyncio.run(service.calculate_estimate("os-1", 10))

    assert asyncio.run(service.get_by_id(created.estimate_id)).order_id == "os-1"
    with pytest.raises(EstimateNotFoundError):
        asyncio.run(service.get_by_id("est-missing"))
    with pytest.raises(InvalidEstimateIDError):
        asyncio.run(service.get_by_id(""))


def test_get_by_order_id_missing(service):
    with pytest.raises(EstimateNotFoundError):
        asyncio.run(service.get_by_order_id("os-missing"))
