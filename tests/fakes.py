"""In-memory collaborators and builders shared by the test modules."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

from garagebill.common.config import BillingSettings
from garagebill.common.state_machine import EstimateStatus
from garagebill.services.estimates.models import Estimate
from garagebill.services.payments.gateway import GatewayResult
from garagebill.services.payments.models import BillingPayment


class TickingClock:
    """Deterministic clock: every call is one second after the previous one."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


class InMemoryEstimateStore:
    def __init__(self, *estimates: Estimate) -> None:
        self.estimates = {e.estimate_id: e for e in estimates}

    async def create(self, estimate):
        self.estimates[estimate.estimate_id] = estimate
        return estimate

    async def get_by_id(self, estimate_id):
        return self.estimates.get(estimate_id)

    async def get_by_order_id(self, order_id):
        return next((e for e in self.estimates.values() if e.order_id == order_id), None)

    async def update_status_by_order_id(self, order_id, status):
        raise AssertionError("payments never mutate estimates")

    async def update_price_by_id(self, estimate_id, price):
        raise AssertionError("payments never mutate estimates")


class SpyPaymentStore:
    """Records every write so tests can assert nothing was persisted."""

    def __init__(self, error: Exception | None = None) -> None:
        self.created: list[BillingPayment] = []
        self.error = error

    async def create(self, payment):
        if self.error is not None:
            raise self.error
        self.created.append(payment)
        return payment

    async def get_by_id(self, payment_id):
        return next((p for p in self.created if p.payment_id == payment_id), None)

    async def list_by_estimate_id(self, estimate_id):
        return [p for p in self.created if p.estimate_id == estimate_id]


class StubGateway:
    def __init__(
        self,
        status: str = "approved",
        provider_id: str = "1234567890",
        raw: bytes | None = None,
        error: Exception | None = None,
    ) -> None:
        self.status = status
        self.provider_id = provider_id
        self.raw = raw
        self.error = error
        self.calls: list = []

    async def create_payment(self, payload):
        self.calls.append(payload)
        if self.error is not None:
            raise self.error
        raw = self.raw
        if raw is None:
            raw = ('{"id": %s, "status": "%s"}' % (self.provider_id, self.status)).encode("utf-8")
        return GatewayResult(provider_id=self.provider_id, status=self.status, raw=raw)


def make_settings(**overrides) -> BillingSettings:
    values = {
        "payment_gateway_mock": "",
        "mercadopago_mock": "",
        "mercadopago_access_token": "APP_USR-production-token",
        "mercadopago_test_payer_email": "",
        "mercadopago_test_payer_user_id": "",
    }
    values.update(overrides)
    return BillingSettings(_env_file=None, **values)


def make_estimate(
    estimate_id: str = "est-1",
    status: EstimateStatus = EstimateStatus.APPROVED,
    price: str = "77.20",
) -> Estimate:
    now = datetime(2026, 1, 1, tzinfo=timezone.utc)
    return Estimate(
        estimate_id=estimate_id,
        order_id=f"os-{estimate_id}",
        price=Decimal(price),
        status=status.value,
        created_at=now,
        updated_at=now,
    )
