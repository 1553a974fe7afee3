"""Payment orchestration: validate, enrich, charge, record.

`create_and_approve` loads the estimate, turns the caller's Mercado Pago
request into the payload actually charged, calls the gateway (or synthesizes
an approval in mock mode) and appends the outcome as an immutable payment row.
Every failure path returns before the write, so a row exists only for a
successful gateway call.
"""

import json
import time
from collections.abc import Callable
from datetime import datetime
from typing import Any

from pydantic import ValidationError

from garagebill.common.config import BillingSettings
from garagebill.common.errors import (
    BillingError,
    EstimateNotApprovedError,
    EstimateNotFoundError,
    GatewayBadRequestError,
    GatewayCustomerNotFoundError,
    GatewayInvalidUsersError,
    GatewayUnauthorizedError,
    InvalidEstimateIDError,
    InvalidPayloadError,
    InvalidPaymentIDError,
    PaymentNotFoundError,
    UnconfiguredError,
)
from garagebill.common.logging import logger, payment_id_ctx
from garagebill.common.metrics import (
    gateway_latency_seconds,
    payment_failure_total,
    payment_requests_total,
    payment_success_total,
)
from garagebill.common.state_machine import EstimateStatus, payment_status_from_provider
from garagebill.services.estimates.models import Estimate
from garagebill.services.estimates.repository import EstimateStore, utcnow
from garagebill.services.payments.gateway import GatewayErrorKind, GatewayResult, PaymentGateway, classify_gateway_error
from garagebill.services.payments.models import BillingPayment
from garagebill.services.payments.payload import PaymentRequest, enrich_payment_request
from garagebill.services.payments.repository import PaymentStore


GATEWAY_ERRORS: dict[GatewayErrorKind, type[BillingError]] = {
    GatewayErrorKind.CUSTOMER_NOT_FOUND: GatewayCustomerNotFoundError,
    GatewayErrorKind.INVALID_USERS: GatewayInvalidUsersError,
    GatewayErrorKind.UNAUTHORIZED: GatewayUnauthorizedError,
    GatewayErrorKind.BAD_REQUEST: GatewayBadRequestError,
}


def _decode_payload(raw_payload: bytes | str | None, mock_mode: bool) -> Any:
    """Decode the request body; mock mode swaps empty or broken bodies for `{}`."""

    if isinstance(raw_payload, str):
        raw_payload = raw_payload.encode("utf-8")
    if not raw_payload:
        if mock_mode:
            return {}
        raise InvalidPayloadError("empty payload")
    try:
        return json.loads(raw_payload)
    except ValueError:
        if mock_mode:
            return {}
        raise InvalidPayloadError("payload is not valid json") from None


def _parse_provider_response(raw: bytes) -> dict | None:
    try:
        parsed = json.loads(raw)
    except ValueError as exc:
        logger.warning("provider response unmarshal failed error=%s", exc)
        return None
    return parsed if isinstance(parsed, dict) else None


class PaymentService:
    """Owns the payment-creation workflow and payment reads."""

    def __init__(
        self,
        store: PaymentStore,
        estimate_store: EstimateStore | None,
        gateway: PaymentGateway | None,
        settings: BillingSettings,
        service_name: str = "billing",
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self.estimate_store = estimate_store
        self.gateway = gateway
        self.settings = settings
        self.service_name = service_name
        self.clock = clock

    async def create_and_approve(self, estimate_id: str, raw_payload: bytes | str | None) -> BillingPayment:
        """Charge the estimate's price and record the resulting payment."""

        payment_requests_total.labels(service=self.service_name).inc()
        try:
            return await self._create_and_approve(estimate_id, raw_payload)
        except BillingError as exc:
            payment_failure_total.labels(service=self.service_name, reason=exc.code).inc()
            raise

    async def _create_and_approve(self, estimate_id: str, raw_payload: bytes | str | None) -> BillingPayment:
        mock_mode = self.settings.mock_mode
        estimate_id = (estimate_id or "").strip()
        if not estimate_id:
            raise InvalidEstimateIDError()
        logger.info("create-and-approve start estimate_id=%s mock_mode=%s", estimate_id, mock_mode)

        document = _decode_payload(raw_payload, mock_mode)
        if self.gateway is None and not mock_mode:
            logger.error("payment gateway not configured estimate_id=%s", estimate_id)
            raise UnconfiguredError("payment gateway not configured")
        if self.estimate_store is None:
            logger.error("estimate repository not configured estimate_id=%s", estimate_id)
            raise UnconfiguredError("estimate repository not configured")

        estimate = await self.estimate_store.get_by_id(estimate_id)
        if estimate is None:
            raise EstimateNotFoundError()
        if not mock_mode and estimate.status != EstimateStatus.APPROVED:
            logger.info("estimate not approved estimate_id=%s status=%s", estimate_id, estimate.status)
            raise EstimateNotApprovedError()

        payload = self._build_payload(document, estimate, mock_mode)
        if mock_mode:
            logger.info("mock mode enabled; skipping payment gateway estimate_id=%s", estimate_id)
            result = self._mock_result(payload, estimate)
        else:
            result = await self._charge(payload, estimate_id)

        status = payment_status_from_provider(result.status)
        payment = BillingPayment(
            payment_id=result.provider_id,
            estimate_id=estimate_id,
            status=status.value,
            paid_at=self.clock(),
            provider_payload_raw=result.raw,
            provider_payload=_parse_provider_response(result.raw),
        )
        created = await self.store.create(payment)
        payment_id_ctx.set(created.payment_id)
        payment_success_total.labels(service=self.service_name, status=status.value).inc()
        logger.info(
            "create-and-approve success estimate_id=%s payment_id=%s status=%s provider_status=%s",
            estimate_id,
            created.payment_id,
            created.status,
            result.status,
        )
        return created

    def _build_payload(self, document: Any, estimate: Estimate, mock_mode: bool) -> Any:
        # Arrays and scalars are forwarded as sent.
        if not isinstance(document, dict):
            return document
        try:
            request = PaymentRequest.model_validate(document)
        except ValidationError as exc:
            if not mock_mode:
                raise InvalidPayloadError("payer must be an object") from exc
            request = PaymentRequest.from_document(document)
        return enrich_payment_request(request, estimate, self.settings, mock_mode).to_payload()

    async def _charge(self, payload: Any, estimate_id: str) -> GatewayResult:
        try:
            with gateway_latency_seconds.labels(service=self.service_name).time():
                return await self.gateway.create_payment(payload)
        except Exception as exc:
            logger.warning("payment gateway failed estimate_id=%s error=%s", estimate_id, exc)
            kind = classify_gateway_error(exc)
            if kind is None:
                raise
            raise GATEWAY_ERRORS[kind]() from exc

    def _mock_result(self, payload: Any, estimate: Estimate) -> GatewayResult:
        provider_id = str(time.time_ns())
        now = self.clock().isoformat()
        response = dict(payload) if isinstance(payload, dict) else {}
        response.update(
            id=provider_id,
            status="approved",
            status_detail="accredited",
            date_created=now,
            date_approved=now,
        )
        response.setdefault("external_reference", estimate.estimate_id)
        response.setdefault("transaction_amount", float(estimate.price))
        return GatewayResult(provider_id=provider_id, status="approved", raw=json.dumps(response).encode("utf-8"))

    async def get_by_id(self, payment_id: str) -> BillingPayment:
        payment_id = (payment_id or "").strip()
        if not payment_id:
            raise InvalidPaymentIDError()
        payment = await self.store.get_by_id(payment_id)
        if payment is None:
            raise PaymentNotFoundError()
        return payment

    async def list_by_estimate_id(self, estimate_id: str) -> list[BillingPayment]:
        """All payments for an estimate; an empty list is a valid answer."""

        estimate_id = (estimate_id or "").strip()
        if not estimate_id:
            raise InvalidEstimateIDError()
        return await self.store.list_by_estimate_id(estimate_id)

    async def latest_by_estimate_id(self, estimate_id: str) -> BillingPayment:
        payments = await self.list_by_estimate_id(estimate_id)
        if not payments:
            raise PaymentNotFoundError()
        return max(payments, key=lambda p: p.paid_at)
