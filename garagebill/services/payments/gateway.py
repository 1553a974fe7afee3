"""Mercado Pago payment gateway client and provider error classification."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol
from uuid import uuid4

import httpx

from garagebill.common.config import BillingSettings
from garagebill.common.errors import GatewayError
from garagebill.common.logging import logger


@dataclass(frozen=True)
class GatewayResult:
    """Provider outcome: payment id, provider status string and raw response body."""

    provider_id: str
    status: str
    raw: bytes


class PaymentGateway(Protocol):
    async def create_payment(self, payload: Any) -> GatewayResult: ...


class GatewayErrorKind(str, Enum):
    CUSTOMER_NOT_FOUND = "customer_not_found"
    INVALID_USERS = "invalid_users"
    UNAUTHORIZED = "unauthorized"
    BAD_REQUEST = "bad_request"


# Checked in order; the provider only surfaces stringified error bodies.
_ERROR_MARKERS: tuple[tuple[GatewayErrorKind, tuple[str, ...]], ...] = (
    (GatewayErrorKind.CUSTOMER_NOT_FOUND, ("customer not found", '"code":2002')),
    (GatewayErrorKind.INVALID_USERS, ("invalid users involved", '"code":2034')),
    (GatewayErrorKind.UNAUTHORIZED, ('"error":"unauthorized"', '"status":401')),
    (GatewayErrorKind.BAD_REQUEST, ('"error":"bad_request"', '"status":400')),
)


def classify_gateway_error(exc: BaseException) -> GatewayErrorKind | None:
    """Return the first error kind whose marker appears in the error text."""

    message = str(exc).lower()
    for kind, markers in _ERROR_MARKERS:
        if any(marker in message for marker in markers):
            return kind
    return None


class MercadoPagoGateway:
    """Creates payments through `POST /v1/payments`."""

    def __init__(
        self,
        access_token: str,
        api_url: str = "https://api.mercadopago.com",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.access_token = access_token
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    async def create_payment(self, payload: Any) -> GatewayResult:
        headers = {
            "Authorization": f"Bearer {self.access_token}",
            "X-Idempotency-Key": str(uuid4()),
        }
        async with httpx.AsyncClient(base_url=self.api_url, timeout=self.timeout, transport=self.transport) as client:
            resp = await client.post("/v1/payments", json=payload, headers=headers)

        if resp.status_code >= 400:
            logger.warning("mercado pago create payment rejected status_code=%s", resp.status_code)
            raise GatewayError(
                f"mercado pago create payment failed status_code={resp.status_code} body={resp.text}",
                status_code=resp.status_code,
            )
        try:
            body = resp.json()
        except ValueError as exc:
            raise GatewayError(f"mercado pago returned a non-json body: {resp.text}") from exc
        if not isinstance(body, dict) or body.get("id") is None:
            raise GatewayError(f"mercado pago response missing payment id: {resp.text}")

        provider_id = str(body["id"])
        provider_status = str(body.get("status") or "")
        logger.info("mercado pago payment created provider_payment_id=%s status=%s", provider_id, provider_status)
        return GatewayResult(provider_id=provider_id, status=provider_status, raw=resp.content)


def build_gateway(settings: BillingSettings) -> MercadoPagoGateway | None:
    """Gateway for the configured credential, or `None` when no token is set."""

    access_token = settings.mercadopago_access_token.strip()
    if not access_token:
        logger.warning("mercado pago gateway not configured: missing MERCADOPAGO_ACCESS_TOKEN")
        return None
    return MercadoPagoGateway(
        access_token,
        api_url=settings.mercadopago_api_url,
        timeout=settings.gateway_timeout_seconds,
    )
