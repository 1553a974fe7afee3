"""API request/response schemas for payment endpoints."""

import json
from datetime import datetime
from typing import Any

from pydantic import BaseModel

from garagebill.services.payments.models import BillingPayment


class PaymentRequestError(ValueError):
    """Request body cannot be turned into a provider payload."""


def extract_provider_payload(body: bytes) -> bytes:
    """Return the provider request from a raw body.

    A blank body means `{}`. A JSON object with an `mp_payload` key is an
    envelope and is unwrapped; anything else is the provider request itself.
    """

    if not body.strip():
        return b"{}"
    try:
        document = json.loads(body)
    except ValueError:
        raise PaymentRequestError("request body is not valid json") from None
    if isinstance(document, dict) and "mp_payload" in document:
        wrapped = document["mp_payload"]
        if wrapped is None or wrapped == "":
            raise PaymentRequestError("mp_payload cannot be empty")
        return json.dumps(wrapped).encode("utf-8")
    return body


class BillingPaymentResponse(BaseModel):
    """Payment view; `id`/`date` mirror the canonical names for older clients."""

    payment_id: str
    id: str
    estimate_id: str
    payment_date: datetime
    date: datetime
    status: str
    mp_payload_raw: str | None = None
    mp_payload: dict[str, Any] | None = None

    @classmethod
    def from_payment(cls, payment: BillingPayment) -> "BillingPaymentResponse":
        raw = payment.provider_payload_raw
        return cls(
            payment_id=payment.payment_id,
            id=payment.payment_id,
            estimate_id=payment.estimate_id,
            payment_date=payment.paid_at,
            date=payment.paid_at,
            status=payment.status,
            mp_payload_raw=raw.decode("utf-8", errors="replace") if raw else None,
            mp_payload=payment.provider_payload,
        )
