"""Typed Mercado Pago payment request and its enrichment rules.

The request keeps unknown provider fields in the model's extra bag so they
reach the gateway untouched; only the fields below are inspected or filled.
"""

from decimal import Decimal
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict

from garagebill.common.config import BillingSettings
from garagebill.common.errors import InvalidPayloadError
from garagebill.common.logging import logger


SANDBOX_FALLBACK_PAYER_EMAIL = "test_user_br@testuser.com"
DEFAULT_PAYER_TYPE = "customer"


class PricedEstimate(Protocol):
    estimate_id: str
    price: Decimal


def _non_blank(value: Any) -> bool:
    return isinstance(value, str) and value.strip() != ""


class _ProviderModel(BaseModel):
    """Known fields accept any JSON value; unknown fields are kept verbatim."""

    model_config = ConfigDict(extra="allow")

    def to_payload(self) -> dict:
        """Fields the caller sent or enrichment set, explicit nulls included, plus extras."""

        payload = {}
        for name in type(self).model_fields:
            if name in self.model_fields_set:
                value = getattr(self, name)
                payload[name] = value.to_payload() if isinstance(value, _ProviderModel) else value
        payload.update(self.model_extra or {})
        return payload


class Payer(_ProviderModel):
    id: Any = None
    email: Any = None
    type: Any = None

    def drop_id(self) -> None:
        self.id = None
        self.model_fields_set.discard("id")

    def has_id(self) -> bool:
        return self.id is not None and str(self.id).strip() != ""

    def has_email(self) -> bool:
        return _non_blank(self.email)

    def has_identity(self) -> bool:
        return self.has_id() or self.has_email()


class PaymentRequest(_ProviderModel):
    """Provider payment request: known top-level fields plus extras.

    Only a `payer` that is not a JSON object fails validation.
    """

    payment_method_id: Any = None
    payer: Payer | None = None
    external_reference: Any = None
    description: Any = None
    transaction_amount: Any = None

    @classmethod
    def from_document(cls, document: dict) -> "PaymentRequest":
        """Wrap a decoded object as-is, skipping validation."""

        return cls.model_construct(_fields_set=set(document), **document)


def map_sandbox_payer(request: PaymentRequest, settings: BillingSettings) -> None:
    """Swap the configured sandbox user id for the sandbox payer email.

    Some Mercado Pago test flows reject a numeric payer id and expect the test
    user's email instead.
    """

    payer = request.payer
    if payer is None or not payer.has_id() or payer.has_email():
        return
    if not settings.sandbox_credential:
        return
    if not settings.test_payer_user_id or not settings.test_payer_email:
        return
    if str(payer.id).strip() != settings.test_payer_user_id:
        return
    payer.email = settings.test_payer_email
    payer.drop_id()
    logger.info("mapped sandbox payer user_id to payer.email")


def ensure_payer_defaults(request: PaymentRequest, settings: BillingSettings) -> None:
    if request.payer is None:
        request.payer = Payer()
    payer = request.payer
    if payer.type is None:
        payer.type = DEFAULT_PAYER_TYPE
    if payer.has_identity():
        return
    if settings.test_payer_email:
        payer.email = settings.test_payer_email
    elif settings.sandbox_credential:
        payer.email = SANDBOX_FALLBACK_PAYER_EMAIL


def enrich_payment_request(
    request: PaymentRequest,
    estimate: PricedEstimate,
    settings: BillingSettings,
    mock_mode: bool = False,
) -> PaymentRequest:
    """Return a copy of `request` validated and completed for `estimate`.

    Mock mode skips the payment-method and payer rules but still links the
    request to the estimate. The charged amount always comes from the estimate.
    """

    enriched = request.model_copy(deep=True)
    if not mock_mode:
        if not _non_blank(enriched.payment_method_id):
            raise InvalidPayloadError("missing payment_method_id")
        map_sandbox_payer(enriched, settings)
        ensure_payer_defaults(enriched, settings)
        if not enriched.payer.has_identity():
            raise InvalidPayloadError("missing payer id or email")

    # Presence, not value: an explicit null from the caller is forwarded.
    if "external_reference" not in enriched.model_fields_set:
        enriched.external_reference = estimate.estimate_id
    if "description" not in enriched.model_fields_set:
        enriched.description = f"Estimate {estimate.estimate_id}"
    enriched.transaction_amount = float(estimate.price)
    return enriched
