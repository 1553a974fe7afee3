"""Enrichment of the caller's Mercado Pago request before it is charged."""

import pytest

from garagebill.common.errors import InvalidPayloadError
from garagebill.services.payments.payload import (
    SANDBOX_FALLBACK_PAYER_EMAIL,
    Payer,
    PaymentRequest,
    enrich_payment_request,
)
from tests.fakes import make_estimate, make_settings


SANDBOX = {
    "mercadopago_access_token": "TEST-123-sandbox",
    "mercadopago_test_payer_email": "buyer@testuser.com",
    "mercadopago_test_payer_user_id": "123456",
}


def test_sandbox_payer_id_is_swapped_for_test_email():
    request = PaymentRequest(payment_method_id="pix", payer=Payer(id=123456))

    enriched = enrich_payment_request(request, make_estimate(), make_settings(**SANDBOX))

    assert enriched.payer.email == "buyer@testuser.com"
    assert enriched.payer.id is None
    assert "id" not in enriched.to_payload()["payer"]


def test_sandbox_mapping_needs_a_sandbox_token():
    request = PaymentRequest(payment_method_id="pix", payer=Payer(id="123456"))
    settings = make_settings(**{**SANDBOX, "mercadopago_access_token": "APP_USR-prod"})

    enriched = enrich_payment_request(request, make_estimate(), settings)

    assert enriched.payer.id == "123456"
    assert enriched.payer.email is None


def test_other_payer_ids_are_left_alone():
    request = PaymentRequest(payment_method_id="pix", payer=Payer(id="999"))

    enriched = enrich_payment_request(request, make_estimate(), make_settings(**SANDBOX))

    assert enriched.payer.id == "999"
    assert enriched.payer.email is None


def test_missing_payer_gets_configured_test_email_and_default_type():
    request = PaymentRequest(payment_method_id="pix")
    settings = make_settings(mercadopago_test_payer_email=" buyer@testuser.com ")

    enriched = enrich_payment_request(request, make_estimate(), settings)

    assert enriched.payer.email == "buyer@testuser.com"
    assert enriched.payer.type == "customer"


def test_sandbox_token_falls_back_to_builtin_test_email():
    request = PaymentRequest(payment_method_id="pix", payer=Payer(type="guest"))
    settings = make_settings(mercadopago_access_token="TEST-abc")

    enriched = enrich_payment_request(request, make_estimate(), settings)

    assert enriched.payer.email == SANDBOX_FALLBACK_PAYER_EMAIL
    assert enriched.payer.type == "guest"


def test_production_without_payer_identity_is_rejected():
    request = PaymentRequest(payment_method_id="pix")

    with pytest.raises(InvalidPayloadError, match="payer"):
        enrich_payment_request(request, make_estimate(), make_settings())


def test_input_request_is_not_mutated():
    request = PaymentRequest(payment_method_id="pix", transaction_amount=1.0)

    enrich_payment_request(request, make_estimate(), make_settings(mercadopago_access_token="TEST-abc"))

    assert request.payer is None
    assert request.transaction_amount == 1.0
    assert request.external_reference is None


def test_unknown_fields_survive_enrichment():
    request = PaymentRequest.model_validate(
        {
            "payment_method_id": "visa",
            "token": "card-token",
            "installments": 3,
            "payer": {"email": "a@b.com", "identification": {"type": "CPF", "number": "1"}},
        }
    )

    payload = enrich_payment_request(request, make_estimate(price="10.50"), make_settings()).to_payload()

    assert payload["token"] == "card-token"
    assert payload["installments"] == 3
    assert payload["payer"]["identification"] == {"type": "CPF", "number": "1"}
    assert payload["transaction_amount"] == 10.5


def test_mock_mode_skips_method_and_payer_rules():
    enriched = enrich_payment_request(PaymentRequest(), make_estimate(), make_settings(), mock_mode=True)

    assert enriched.payer is None
    assert enriched.payment_method_id is None
    assert enriched.external_reference == "est-1"
    assert enriched.description == "Estimate est-1"
    assert enriched.transaction_amount == 77.2
