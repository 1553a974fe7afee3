"""Environment-driven settings: mock toggles and sandbox detection."""

import pytest

from garagebill.common.config import BillingSettings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "PAYMENT_GATEWAY_MOCK",
        "MERCADOPAGO_MOCK",
        "MERCADOPAGO_ACCESS_TOKEN",
        "MERCADOPAGO_TEST_PAYER_EMAIL",
        "MERCADOPAGO_TEST_PAYER_USER_ID",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.mark.parametrize("value", ["1", "true", "YES", " on ", "Mock"])
def test_mock_flag_values(monkeypatch, value):
    monkeypatch.setenv("PAYMENT_GATEWAY_MOCK", value)
    assert BillingSettings(_env_file=None).mock_mode is True


@pytest.mark.parametrize("value", ["", "0", "false", "off", "enabled"])
def test_non_mock_flag_values(monkeypatch, value):
    monkeypatch.setenv("MERCADOPAGO_MOCK", value)
    assert BillingSettings(_env_file=None).mock_mode is False


def test_either_flag_enables_mock_mode(monkeypatch):
    monkeypatch.setenv("PAYMENT_GATEWAY_MOCK", "false")
    monkeypatch.setenv("MERCADOPAGO_MOCK", "true")
    assert BillingSettings(_env_file=None).mock_mode is True


def test_sandbox_credential_and_test_payer(monkeypatch):
    monkeypatch.setenv("MERCADOPAGO_ACCESS_TOKEN", "  TEST-1234  ")
    monkeypatch.setenv("MERCADOPAGO_TEST_PAYER_EMAIL", " buyer@testuser.com ")
    monkeypatch.setenv("MERCADOPAGO_TEST_PAYER_USER_ID", " 42 ")

    settings = BillingSettings(_env_file=None)

    assert settings.sandbox_credential is True
    assert settings.test_payer_email == "buyer@testuser.com"
    assert settings.test_payer_user_id == "42"


def test_production_credential_is_not_sandbox(monkeypatch):
    monkeypatch.setenv("MERCADOPAGO_ACCESS_TOKEN", "APP_USR-1234")
    assert BillingSettings(_env_file=None).sandbox_credential is False
