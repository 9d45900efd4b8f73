from __future__ import annotations

import pytest
from pydantic import ValidationError

from app.core.config import Settings
from app.core.enums import CurrencyEnum

LIVE_GATEWAY = {
    "payment_gateway_mode": "live",
    "payment_gateway_base_url": "https://payments.example.com/v1",
}


def test_default_secrets_allowed_in_development() -> None:
    settings = Settings(_env_file=None, app_env="development", secret_key="change-me")
    assert settings.secret_key == "change-me"
    assert settings.payment_gateway_mode == "mock"


def test_default_secret_key_rejected_in_production() -> None:
    with pytest.raises(ValidationError):
        Settings(
            _env_file=None,
            app_env="production",
            secret_key="change-me",
            payment_webhook_secret="webhook-secret-value",
            **LIVE_GATEWAY,
        )


def test_placeholder_webhook_secret_rejected_in_production() -> None:
    with pytest.raises(ValidationError):
        Settings(
            _env_file=None,
            app_env="prod",
            secret_key="super-secure-value",
            payment_webhook_secret="change-me-later",
            **LIVE_GATEWAY,
        )


def test_mock_gateway_rejected_in_production() -> None:
    with pytest.raises(ValidationError):
        Settings(
            _env_file=None,
            app_env="production",
            secret_key="super-secure-value",
            payment_webhook_secret="webhook-secret-value",
        )


def test_live_gateway_requires_base_url() -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, payment_gateway_mode="LIVE")


def test_production_settings_accepted_with_real_secrets_and_live_gateway() -> None:
    settings = Settings(
        _env_file=None,
        app_env="production",
        secret_key="super-secure-value",
        payment_webhook_secret="webhook-secret-value",
        payment_gateway_mode=" Live ",
        payment_gateway_base_url="https://payments.example.com/v1",
    )
    assert settings.payment_gateway_mode == "live"


def test_default_currency_is_normalized_and_restricted() -> None:
    assert Settings(_env_file=None, default_currency="sar").default_currency == "SAR"
    with pytest.raises(ValidationError):
        Settings(_env_file=None, default_currency="EUR")


@pytest.mark.parametrize("currency", list(CurrencyEnum))
def test_every_currency_enum_value_is_accepted(currency: CurrencyEnum) -> None:
    assert Settings(_env_file=None, default_currency=currency.value.lower()).default_currency == currency.value
