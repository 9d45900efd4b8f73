from __future__ import annotations

import json
from decimal import Decimal
from uuid import uuid4

import httpx
import pytest

from app.core.enums import CaptureOutcomeEnum, PaymentMethodEnum
from app.modules.billing.gateway import PaymentGateway
from app.shared.exceptions import ExternalServiceException


def live_gateway(handler) -> PaymentGateway:
    return PaymentGateway(
        mode="live",
        base_url="https://payments.example.com/v1/",
        api_key="sk_test_123",
        timeout_seconds=2.0,
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_mock_mode_always_succeeds() -> None:
    gateway = PaymentGateway(mode="mock")

    result = await gateway.capture(uuid4(), PaymentMethodEnum.PAYPAL, Decimal("10.00"), "USD")

    assert result.outcome == CaptureOutcomeEnum.SUCCESS
    assert result.transaction_id.startswith("MOCK-")


@pytest.mark.asyncio
async def test_live_capture_posts_order_and_parses_success() -> None:
    order_id = uuid4()
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"status": "succeeded", "transaction_id": "ch_42"})

    result = await live_gateway(handler).capture(order_id, PaymentMethodEnum.STRIPE, Decimal("135.00"), "SAR")

    assert result.outcome == CaptureOutcomeEnum.SUCCESS
    assert result.transaction_id == "ch_42"
    assert str(seen[0].url) == "https://payments.example.com/v1/captures"
    assert seen[0].headers["Authorization"] == "Bearer sk_test_123"
    assert json.loads(seen[0].content) == {
        "order_id": str(order_id),
        "payment_method": "stripe",
        "amount": "135.00",
        "currency": "SAR",
    }


@pytest.mark.asyncio
async def test_declined_capture_is_a_failure_result() -> None:
    def handler(_: httpx.Request) -> httpx.Response:
        return httpx.Response(402, json={"status": "declined", "failure_reason": "Card expired"})

    order_id = uuid4()
    result = await live_gateway(handler).capture(order_id, PaymentMethodEnum.STRIPE, Decimal("50.00"), "USD")

    assert result.outcome == CaptureOutcomeEnum.FAILURE
    assert result.failure_reason == "Card expired"
    assert result.transaction_id == f"DECLINED-{order_id}"


@pytest.mark.asyncio
async def test_timeout_raises_external_service_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(ExternalServiceException) as exc_info:
        await live_gateway(handler).capture(uuid4(), PaymentMethodEnum.PAYPAL, Decimal("50.00"), "USD")

    assert exc_info.value.status_code == 503


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(502, json={"status": "error"}),
        httpx.Response(200, json={"status": "processing"}),
        httpx.Response(200, content=b"<html>oops</html>"),
    ],
)
async def test_undecided_or_broken_answers_raise(response: httpx.Response) -> None:
    def handler(_: httpx.Request) -> httpx.Response:
        return response

    with pytest.raises(ExternalServiceException):
        await live_gateway(handler).capture(uuid4(), PaymentMethodEnum.PAYPAL, Decimal("50.00"), "USD")
