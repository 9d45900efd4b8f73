"""Payment gateway capture client."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

import httpx

from app.core.config import get_settings
from app.core.enums import CaptureOutcomeEnum, PaymentMethodEnum
from app.shared.exceptions import ExternalServiceException

logger = logging.getLogger(__name__)

SUCCESS_STATUSES = frozenset({"succeeded", "captured", "completed"})
FAILURE_STATUSES = frozenset({"declined", "failed", "rejected"})


@dataclass(frozen=True)
class CaptureResult:
    """Definitive gateway answer for one capture attempt."""

    transaction_id: str
    outcome: CaptureOutcomeEnum
    failure_reason: str | None = None


class PaymentGateway:
    """Capture funds for an order through the configured provider.

    In ``mock`` mode every capture succeeds locally. In ``live`` mode the
    provider is called over HTTP with a bounded timeout; an unreachable or
    undecided provider raises ``ExternalServiceException`` so the caller can
    leave the order untouched.
    """

    def __init__(
        self,
        mode: str,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.mode = mode
        self.base_url = (base_url or "").rstrip("/")
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    async def capture(
        self,
        order_id: UUID,
        payment_method: PaymentMethodEnum,
        amount: Decimal,
        currency: str,
    ) -> CaptureResult:
        if self.mode == "mock":
            return CaptureResult(
                transaction_id=f"MOCK-{uuid4().hex[:16].upper()}",
                outcome=CaptureOutcomeEnum.SUCCESS,
            )

        body = {
            "order_id": str(order_id),
            "payment_method": str(payment_method),
            "amount": str(amount),
            "currency": currency,
        }
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout_seconds,
                transport=self._transport,
                headers=headers,
            ) as client:
                response = await client.post("/captures", json=body)
        except httpx.TimeoutException as exc:
            logger.warning("Payment gateway timed out capturing order %s", order_id)
            raise ExternalServiceException("Payment gateway timed out") from exc
        except httpx.TransportError as exc:
            logger.warning("Payment gateway unreachable for order %s: %s", order_id, exc)
            raise ExternalServiceException("Payment gateway is unreachable") from exc

        if response.status_code >= 500:
            logger.warning("Payment gateway returned %s for order %s", response.status_code, order_id)
            raise ExternalServiceException("Payment gateway is unavailable")

        payload = self._parse(response)
        status = str(payload.get("status", "")).lower()
        transaction_id = str(payload.get("transaction_id") or "")
        if status in SUCCESS_STATUSES and transaction_id:
            return CaptureResult(transaction_id=transaction_id, outcome=CaptureOutcomeEnum.SUCCESS)
        if status in FAILURE_STATUSES:
            return CaptureResult(
                transaction_id=transaction_id or f"DECLINED-{order_id}",
                outcome=CaptureOutcomeEnum.FAILURE,
                failure_reason=payload.get("failure_reason") or payload.get("message") or "Payment declined",
            )

        logger.error("Payment gateway gave no final status for order %s: %r", order_id, payload)
        raise ExternalServiceException("Payment gateway returned an undecided capture status")

    @staticmethod
    def _parse(response: httpx.Response) -> dict[str, Any]:
        try:
            payload = response.json()
        except ValueError as exc:
            raise ExternalServiceException("Payment gateway returned an unreadable response") from exc
        if not isinstance(payload, dict):
            raise ExternalServiceException("Payment gateway returned an unreadable response")
        return payload


def get_payment_gateway() -> PaymentGateway:
    """Dependency provider for the configured payment gateway."""
    settings = get_settings()
    return PaymentGateway(
        mode=settings.payment_gateway_mode,
        base_url=settings.payment_gateway_base_url,
        api_key=settings.payment_gateway_api_key,
        timeout_seconds=settings.payment_gateway_timeout_seconds,
    )
