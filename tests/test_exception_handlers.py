from __future__ import annotations

import json
from uuid import uuid4

import pytest
from fastapi import HTTPException, Request

import app.shared.exceptions as exceptions_module
from app.core.enums import AuditActionEnum
from app.shared.exceptions import (
    BusinessRuleException,
    IntegrityViolationException,
    UnauthorizedException,
    app_exception_handler,
    http_exception_handler,
)


def _make_request(path: str, method: str = "POST") -> Request:
    scope = {
        "type": "http",
        "method": method,
        "path": path,
        "headers": [],
        "client": ("127.0.0.1", 12345),
        "scheme": "http",
        "server": ("testserver", 80),
        "query_string": b"",
    }
    return Request(scope)


@pytest.fixture
def recorded(monkeypatch: pytest.MonkeyPatch) -> list[dict]:
    events: list[dict] = []

    async def _record(actor_id, action, details, entity_type="request", entity_id=None) -> None:
        events.append({"actor_id": actor_id, "action": action, "details": details})

    monkeypatch.setattr(exceptions_module, "record_security_event", _record)
    return events


@pytest.mark.asyncio
async def test_domain_error_is_rendered_with_code(recorded: list[dict]) -> None:
    response = await app_exception_handler(
        _make_request("/api/v1/booking"),
        BusinessRuleException("Requested time is in the past", code="requested_time_in_past"),
    )

    assert response.status_code == 422
    assert json.loads(response.body) == {
        "error": {"code": "requested_time_in_past", "message": "Requested time is in the past"},
    }
    assert recorded == []


@pytest.mark.asyncio
async def test_integrity_violation_is_audited(recorded: list[dict]) -> None:
    request = _make_request("/api/v1/billing/orders/1/capture")
    actor_id = uuid4()
    request.state.actor_id = actor_id

    response = await app_exception_handler(
        request,
        IntegrityViolationException("Booking is no longer payable", code="order_booking_not_payable"),
    )

    assert response.status_code == 409
    assert recorded[0]["action"] == AuditActionEnum.INTEGRITY_VIOLATION
    assert recorded[0]["actor_id"] == actor_id
    assert recorded[0]["details"]["code"] == "order_booking_not_payable"


@pytest.mark.asyncio
async def test_permission_denied_is_audited(recorded: list[dict]) -> None:
    response = await app_exception_handler(
        _make_request("/api/v1/billing/orders"),
        UnauthorizedException("Only admin can list all orders"),
    )

    assert response.status_code == 403
    assert recorded[0]["action"] == AuditActionEnum.PERMISSION_DENIED


@pytest.mark.asyncio
async def test_missing_token_is_audited_as_unauthorized_attempt(recorded: list[dict]) -> None:
    response = await http_exception_handler(
        _make_request("/api/v1/booking/my", method="GET"),
        HTTPException(status_code=401, detail="Not authenticated"),
    )

    assert response.status_code == 401
    assert recorded[0]["action"] == AuditActionEnum.UNAUTHORIZED_ACCESS_ATTEMPT
    assert recorded[0]["details"]["path"] == "/api/v1/booking/my"
