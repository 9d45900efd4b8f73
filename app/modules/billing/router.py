"""Billing API router."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Header, status

from app.core.enums import OrderStatusEnum, PaymentMethodEnum, VerificationStatusEnum
from app.modules.billing.repository import OrderFilters
from app.modules.billing.schemas import (
    BankTransferDecision,
    CheckoutRequest,
    ManualCompletionRequest,
    OrderActionRequest,
    OrderRead,
    OrderSettlementRequest,
    PaymentCallback,
)
from app.modules.billing.service import BillingService, get_billing_service
from app.modules.identity.service import get_current_user
from app.shared.pagination import Page, build_page, get_pagination_params

router = APIRouter(prefix="/billing", tags=["billing"])


@router.post("/orders", response_model=OrderRead, status_code=status.HTTP_201_CREATED)
async def create_order(
    payload: CheckoutRequest,
    service: BillingService = Depends(get_billing_service),
    current_user=Depends(get_current_user),
) -> OrderRead:
    """Open an order for a booking or a course."""
    order = await service.checkout(payload, current_user)
    return OrderRead.model_validate(order)


@router.get("/orders/my", response_model=Page[OrderRead])
async def list_my_orders(
    pagination=Depends(get_pagination_params),
    service: BillingService = Depends(get_billing_service),
    current_user=Depends(get_current_user),
) -> Page[OrderRead]:
    """List orders of current user."""
    items, total = await service.list_my_orders(current_user, pagination.limit, pagination.offset)
    serialized = [OrderRead.model_validate(item) for item in items]
    return build_page(serialized, total, pagination)


@router.get("/orders", response_model=Page[OrderRead])
async def list_orders(
    order_status: OrderStatusEnum | None = None,
    payment_method: PaymentMethodEnum | None = None,
    verification_status: VerificationStatusEnum | None = None,
    pagination=Depends(get_pagination_params),
    service: BillingService = Depends(get_billing_service),
    current_user=Depends(get_current_user),
) -> Page[OrderRead]:
    """List all orders (admin)."""
    filters = OrderFilters(
        status=order_status,
        payment_method=payment_method,
        verification_status=verification_status,
    )
    items, total = await service.list_orders(current_user, filters, pagination.limit, pagination.offset)
    serialized = [OrderRead.model_validate(item) for item in items]
    return build_page(serialized, total, pagination)


@router.get("/orders/{order_id}", response_model=OrderRead)
async def get_order(
    order_id: UUID,
    service: BillingService = Depends(get_billing_service),
    current_user=Depends(get_current_user),
) -> OrderRead:
    """Return order with bank transfer verification state."""
    order = await service.get_order(order_id, current_user)
    return OrderRead.model_validate(order)


@router.post("/orders/{order_id}/capture", response_model=OrderRead)
async def capture_order(
    order_id: UUID,
    service: BillingService = Depends(get_billing_service),
    current_user=Depends(get_current_user),
) -> OrderRead:
    """Capture a pending order through the payment gateway."""
    order = await service.capture_order(order_id, current_user)
    return OrderRead.model_validate(order)


@router.post("/webhooks/payments", response_model=OrderRead)
async def payment_webhook(
    payload: PaymentCallback,
    x_webhook_secret: str | None = Header(default=None),
    service: BillingService = Depends(get_billing_service),
) -> OrderRead:
    """Reconcile a capture result pushed by the payment provider."""
    order = await service.handle_webhook(payload, x_webhook_secret)
    return OrderRead.model_validate(order)


@router.post("/orders/{order_id}/bank-transfer/verify", response_model=OrderRead)
async def verify_bank_transfer(
    order_id: UUID,
    payload: BankTransferDecision,
    service: BillingService = Depends(get_billing_service),
    current_user=Depends(get_current_user),
) -> OrderRead:
    """Verify or reject bank transfer evidence (admin)."""
    order = await service.verify_bank_transfer(order_id, payload, current_user)
    return OrderRead.model_validate(order)


@router.post("/orders/{order_id}/refund", response_model=OrderRead)
async def refund_order(
    order_id: UUID,
    payload: OrderActionRequest,
    service: BillingService = Depends(get_billing_service),
    current_user=Depends(get_current_user),
) -> OrderRead:
    """Refund a completed order (admin)."""
    order = await service.refund_order(order_id, payload.reason, current_user)
    return OrderRead.model_validate(order)


@router.post("/orders/{order_id}/cancel", response_model=OrderRead)
async def cancel_order(
    order_id: UUID,
    payload: OrderActionRequest,
    service: BillingService = Depends(get_billing_service),
    current_user=Depends(get_current_user),
) -> OrderRead:
    """Cancel a pending order (admin)."""
    order = await service.cancel_order(order_id, payload.reason, current_user)
    return OrderRead.model_validate(order)


@router.post("/orders/{order_id}/complete-manual", response_model=OrderRead)
async def complete_manual_order(
    order_id: UUID,
    payload: ManualCompletionRequest,
    service: BillingService = Depends(get_billing_service),
    current_user=Depends(get_current_user),
) -> OrderRead:
    """Complete a pending manual order (admin)."""
    order = await service.complete_manual_order(order_id, payload, current_user)
    return OrderRead.model_validate(order)


@router.post("/orders/{order_id}/settle", response_model=OrderRead)
async def settle_order(
    order_id: UUID,
    payload: OrderSettlementRequest,
    service: BillingService = Depends(get_billing_service),
    current_user=Depends(get_current_user),
) -> OrderRead:
    """Complete a captured gateway order without redeeming its coupon (admin)."""
    order = await service.settle_order(order_id, payload, current_user)
    return OrderRead.model_validate(order)
