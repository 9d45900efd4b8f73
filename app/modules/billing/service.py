"""Billing business logic layer."""

from __future__ import annotations

import logging
from datetime import timedelta
from decimal import Decimal
from uuid import UUID

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.database import get_db_session
from app.core.enums import (
    AuditActionEnum,
    BookingPaymentStatusEnum,
    BookingStatusEnum,
    CancelledByEnum,
    CaptureOutcomeEnum,
    OrderStatusEnum,
    OrderTypeEnum,
    PaymentMethodEnum,
    PurchaseKindEnum,
    RoleEnum,
    VerificationOutcomeEnum,
    VerificationStatusEnum,
)
from app.core.metrics import record_booking_transition, record_order_reconciliation
from app.core.security import secrets_match
from app.modules.audit.repository import AuditRepository
from app.modules.billing.gateway import PaymentGateway, get_payment_gateway
from app.modules.billing.ledger import build_bank_transfer_evidence, compute_order_amounts
from app.modules.billing.models import Order
from app.modules.billing.repository import BillingRepository, OrderFilters
from app.modules.billing.schemas import (
    BankTransferDecision,
    BankTransferSubmission,
    CheckoutRequest,
    ManualCompletionRequest,
    OrderSettlementRequest,
    PaymentCallback,
)
from app.modules.booking import state_machine
from app.modules.booking.models import Booking
from app.modules.booking.repository import BookingRepository
from app.modules.catalog.repository import CatalogRepository
from app.modules.coupons.repository import CouponRepository
from app.modules.coupons.service import CouponService
from app.modules.identity.models import User
from app.shared.exceptions import (
    AuthenticationException,
    BusinessRuleException,
    ConflictException,
    IntegrityViolationException,
    NotFoundException,
    UnauthorizedException,
    ValidationException,
)
from app.shared.utils import utc_now

logger = logging.getLogger(__name__)

settings = get_settings()

SUPERSEDED_REASON = "superseded"


class BillingService:
    """Order ledger: checkout, capture reconciliation and admin status actions."""

    def __init__(
        self,
        repository: BillingRepository,
        booking_repository: BookingRepository,
        catalog_repository: CatalogRepository,
        coupon_service: CouponService,
        audit_repository: AuditRepository,
        gateway: PaymentGateway,
    ) -> None:
        self.repository = repository
        self.booking_repository = booking_repository
        self.catalog_repository = catalog_repository
        self.coupon_service = coupon_service
        self.audit_repository = audit_repository
        self.gateway = gateway

    @staticmethod
    def _is_admin(actor: User) -> bool:
        return actor.role.name == RoleEnum.ADMIN

    def _require_admin(self, actor: User, message: str) -> None:
        if not self._is_admin(actor):
            raise UnauthorizedException(message)

    @staticmethod
    def _cancellation_window() -> timedelta:
        return timedelta(hours=settings.booking_cancellation_window_hours)

    async def _get_order(self, order_id: UUID) -> Order:
        order = await self.repository.get_order_by_id(order_id)
        if order is None:
            raise NotFoundException("Order not found")
        return order

    async def _record_order_event(
        self,
        order: Order,
        action: AuditActionEnum,
        event_type: str,
        actor_id: UUID | None,
        **details,
    ) -> None:
        payload = {
            "order_id": str(order.id),
            "user_id": str(order.user_id),
            "status": str(order.status),
            "amount": str(order.amount),
            "currency": order.currency,
            "payment_method": str(order.payment_method),
            **details,
        }
        if order.booking_id is not None:
            payload["booking_id"] = str(order.booking_id)
        if order.course_id is not None:
            payload["course_id"] = str(order.course_id)

        await self.audit_repository.create_audit_log(
            actor_id=actor_id,
            action=action,
            entity_type="order",
            entity_id=str(order.id),
            payload=payload,
        )
        await self.audit_repository.create_outbox_event(
            aggregate_type="order",
            aggregate_id=str(order.id),
            event_type=event_type,
            payload=payload,
        )

    async def _record_booking_cancel(self, booking: Booking, from_status: str, actor_id: UUID | None) -> None:
        record_booking_transition(from_status, booking.status)
        payload = {
            "booking_id": str(booking.id),
            "reference": booking.reference,
            "from_status": str(from_status),
            "cancelled_by": str(booking.cancelled_by),
            "reason": booking.cancellation_reason,
        }
        await self.audit_repository.create_audit_log(
            actor_id=actor_id,
            action=AuditActionEnum.BOOKING_CANCEL,
            entity_type="booking",
            entity_id=str(booking.id),
            payload=payload,
        )
        await self.audit_repository.create_outbox_event(
            aggregate_type="booking",
            aggregate_id=str(booking.id),
            event_type="booking.cancelled",
            payload=payload,
        )

    async def _create_order(
        self,
        actor: User,
        user_id: UUID,
        order_type: OrderTypeEnum,
        target_id: UUID,
        price: Decimal,
        currency: str,
        payment_method: PaymentMethodEnum,
        coupon_code: str | None,
        bank_transfer: BankTransferSubmission | None,
        booking_id: UUID | None = None,
        course_id: UUID | None = None,
    ) -> Order:
        if payment_method == PaymentMethodEnum.MANUAL and not self._is_admin(actor):
            raise UnauthorizedException("Only admin can create manual orders")

        evidence = None
        if payment_method == PaymentMethodEnum.BANK_TRANSFER:
            evidence = build_bank_transfer_evidence(bank_transfer)

        quote = None
        if coupon_code:
            quote = await self.coupon_service.quote(
                coupon_code,
                user_id,
                PurchaseKindEnum(str(order_type)),
                target_id,
                price,
            )
        amounts = compute_order_amounts(price, quote.discount_amount if quote else Decimal("0"))

        order = await self.repository.create_order(
            user_id=user_id,
            order_type=order_type,
            booking_id=booking_id,
            course_id=course_id,
            original_amount=amounts.original_amount,
            discount_amount=amounts.discount_amount,
            amount=amounts.amount,
            currency=currency,
            coupon_id=quote.coupon_id if quote else None,
            coupon_code=quote.code if quote else None,
            status=OrderStatusEnum.PENDING,
            payment_method=payment_method,
        )
        if evidence is not None:
            await self.repository.create_bank_transfer(order, evidence)

        await self._record_order_event(
            order,
            AuditActionEnum.ORDER_CREATE,
            "order.created",
            actor.id,
            coupon_code=order.coupon_code,
            discount_amount=str(order.discount_amount),
        )
        return order

    async def _supersede_pending_order(self, booking: Booking, actor: User) -> None:
        existing = await self.repository.get_pending_order_for_booking(booking.id)
        if existing is None:
            return

        transfer = existing.bank_transfer
        if transfer is not None and transfer.verification_status == VerificationStatusEnum.PENDING:
            raise ConflictException(
                "A bank transfer for this booking is awaiting verification",
                code="bank_transfer_under_review",
            )

        existing.status = OrderStatusEnum.CANCELLED
        existing.cancelled_at = utc_now()
        existing.cancellation_reason = SUPERSEDED_REASON
        await self.repository.save(existing)
        await self._record_order_event(
            existing,
            AuditActionEnum.ORDER_CANCEL,
            "order.cancelled",
            actor.id,
            reason=SUPERSEDED_REASON,
        )

    async def open_booking_order(
        self,
        booking: Booking,
        actor: User,
        payment_method: PaymentMethodEnum,
        coupon_code: str | None = None,
        bank_transfer: BankTransferSubmission | None = None,
    ) -> Order:
        """Open the single pending order that pays for a booking."""
        if booking.user_id != actor.id and not self._is_admin(actor):
            raise UnauthorizedException("You cannot pay for this booking")
        if booking.status != BookingStatusEnum.PENDING_PAYMENT:
            raise ConflictException("Booking is not awaiting payment", code="booking_not_payable")

        await self._supersede_pending_order(booking, actor)
        order = await self._create_order(
            actor=actor,
            user_id=booking.user_id,
            order_type=OrderTypeEnum.CONSULTATION,
            target_id=booking.offering_id,
            price=booking.price,
            currency=booking.currency,
            payment_method=payment_method,
            coupon_code=coupon_code,
            bank_transfer=bank_transfer,
            booking_id=booking.id,
        )

        if booking.payment_status != BookingPaymentStatusEnum.PENDING:
            booking.payment_status = BookingPaymentStatusEnum.PENDING
            await self.booking_repository.save(booking)
        return order

    async def checkout(self, payload: CheckoutRequest, actor: User) -> Order:
        """Open an order for a booking or a course."""
        if payload.booking_id is not None:
            booking = await self.booking_repository.get_booking_by_id(payload.booking_id)
            if booking is None:
                raise NotFoundException("Booking not found")
            return await self.open_booking_order(
                booking,
                actor,
                payload.payment_method,
                payload.coupon_code,
                payload.bank_transfer,
            )

        course = await self.catalog_repository.get_course_by_id(payload.course_id)
        if course is None:
            raise NotFoundException("Course not found")
        if not course.is_published:
            raise BusinessRuleException("Course is not available for purchase", code="course_unavailable")
        if await self.catalog_repository.get_enrollment(actor.id, course.id) is not None:
            raise ConflictException("You are already enrolled in this course", code="already_enrolled")

        return await self._create_order(
            actor=actor,
            user_id=actor.id,
            order_type=OrderTypeEnum.COURSE,
            target_id=course.id,
            price=course.price,
            currency=course.currency,
            payment_method=payload.payment_method,
            coupon_code=payload.coupon_code,
            bank_transfer=payload.bank_transfer,
            course_id=course.id,
        )

    async def capture_order(self, order_id: UUID, actor: User) -> Order:
        """Capture a pending gateway order and reconcile the result."""
        order = await self._get_order(order_id)
        if order.user_id != actor.id and not self._is_admin(actor):
            raise UnauthorizedException("You cannot pay for this order")
        if order.payment_method in (PaymentMethodEnum.BANK_TRANSFER, PaymentMethodEnum.MANUAL):
            raise ConflictException(
                f"{order.payment_method} orders are not captured through the gateway",
                code="capture_not_supported",
            )
        if order.status != OrderStatusEnum.PENDING:
            raise ConflictException("Order is not pending", code="order_not_pending")
        if order.coupon_id is not None:
            await self.coupon_service.ensure_redeemable(order.coupon_id, order.user_id)

        result = await self.gateway.capture(order.id, order.payment_method, order.amount, order.currency)
        return await self.reconcile_capture(
            order.id,
            order.payment_method,
            result.transaction_id,
            result.outcome,
            result.failure_reason,
            actor_id=actor.id,
        )

    async def handle_webhook(self, payload: PaymentCallback, secret: str | None) -> Order:
        """Reconcile a provider callback authenticated by the shared webhook secret."""
        if not secrets_match(secret, settings.payment_webhook_secret):
            raise AuthenticationException("Invalid webhook secret", code="invalid_webhook_secret")
        return await self.reconcile_capture(
            payload.order_id,
            payload.payment_method,
            payload.external_transaction_id,
            payload.outcome,
            payload.failure_reason,
        )

    async def reconcile_capture(
        self,
        order_id: UUID,
        payment_method: PaymentMethodEnum,
        transaction_id: str,
        outcome: CaptureOutcomeEnum,
        failure_reason: str | None = None,
        actor_id: UUID | None = None,
    ) -> Order:
        """Apply a definitive capture result to an order.

        A repeated success carrying the transaction id already stored on a
        completed order is a no-op. Any other success for an order that is no
        longer pending means money was taken for a closed order and is an
        integrity violation; other results for such orders are conflicts.
        """
        order = await self._get_order(order_id)
        if payment_method != order.payment_method:
            raise ValidationException(
                "Payment method does not match the order",
                code="payment_method_mismatch",
            )
        if order.payment_method in (PaymentMethodEnum.BANK_TRANSFER, PaymentMethodEnum.MANUAL):
            raise ConflictException(
                f"{order.payment_method} orders are settled by an administrator",
                code="capture_not_supported",
            )

        if (
            order.status == OrderStatusEnum.COMPLETED
            and outcome == CaptureOutcomeEnum.SUCCESS
            and order.external_transaction_id == transaction_id
        ):
            logger.info("Duplicate capture %s for order %s ignored", transaction_id, order.id)
            record_order_reconciliation(payment_method, "duplicate")
            return order
        if order.status != OrderStatusEnum.PENDING and outcome == CaptureOutcomeEnum.SUCCESS:
            logger.error(
                "Capture %s succeeded for order %s in status %s",
                transaction_id,
                order.id,
                order.status,
            )
            record_order_reconciliation(payment_method, "closed_order")
            raise IntegrityViolationException(
                f"Payment {transaction_id} was captured for order {order.id} which is already {order.status}",
                code="payment_for_closed_order",
            )
        if order.status != OrderStatusEnum.PENDING:
            raise ConflictException(
                f"Order is already {order.status}",
                code="order_not_pending",
            )

        if outcome == CaptureOutcomeEnum.SUCCESS:
            await self._complete_order(order, transaction_id, actor_id)
        else:
            await self._fail_order(order, transaction_id, failure_reason, actor_id)
        record_order_reconciliation(payment_method, outcome)
        return order

    async def _complete_order(
        self,
        order: Order,
        transaction_id: str,
        actor_id: UUID | None,
        redeem_coupon: bool = True,
    ) -> Order:
        """Shared success path for gateway captures, verified transfers and manual orders."""
        now = utc_now()
        booking = None
        if order.order_type == OrderTypeEnum.CONSULTATION:
            booking = await self.booking_repository.get_booking_by_id(order.booking_id)
            if booking is None or booking.status != BookingStatusEnum.PENDING_PAYMENT:
                logger.error(
                    "Order %s paid for booking %s in status %s",
                    order.id,
                    order.booking_id,
                    booking.status if booking else None,
                )
                raise IntegrityViolationException(
                    "Order cannot complete because its booking is no longer awaiting payment",
                    code="order_booking_not_payable",
                )

        if order.coupon_id is not None and redeem_coupon:
            await self.coupon_service.redeem_for_order(order.coupon_id, order.user_id, order.id)

        order.status = OrderStatusEnum.COMPLETED
        order.completed_at = now
        order.external_transaction_id = transaction_id
        await self.repository.save(order)

        if booking is not None:
            from_status = booking.status
            state_machine.mark_payment_completed(booking, now)
            await self.booking_repository.save(booking)
            record_booking_transition(from_status, booking.status)
            await self.audit_repository.create_outbox_event(
                aggregate_type="booking",
                aggregate_id=str(booking.id),
                event_type="booking.payment_completed",
                payload={
                    "booking_id": str(booking.id),
                    "reference": booking.reference,
                    "user_id": str(booking.user_id),
                    "order_id": str(order.id),
                },
            )
        elif order.course_id is not None:
            granted = await self.catalog_repository.grant_enrollment(order.user_id, order.course_id, order.id)
            if granted:
                await self.audit_repository.create_audit_log(
                    actor_id=actor_id,
                    action=AuditActionEnum.COURSE_ENROLL,
                    entity_type="course",
                    entity_id=str(order.course_id),
                    payload={"user_id": str(order.user_id), "order_id": str(order.id)},
                )

        await self._record_order_event(
            order,
            AuditActionEnum.ORDER_COMPLETE,
            "order.completed",
            actor_id,
            external_transaction_id=transaction_id,
        )
        return order

    async def _fail_order(
        self,
        order: Order,
        transaction_id: str | None,
        failure_reason: str | None,
        actor_id: UUID | None,
    ) -> Order:
        order.status = OrderStatusEnum.FAILED
        order.failed_at = utc_now()
        order.failure_reason = failure_reason or "Payment was declined"
        order.external_transaction_id = transaction_id
        await self.repository.save(order)

        if order.booking_id is not None:
            booking = await self.booking_repository.get_booking_by_id(order.booking_id)
            if booking is not None and booking.status == BookingStatusEnum.PENDING_PAYMENT:
                booking.payment_status = BookingPaymentStatusEnum.FAILED
                await self.booking_repository.save(booking)

        await self._record_order_event(
            order,
            AuditActionEnum.ORDER_FAIL,
            "order.failed",
            actor_id,
            failure_reason=order.failure_reason,
        )
        return order

    async def verify_bank_transfer(
        self,
        order_id: UUID,
        decision: BankTransferDecision,
        actor: User,
    ) -> Order:
        """Record the single admin decision on a bank transfer order."""
        self._require_admin(actor, "Only admin can verify bank transfers")

        order = await self._get_order(order_id)
        transfer = order.bank_transfer
        if order.payment_method != PaymentMethodEnum.BANK_TRANSFER or transfer is None:
            raise ConflictException("Order is not a bank transfer", code="not_bank_transfer")
        if transfer.verification_status != VerificationStatusEnum.PENDING:
            raise ConflictException(
                f"Bank transfer was already {transfer.verification_status}",
                code="verification_already_decided",
            )
        if order.status != OrderStatusEnum.PENDING:
            raise ConflictException(f"Order is already {order.status}", code="order_not_pending")

        now = utc_now()
        if decision.outcome == VerificationOutcomeEnum.REJECTED:
            reason = (decision.rejection_reason or "").strip()
            if not reason:
                raise ValidationException(
                    "Rejection reason is required",
                    code="rejection_reason_required",
                )
            transfer.verification_status = VerificationStatusEnum.REJECTED
            transfer.verified_by = actor.id
            transfer.verified_at = now
            transfer.rejection_reason = reason
            # Versioned order UPDATE so a concurrent decision fails with concurrent_modification.
            order.updated_at = now
            await self.repository.save(order)
            await self._record_order_event(
                order,
                AuditActionEnum.BANK_TRANSFER_REJECT,
                "bank_transfer.rejected",
                actor.id,
                rejection_reason=reason,
            )
            return order

        transfer.verification_status = VerificationStatusEnum.VERIFIED
        transfer.verified_by = actor.id
        transfer.verified_at = now
        await self.audit_repository.create_audit_log(
            actor_id=actor.id,
            action=AuditActionEnum.BANK_TRANSFER_VERIFY,
            entity_type="order",
            entity_id=str(order.id),
            payload={"order_id": str(order.id), "transfer_reference": transfer.transfer_reference},
        )
        transaction_id = transfer.transfer_reference or f"BANK-{order.id.hex[:12].upper()}"
        await self._complete_order(order, transaction_id, actor.id)
        record_order_reconciliation(order.payment_method, CaptureOutcomeEnum.SUCCESS)
        return order

    async def complete_manual_order(
        self,
        order_id: UUID,
        payload: ManualCompletionRequest,
        actor: User,
    ) -> Order:
        """Complete a pending manual order (admin)."""
        self._require_admin(actor, "Only admin can complete manual orders")

        order = await self._get_order(order_id)
        if order.payment_method != PaymentMethodEnum.MANUAL:
            raise ConflictException("Order is not a manual order", code="not_manual_order")
        if order.status != OrderStatusEnum.PENDING:
            raise ConflictException(f"Order is already {order.status}", code="order_not_pending")

        if payload.notes is not None:
            order.notes = payload.notes
        transaction_id = payload.reference or f"MANUAL-{order.id.hex[:12].upper()}"
        await self._complete_order(order, transaction_id, actor.id)
        record_order_reconciliation(order.payment_method, CaptureOutcomeEnum.SUCCESS)
        return order

    async def settle_order(
        self,
        order_id: UUID,
        payload: OrderSettlementRequest,
        actor: User,
    ) -> Order:
        """Complete a captured gateway order whose coupon could not be redeemed (admin).

        The discount already charged is honored and no coupon use is taken.
        """
        self._require_admin(actor, "Only admin can settle orders")

        order = await self._get_order(order_id)
        if order.payment_method not in (PaymentMethodEnum.PAYPAL, PaymentMethodEnum.STRIPE):
            raise ConflictException(
                f"{order.payment_method} orders are not settled this way",
                code="settlement_not_supported",
            )
        if order.status != OrderStatusEnum.PENDING:
            raise ConflictException(f"Order is already {order.status}", code="order_not_pending")

        if payload.notes is not None:
            order.notes = payload.notes
        await self._complete_order(order, payload.external_transaction_id, actor.id, redeem_coupon=False)
        if order.coupon_id is not None:
            await self.audit_repository.create_audit_log(
                actor_id=actor.id,
                action=AuditActionEnum.ORDER_UPDATE,
                entity_type="order",
                entity_id=str(order.id),
                payload={
                    "order_id": str(order.id),
                    "coupon_code": order.coupon_code,
                    "coupon_waived": True,
                    "external_transaction_id": payload.external_transaction_id,
                },
            )
        record_order_reconciliation(order.payment_method, "settled")
        return order

    async def _cascade_booking_cancel(
        self,
        order: Order,
        reason: str,
        actor: User,
        blocked_code: str,
    ) -> Booking | None:
        if order.booking_id is None:
            return None
        booking = await self.booking_repository.get_booking_by_id(order.booking_id)
        if booking is None or not state_machine.is_active(booking):
            return booking

        from_status = booking.status
        try:
            state_machine.cancel(booking, reason, CancelledByEnum.ADMIN, utc_now(), self._cancellation_window())
        except state_machine.BookingTransitionError as exc:
            raise IntegrityViolationException(
                f"Booking {booking.reference} cannot be cancelled: {exc.message}",
                code=blocked_code,
            ) from exc
        await self.booking_repository.save(booking)
        await self._record_booking_cancel(booking, from_status, actor.id)
        return booking

    async def refund_order(self, order_id: UUID, reason: str, actor: User) -> Order:
        """Refund a completed order and cancel its still-active booking (admin)."""
        self._require_admin(actor, "Only admin can refund orders")

        order = await self._get_order(order_id)
        if order.status != OrderStatusEnum.COMPLETED:
            raise ConflictException("Only completed orders can be refunded", code="order_not_refundable")

        booking = await self._cascade_booking_cancel(order, reason, actor, "refund_blocked_by_booking")
        if booking is not None:
            booking.payment_status = BookingPaymentStatusEnum.REFUNDED
            await self.booking_repository.save(booking)

        order.status = OrderStatusEnum.REFUNDED
        order.refunded_at = utc_now()
        order.refund_reason = reason
        await self.repository.save(order)
        await self._record_order_event(order, AuditActionEnum.ORDER_REFUND, "order.refunded", actor.id, reason=reason)
        return order

    async def cancel_order(self, order_id: UUID, reason: str, actor: User) -> Order:
        """Cancel a pending order and its still-active booking (admin)."""
        self._require_admin(actor, "Only admin can cancel orders")

        order = await self._get_order(order_id)
        if order.status != OrderStatusEnum.PENDING:
            raise ConflictException("Only pending orders can be cancelled", code="order_not_cancellable")

        await self._cascade_booking_cancel(order, reason, actor, "cancel_blocked_by_booking")

        order.status = OrderStatusEnum.CANCELLED
        order.cancelled_at = utc_now()
        order.cancellation_reason = reason
        await self.repository.save(order)
        await self._record_order_event(order, AuditActionEnum.ORDER_CANCEL, "order.cancelled", actor.id, reason=reason)
        return order

    async def cancel_pending_orders_for_booking(
        self,
        booking: Booking,
        reason: str | None,
        actor_id: UUID | None,
    ) -> Order | None:
        """Cancel the pending order of a booking that was just cancelled."""
        order = await self.repository.get_pending_order_for_booking(booking.id)
        if order is None:
            return None

        order.status = OrderStatusEnum.CANCELLED
        order.cancelled_at = utc_now()
        order.cancellation_reason = reason or "booking_cancelled"
        await self.repository.save(order)
        await self._record_order_event(
            order,
            AuditActionEnum.ORDER_CANCEL,
            "order.cancelled",
            actor_id,
            reason=order.cancellation_reason,
        )
        return order

    async def get_order(self, order_id: UUID, actor: User) -> Order:
        order = await self._get_order(order_id)
        if order.user_id != actor.id and not self._is_admin(actor):
            raise UnauthorizedException("Access denied")
        return order

    async def list_my_orders(self, actor: User, limit: int, offset: int) -> tuple[list[Order], int]:
        return await self.repository.list_user_orders(actor.id, limit, offset)

    async def list_orders(
        self,
        actor: User,
        filters: OrderFilters,
        limit: int,
        offset: int,
    ) -> tuple[list[Order], int]:
        self._require_admin(actor, "Only admin can list all orders")
        return await self.repository.list_orders(filters, limit, offset)


def build_billing_service(session: AsyncSession, gateway: PaymentGateway) -> BillingService:
    """Wire a billing service on one session."""
    audit_repository = AuditRepository(session)
    return BillingService(
        repository=BillingRepository(session),
        booking_repository=BookingRepository(session),
        catalog_repository=CatalogRepository(session),
        coupon_service=CouponService(CouponRepository(session), audit_repository),
        audit_repository=audit_repository,
        gateway=gateway,
    )


async def get_billing_service(
    session: AsyncSession = Depends(get_db_session),
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> BillingService:
    """Dependency provider for billing service."""
    return build_billing_service(session, gateway)
