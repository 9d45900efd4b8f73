"""Booking business logic layer."""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta
from uuid import UUID
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.database import get_db_session
from app.core.enums import (
    AuditActionEnum,
    BookingPaymentStatusEnum,
    BookingStatusEnum,
    CancelledByEnum,
    RoleEnum,
)
from app.core.metrics import record_booking_transition
from app.modules.audit.repository import AuditRepository
from app.modules.billing.gateway import PaymentGateway, get_payment_gateway
from app.modules.billing.models import Order
from app.modules.billing.service import BillingService, build_billing_service
from app.modules.booking import state_machine
from app.modules.booking.models import Booking
from app.modules.booking.repository import BookingRepository
from app.modules.booking.schemas import (
    BookingCancelRequest,
    BookingConfirmRequest,
    BookingCreate,
    BookingFeedbackRequest,
    BookingRescheduleRequest,
)
from app.modules.catalog.availability import is_slot_available, supports_meeting_type
from app.modules.catalog.models import ConsultationOffering
from app.modules.catalog.repository import CatalogRepository
from app.modules.identity.models import User
from app.shared.exceptions import BusinessRuleException, NotFoundException, UnauthorizedException
from app.shared.utils import utc_now

logger = logging.getLogger(__name__)

settings = get_settings()


class BookingService:
    """Booking domain service driving the consultation lifecycle."""

    def __init__(
        self,
        booking_repository: BookingRepository,
        catalog_repository: CatalogRepository,
        billing_service: BillingService,
        audit_repository: AuditRepository,
    ) -> None:
        self.booking_repository = booking_repository
        self.catalog_repository = catalog_repository
        self.billing_service = billing_service
        self.audit_repository = audit_repository

    @staticmethod
    def _is_admin(actor: User) -> bool:
        return actor.role.name == RoleEnum.ADMIN

    def _require_admin(self, actor: User, message: str) -> None:
        if not self._is_admin(actor):
            raise UnauthorizedException(message)

    def _validate_actor_access(self, booking: Booking, actor: User) -> None:
        if self._is_admin(actor) or booking.user_id == actor.id:
            return
        raise UnauthorizedException("You cannot manage this booking")

    @staticmethod
    def _zone(name: str | None) -> ZoneInfo:
        try:
            return ZoneInfo(name or settings.default_timezone)
        except ZoneInfoNotFoundError:
            logger.warning("Unknown timezone %r, falling back to %s", name, settings.default_timezone)
            return ZoneInfo(settings.default_timezone)

    @staticmethod
    def _ensure_bookable_slot(
        offering: ConsultationOffering,
        day: date,
        at: time,
        zone: ZoneInfo,
        now: datetime,
        code: str = "slot_unavailable",
    ) -> None:
        if datetime.combine(day, at, tzinfo=zone) <= now:
            raise BusinessRuleException("Requested time is in the past", code="requested_time_in_past")
        if not is_slot_available(offering, day, at):
            raise BusinessRuleException(
                f"Consultation is not available on {day.isoformat()} at {at.strftime('%H:%M')}",
                code=code,
            )

    async def _get_booking(self, booking_id: UUID) -> Booking:
        booking = await self.booking_repository.get_booking_by_id(booking_id)
        if booking is None:
            raise NotFoundException("Booking not found")
        return booking

    async def _record_transition(
        self,
        booking: Booking,
        from_status: str | None,
        action: AuditActionEnum,
        event_type: str,
        actor_id: UUID | None,
        **details,
    ) -> None:
        if from_status is not None and from_status != booking.status:
            record_booking_transition(from_status, booking.status)
        payload = {
            "booking_id": str(booking.id),
            "reference": booking.reference,
            "user_id": str(booking.user_id),
            "from_status": str(from_status) if from_status is not None else None,
            "status": str(booking.status),
            **details,
        }
        await self.audit_repository.create_audit_log(
            actor_id=actor_id,
            action=action,
            entity_type="booking",
            entity_id=str(booking.id),
            payload=payload,
        )
        await self.audit_repository.create_outbox_event(
            aggregate_type="booking",
            aggregate_id=str(booking.id),
            event_type=event_type,
            payload=payload,
        )

    async def _next_reference(self, now: datetime) -> str:
        day = now.astimezone(self._zone(None)).date()
        sequence = await self.booking_repository.next_reference_number(day)
        return f"{settings.booking_reference_prefix}-{day:%Y%m%d}-{sequence:04d}"

    async def create_booking(self, payload: BookingCreate, actor: User) -> tuple[Booking, Order]:
        """Create booking in pending_payment together with its order."""
        offering = await self.catalog_repository.get_offering_by_id(payload.offering_id)
        if offering is None:
            raise NotFoundException("Consultation not found")
        if not offering.is_active:
            raise BusinessRuleException("Consultation is not available", code="offering_inactive")
        if not supports_meeting_type(offering.consultation_type, payload.meeting_type):
            raise BusinessRuleException(
                f"Consultation does not support {payload.meeting_type} meetings",
                code="meeting_type_not_supported",
            )

        now = utc_now()
        zone = self._zone(actor.timezone)
        self._ensure_bookable_slot(offering, payload.preferred_date, payload.preferred_time, zone, now)
        if payload.alternative_date is not None or payload.alternative_time is not None:
            self._ensure_bookable_slot(
                offering,
                payload.alternative_date or payload.preferred_date,
                payload.alternative_time or payload.preferred_time,
                zone,
                now,
                code="alternative_slot_unavailable",
            )

        is_first_booking = not await self.booking_repository.user_has_bookings(actor.id)
        booking = await self.booking_repository.create_booking(
            reference=await self._next_reference(now),
            user_id=actor.id,
            offering_id=offering.id,
            offering_title=offering.title,
            offering_category=offering.category,
            duration_minutes=offering.duration_minutes,
            price=offering.price,
            currency=offering.currency,
            meeting_type=payload.meeting_type,
            preferred_date=payload.preferred_date,
            preferred_time=payload.preferred_time,
            alternative_date=payload.alternative_date,
            alternative_time=payload.alternative_time,
            timezone=zone.key,
            status=BookingStatusEnum.PENDING_PAYMENT,
            payment_status=BookingPaymentStatusEnum.PENDING,
            user_details=payload.user_details.model_dump(mode="json"),
            is_first_booking=is_first_booking,
            rescheduled_count=0,
        )
        order = await self.billing_service.open_booking_order(
            booking,
            actor,
            payload.payment_method,
            payload.coupon_code,
            payload.bank_transfer,
        )
        await self._record_transition(
            booking,
            None,
            AuditActionEnum.BOOKING_CREATE,
            "booking.created",
            actor.id,
            offering_id=str(offering.id),
            order_id=str(order.id),
            is_first_booking=is_first_booking,
        )
        return booking, order

    async def get_booking(self, booking_id: UUID, actor: User) -> Booking:
        booking = await self._get_booking(booking_id)
        self._validate_actor_access(booking, actor)
        return booking

    async def confirm_booking(self, booking_id: UUID, payload: BookingConfirmRequest, actor: User) -> Booking:
        """Assign the session time (admin)."""
        self._require_admin(actor, "Only admin can confirm bookings")

        booking = await self._get_booking(booking_id)
        from_status = booking.status
        state_machine.confirm(booking, payload.confirmed_date_time, utc_now(), actor.id, payload.admin_notes)
        await self.booking_repository.save(booking)
        await self._record_transition(
            booking,
            from_status,
            AuditActionEnum.BOOKING_CONFIRM,
            "booking.confirmed",
            actor.id,
            confirmed_date_time=booking.confirmed_date_time.isoformat(),
        )
        return booking

    async def reschedule_booking(
        self,
        booking_id: UUID,
        payload: BookingRescheduleRequest,
        actor: User,
    ) -> Booking:
        """Move booking to a new preferred slot and send it back for confirmation."""
        booking = await self._get_booking(booking_id)
        self._validate_actor_access(booking, actor)
        state_machine.check_can_reschedule(booking, settings.booking_max_reschedules)

        offering = await self.catalog_repository.get_offering_by_id(booking.offering_id)
        if offering is None:
            raise NotFoundException("Consultation not found")
        now = utc_now()
        self._ensure_bookable_slot(offering, payload.new_date, payload.new_time, self._zone(booking.timezone), now)

        from_status = booking.status
        state_machine.reschedule(
            booking,
            payload.new_date,
            payload.new_time,
            payload.reason,
            now,
            settings.booking_max_reschedules,
        )
        await self.booking_repository.save(booking)
        record_booking_transition(from_status, BookingStatusEnum.RESCHEDULED)
        await self._record_transition(
            booking,
            BookingStatusEnum.RESCHEDULED,
            AuditActionEnum.BOOKING_RESCHEDULE,
            "booking.rescheduled",
            actor.id,
            rescheduled_from=booking.rescheduled_from,
            rescheduled_count=booking.rescheduled_count,
        )
        return booking

    async def cancel_booking(
        self,
        booking_id: UUID,
        payload: BookingCancelRequest,
        actor: User,
    ) -> Booking:
        """Cancel booking outside the cancellation window and drop its pending order."""
        booking = await self._get_booking(booking_id)
        self._validate_actor_access(booking, actor)

        from_status = booking.status
        cancelled_by = CancelledByEnum.ADMIN if self._is_admin(actor) else CancelledByEnum.USER
        state_machine.cancel(
            booking,
            payload.reason,
            cancelled_by,
            utc_now(),
            timedelta(hours=settings.booking_cancellation_window_hours),
        )
        await self.booking_repository.save(booking)
        await self.billing_service.cancel_pending_orders_for_booking(booking, payload.reason, actor.id)
        await self._record_transition(
            booking,
            from_status,
            AuditActionEnum.BOOKING_CANCEL,
            "booking.cancelled",
            actor.id,
            cancelled_by=str(cancelled_by),
            reason=payload.reason,
        )
        return booking

    async def complete_booking(self, booking_id: UUID, actor: User) -> Booking:
        """Mark a held session as completed (admin)."""
        self._require_admin(actor, "Only admin can complete bookings")

        booking = await self._get_booking(booking_id)
        from_status = booking.status
        state_machine.complete(booking, utc_now())
        await self.booking_repository.save(booking)
        await self._record_transition(
            booking,
            from_status,
            AuditActionEnum.BOOKING_COMPLETE,
            "booking.completed",
            actor.id,
        )
        return booking

    async def mark_no_show(self, booking_id: UUID, actor: User) -> Booking:
        """Mark the user as absent from a past session (admin)."""
        self._require_admin(actor, "Only admin can mark no-shows")

        booking = await self._get_booking(booking_id)
        from_status = booking.status
        state_machine.mark_no_show(booking, utc_now())
        await self.booking_repository.save(booking)
        await self._record_transition(
            booking,
            from_status,
            AuditActionEnum.BOOKING_NO_SHOW,
            "booking.no_show",
            actor.id,
        )
        return booking

    async def complete_elapsed_sessions(self, actor: User) -> int:
        """Complete every confirmed booking whose session has ended."""
        self._require_admin(actor, "Only admin can run session completion")

        now = utc_now()
        completed = 0
        for booking in await self.booking_repository.find_started_confirmed(now):
            if booking.confirmed_date_time + timedelta(minutes=booking.duration_minutes) > now:
                continue
            from_status = booking.status
            state_machine.complete(booking, now)
            await self.booking_repository.save(booking)
            await self._record_transition(
                booking,
                from_status,
                AuditActionEnum.BOOKING_COMPLETE,
                "booking.completed",
                actor.id,
                automatic=True,
            )
            completed += 1

        logger.info("Completed %s elapsed sessions", completed)
        return completed

    async def submit_feedback(
        self,
        booking_id: UUID,
        payload: BookingFeedbackRequest,
        actor: User,
    ) -> Booking:
        """Store the owner's single post-session feedback."""
        booking = await self._get_booking(booking_id)
        if booking.user_id != actor.id:
            raise UnauthorizedException("Only the booking owner can leave feedback")

        state_machine.submit_feedback(booking, payload.rating, payload.comment, utc_now(), payload.is_public)
        await self.booking_repository.save(booking)
        await self._record_transition(
            booking,
            None,
            AuditActionEnum.BOOKING_FEEDBACK,
            "booking.feedback_submitted",
            actor.id,
            rating=payload.rating,
        )
        return booking

    async def list_my_bookings(
        self,
        actor: User,
        status: BookingStatusEnum | None,
        limit: int,
        offset: int,
    ) -> tuple[list[Booking], int]:
        return await self.booking_repository.list_bookings(actor.id, status, limit, offset)

    async def list_bookings(
        self,
        actor: User,
        status: BookingStatusEnum | None,
        limit: int,
        offset: int,
    ) -> tuple[list[Booking], int]:
        self._require_admin(actor, "Only admin can list all bookings")
        return await self.booking_repository.list_bookings(None, status, limit, offset)

    async def list_pending_confirmations(self, actor: User, limit: int, offset: int) -> tuple[list[Booking], int]:
        self._require_admin(actor, "Only admin can view the confirmation queue")
        return await self.booking_repository.list_pending_confirmations(limit, offset)

    async def list_upcoming(self, actor: User, limit: int, offset: int) -> tuple[list[Booking], int]:
        self._require_admin(actor, "Only admin can view upcoming sessions")
        return await self.booking_repository.list_upcoming(utc_now(), limit, offset)


async def get_booking_service(
    session: AsyncSession = Depends(get_db_session),
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> BookingService:
    """Dependency provider for booking service."""
    return BookingService(
        booking_repository=BookingRepository(session),
        catalog_repository=CatalogRepository(session),
        billing_service=build_billing_service(session, gateway),
        audit_repository=AuditRepository(session),
    )
