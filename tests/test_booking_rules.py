from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, date, datetime, time, timedelta
from decimal import Decimal
from types import SimpleNamespace
from uuid import UUID, uuid4

import pytest

import app.modules.booking.service as booking_service_module
from app.core.enums import (
    BookingPaymentStatusEnum,
    BookingStatusEnum,
    CancelledByEnum,
    ConsultationCategoryEnum,
    ConsultationTypeEnum,
    MeetingTypeEnum,
    PaymentMethodEnum,
    RoleEnum,
)
from app.modules.booking import state_machine
from app.modules.booking.schemas import (
    BookingCancelRequest,
    BookingCreate,
    BookingRescheduleRequest,
    UserDetails,
)
from app.modules.booking.service import BookingService, settings
from app.shared.exceptions import (
    BusinessRuleException,
    ConflictException,
    NotFoundException,
    UnauthorizedException,
)

ACTIVE = state_machine.ACTIVE_STATUSES


@dataclass
class FakeOffering:
    id: UUID
    title: str = "استشارة رياضية فردية"
    category: ConsultationCategoryEnum = ConsultationCategoryEnum.SPORTS
    price: Decimal = Decimal("150.00")
    currency: str = "USD"
    duration_minutes: int = 60
    consultation_type: ConsultationTypeEnum = ConsultationTypeEnum.BOTH
    is_active: bool = True
    available_days: list[str] = field(default_factory=lambda: ["sunday", "monday"])
    available_time_slots: list[dict] = field(default_factory=lambda: [{"start": "09:00", "end": "12:00"}])


@dataclass
class FakeBooking:
    id: UUID
    user_id: UUID
    offering_id: UUID
    status: BookingStatusEnum
    reference: str = "CB-20260219-0001"
    offering_title: str = "استشارة رياضية فردية"
    offering_category: ConsultationCategoryEnum = ConsultationCategoryEnum.SPORTS
    duration_minutes: int = 60
    price: Decimal = Decimal("150.00")
    currency: str = "USD"
    meeting_type: MeetingTypeEnum = MeetingTypeEnum.ONLINE
    preferred_date: date = date(2026, 2, 22)
    preferred_time: time = time(10, 0)
    alternative_date: date | None = None
    alternative_time: time | None = None
    timezone: str = "Asia/Riyadh"
    payment_status: BookingPaymentStatusEnum = BookingPaymentStatusEnum.PENDING
    user_details: dict = field(default_factory=dict)
    is_first_booking: bool = False
    payment_completed_at: datetime | None = None
    confirmed_date_time: datetime | None = None
    confirmed_at: datetime | None = None
    confirmed_by: UUID | None = None
    admin_notes: str | None = None
    completed_at: datetime | None = None
    no_show_marked_at: datetime | None = None
    cancelled_at: datetime | None = None
    cancelled_by: CancelledByEnum | None = None
    cancellation_reason: str | None = None
    rescheduled_from: dict | None = None
    rescheduled_reason: str | None = None
    rescheduled_count: int = 0
    feedback_submitted_at: datetime | None = None


class FakeBookingRepository:
    def __init__(self, bookings: dict[UUID, FakeBooking] | None = None) -> None:
        self._bookings: dict[UUID, FakeBooking] = bookings or {}
        self._sequences: dict[date, int] = {}

    async def next_reference_number(self, day: date) -> int:
        self._sequences[day] = self._sequences.get(day, 0) + 1
        return self._sequences[day]

    async def user_has_bookings(self, user_id: UUID) -> bool:
        return any(booking.user_id == user_id for booking in self._bookings.values())

    async def create_booking(self, **fields) -> FakeBooking:
        for existing in self._bookings.values():
            if (
                existing.user_id == fields["user_id"]
                and existing.offering_id == fields["offering_id"]
                and existing.status in ACTIVE
            ):
                raise ConflictException("Active booking exists", code="duplicate_active_booking")
        booking = FakeBooking(id=uuid4(), **fields)
        self._bookings[booking.id] = booking
        return booking

    async def get_booking_by_id(self, booking_id: UUID) -> FakeBooking | None:
        return self._bookings.get(booking_id)

    async def save(self, booking: FakeBooking) -> FakeBooking:
        self._bookings[booking.id] = booking
        return booking

    async def find_started_confirmed(self, now: datetime) -> list[FakeBooking]:
        return [
            booking
            for booking in self._bookings.values()
            if booking.status == BookingStatusEnum.CONFIRMED
            and booking.confirmed_date_time is not None
            and booking.confirmed_date_time <= now
        ]


class FakeCatalogRepository:
    def __init__(self, offerings: dict[UUID, FakeOffering]) -> None:
        self._offerings = offerings

    async def get_offering_by_id(self, offering_id: UUID) -> FakeOffering | None:
        return self._offerings.get(offering_id)


class FakeBillingService:
    def __init__(self) -> None:
        self.opened: list[tuple[FakeBooking, PaymentMethodEnum, str | None]] = []
        self.cancelled_for: list[UUID] = []

    async def open_booking_order(self, booking, actor, payment_method, coupon_code=None, bank_transfer=None):
        self.opened.append((booking, payment_method, coupon_code))
        return SimpleNamespace(id=uuid4(), booking_id=booking.id, payment_method=payment_method)

    async def cancel_pending_orders_for_booking(self, booking, reason, actor_id) -> None:
        self.cancelled_for.append(booking.id)


class FakeAuditRepository:
    def __init__(self) -> None:
        self.logs: list[dict] = []
        self.events: list[dict] = []

    async def create_audit_log(self, **kwargs) -> None:
        self.logs.append(kwargs)

    async def create_outbox_event(
        self,
        aggregate_type: str,
        aggregate_id: str,
        event_type: str,
        payload: dict,
    ) -> None:
        self.events.append(
            {
                "aggregate_type": aggregate_type,
                "aggregate_id": aggregate_id,
                "event_type": event_type,
                "payload": payload,
            },
        )


def make_actor(user_id: UUID, role: RoleEnum = RoleEnum.USER) -> SimpleNamespace:
    return SimpleNamespace(id=user_id, role=SimpleNamespace(name=role), timezone="Asia/Riyadh")


def make_service(
    *,
    offerings: dict[UUID, FakeOffering] | None = None,
    bookings: dict[UUID, FakeBooking] | None = None,
) -> tuple[BookingService, FakeBookingRepository, FakeBillingService, FakeAuditRepository]:
    booking_repo = FakeBookingRepository(bookings=bookings)
    billing_service = FakeBillingService()
    audit_repo = FakeAuditRepository()
    service = BookingService(
        booking_repository=booking_repo,
        catalog_repository=FakeCatalogRepository(offerings or {}),
        billing_service=billing_service,
        audit_repository=audit_repo,
    )
    return service, booking_repo, billing_service, audit_repo


@pytest.fixture
def fixed_now(monkeypatch: pytest.MonkeyPatch) -> datetime:
    now = datetime(2026, 2, 19, 12, 0, tzinfo=UTC)
    monkeypatch.setattr(booking_service_module, "utc_now", lambda: now)
    return now


@pytest.mark.asyncio
async def test_create_booking_snapshots_offering_and_opens_order(fixed_now: datetime) -> None:
    offering = FakeOffering(id=uuid4())
    service, _, billing_service, audit_repo = make_service(offerings={offering.id: offering})
    user_id = uuid4()

    booking, order = await service.create_booking(
        BookingCreate(
            offering_id=offering.id,
            preferred_date=date(2026, 2, 22),
            preferred_time=time(10, 0),
            user_details=UserDetails(age=31, goals=("strength",)),
            payment_method=PaymentMethodEnum.STRIPE,
            coupon_code="WELCOME10",
        ),
        make_actor(user_id),
    )

    assert booking.status == BookingStatusEnum.PENDING_PAYMENT
    assert booking.payment_status == BookingPaymentStatusEnum.PENDING
    assert booking.reference == f"{settings.booking_reference_prefix}-20260219-0001"
    assert booking.price == Decimal("150.00")
    assert booking.offering_title == offering.title
    assert booking.is_first_booking is True
    assert booking.user_details["goals"] == ["strength"]
    assert order.booking_id == booking.id
    assert billing_service.opened == [(booking, PaymentMethodEnum.STRIPE, "WELCOME10")]
    assert audit_repo.events[-1]["event_type"] == "booking.created"


@pytest.mark.asyncio
async def test_references_increment_within_a_day(fixed_now: datetime) -> None:
    first_offering = FakeOffering(id=uuid4())
    second_offering = FakeOffering(id=uuid4())
    service, _, _, _ = make_service(
        offerings={first_offering.id: first_offering, second_offering.id: second_offering},
    )
    actor = make_actor(uuid4())

    first, _ = await service.create_booking(
        BookingCreate(offering_id=first_offering.id, preferred_date=date(2026, 2, 22), preferred_time=time(9, 0)),
        actor,
    )
    second, _ = await service.create_booking(
        BookingCreate(offering_id=second_offering.id, preferred_date=date(2026, 2, 23), preferred_time=time(11, 0)),
        actor,
    )

    assert first.reference.endswith("-0001")
    assert second.reference.endswith("-0002")
    assert second.is_first_booking is False


@pytest.mark.asyncio
async def test_second_active_booking_for_same_offering_is_rejected(fixed_now: datetime) -> None:
    offering = FakeOffering(id=uuid4())
    service, _, billing_service, _ = make_service(offerings={offering.id: offering})
    actor = make_actor(uuid4())
    payload = BookingCreate(offering_id=offering.id, preferred_date=date(2026, 2, 22), preferred_time=time(10, 0))

    await service.create_booking(payload, actor)
    with pytest.raises(ConflictException) as exc_info:
        await service.create_booking(payload, actor)

    assert exc_info.value.code == "duplicate_active_booking"
    assert len(billing_service.opened) == 1


@pytest.mark.asyncio
async def test_create_booking_rejects_unavailable_or_past_slots(fixed_now: datetime) -> None:
    offering = FakeOffering(id=uuid4())
    service, _, billing_service, _ = make_service(offerings={offering.id: offering})
    actor = make_actor(uuid4())

    with pytest.raises(BusinessRuleException) as outside_hours:
        await service.create_booking(
            BookingCreate(offering_id=offering.id, preferred_date=date(2026, 2, 22), preferred_time=time(12, 0)),
            actor,
        )
    with pytest.raises(BusinessRuleException) as wrong_day:
        await service.create_booking(
            BookingCreate(offering_id=offering.id, preferred_date=date(2026, 2, 24), preferred_time=time(10, 0)),
            actor,
        )
    with pytest.raises(BusinessRuleException) as past:
        await service.create_booking(
            BookingCreate(offering_id=offering.id, preferred_date=date(2026, 2, 16), preferred_time=time(10, 0)),
            actor,
        )
    with pytest.raises(BusinessRuleException) as alternative:
        await service.create_booking(
            BookingCreate(
                offering_id=offering.id,
                preferred_date=date(2026, 2, 22),
                preferred_time=time(10, 0),
                alternative_time=time(20, 0),
            ),
            actor,
        )

    assert outside_hours.value.code == "slot_unavailable"
    assert wrong_day.value.code == "slot_unavailable"
    assert past.value.code == "requested_time_in_past"
    assert alternative.value.code == "alternative_slot_unavailable"
    assert billing_service.opened == []


@pytest.mark.asyncio
async def test_create_booking_checks_offering_state(fixed_now: datetime) -> None:
    inactive = FakeOffering(id=uuid4(), is_active=False)
    online_only = FakeOffering(id=uuid4(), consultation_type=ConsultationTypeEnum.ONLINE)
    service, _, _, _ = make_service(offerings={inactive.id: inactive, online_only.id: online_only})
    actor = make_actor(uuid4())

    with pytest.raises(NotFoundException):
        await service.create_booking(
            BookingCreate(offering_id=uuid4(), preferred_date=date(2026, 2, 22), preferred_time=time(10, 0)),
            actor,
        )
    with pytest.raises(BusinessRuleException) as inactive_exc:
        await service.create_booking(
            BookingCreate(offering_id=inactive.id, preferred_date=date(2026, 2, 22), preferred_time=time(10, 0)),
            actor,
        )
    with pytest.raises(BusinessRuleException) as meeting_exc:
        await service.create_booking(
            BookingCreate(
                offering_id=online_only.id,
                preferred_date=date(2026, 2, 22),
                preferred_time=time(10, 0),
                meeting_type=MeetingTypeEnum.IN_PERSON,
            ),
            actor,
        )

    assert inactive_exc.value.code == "offering_inactive"
    assert meeting_exc.value.code == "meeting_type_not_supported"


@pytest.mark.asyncio
async def test_user_cancel_drops_pending_order(fixed_now: datetime) -> None:
    user_id = uuid4()
    booking = FakeBooking(
        id=uuid4(),
        user_id=user_id,
        offering_id=uuid4(),
        status=BookingStatusEnum.PENDING_PAYMENT,
    )
    service, _, billing_service, audit_repo = make_service(bookings={booking.id: booking})

    cancelled = await service.cancel_booking(booking.id, BookingCancelRequest(reason="changed plans"), make_actor(user_id))

    assert cancelled.status == BookingStatusEnum.CANCELLED
    assert cancelled.cancelled_by == CancelledByEnum.USER
    assert billing_service.cancelled_for == [booking.id]
    assert audit_repo.events[-1]["event_type"] == "booking.cancelled"


@pytest.mark.asyncio
async def test_cancel_inside_window_keeps_booking_and_order(fixed_now: datetime) -> None:
    user_id = uuid4()
    booking = FakeBooking(
        id=uuid4(),
        user_id=user_id,
        offering_id=uuid4(),
        status=BookingStatusEnum.CONFIRMED,
        confirmed_date_time=fixed_now + timedelta(hours=settings.booking_cancellation_window_hours - 1),
    )
    service, _, billing_service, audit_repo = make_service(bookings={booking.id: booking})

    with pytest.raises(ConflictException) as exc_info:
        await service.cancel_booking(booking.id, BookingCancelRequest(), make_actor(user_id))

    assert exc_info.value.code == "cancellation_window"
    assert booking.status == BookingStatusEnum.CONFIRMED
    assert billing_service.cancelled_for == []
    assert audit_repo.events == []


@pytest.mark.asyncio
async def test_other_users_cannot_touch_booking(fixed_now: datetime) -> None:
    booking = FakeBooking(
        id=uuid4(),
        user_id=uuid4(),
        offering_id=uuid4(),
        status=BookingStatusEnum.PENDING_PAYMENT,
    )
    service, _, _, _ = make_service(bookings={booking.id: booking})

    with pytest.raises(UnauthorizedException):
        await service.cancel_booking(booking.id, BookingCancelRequest(), make_actor(uuid4()))
    with pytest.raises(UnauthorizedException):
        await service.confirm_booking(booking.id, SimpleNamespace(), make_actor(booking.user_id))

    assert booking.status == BookingStatusEnum.PENDING_PAYMENT


@pytest.mark.asyncio
async def test_reschedule_checks_limit_before_availability(fixed_now: datetime) -> None:
    offering = FakeOffering(id=uuid4())
    user_id = uuid4()
    booking = FakeBooking(
        id=uuid4(),
        user_id=user_id,
        offering_id=offering.id,
        status=BookingStatusEnum.CONFIRMED,
        confirmed_date_time=fixed_now + timedelta(days=3),
        rescheduled_count=settings.booking_max_reschedules,
    )
    service, _, _, _ = make_service(offerings={offering.id: offering}, bookings={booking.id: booking})

    with pytest.raises(ConflictException) as exc_info:
        await service.reschedule_booking(
            booking.id,
            BookingRescheduleRequest(new_date=date(2026, 2, 24), new_time=time(23, 0), reason="again"),
            make_actor(user_id),
        )

    assert exc_info.value.code == "reschedule_limit"


@pytest.mark.asyncio
async def test_reschedule_returns_booking_to_confirmation_queue(fixed_now: datetime) -> None:
    offering = FakeOffering(id=uuid4())
    user_id = uuid4()
    booking = FakeBooking(
        id=uuid4(),
        user_id=user_id,
        offering_id=offering.id,
        status=BookingStatusEnum.CONFIRMED,
        confirmed_date_time=fixed_now + timedelta(days=3),
    )
    service, _, _, audit_repo = make_service(offerings={offering.id: offering}, bookings={booking.id: booking})

    updated = await service.reschedule_booking(
        booking.id,
        BookingRescheduleRequest(new_date=date(2026, 3, 1), new_time=time(11, 0), reason="work trip"),
        make_actor(user_id),
    )

    assert updated.status == BookingStatusEnum.PENDING_CONFIRMATION
    assert updated.rescheduled_count == 1
    assert updated.confirmed_date_time is None
    assert updated.rescheduled_from["date"] == "2026-02-22"
    assert audit_repo.events[-1]["event_type"] == "booking.rescheduled"


@pytest.mark.asyncio
async def test_complete_elapsed_sessions_skips_running_ones(fixed_now: datetime) -> None:
    ended = FakeBooking(
        id=uuid4(),
        user_id=uuid4(),
        offering_id=uuid4(),
        status=BookingStatusEnum.CONFIRMED,
        confirmed_date_time=fixed_now - timedelta(minutes=90),
    )
    running = FakeBooking(
        id=uuid4(),
        user_id=uuid4(),
        offering_id=uuid4(),
        status=BookingStatusEnum.CONFIRMED,
        confirmed_date_time=fixed_now - timedelta(minutes=30),
    )
    service, _, _, _ = make_service(bookings={ended.id: ended, running.id: running})

    completed = await service.complete_elapsed_sessions(make_actor(uuid4(), RoleEnum.ADMIN))

    assert completed == 1
    assert ended.status == BookingStatusEnum.COMPLETED
    assert ended.completed_at == fixed_now
    assert running.status == BookingStatusEnum.CONFIRMED
