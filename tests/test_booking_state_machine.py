from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta
from uuid import UUID, uuid4

import pytest

from app.core.enums import BookingPaymentStatusEnum, BookingStatusEnum, CancelledByEnum
from app.modules.booking import state_machine
from app.modules.booking.state_machine import BookingTransitionError
from app.shared.exceptions import ValidationException

NOW = datetime(2026, 2, 19, 12, 0, tzinfo=UTC)


@dataclass
class FakeBooking:
    id: UUID
    status: BookingStatusEnum
    preferred_date: date = date(2026, 2, 22)
    preferred_time: time = time(10, 0)
    payment_status: BookingPaymentStatusEnum = BookingPaymentStatusEnum.PENDING
    payment_completed_at: datetime | None = None
    confirmed_date_time: datetime | None = None
    confirmed_at: datetime | None = None
    confirmed_by: UUID | None = None
    admin_notes: str | None = None
    rescheduled_count: int = 0
    rescheduled_from: dict | None = None
    rescheduled_reason: str | None = None
    cancelled_at: datetime | None = None
    cancelled_by: CancelledByEnum | None = None
    cancellation_reason: str | None = None
    completed_at: datetime | None = None
    no_show_marked_at: datetime | None = None
    feedback_rating: int | None = None
    feedback_comment: str | None = None
    feedback_is_public: bool = False
    feedback_submitted_at: datetime | None = None


def make_booking(status: BookingStatusEnum, **overrides) -> FakeBooking:
    return FakeBooking(id=uuid4(), status=status, **overrides)


def test_payment_completion_moves_to_pending_confirmation() -> None:
    booking = make_booking(BookingStatusEnum.PENDING_PAYMENT)

    state_machine.mark_payment_completed(booking, NOW)

    assert booking.status == BookingStatusEnum.PENDING_CONFIRMATION
    assert booking.payment_status == BookingPaymentStatusEnum.COMPLETED
    assert booking.payment_completed_at == NOW


def test_confirm_requires_future_aware_time() -> None:
    booking = make_booking(BookingStatusEnum.PENDING_CONFIRMATION)

    with pytest.raises(ValidationException):
        state_machine.confirm(booking, datetime(2026, 2, 21, 10, 0), NOW)
    with pytest.raises(ValidationException) as exc_info:
        state_machine.confirm(booking, NOW - timedelta(minutes=1), NOW)

    assert exc_info.value.code == "confirmed_time_in_past"
    assert booking.status == BookingStatusEnum.PENDING_CONFIRMATION

    admin_id = uuid4()
    state_machine.confirm(booking, NOW + timedelta(days=2), NOW, confirmed_by=admin_id, admin_notes="zoom")

    assert booking.status == BookingStatusEnum.CONFIRMED
    assert booking.confirmed_by == admin_id
    assert booking.admin_notes == "zoom"


def test_confirm_rejected_before_payment() -> None:
    booking = make_booking(BookingStatusEnum.PENDING_PAYMENT)

    with pytest.raises(BookingTransitionError) as exc_info:
        state_machine.confirm(booking, NOW + timedelta(days=2), NOW)

    assert exc_info.value.code == "invalid_transition"
    assert booking.confirmed_date_time is None


def test_cancel_allowed_exactly_at_window_boundary() -> None:
    booking = make_booking(
        BookingStatusEnum.CONFIRMED,
        confirmed_date_time=NOW + timedelta(hours=24),
    )

    state_machine.cancel(booking, "travel", CancelledByEnum.USER, NOW)

    assert booking.status == BookingStatusEnum.CANCELLED
    assert booking.cancelled_by == CancelledByEnum.USER
    assert booking.cancelled_at == NOW
    assert booking.cancellation_reason == "travel"


def test_cancel_inside_window_leaves_booking_unchanged() -> None:
    booking = make_booking(
        BookingStatusEnum.CONFIRMED,
        confirmed_date_time=NOW + timedelta(hours=23, minutes=59),
    )

    with pytest.raises(BookingTransitionError) as exc_info:
        state_machine.cancel(booking, "late", CancelledByEnum.USER, NOW)

    assert exc_info.value.code == "cancellation_window"
    assert booking.status == BookingStatusEnum.CONFIRMED
    assert booking.cancelled_at is None


def test_cancel_without_session_time_ignores_window() -> None:
    booking = make_booking(BookingStatusEnum.PENDING_PAYMENT)

    state_machine.cancel(booking, None, CancelledByEnum.SYSTEM, NOW)

    assert booking.status == BookingStatusEnum.CANCELLED


def test_reschedule_archives_previous_slot_and_returns_to_pending_confirmation() -> None:
    confirmed_at = NOW + timedelta(days=3)
    booking = make_booking(
        BookingStatusEnum.CONFIRMED,
        confirmed_date_time=confirmed_at,
        confirmed_at=NOW,
    )

    state_machine.reschedule(booking, date(2026, 3, 1), time(18, 30), "  conflict  ", NOW)

    assert booking.status == BookingStatusEnum.PENDING_CONFIRMATION
    assert booking.rescheduled_count == 1
    assert booking.preferred_date == date(2026, 3, 1)
    assert booking.preferred_time == time(18, 30)
    assert booking.confirmed_date_time is None
    assert booking.confirmed_at is None
    assert booking.rescheduled_from == {
        "date": "2026-02-22",
        "time": "10:00",
        "confirmed_date_time": confirmed_at.isoformat(),
        "reason": "conflict",
        "rescheduled_at": NOW.isoformat(),
    }


def test_reschedule_limit_is_enforced() -> None:
    booking = make_booking(BookingStatusEnum.PENDING_CONFIRMATION)

    state_machine.reschedule(booking, date(2026, 3, 1), time(9, 0), "first", NOW)
    state_machine.reschedule(booking, date(2026, 3, 2), time(9, 0), "second", NOW)

    with pytest.raises(BookingTransitionError) as exc_info:
        state_machine.reschedule(booking, date(2026, 3, 3), time(9, 0), "third", NOW)

    assert exc_info.value.code == "reschedule_limit"
    assert booking.rescheduled_count == 2
    assert booking.preferred_date == date(2026, 3, 2)


def test_reschedule_requires_reason() -> None:
    booking = make_booking(BookingStatusEnum.PENDING_CONFIRMATION)

    with pytest.raises(ValidationException):
        state_machine.reschedule(booking, date(2026, 3, 1), time(9, 0), "   ", NOW)

    assert booking.rescheduled_count == 0


@pytest.mark.parametrize(
    "status",
    [BookingStatusEnum.COMPLETED, BookingStatusEnum.CANCELLED, BookingStatusEnum.NO_SHOW],
)
def test_terminal_bookings_reject_every_transition(status: BookingStatusEnum) -> None:
    booking = make_booking(status, confirmed_date_time=NOW - timedelta(days=1))

    with pytest.raises(BookingTransitionError) as cancel_exc:
        state_machine.cancel(booking, None, CancelledByEnum.ADMIN, NOW)
    with pytest.raises(BookingTransitionError) as reschedule_exc:
        state_machine.reschedule(booking, date(2026, 3, 1), time(9, 0), "again", NOW)
    with pytest.raises(BookingTransitionError):
        state_machine.complete(booking, NOW)

    assert cancel_exc.value.code == "terminal_state"
    assert reschedule_exc.value.code == "terminal_state"
    assert booking.status == status


def test_complete_and_no_show_require_elapsed_session() -> None:
    future = make_booking(BookingStatusEnum.CONFIRMED, confirmed_date_time=NOW + timedelta(hours=1))
    with pytest.raises(BookingTransitionError) as exc_info:
        state_machine.complete(future, NOW)
    assert exc_info.value.code == "session_not_started"

    past = make_booking(BookingStatusEnum.CONFIRMED, confirmed_date_time=NOW - timedelta(hours=1))
    state_machine.mark_no_show(past, NOW)
    assert past.status == BookingStatusEnum.NO_SHOW
    assert past.no_show_marked_at == NOW


def test_feedback_only_once_after_completion() -> None:
    pending = make_booking(BookingStatusEnum.CONFIRMED)
    with pytest.raises(BookingTransitionError) as not_allowed:
        state_machine.submit_feedback(pending, 5, None, NOW)
    assert not_allowed.value.code == "feedback_not_allowed"

    booking = make_booking(BookingStatusEnum.COMPLETED)
    with pytest.raises(ValidationException):
        state_machine.submit_feedback(booking, 6, None, NOW)

    state_machine.submit_feedback(booking, 4, "مفيدة جدا", NOW, is_public=True)
    assert booking.feedback_rating == 4
    assert booking.feedback_is_public is True

    with pytest.raises(BookingTransitionError) as again:
        state_machine.submit_feedback(booking, 5, None, NOW)
    assert again.value.code == "feedback_already_submitted"
    assert booking.feedback_rating == 4
