"""Booking lifecycle transitions.

Every status change goes through one of the functions below. Each checks all
of its guards before touching the booking, so a rejected transition leaves the
booking unchanged, and raises an error whose ``code`` names the failed guard.
The functions never touch storage; callers persist the returned booking.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Any
from uuid import UUID

from app.core.enums import BookingPaymentStatusEnum, BookingStatusEnum, CancelledByEnum
from app.shared.exceptions import ConflictException, ValidationException

DEFAULT_CANCELLATION_WINDOW = timedelta(hours=24)
DEFAULT_MAX_RESCHEDULES = 2

ACTIVE_STATUSES = frozenset(
    {
        BookingStatusEnum.PENDING_PAYMENT,
        BookingStatusEnum.PENDING_CONFIRMATION,
        BookingStatusEnum.CONFIRMED,
        BookingStatusEnum.RESCHEDULED,
    },
)
TERMINAL_STATUSES = frozenset(
    {BookingStatusEnum.COMPLETED, BookingStatusEnum.CANCELLED, BookingStatusEnum.NO_SHOW},
)

ALLOWED_TRANSITIONS: dict[BookingStatusEnum, frozenset[BookingStatusEnum]] = {
    BookingStatusEnum.PENDING_PAYMENT: frozenset(
        {BookingStatusEnum.PENDING_CONFIRMATION, BookingStatusEnum.CANCELLED},
    ),
    BookingStatusEnum.PENDING_CONFIRMATION: frozenset(
        {BookingStatusEnum.CONFIRMED, BookingStatusEnum.RESCHEDULED, BookingStatusEnum.CANCELLED},
    ),
    BookingStatusEnum.CONFIRMED: frozenset(
        {
            BookingStatusEnum.RESCHEDULED,
            BookingStatusEnum.COMPLETED,
            BookingStatusEnum.NO_SHOW,
            BookingStatusEnum.CANCELLED,
        },
    ),
    BookingStatusEnum.RESCHEDULED: frozenset({BookingStatusEnum.PENDING_CONFIRMATION}),
    BookingStatusEnum.COMPLETED: frozenset(),
    BookingStatusEnum.CANCELLED: frozenset(),
    BookingStatusEnum.NO_SHOW: frozenset(),
}


class BookingTransitionError(ConflictException):
    """Transition rejected by a booking guard."""

    code = "invalid_transition"


def is_active(booking: Any) -> bool:
    return booking.status in ACTIVE_STATUSES


def _require_transition(booking: Any, target: BookingStatusEnum) -> None:
    if target in ALLOWED_TRANSITIONS[booking.status]:
        return
    if booking.status in TERMINAL_STATUSES:
        raise BookingTransitionError(
            f"Booking is already {booking.status}",
            code="terminal_state",
        )
    raise BookingTransitionError(f"Booking cannot move from {booking.status} to {target}")


def _require_aware(value: datetime, field: str) -> None:
    if value.tzinfo is None or value.utcoffset() is None:
        raise ValidationException(f"{field} must include a timezone offset")


def mark_payment_completed(booking: Any, now: datetime) -> Any:
    """pending_payment -> pending_confirmation, fired when the paired order completes."""
    _require_transition(booking, BookingStatusEnum.PENDING_CONFIRMATION)
    if booking.status != BookingStatusEnum.PENDING_PAYMENT:
        raise BookingTransitionError("Booking is not awaiting payment")

    booking.status = BookingStatusEnum.PENDING_CONFIRMATION
    booking.payment_status = BookingPaymentStatusEnum.COMPLETED
    booking.payment_completed_at = now
    return booking


def confirm(
    booking: Any,
    confirmed_date_time: datetime,
    now: datetime,
    confirmed_by: UUID | None = None,
    admin_notes: str | None = None,
) -> Any:
    """pending_confirmation -> confirmed with an admin-assigned session time."""
    if booking.status != BookingStatusEnum.PENDING_CONFIRMATION:
        _require_transition(booking, BookingStatusEnum.CONFIRMED)
        raise BookingTransitionError("Only bookings pending confirmation can be confirmed")
    _require_aware(confirmed_date_time, "confirmed_date_time")
    if confirmed_date_time <= now:
        raise ValidationException("Confirmed session time must be in the future", code="confirmed_time_in_past")

    booking.status = BookingStatusEnum.CONFIRMED
    booking.confirmed_date_time = confirmed_date_time
    booking.confirmed_at = now
    booking.confirmed_by = confirmed_by
    if admin_notes is not None:
        booking.admin_notes = admin_notes
    return booking


def check_can_reschedule(booking: Any, max_reschedules: int = DEFAULT_MAX_RESCHEDULES) -> None:
    if booking.status in TERMINAL_STATUSES:
        raise BookingTransitionError(f"Booking is already {booking.status}", code="terminal_state")
    _require_transition(booking, BookingStatusEnum.RESCHEDULED)
    if booking.rescheduled_count >= max_reschedules:
        raise BookingTransitionError(
            f"Booking can be rescheduled at most {max_reschedules} times",
            code="reschedule_limit",
        )


def reschedule(
    booking: Any,
    new_date: date,
    new_time: time,
    reason: str,
    now: datetime,
    max_reschedules: int = DEFAULT_MAX_RESCHEDULES,
) -> Any:
    """confirmed|pending_confirmation -> rescheduled -> pending_confirmation."""
    check_can_reschedule(booking, max_reschedules)
    if not reason or not reason.strip():
        raise ValidationException("Reschedule reason is required")

    previous_confirmed = booking.confirmed_date_time
    booking.rescheduled_from = {
        "date": booking.preferred_date.isoformat(),
        "time": booking.preferred_time.strftime("%H:%M"),
        "confirmed_date_time": previous_confirmed.isoformat() if previous_confirmed else None,
        "reason": reason.strip(),
        "rescheduled_at": now.isoformat(),
    }
    booking.status = BookingStatusEnum.RESCHEDULED
    booking.preferred_date = new_date
    booking.preferred_time = new_time
    booking.rescheduled_reason = reason.strip()
    booking.rescheduled_count += 1
    booking.confirmed_date_time = None
    booking.confirmed_at = None
    booking.status = BookingStatusEnum.PENDING_CONFIRMATION
    return booking


def check_can_cancel(
    booking: Any,
    now: datetime,
    window: timedelta = DEFAULT_CANCELLATION_WINDOW,
) -> None:
    if booking.status in TERMINAL_STATUSES:
        raise BookingTransitionError(f"Booking is already {booking.status}", code="terminal_state")
    _require_transition(booking, BookingStatusEnum.CANCELLED)
    if booking.confirmed_date_time is not None and booking.confirmed_date_time - now < window:
        hours = int(window.total_seconds() // 3600)
        raise BookingTransitionError(
            f"Booking cannot be cancelled less than {hours} hours before the session",
            code="cancellation_window",
        )


def cancel(
    booking: Any,
    reason: str | None,
    cancelled_by: CancelledByEnum,
    now: datetime,
    window: timedelta = DEFAULT_CANCELLATION_WINDOW,
) -> Any:
    """Any active status -> cancelled, outside the cancellation window."""
    check_can_cancel(booking, now, window)

    booking.status = BookingStatusEnum.CANCELLED
    booking.cancelled_at = now
    booking.cancelled_by = cancelled_by
    booking.cancellation_reason = reason
    return booking


def _require_session_started(booking: Any, now: datetime) -> None:
    if booking.confirmed_date_time is None or booking.confirmed_date_time > now:
        raise BookingTransitionError("Session has not taken place yet", code="session_not_started")


def complete(booking: Any, now: datetime) -> Any:
    """confirmed -> completed once the session time has passed."""
    _require_transition(booking, BookingStatusEnum.COMPLETED)
    _require_session_started(booking, now)

    booking.status = BookingStatusEnum.COMPLETED
    booking.completed_at = now
    return booking


def mark_no_show(booking: Any, now: datetime) -> Any:
    """confirmed -> no_show once the session time has passed."""
    _require_transition(booking, BookingStatusEnum.NO_SHOW)
    _require_session_started(booking, now)

    booking.status = BookingStatusEnum.NO_SHOW
    booking.no_show_marked_at = now
    return booking


def submit_feedback(
    booking: Any,
    rating: int,
    comment: str | None,
    now: datetime,
    is_public: bool = False,
) -> Any:
    """Attach the single post-session feedback."""
    if booking.status != BookingStatusEnum.COMPLETED:
        raise BookingTransitionError(
            "Feedback can only be submitted for completed bookings",
            code="feedback_not_allowed",
        )
    if booking.feedback_submitted_at is not None:
        raise BookingTransitionError("Feedback was already submitted", code="feedback_already_submitted")
    if not 1 <= rating <= 5:
        raise ValidationException("Rating must be between 1 and 5")
    if comment is not None and len(comment) > 1000:
        raise ValidationException("Comment cannot exceed 1000 characters")

    booking.feedback_rating = rating
    booking.feedback_comment = comment
    booking.feedback_is_public = is_public
    booking.feedback_submitted_at = now
    return booking
