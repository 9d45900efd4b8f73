"""Booking API router."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, status

from app.core.enums import BookingStatusEnum
from app.modules.billing.schemas import OrderRead
from app.modules.booking.schemas import (
    BookingCancelRequest,
    BookingConfirmRequest,
    BookingCreate,
    BookingCreatedRead,
    BookingFeedbackRequest,
    BookingRead,
    BookingRescheduleRequest,
)
from app.modules.booking.service import BookingService, get_booking_service
from app.modules.identity.service import get_current_user
from app.shared.pagination import Page, build_page, get_pagination_params

router = APIRouter(prefix="/booking", tags=["booking"])


@router.post("", response_model=BookingCreatedRead, status_code=status.HTTP_201_CREATED)
async def create_booking(
    payload: BookingCreate,
    service: BookingService = Depends(get_booking_service),
    current_user=Depends(get_current_user),
) -> BookingCreatedRead:
    """Create booking in pending_payment with its paired order."""
    booking, order = await service.create_booking(payload, current_user)
    return BookingCreatedRead(
        reference=booking.reference,
        booking=BookingRead.model_validate(booking),
        order=OrderRead.model_validate(order),
    )


@router.get("/my", response_model=Page[BookingRead])
async def list_my_bookings(
    booking_status: BookingStatusEnum | None = None,
    pagination=Depends(get_pagination_params),
    service: BookingService = Depends(get_booking_service),
    current_user=Depends(get_current_user),
) -> Page[BookingRead]:
    """List bookings for current user."""
    items, total = await service.list_my_bookings(
        current_user,
        booking_status,
        pagination.limit,
        pagination.offset,
    )
    serialized = [BookingRead.model_validate(item) for item in items]
    return build_page(serialized, total, pagination)


@router.get("", response_model=Page[BookingRead])
async def list_bookings(
    booking_status: BookingStatusEnum | None = None,
    pagination=Depends(get_pagination_params),
    service: BookingService = Depends(get_booking_service),
    current_user=Depends(get_current_user),
) -> Page[BookingRead]:
    """List all bookings (admin)."""
    items, total = await service.list_bookings(current_user, booking_status, pagination.limit, pagination.offset)
    serialized = [BookingRead.model_validate(item) for item in items]
    return build_page(serialized, total, pagination)


@router.get("/pending-confirmations", response_model=Page[BookingRead])
async def list_pending_confirmations(
    pagination=Depends(get_pagination_params),
    service: BookingService = Depends(get_booking_service),
    current_user=Depends(get_current_user),
) -> Page[BookingRead]:
    """Paid bookings waiting for a session time (admin)."""
    items, total = await service.list_pending_confirmations(current_user, pagination.limit, pagination.offset)
    serialized = [BookingRead.model_validate(item) for item in items]
    return build_page(serialized, total, pagination)


@router.get("/upcoming", response_model=Page[BookingRead])
async def list_upcoming(
    pagination=Depends(get_pagination_params),
    service: BookingService = Depends(get_booking_service),
    current_user=Depends(get_current_user),
) -> Page[BookingRead]:
    """Scheduled sessions in the future (admin)."""
    items, total = await service.list_upcoming(current_user, pagination.limit, pagination.offset)
    serialized = [BookingRead.model_validate(item) for item in items]
    return build_page(serialized, total, pagination)


@router.post("/sessions/complete-elapsed", response_model=int)
async def complete_elapsed_sessions(
    service: BookingService = Depends(get_booking_service),
    current_user=Depends(get_current_user),
) -> int:
    """Complete confirmed sessions that have ended (admin task endpoint)."""
    return await service.complete_elapsed_sessions(current_user)


@router.get("/{booking_id}", response_model=BookingRead)
async def get_booking(
    booking_id: UUID,
    service: BookingService = Depends(get_booking_service),
    current_user=Depends(get_current_user),
) -> BookingRead:
    """Return booking for its owner or an admin."""
    booking = await service.get_booking(booking_id, current_user)
    return BookingRead.model_validate(booking)


@router.post("/{booking_id}/confirm", response_model=BookingRead)
async def confirm_booking(
    booking_id: UUID,
    payload: BookingConfirmRequest,
    service: BookingService = Depends(get_booking_service),
    current_user=Depends(get_current_user),
) -> BookingRead:
    """Assign the session time (admin)."""
    booking = await service.confirm_booking(booking_id, payload, current_user)
    return BookingRead.model_validate(booking)


@router.post("/{booking_id}/reschedule", response_model=BookingRead)
async def reschedule_booking(
    booking_id: UUID,
    payload: BookingRescheduleRequest,
    service: BookingService = Depends(get_booking_service),
    current_user=Depends(get_current_user),
) -> BookingRead:
    """Move booking to a new slot and send it back for confirmation."""
    booking = await service.reschedule_booking(booking_id, payload, current_user)
    return BookingRead.model_validate(booking)


@router.post("/{booking_id}/cancel", response_model=BookingRead)
async def cancel_booking(
    booking_id: UUID,
    payload: BookingCancelRequest,
    service: BookingService = Depends(get_booking_service),
    current_user=Depends(get_current_user),
) -> BookingRead:
    """Cancel booking outside the cancellation window."""
    booking = await service.cancel_booking(booking_id, payload, current_user)
    return BookingRead.model_validate(booking)


@router.post("/{booking_id}/complete", response_model=BookingRead)
async def complete_booking(
    booking_id: UUID,
    service: BookingService = Depends(get_booking_service),
    current_user=Depends(get_current_user),
) -> BookingRead:
    """Mark session completed (admin)."""
    booking = await service.complete_booking(booking_id, current_user)
    return BookingRead.model_validate(booking)


@router.post("/{booking_id}/no-show", response_model=BookingRead)
async def mark_no_show(
    booking_id: UUID,
    service: BookingService = Depends(get_booking_service),
    current_user=Depends(get_current_user),
) -> BookingRead:
    """Mark user absent from the session (admin)."""
    booking = await service.mark_no_show(booking_id, current_user)
    return BookingRead.model_validate(booking)


@router.post("/{booking_id}/feedback", response_model=BookingRead)
async def submit_feedback(
    booking_id: UUID,
    payload: BookingFeedbackRequest,
    service: BookingService = Depends(get_booking_service),
    current_user=Depends(get_current_user),
) -> BookingRead:
    """Leave feedback on a completed session (owner)."""
    booking = await service.submit_feedback(booking_id, payload, current_user)
    return BookingRead.model_validate(booking)
