"""Booking schemas."""

from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.core.enums import (
    BookingPaymentStatusEnum,
    BookingStatusEnum,
    CancelledByEnum,
    ConsultationCategoryEnum,
    FitnessLevelEnum,
    GenderEnum,
    MeetingTypeEnum,
    PaymentMethodEnum,
)
from app.modules.billing.schemas import BankTransferSubmission, OrderRead


class UserDetails(BaseModel):
    """Immutable profile block the user submits with a booking."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    age: int | None = Field(default=None, ge=1, le=150)
    gender: GenderEnum | None = None
    weight: float | None = Field(default=None, gt=0, le=700)
    height: float | None = Field(default=None, gt=0, le=300)
    fitness_level: FitnessLevelEnum | None = None
    medical_conditions: str | None = Field(default=None, max_length=1000)
    current_activity: str | None = Field(default=None, max_length=500)
    goals: tuple[str, ...] = ()
    dietary_restrictions: str | None = Field(default=None, max_length=500)
    injuries: str | None = Field(default=None, max_length=500)
    medications: str | None = Field(default=None, max_length=500)
    additional_notes: str | None = Field(default=None, max_length=1000)


class BookingCreate(BaseModel):
    """Create consultation booking and its paired order."""

    offering_id: UUID
    preferred_date: date
    preferred_time: time
    alternative_date: date | None = None
    alternative_time: time | None = None
    meeting_type: MeetingTypeEnum = MeetingTypeEnum.ONLINE
    user_details: UserDetails = Field(default_factory=UserDetails)
    payment_method: PaymentMethodEnum = PaymentMethodEnum.PAYPAL
    coupon_code: str | None = Field(default=None, max_length=50)
    bank_transfer: BankTransferSubmission | None = None


class BookingConfirmRequest(BaseModel):
    """Admin scheduling decision."""

    confirmed_date_time: datetime
    admin_notes: str | None = Field(default=None, max_length=2000)


class BookingRescheduleRequest(BaseModel):
    """Move booking to a new preferred slot."""

    new_date: date
    new_time: time
    reason: str = Field(min_length=1, max_length=500)


class BookingCancelRequest(BaseModel):
    """Cancel booking request."""

    reason: str | None = Field(default=None, max_length=500)


class BookingFeedbackRequest(BaseModel):
    """Post-session feedback."""

    rating: int = Field(ge=1, le=5)
    comment: str | None = Field(default=None, max_length=1000)
    is_public: bool = False


class BookingRead(BaseModel):
    """Booking response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    reference: str
    user_id: UUID
    offering_id: UUID
    offering_title: str
    offering_category: ConsultationCategoryEnum
    duration_minutes: int
    price: Decimal
    currency: str
    meeting_type: MeetingTypeEnum
    preferred_date: date
    preferred_time: time
    alternative_date: date | None
    alternative_time: time | None
    timezone: str
    confirmed_date_time: datetime | None
    status: BookingStatusEnum
    payment_status: BookingPaymentStatusEnum
    details: UserDetails
    is_first_booking: bool
    payment_completed_at: datetime | None
    confirmed_at: datetime | None
    completed_at: datetime | None
    cancelled_at: datetime | None
    cancelled_by: CancelledByEnum | None
    cancellation_reason: str | None
    rescheduled_from: dict | None
    rescheduled_reason: str | None
    rescheduled_count: int
    admin_notes: str | None
    feedback_rating: int | None
    feedback_comment: str | None
    feedback_submitted_at: datetime | None
    created_at: datetime
    updated_at: datetime


class BookingCreatedRead(BaseModel):
    """Booking reference plus its paired order."""

    reference: str
    booking: BookingRead
    order: OrderRead
