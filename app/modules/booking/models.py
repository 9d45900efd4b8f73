"""Booking ORM models."""

from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, CheckConstraint, Date, DateTime, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy import Time, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base, BaseModelMixin, str_enum
from app.core.enums import (
    BookingPaymentStatusEnum,
    BookingStatusEnum,
    CancelledByEnum,
    ConsultationCategoryEnum,
    MeetingTypeEnum,
)
from app.modules.booking.schemas import UserDetails

ACTIVE_BOOKING_INDEX = "uq_bookings_active_user_offering"
ACTIVE_BOOKING_STATUS_SQL = "status IN ('pending_payment', 'pending_confirmation', 'confirmed', 'rescheduled')"


class Booking(BaseModelMixin, Base):
    """Paid consultation booking."""

    __tablename__ = "bookings"
    __table_args__ = (
        Index(
            ACTIVE_BOOKING_INDEX,
            "user_id",
            "offering_id",
            unique=True,
            postgresql_where=text(ACTIVE_BOOKING_STATUS_SQL),
        ),
        CheckConstraint("rescheduled_count >= 0", name="rescheduled_count_non_negative"),
        CheckConstraint(
            "feedback_rating IS NULL OR (feedback_rating >= 1 AND feedback_rating <= 5)",
            name="feedback_rating_range",
        ),
    )

    reference: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    user_id: Mapped[UUID] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    offering_id: Mapped[UUID] = mapped_column(
        ForeignKey("consultation_offerings.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    # Catalog snapshot taken at creation.
    offering_title: Mapped[str] = mapped_column(String(200), nullable=False)
    offering_category: Mapped[ConsultationCategoryEnum] = mapped_column(
        str_enum(ConsultationCategoryEnum, "consultation_category_enum"),
        nullable=False,
    )
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)

    meeting_type: Mapped[MeetingTypeEnum] = mapped_column(
        str_enum(MeetingTypeEnum, "meeting_type_enum"),
        default=MeetingTypeEnum.ONLINE,
        nullable=False,
    )
    preferred_date: Mapped[date] = mapped_column(Date, nullable=False)
    preferred_time: Mapped[time] = mapped_column(Time, nullable=False)
    alternative_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    alternative_time: Mapped[time | None] = mapped_column(Time, nullable=True)
    timezone: Mapped[str] = mapped_column(String(64), nullable=False)
    confirmed_date_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, index=True)

    status: Mapped[BookingStatusEnum] = mapped_column(
        str_enum(BookingStatusEnum, "booking_status_enum"),
        default=BookingStatusEnum.PENDING_PAYMENT,
        nullable=False,
        index=True,
    )
    payment_status: Mapped[BookingPaymentStatusEnum] = mapped_column(
        str_enum(BookingPaymentStatusEnum, "booking_payment_status_enum"),
        default=BookingPaymentStatusEnum.PENDING,
        nullable=False,
    )
    user_details: Mapped[dict] = mapped_column(JSONB, default=dict, nullable=False)
    is_first_booking: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    payment_completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    confirmed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    confirmed_by: Mapped[UUID | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    no_show_marked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    cancelled_by: Mapped[CancelledByEnum | None] = mapped_column(
        str_enum(CancelledByEnum, "cancelled_by_enum"),
        nullable=True,
    )
    cancellation_reason: Mapped[str | None] = mapped_column(String(500), nullable=True)

    rescheduled_from: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    rescheduled_reason: Mapped[str | None] = mapped_column(String(500), nullable=True)
    rescheduled_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    admin_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    feedback_rating: Mapped[int | None] = mapped_column(Integer, nullable=True)
    feedback_comment: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    feedback_is_public: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    feedback_submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    version_id: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def details(self) -> UserDetails:
        """Typed view of the stored user detail block."""
        return UserDetails.model_validate(self.user_details or {})


class BookingSequence(Base):
    """Per-day counter backing human-readable booking references."""

    __tablename__ = "booking_sequences"

    day: Mapped[date] = mapped_column(Date, primary_key=True)
    last_value: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
