"""Catalog ORM models."""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy import UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base, BaseModelMixin, str_enum
from app.core.enums import ConsultationCategoryEnum, ConsultationTypeEnum


class ConsultationOffering(BaseModelMixin, Base):
    """Bookable consultation product."""

    __tablename__ = "consultation_offerings"
    __table_args__ = (
        CheckConstraint("price >= 0", name="price_non_negative"),
        CheckConstraint("duration_minutes BETWEEN 15 AND 480", name="duration_range"),
    )

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    category: Mapped[ConsultationCategoryEnum] = mapped_column(
        str_enum(ConsultationCategoryEnum, "consultation_category_enum"),
        nullable=False,
        index=True,
    )
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="USD", nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    consultation_type: Mapped[ConsultationTypeEnum] = mapped_column(
        str_enum(ConsultationTypeEnum, "consultation_type_enum"),
        default=ConsultationTypeEnum.BOTH,
        nullable=False,
    )
    # Lower-case weekday names; empty means every day.
    available_days: Mapped[list] = mapped_column(JSONB, default=list, nullable=False)
    # [{"start": "HH:MM", "end": "HH:MM"}]; empty means any time.
    available_time_slots: Mapped[list] = mapped_column(JSONB, default=list, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)
    display_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)


class Course(BaseModelMixin, Base):
    """Purchasable course as seen by the order ledger."""

    __tablename__ = "courses"
    __table_args__ = (CheckConstraint("price >= 0", name="price_non_negative"),)

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="USD", nullable=False)
    is_published: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class CourseEnrollment(BaseModelMixin, Base):
    """Course access granted by a completed order."""

    __tablename__ = "course_enrollments"
    __table_args__ = (UniqueConstraint("user_id", "course_id", name="uq_course_enrollments_user_course"),)

    user_id: Mapped[UUID] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    course_id: Mapped[UUID] = mapped_column(ForeignKey("courses.id", ondelete="CASCADE"), nullable=False)
    order_id: Mapped[UUID | None] = mapped_column(ForeignKey("orders.id", ondelete="SET NULL"), nullable=True)
