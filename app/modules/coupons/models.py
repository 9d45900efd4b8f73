"""Coupon ORM models."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy import UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base, BaseModelMixin, str_enum
from app.core.enums import CouponScopeEnum, DiscountTypeEnum
from app.shared.utils import utc_now


class Coupon(BaseModelMixin, Base):
    """Promotional code with bounded, once-per-user usage."""

    __tablename__ = "coupons"
    __table_args__ = (
        CheckConstraint("discount_value >= 0", name="discount_value_non_negative"),
        CheckConstraint(
            "discount_type <> 'percentage' OR discount_value <= 100",
            name="percentage_at_most_100",
        ),
        CheckConstraint("used_count >= 0", name="used_count_non_negative"),
        CheckConstraint("max_uses IS NULL OR max_uses >= 1", name="max_uses_positive"),
        CheckConstraint("max_uses IS NULL OR used_count <= max_uses", name="used_count_within_cap"),
        CheckConstraint("min_purchase_amount >= 0", name="min_purchase_non_negative"),
    )

    code: Mapped[str] = mapped_column(String(50), unique=True, index=True, nullable=False)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    discount_type: Mapped[DiscountTypeEnum] = mapped_column(
        str_enum(DiscountTypeEnum, "discount_type_enum"),
        nullable=False,
    )
    discount_value: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    max_uses: Mapped[int | None] = mapped_column(Integer, nullable=True)
    used_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    valid_from: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now, nullable=False)
    valid_until: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)
    applicable_to: Mapped[CouponScopeEnum] = mapped_column(
        str_enum(CouponScopeEnum, "coupon_scope_enum"),
        default=CouponScopeEnum.ALL,
        nullable=False,
    )
    specific_course_ids: Mapped[list] = mapped_column(JSONB, default=list, nullable=False)
    specific_consultation_ids: Mapped[list] = mapped_column(JSONB, default=list, nullable=False)
    min_purchase_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"), nullable=False)
    created_by: Mapped[UUID | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    redemptions: Mapped[list["CouponRedemption"]] = relationship(
        back_populates="coupon",
        order_by="CouponRedemption.redeemed_at",
    )


class CouponRedemption(BaseModelMixin, Base):
    """One user's successful use of a coupon."""

    __tablename__ = "coupon_redemptions"
    __table_args__ = (
        UniqueConstraint("coupon_id", "user_id", name="uq_coupon_redemptions_coupon_user"),
        UniqueConstraint("order_id", name="uq_coupon_redemptions_order_id"),
    )

    coupon_id: Mapped[UUID] = mapped_column(ForeignKey("coupons.id", ondelete="RESTRICT"), nullable=False, index=True)
    user_id: Mapped[UUID] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    order_id: Mapped[UUID] = mapped_column(ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    redeemed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now, nullable=False)

    coupon: Mapped[Coupon] = relationship(back_populates="redemptions")
