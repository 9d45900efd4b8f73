"""Coupon schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.core.enums import CouponScopeEnum, DiscountTypeEnum, PurchaseKindEnum


class CouponCreate(BaseModel):
    """Create coupon request (admin)."""

    code: str = Field(min_length=3, max_length=50)
    description: str | None = Field(default=None, max_length=500)
    discount_type: DiscountTypeEnum
    discount_value: Decimal
    max_uses: int | None = Field(default=None, ge=1)
    valid_from: datetime | None = None
    valid_until: datetime
    is_active: bool = True
    applicable_to: CouponScopeEnum = CouponScopeEnum.ALL
    specific_course_ids: list[UUID] = Field(default_factory=list)
    specific_consultation_ids: list[UUID] = Field(default_factory=list)
    min_purchase_amount: Decimal = Field(default=Decimal("0"), ge=0)


class CouponUpdate(BaseModel):
    """Partial coupon update (admin); code and usage are immutable."""

    description: str | None = Field(default=None, max_length=500)
    discount_type: DiscountTypeEnum | None = None
    discount_value: Decimal | None = None
    max_uses: int | None = Field(default=None, ge=1)
    valid_from: datetime | None = None
    valid_until: datetime | None = None
    is_active: bool | None = None
    applicable_to: CouponScopeEnum | None = None
    specific_course_ids: list[UUID] | None = None
    specific_consultation_ids: list[UUID] | None = None
    min_purchase_amount: Decimal | None = Field(default=None, ge=0)


class CouponRedemptionRead(BaseModel):
    """Redemption record."""

    model_config = ConfigDict(from_attributes=True)

    user_id: UUID
    order_id: UUID
    redeemed_at: datetime


class CouponRead(BaseModel):
    """Coupon response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    code: str
    description: str | None
    discount_type: DiscountTypeEnum
    discount_value: Decimal
    max_uses: int | None
    used_count: int
    valid_from: datetime
    valid_until: datetime
    is_active: bool
    applicable_to: CouponScopeEnum
    specific_course_ids: list[UUID]
    specific_consultation_ids: list[UUID]
    min_purchase_amount: Decimal
    created_at: datetime
    updated_at: datetime


class CouponDetailRead(CouponRead):
    """Coupon with its redemption history."""

    redemptions: list[CouponRedemptionRead]


class CouponValidateRequest(BaseModel):
    """Check a code against a prospective purchase."""

    code: str = Field(min_length=1, max_length=50)
    target_kind: PurchaseKindEnum
    target_id: UUID | None = None
    purchase_amount: Decimal = Field(ge=0)


class CouponValidationRead(BaseModel):
    """Discount breakdown for a valid coupon."""

    valid: bool = True
    code: str
    discount_type: DiscountTypeEnum
    discount_value: Decimal
    discount_amount: Decimal
    original_amount: Decimal
    final_amount: Decimal
