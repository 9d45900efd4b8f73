"""Coupon validation and discount math with no storage dependency."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from app.core.enums import CouponScopeEnum, DiscountTypeEnum, PurchaseKindEnum
from app.shared.exceptions import BusinessRuleException
from app.shared.utils import quantize_money

HUNDRED = Decimal("100")


def normalize_code(code: str) -> str:
    return code.strip().upper()


def clamp_discount_value(discount_type: DiscountTypeEnum, value: Decimal) -> Decimal:
    """Clamp to >= 0, and to <= 100 for percentages."""
    clamped = max(Decimal("0"), Decimal(value))
    if discount_type == DiscountTypeEnum.PERCENTAGE:
        clamped = min(HUNDRED, clamped)
    return quantize_money(clamped)


def calculate_discount(discount_type: DiscountTypeEnum, discount_value: Decimal, amount: Decimal) -> Decimal:
    """Return discount for amount; never larger than the amount itself."""
    amount = quantize_money(amount)
    if discount_type == DiscountTypeEnum.PERCENTAGE:
        discount = quantize_money(amount * Decimal(discount_value) / HUNDRED)
    else:
        discount = quantize_money(discount_value)
    return min(discount, amount)


def _is_in_scope(coupon: Any, target_kind: PurchaseKindEnum, target_id: UUID | None) -> bool:
    if coupon.applicable_to == CouponScopeEnum.ALL:
        return True
    if coupon.applicable_to == CouponScopeEnum.COURSES:
        return target_kind == PurchaseKindEnum.COURSE
    if coupon.applicable_to == CouponScopeEnum.CONSULTATIONS:
        return target_kind == PurchaseKindEnum.CONSULTATION

    if target_id is None:
        return False
    if target_kind == PurchaseKindEnum.COURSE:
        allowed = coupon.specific_course_ids
    else:
        allowed = coupon.specific_consultation_ids
    return str(target_id) in {str(item) for item in allowed}


def validate_coupon(
    coupon: Any,
    *,
    already_redeemed: bool,
    target_kind: PurchaseKindEnum,
    target_id: UUID | None,
    purchase_amount: Decimal,
    now: datetime,
) -> Decimal:
    """Run checks in order and return the discount; the first failing check raises."""
    if not coupon.is_active:
        raise BusinessRuleException("Coupon is not active", code="coupon_inactive")
    if now < coupon.valid_from:
        raise BusinessRuleException("Coupon is not valid yet", code="coupon_not_yet_valid")
    if now > coupon.valid_until:
        raise BusinessRuleException("Coupon has expired", code="coupon_expired")
    if coupon.max_uses is not None and coupon.used_count >= coupon.max_uses:
        raise BusinessRuleException("Coupon usage limit reached", code="coupon_exhausted")
    if already_redeemed:
        raise BusinessRuleException("You have already used this coupon", code="coupon_already_used")
    if quantize_money(purchase_amount) < quantize_money(coupon.min_purchase_amount):
        raise BusinessRuleException(
            f"Minimum purchase amount is {quantize_money(coupon.min_purchase_amount)}",
            code="coupon_min_purchase",
        )
    if not _is_in_scope(coupon, target_kind, target_id):
        raise BusinessRuleException("Coupon does not apply to this purchase", code="coupon_not_applicable")

    return calculate_discount(coupon.discount_type, coupon.discount_value, purchase_amount)
