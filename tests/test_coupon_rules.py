from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from uuid import UUID, uuid4

import pytest

from app.core.enums import CouponScopeEnum, DiscountTypeEnum, PurchaseKindEnum
from app.modules.coupons.rules import (
    calculate_discount,
    clamp_discount_value,
    normalize_code,
    validate_coupon,
)
from app.shared.exceptions import BusinessRuleException

NOW = datetime(2026, 2, 19, 12, 0, tzinfo=UTC)


@dataclass
class FakeCoupon:
    id: UUID = field(default_factory=uuid4)
    code: str = "RAMADAN25"
    discount_type: DiscountTypeEnum = DiscountTypeEnum.PERCENTAGE
    discount_value: Decimal = Decimal("25")
    max_uses: int | None = 10
    used_count: int = 0
    valid_from: datetime = NOW - timedelta(days=1)
    valid_until: datetime = NOW + timedelta(days=30)
    is_active: bool = True
    applicable_to: CouponScopeEnum = CouponScopeEnum.ALL
    specific_course_ids: list[str] = field(default_factory=list)
    specific_consultation_ids: list[str] = field(default_factory=list)
    min_purchase_amount: Decimal = Decimal("0")


def check(coupon: FakeCoupon, **overrides) -> Decimal:
    arguments = {
        "already_redeemed": False,
        "target_kind": PurchaseKindEnum.CONSULTATION,
        "target_id": uuid4(),
        "purchase_amount": Decimal("200.00"),
        "now": NOW,
    }
    arguments.update(overrides)
    return validate_coupon(coupon, **arguments)


def test_normalize_code_trims_and_uppercases() -> None:
    assert normalize_code("  welcome10 ") == "WELCOME10"


def test_percentage_and_fixed_discounts() -> None:
    assert calculate_discount(DiscountTypeEnum.PERCENTAGE, Decimal("25"), Decimal("200")) == Decimal("50.00")
    assert calculate_discount(DiscountTypeEnum.PERCENTAGE, Decimal("15"), Decimal("99.99")) == Decimal("15.00")
    assert calculate_discount(DiscountTypeEnum.FIXED, Decimal("30"), Decimal("200")) == Decimal("30.00")


def test_fixed_discount_never_exceeds_amount() -> None:
    assert calculate_discount(DiscountTypeEnum.FIXED, Decimal("500"), Decimal("120")) == Decimal("120.00")


def test_discount_values_are_clamped() -> None:
    assert clamp_discount_value(DiscountTypeEnum.PERCENTAGE, Decimal("150")) == Decimal("100.00")
    assert clamp_discount_value(DiscountTypeEnum.FIXED, Decimal("-5")) == Decimal("0.00")
    assert clamp_discount_value(DiscountTypeEnum.FIXED, Decimal("750")) == Decimal("750.00")


@pytest.mark.parametrize(
    ("coupon", "overrides", "expected_code"),
    [
        (FakeCoupon(is_active=False), {}, "coupon_inactive"),
        (FakeCoupon(valid_from=NOW + timedelta(hours=1)), {}, "coupon_not_yet_valid"),
        (FakeCoupon(valid_until=NOW - timedelta(seconds=1)), {}, "coupon_expired"),
        (FakeCoupon(max_uses=3, used_count=3), {}, "coupon_exhausted"),
        (FakeCoupon(), {"already_redeemed": True}, "coupon_already_used"),
        (FakeCoupon(min_purchase_amount=Decimal("250")), {}, "coupon_min_purchase"),
        (FakeCoupon(applicable_to=CouponScopeEnum.COURSES), {}, "coupon_not_applicable"),
    ],
)
def test_validation_failures_report_their_reason(
    coupon: FakeCoupon,
    overrides: dict,
    expected_code: str,
) -> None:
    with pytest.raises(BusinessRuleException) as exc_info:
        check(coupon, **overrides)

    assert exc_info.value.code == expected_code


def test_first_failing_check_wins() -> None:
    coupon = FakeCoupon(is_active=False, valid_until=NOW - timedelta(days=1), used_count=10)

    with pytest.raises(BusinessRuleException) as exc_info:
        check(coupon, already_redeemed=True)

    assert exc_info.value.code == "coupon_inactive"


def test_specific_scope_matches_listed_targets_only() -> None:
    offering_id = uuid4()
    coupon = FakeCoupon(
        applicable_to=CouponScopeEnum.SPECIFIC,
        specific_consultation_ids=[str(offering_id)],
    )

    assert check(coupon, target_id=offering_id) == Decimal("50.00")
    with pytest.raises(BusinessRuleException):
        check(coupon, target_id=uuid4())
    with pytest.raises(BusinessRuleException):
        check(coupon, target_kind=PurchaseKindEnum.COURSE, target_id=offering_id)


def test_unlimited_coupon_and_boundary_minimum() -> None:
    coupon = FakeCoupon(max_uses=None, used_count=5000, min_purchase_amount=Decimal("200"))

    assert check(coupon) == Decimal("50.00")
