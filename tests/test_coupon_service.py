from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from types import SimpleNamespace
from uuid import UUID, uuid4

import pytest

import app.modules.coupons.service as coupon_service_module
from app.core.enums import CouponScopeEnum, DiscountTypeEnum, PurchaseKindEnum, RoleEnum
from app.modules.coupons.schemas import CouponCreate, CouponUpdate
from app.modules.coupons.service import CouponService
from app.shared.exceptions import (
    BusinessRuleException,
    ConflictException,
    IntegrityViolationException,
    NotFoundException,
    UnauthorizedException,
)


@dataclass
class FakeCoupon:
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
    specific_course_ids: list[str]
    specific_consultation_ids: list[str]
    min_purchase_amount: Decimal
    created_by: UUID | None = None


@dataclass
class FakeCouponRepository:
    coupons: dict[UUID, FakeCoupon] = field(default_factory=dict)
    redemptions: list[tuple[UUID, UUID, UUID]] = field(default_factory=list)

    async def get_coupon_by_code(self, code: str) -> FakeCoupon | None:
        return next((coupon for coupon in self.coupons.values() if coupon.code == code), None)

    async def get_coupon_by_id(self, coupon_id: UUID) -> FakeCoupon | None:
        return self.coupons.get(coupon_id)

    async def has_redeemed(self, coupon_id: UUID, user_id: UUID) -> bool:
        return any(item[0] == coupon_id and item[1] == user_id for item in self.redemptions)

    async def create_coupon(self, **fields) -> FakeCoupon:
        coupon = FakeCoupon(id=uuid4(), **fields)
        self.coupons[coupon.id] = coupon
        return coupon

    async def save(self, coupon: FakeCoupon) -> FakeCoupon:
        return coupon

    async def delete_coupon(self, coupon: FakeCoupon) -> None:
        self.coupons.pop(coupon.id, None)

    async def redeem(self, coupon_id: UUID, user_id: UUID, order_id: UUID, redeemed_at: datetime) -> bool:
        await asyncio.sleep(0)
        coupon = self.coupons[coupon_id]
        if any(item[0] == coupon_id and (item[1] == user_id or item[2] == order_id) for item in self.redemptions):
            return False
        if coupon.max_uses is not None and coupon.used_count >= coupon.max_uses:
            return False
        self.redemptions.append((coupon_id, user_id, order_id))
        coupon.used_count += 1
        return True


class FakeAuditRepository:
    def __init__(self) -> None:
        self.logs: list[dict] = []

    async def create_audit_log(self, **kwargs) -> None:
        self.logs.append(kwargs)


def make_actor(user_id: UUID, role: RoleEnum = RoleEnum.USER) -> SimpleNamespace:
    return SimpleNamespace(id=user_id, role=SimpleNamespace(name=role))


@pytest.fixture
def fixed_now(monkeypatch: pytest.MonkeyPatch) -> datetime:
    now = datetime(2026, 2, 19, 12, 0, tzinfo=UTC)
    monkeypatch.setattr(coupon_service_module, "utc_now", lambda: now)
    return now


async def create_coupon(service: CouponService, now: datetime, **overrides) -> FakeCoupon:
    values = {
        "code": " ramadan25 ",
        "discount_type": DiscountTypeEnum.PERCENTAGE,
        "discount_value": Decimal("25"),
        "max_uses": 1,
        "valid_until": now + timedelta(days=30),
    }
    values.update(overrides)
    return await service.create_coupon(CouponCreate(**values), make_actor(uuid4(), RoleEnum.ADMIN))


@pytest.mark.asyncio
async def test_create_coupon_normalizes_and_clamps(fixed_now: datetime) -> None:
    repository = FakeCouponRepository()
    audit = FakeAuditRepository()
    service = CouponService(repository, audit)

    coupon = await create_coupon(service, fixed_now, discount_value=Decimal("140"))

    assert coupon.code == "RAMADAN25"
    assert coupon.discount_value == Decimal("100.00")
    assert coupon.valid_from == fixed_now
    assert coupon.used_count == 0
    assert audit.logs[-1]["entity_id"] == str(coupon.id)

    with pytest.raises(ConflictException) as exc_info:
        await create_coupon(service, fixed_now, code="RAMADAN25")
    assert exc_info.value.code == "coupon_code_taken"


@pytest.mark.asyncio
async def test_only_admin_manages_coupons(fixed_now: datetime) -> None:
    service = CouponService(FakeCouponRepository(), FakeAuditRepository())

    with pytest.raises(UnauthorizedException):
        await service.create_coupon(
            CouponCreate(
                code="FREE50",
                discount_type=DiscountTypeEnum.FIXED,
                discount_value=Decimal("50"),
                valid_until=fixed_now + timedelta(days=1),
            ),
            make_actor(uuid4()),
        )


@pytest.mark.asyncio
async def test_quote_reports_discount_for_purchase(fixed_now: datetime) -> None:
    service = CouponService(FakeCouponRepository(), FakeAuditRepository())
    await create_coupon(service, fixed_now)

    quote = await service.quote("Ramadan25", uuid4(), PurchaseKindEnum.COURSE, uuid4(), Decimal("80"))

    assert quote.discount_amount == Decimal("20.00")
    assert quote.final_amount == Decimal("60.00")

    with pytest.raises(NotFoundException):
        await service.quote("MISSING", uuid4(), PurchaseKindEnum.COURSE, None, Decimal("80"))


@pytest.mark.asyncio
async def test_concurrent_redemptions_never_exceed_cap(fixed_now: datetime) -> None:
    repository = FakeCouponRepository()
    service = CouponService(repository, FakeAuditRepository())
    coupon = await create_coupon(service, fixed_now, max_uses=1)

    results = await asyncio.gather(
        service.redeem_for_order(coupon.id, uuid4(), uuid4()),
        service.redeem_for_order(coupon.id, uuid4(), uuid4()),
        return_exceptions=True,
    )

    failures = [result for result in results if isinstance(result, Exception)]
    assert len(failures) == 1
    assert isinstance(failures[0], IntegrityViolationException)
    assert failures[0].code == "coupon_redemption_rejected"
    assert coupon.used_count == 1
    assert len(repository.redemptions) == 1


@pytest.mark.asyncio
async def test_update_cannot_lower_cap_below_usage(fixed_now: datetime) -> None:
    repository = FakeCouponRepository()
    service = CouponService(repository, FakeAuditRepository())
    coupon = await create_coupon(service, fixed_now, max_uses=5)
    coupon.used_count = 3
    admin = make_actor(uuid4(), RoleEnum.ADMIN)

    with pytest.raises(ConflictException) as exc_info:
        await service.update_coupon(coupon.id, CouponUpdate(max_uses=2), admin)
    assert exc_info.value.code == "coupon_cap_below_usage"

    updated = await service.update_coupon(coupon.id, CouponUpdate(max_uses=4, is_active=False), admin)
    assert updated.max_uses == 4
    assert updated.is_active is False

    with pytest.raises(ConflictException) as in_use:
        await service.delete_coupon(coupon.id, admin)
    assert in_use.value.code == "coupon_in_use"


@pytest.mark.asyncio
async def test_redeemability_is_rechecked_before_payment(fixed_now: datetime) -> None:
    repository = FakeCouponRepository()
    service = CouponService(repository, FakeAuditRepository())
    coupon = await create_coupon(service, fixed_now, max_uses=2)
    user_id = uuid4()

    await service.ensure_redeemable(coupon.id, user_id)
    await service.redeem_for_order(coupon.id, user_id, uuid4())

    with pytest.raises(BusinessRuleException) as already_used:
        await service.ensure_redeemable(coupon.id, user_id)
    assert already_used.value.code == "coupon_already_used"

    coupon.used_count = 2
    with pytest.raises(BusinessRuleException) as exhausted:
        await service.ensure_redeemable(coupon.id, uuid4())
    assert exhausted.value.code == "coupon_exhausted"

    coupon.is_active = False
    with pytest.raises(BusinessRuleException) as inactive:
        await service.ensure_redeemable(coupon.id, uuid4())
    assert inactive.value.code == "coupon_inactive"
