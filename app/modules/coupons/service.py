"""Coupon business logic layer."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db_session
from app.core.enums import AuditActionEnum, DiscountTypeEnum, PurchaseKindEnum, RoleEnum
from app.core.metrics import COUPON_REDEMPTIONS_TOTAL
from app.modules.audit.repository import AuditRepository
from app.modules.coupons.models import Coupon
from app.modules.coupons.repository import CouponRepository
from app.modules.coupons.rules import clamp_discount_value, normalize_code, validate_coupon
from app.modules.coupons.schemas import (
    CouponCreate,
    CouponUpdate,
    CouponValidateRequest,
    CouponValidationRead,
)
from app.modules.identity.models import User
from app.shared.exceptions import (
    BusinessRuleException,
    ConflictException,
    IntegrityViolationException,
    NotFoundException,
    UnauthorizedException,
    ValidationException,
)
from app.shared.utils import ensure_utc, quantize_money, utc_now


@dataclass(frozen=True)
class CouponQuote:
    """Discount a coupon yields for one prospective purchase."""

    coupon_id: UUID
    code: str
    discount_type: DiscountTypeEnum
    discount_value: Decimal
    original_amount: Decimal
    discount_amount: Decimal

    @property
    def final_amount(self) -> Decimal:
        return quantize_money(self.original_amount - self.discount_amount)


class CouponService:
    """Coupon validation, redemption and admin management."""

    def __init__(self, repository: CouponRepository, audit_repository: AuditRepository) -> None:
        self.repository = repository
        self.audit_repository = audit_repository

    @staticmethod
    def _require_admin(actor: User) -> None:
        if actor.role.name != RoleEnum.ADMIN:
            raise UnauthorizedException("Only admin can manage coupons")

    async def quote(
        self,
        code: str,
        user_id: UUID,
        target_kind: PurchaseKindEnum,
        target_id: UUID | None,
        purchase_amount: Decimal,
    ) -> CouponQuote:
        """Validate code for a purchase and compute its discount."""
        coupon = await self.repository.get_coupon_by_code(normalize_code(code))
        if coupon is None:
            raise NotFoundException("Coupon not found", code="coupon_not_found")

        already_redeemed = await self.repository.has_redeemed(coupon.id, user_id)
        discount = validate_coupon(
            coupon,
            already_redeemed=already_redeemed,
            target_kind=target_kind,
            target_id=target_id,
            purchase_amount=purchase_amount,
            now=utc_now(),
        )
        return CouponQuote(
            coupon_id=coupon.id,
            code=coupon.code,
            discount_type=coupon.discount_type,
            discount_value=coupon.discount_value,
            original_amount=quantize_money(purchase_amount),
            discount_amount=discount,
        )

    async def validate_code(self, payload: CouponValidateRequest, actor: User) -> CouponValidationRead:
        quote = await self.quote(
            payload.code,
            actor.id,
            payload.target_kind,
            payload.target_id,
            payload.purchase_amount,
        )
        return CouponValidationRead(
            code=quote.code,
            discount_type=quote.discount_type,
            discount_value=quote.discount_value,
            discount_amount=quote.discount_amount,
            original_amount=quote.original_amount,
            final_amount=quote.final_amount,
        )

    async def ensure_redeemable(self, coupon_id: UUID, user_id: UUID) -> None:
        """Re-check a quoted coupon right before payment is taken."""
        coupon = await self.repository.get_coupon_by_id(coupon_id)
        if coupon is None or not coupon.is_active:
            raise BusinessRuleException("Coupon is not active", code="coupon_inactive")
        if coupon.max_uses is not None and coupon.used_count >= coupon.max_uses:
            raise BusinessRuleException("Coupon usage limit reached", code="coupon_exhausted")
        if await self.repository.has_redeemed(coupon_id, user_id):
            raise BusinessRuleException("You have already used this coupon", code="coupon_already_used")

    async def redeem_for_order(self, coupon_id: UUID, user_id: UUID, order_id: UUID) -> None:
        """Record the single redemption that belongs to a completed order."""
        redeemed = await self.repository.redeem(coupon_id, user_id, order_id, utc_now())
        if not redeemed:
            COUPON_REDEMPTIONS_TOTAL.labels(outcome="rejected").inc()
            raise IntegrityViolationException(
                "Coupon can no longer be redeemed for this order",
                code="coupon_redemption_rejected",
            )

        COUPON_REDEMPTIONS_TOTAL.labels(outcome="redeemed").inc()
        await self.audit_repository.create_audit_log(
            actor_id=user_id,
            action=AuditActionEnum.COUPON_REDEEM,
            entity_type="coupon",
            entity_id=str(coupon_id),
            payload={"order_id": str(order_id), "user_id": str(user_id)},
        )

    async def create_coupon(self, payload: CouponCreate, actor: User) -> Coupon:
        self._require_admin(actor)

        code = normalize_code(payload.code)
        if await self.repository.get_coupon_by_code(code) is not None:
            raise ConflictException("Coupon code already exists", code="coupon_code_taken")

        valid_from = ensure_utc(payload.valid_from) if payload.valid_from else utc_now()
        valid_until = ensure_utc(payload.valid_until)
        if valid_until <= valid_from:
            raise ValidationException("valid_until must be after valid_from")

        coupon = await self.repository.create_coupon(
            code=code,
            description=payload.description,
            discount_type=payload.discount_type,
            discount_value=clamp_discount_value(payload.discount_type, payload.discount_value),
            max_uses=payload.max_uses,
            used_count=0,
            valid_from=valid_from,
            valid_until=valid_until,
            is_active=payload.is_active,
            applicable_to=payload.applicable_to,
            specific_course_ids=[str(item) for item in payload.specific_course_ids],
            specific_consultation_ids=[str(item) for item in payload.specific_consultation_ids],
            min_purchase_amount=quantize_money(payload.min_purchase_amount),
            created_by=actor.id,
        )
        await self.audit_repository.create_audit_log(
            actor_id=actor.id,
            action=AuditActionEnum.COUPON_CREATE,
            entity_type="coupon",
            entity_id=str(coupon.id),
            payload={
                "code": coupon.code,
                "discount_type": str(coupon.discount_type),
                "discount_value": str(coupon.discount_value),
                "max_uses": coupon.max_uses,
            },
        )
        return coupon

    async def list_coupons(
        self,
        actor: User,
        is_active: bool | None,
        limit: int,
        offset: int,
    ) -> tuple[list[Coupon], int]:
        self._require_admin(actor)
        return await self.repository.list_coupons(is_active, limit, offset)

    async def get_coupon(self, coupon_id: UUID, actor: User) -> Coupon:
        self._require_admin(actor)
        coupon = await self.repository.get_coupon_by_id(coupon_id)
        if coupon is None:
            raise NotFoundException("Coupon not found", code="coupon_not_found")
        return coupon

    async def update_coupon(self, coupon_id: UUID, payload: CouponUpdate, actor: User) -> Coupon:
        coupon = await self.get_coupon(coupon_id, actor)
        changes = payload.model_dump(exclude_unset=True)

        discount_type = changes.get("discount_type", coupon.discount_type)
        if "discount_type" in changes or "discount_value" in changes:
            value = changes.get("discount_value", coupon.discount_value)
            if value is None:
                raise ValidationException("discount_value cannot be null")
            changes["discount_value"] = clamp_discount_value(discount_type, value)

        if changes.get("max_uses") is not None and changes["max_uses"] < coupon.used_count:
            raise ConflictException("max_uses cannot be lower than current usage", code="coupon_cap_below_usage")

        for key in ("valid_from", "valid_until"):
            if changes.get(key) is not None:
                changes[key] = ensure_utc(changes[key])
        valid_from = changes.get("valid_from") or coupon.valid_from
        valid_until = changes.get("valid_until") or coupon.valid_until
        if valid_until <= valid_from:
            raise ValidationException("valid_until must be after valid_from")

        for key in ("specific_course_ids", "specific_consultation_ids"):
            if changes.get(key) is not None:
                changes[key] = [str(item) for item in changes[key]]
        if changes.get("min_purchase_amount") is not None:
            changes["min_purchase_amount"] = quantize_money(changes["min_purchase_amount"])

        for key, value in changes.items():
            if value is None and key not in ("description", "max_uses"):
                continue
            setattr(coupon, key, value)
        await self.repository.save(coupon)

        await self.audit_repository.create_audit_log(
            actor_id=actor.id,
            action=AuditActionEnum.COUPON_UPDATE,
            entity_type="coupon",
            entity_id=str(coupon.id),
            payload={"changes": {key: str(value) for key, value in changes.items()}},
        )
        return coupon

    async def delete_coupon(self, coupon_id: UUID, actor: User) -> None:
        coupon = await self.get_coupon(coupon_id, actor)
        if coupon.used_count > 0:
            raise ConflictException(
                "Coupon has been redeemed; deactivate it instead",
                code="coupon_in_use",
            )
        await self.repository.delete_coupon(coupon)
        await self.audit_repository.create_audit_log(
            actor_id=actor.id,
            action=AuditActionEnum.COUPON_DELETE,
            entity_type="coupon",
            entity_id=str(coupon_id),
            payload={"code": coupon.code},
        )


async def get_coupon_service(session: AsyncSession = Depends(get_db_session)) -> CouponService:
    """Dependency provider for coupon service."""
    return CouponService(CouponRepository(session), AuditRepository(session))
