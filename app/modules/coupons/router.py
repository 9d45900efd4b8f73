"""Coupon API router."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Response, status

from app.modules.coupons.schemas import (
    CouponCreate,
    CouponDetailRead,
    CouponRead,
    CouponUpdate,
    CouponValidateRequest,
    CouponValidationRead,
)
from app.modules.coupons.service import CouponService, get_coupon_service
from app.modules.identity.service import get_current_user
from app.shared.pagination import Page, build_page, get_pagination_params

router = APIRouter(prefix="/coupons", tags=["coupons"])


@router.post("/validate", response_model=CouponValidationRead)
async def validate_coupon(
    payload: CouponValidateRequest,
    service: CouponService = Depends(get_coupon_service),
    current_user=Depends(get_current_user),
) -> CouponValidationRead:
    """Return discount breakdown or the reason the code cannot be used."""
    return await service.validate_code(payload, current_user)


@router.post("", response_model=CouponRead, status_code=status.HTTP_201_CREATED)
async def create_coupon(
    payload: CouponCreate,
    service: CouponService = Depends(get_coupon_service),
    current_user=Depends(get_current_user),
) -> CouponRead:
    """Create coupon (admin)."""
    coupon = await service.create_coupon(payload, current_user)
    return CouponRead.model_validate(coupon)


@router.get("", response_model=Page[CouponRead])
async def list_coupons(
    active: bool | None = None,
    pagination=Depends(get_pagination_params),
    service: CouponService = Depends(get_coupon_service),
    current_user=Depends(get_current_user),
) -> Page[CouponRead]:
    """List coupons (admin)."""
    items, total = await service.list_coupons(current_user, active, pagination.limit, pagination.offset)
    serialized = [CouponRead.model_validate(item) for item in items]
    return build_page(serialized, total, pagination)


@router.get("/{coupon_id}", response_model=CouponDetailRead)
async def get_coupon(
    coupon_id: UUID,
    service: CouponService = Depends(get_coupon_service),
    current_user=Depends(get_current_user),
) -> CouponDetailRead:
    """Return coupon with redemption history (admin)."""
    coupon = await service.get_coupon(coupon_id, current_user)
    return CouponDetailRead.model_validate(coupon)


@router.patch("/{coupon_id}", response_model=CouponRead)
async def update_coupon(
    coupon_id: UUID,
    payload: CouponUpdate,
    service: CouponService = Depends(get_coupon_service),
    current_user=Depends(get_current_user),
) -> CouponRead:
    """Update coupon (admin)."""
    coupon = await service.update_coupon(coupon_id, payload, current_user)
    return CouponRead.model_validate(coupon)


@router.delete("/{coupon_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_coupon(
    coupon_id: UUID,
    service: CouponService = Depends(get_coupon_service),
    current_user=Depends(get_current_user),
) -> Response:
    """Delete a never-redeemed coupon (admin)."""
    await service.delete_coupon(coupon_id, current_user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
