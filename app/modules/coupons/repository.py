"""Coupon repository layer."""

from __future__ import annotations

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy import Select, func, insert, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.modules.coupons.models import Coupon, CouponRedemption

logger = logging.getLogger(__name__)


class CouponRepository:
    """DB operations for coupons and their redemptions."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_coupon_by_code(self, code: str) -> Coupon | None:
        stmt = select(Coupon).where(Coupon.code == code)
        return await self.session.scalar(stmt)

    async def get_coupon_by_id(self, coupon_id: UUID) -> Coupon | None:
        stmt = select(Coupon).options(selectinload(Coupon.redemptions)).where(Coupon.id == coupon_id)
        return await self.session.scalar(stmt)

    async def list_coupons(
        self,
        is_active: bool | None,
        limit: int,
        offset: int,
    ) -> tuple[list[Coupon], int]:
        base_stmt: Select[tuple[Coupon]] = select(Coupon)
        if is_active is not None:
            base_stmt = base_stmt.where(Coupon.is_active.is_(is_active))

        count_stmt = select(func.count()).select_from(base_stmt.subquery())
        total = int((await self.session.scalar(count_stmt)) or 0)

        stmt = base_stmt.order_by(Coupon.created_at.desc()).limit(limit).offset(offset)
        items = (await self.session.scalars(stmt)).all()
        return items, total

    async def create_coupon(self, **fields) -> Coupon:
        coupon = Coupon(**fields)
        self.session.add(coupon)
        await self.session.flush()
        return coupon

    async def save(self, coupon: Coupon) -> Coupon:
        await self.session.flush()
        return coupon

    async def delete_coupon(self, coupon: Coupon) -> None:
        await self.session.delete(coupon)
        await self.session.flush()

    async def has_redeemed(self, coupon_id: UUID, user_id: UUID) -> bool:
        stmt = select(CouponRedemption.id).where(
            CouponRedemption.coupon_id == coupon_id,
            CouponRedemption.user_id == user_id,
        )
        return (await self.session.scalar(stmt)) is not None

    async def redeem(
        self,
        coupon_id: UUID,
        user_id: UUID,
        order_id: UUID,
        redeemed_at: datetime,
    ) -> bool:
        """Record redemption and take one use in a single savepoint.

        The redemption row is guarded by the (coupon, user) and order unique
        constraints and the counter only moves while it is under the cap, so
        two concurrent checkouts cannot both take the last use.
        """
        savepoint = await self.session.begin_nested()
        try:
            await self.session.execute(
                insert(CouponRedemption).values(
                    coupon_id=coupon_id,
                    user_id=user_id,
                    order_id=order_id,
                    redeemed_at=redeemed_at,
                ),
            )
        except IntegrityError:
            await savepoint.rollback()
            logger.warning("Coupon %s already redeemed by user %s or for order %s", coupon_id, user_id, order_id)
            return False

        result = await self.session.execute(
            update(Coupon)
            .where(
                Coupon.id == coupon_id,
                Coupon.is_active.is_(True),
                or_(Coupon.max_uses.is_(None), Coupon.used_count < Coupon.max_uses),
            )
            .values(used_count=Coupon.used_count + 1),
        )
        if result.rowcount != 1:
            await savepoint.rollback()
            logger.warning("Coupon %s has no remaining uses", coupon_id)
            return False

        await savepoint.commit()
        return True
