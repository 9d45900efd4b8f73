"""Booking repository layer."""

from __future__ import annotations

from datetime import date, datetime
from uuid import UUID

from sqlalchemy import Select, func, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from app.core.database import violates_constraint
from app.core.enums import BookingStatusEnum
from app.modules.booking.models import ACTIVE_BOOKING_INDEX, Booking, BookingSequence
from app.shared.exceptions import ConflictException


class BookingRepository:
    """DB operations for booking domain."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def next_reference_number(self, day: date) -> int:
        """Take the next per-day sequence value in one upsert statement."""
        stmt = (
            insert(BookingSequence)
            .values(day=day, last_value=1)
            .on_conflict_do_update(
                index_elements=[BookingSequence.day],
                set_={"last_value": BookingSequence.last_value + 1},
            )
            .returning(BookingSequence.last_value)
        )
        return int(await self.session.scalar(stmt))

    async def create_booking(self, **fields) -> Booking:
        booking = Booking(**fields)
        try:
            async with self.session.begin_nested():
                self.session.add(booking)
                await self.session.flush()
        except IntegrityError as exc:
            if violates_constraint(exc, ACTIVE_BOOKING_INDEX):
                raise ConflictException(
                    "You already have an active booking for this consultation",
                    code="duplicate_active_booking",
                ) from exc
            raise
        return booking

    async def get_booking_by_id(self, booking_id: UUID) -> Booking | None:
        stmt = select(Booking).where(Booking.id == booking_id)
        return await self.session.scalar(stmt)

    async def user_has_bookings(self, user_id: UUID) -> bool:
        stmt = select(Booking.id).where(Booking.user_id == user_id).limit(1)
        return (await self.session.scalar(stmt)) is not None

    async def _paginate(
        self,
        base_stmt: Select[tuple[Booking]],
        limit: int,
        offset: int,
        *order_by,
    ) -> tuple[list[Booking], int]:
        count_stmt = select(func.count()).select_from(base_stmt.subquery())
        total = int((await self.session.scalar(count_stmt)) or 0)

        stmt = base_stmt.order_by(*(order_by or (Booking.created_at.desc(),))).limit(limit).offset(offset)
        items = (await self.session.scalars(stmt)).all()
        return items, total

    async def list_bookings(
        self,
        user_id: UUID | None,
        status: BookingStatusEnum | None,
        limit: int,
        offset: int,
    ) -> tuple[list[Booking], int]:
        base_stmt: Select[tuple[Booking]] = select(Booking)
        if user_id is not None:
            base_stmt = base_stmt.where(Booking.user_id == user_id)
        if status is not None:
            base_stmt = base_stmt.where(Booking.status == status)
        return await self._paginate(base_stmt, limit, offset)

    async def list_pending_confirmations(self, limit: int, offset: int) -> tuple[list[Booking], int]:
        base_stmt: Select[tuple[Booking]] = select(Booking).where(
            Booking.status == BookingStatusEnum.PENDING_CONFIRMATION,
        )
        return await self._paginate(
            base_stmt,
            limit,
            offset,
            Booking.payment_completed_at.asc().nulls_last(),
            Booking.created_at.asc(),
        )

    async def list_upcoming(self, now: datetime, limit: int, offset: int) -> tuple[list[Booking], int]:
        base_stmt: Select[tuple[Booking]] = select(Booking).where(
            Booking.status.in_([BookingStatusEnum.CONFIRMED, BookingStatusEnum.PENDING_CONFIRMATION]),
            Booking.confirmed_date_time.is_not(None),
            Booking.confirmed_date_time > now,
        )
        return await self._paginate(base_stmt, limit, offset, Booking.confirmed_date_time.asc())

    async def find_started_confirmed(self, now: datetime) -> list[Booking]:
        stmt = select(Booking).where(
            Booking.status == BookingStatusEnum.CONFIRMED,
            Booking.confirmed_date_time.is_not(None),
            Booking.confirmed_date_time <= now,
        )
        return (await self.session.scalars(stmt)).all()

    async def save(self, booking: Booking) -> Booking:
        try:
            await self.session.flush()
        except StaleDataError as exc:
            raise ConflictException(
                "Booking was modified concurrently, retry the request",
                code="concurrent_modification",
            ) from exc
        return booking
