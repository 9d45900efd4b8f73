"""Catalog repository layer."""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy import Select, func, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enums import ConsultationCategoryEnum, ConsultationTypeEnum
from app.modules.catalog.models import ConsultationOffering, Course, CourseEnrollment


class CatalogRepository:
    """Read access to catalog entities plus the enrollment grant."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_offering_by_id(self, offering_id: UUID) -> ConsultationOffering | None:
        stmt = select(ConsultationOffering).where(ConsultationOffering.id == offering_id)
        return await self.session.scalar(stmt)

    async def list_active_offerings(
        self,
        category: ConsultationCategoryEnum | None,
        limit: int,
        offset: int,
    ) -> tuple[list[ConsultationOffering], int]:
        base_stmt: Select[tuple[ConsultationOffering]] = select(ConsultationOffering).where(
            ConsultationOffering.is_active.is_(True),
        )
        if category is not None:
            base_stmt = base_stmt.where(ConsultationOffering.category == category)

        count_stmt = select(func.count()).select_from(base_stmt.subquery())
        total = int((await self.session.scalar(count_stmt)) or 0)

        stmt = (
            base_stmt.order_by(ConsultationOffering.display_order.asc(), ConsultationOffering.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        items = (await self.session.scalars(stmt)).all()
        return items, total

    async def create_offering(
        self,
        title: str,
        category: ConsultationCategoryEnum,
        price: Decimal,
        currency: str,
        duration_minutes: int,
        consultation_type: ConsultationTypeEnum,
        available_days: list[str],
        available_time_slots: list[dict],
        description: str = "",
    ) -> ConsultationOffering:
        offering = ConsultationOffering(
            title=title,
            description=description,
            category=category,
            price=price,
            currency=currency,
            duration_minutes=duration_minutes,
            consultation_type=consultation_type,
            available_days=available_days,
            available_time_slots=available_time_slots,
            is_active=True,
        )
        self.session.add(offering)
        await self.session.flush()
        return offering

    async def get_course_by_id(self, course_id: UUID) -> Course | None:
        stmt = select(Course).where(Course.id == course_id)
        return await self.session.scalar(stmt)

    async def create_course(self, title: str, price: Decimal, currency: str) -> Course:
        course = Course(title=title, price=price, currency=currency, is_published=True)
        self.session.add(course)
        await self.session.flush()
        return course

    async def get_enrollment(self, user_id: UUID, course_id: UUID) -> CourseEnrollment | None:
        stmt = select(CourseEnrollment).where(
            CourseEnrollment.user_id == user_id,
            CourseEnrollment.course_id == course_id,
        )
        return await self.session.scalar(stmt)

    async def grant_enrollment(self, user_id: UUID, course_id: UUID, order_id: UUID) -> bool:
        """Insert enrollment unless it exists; return True when a row was created."""
        stmt = (
            insert(CourseEnrollment)
            .values(user_id=user_id, course_id=course_id, order_id=order_id)
            .on_conflict_do_nothing(constraint="uq_course_enrollments_user_course")
            .returning(CourseEnrollment.id)
        )
        created_id = await self.session.scalar(stmt)
        return created_id is not None
