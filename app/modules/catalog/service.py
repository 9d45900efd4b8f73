"""Catalog read service."""

from __future__ import annotations

from uuid import UUID

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db_session
from app.core.enums import ConsultationCategoryEnum
from app.modules.catalog.models import ConsultationOffering
from app.modules.catalog.repository import CatalogRepository
from app.shared.exceptions import NotFoundException


class CatalogService:
    """Read-only access to consultation offerings."""

    def __init__(self, repository: CatalogRepository) -> None:
        self.repository = repository

    async def list_offerings(
        self,
        category: ConsultationCategoryEnum | None,
        limit: int,
        offset: int,
    ) -> tuple[list[ConsultationOffering], int]:
        return await self.repository.list_active_offerings(category, limit, offset)

    async def get_offering(self, offering_id: UUID) -> ConsultationOffering:
        offering = await self.repository.get_offering_by_id(offering_id)
        if offering is None or not offering.is_active:
            raise NotFoundException("Consultation not found")
        return offering


async def get_catalog_service(session: AsyncSession = Depends(get_db_session)) -> CatalogService:
    """Dependency provider for catalog service."""
    return CatalogService(CatalogRepository(session))
