"""Catalog API router."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends

from app.core.enums import ConsultationCategoryEnum
from app.modules.catalog.schemas import ConsultationOfferingRead
from app.modules.catalog.service import CatalogService, get_catalog_service
from app.shared.pagination import Page, build_page, get_pagination_params

router = APIRouter(prefix="/catalog", tags=["catalog"])


@router.get("/consultations", response_model=Page[ConsultationOfferingRead])
async def list_consultations(
    category: ConsultationCategoryEnum | None = None,
    pagination=Depends(get_pagination_params),
    service: CatalogService = Depends(get_catalog_service),
) -> Page[ConsultationOfferingRead]:
    """List active consultation offerings."""
    items, total = await service.list_offerings(category, pagination.limit, pagination.offset)
    serialized = [ConsultationOfferingRead.model_validate(item) for item in items]
    return build_page(serialized, total, pagination)


@router.get("/consultations/{offering_id}", response_model=ConsultationOfferingRead)
async def get_consultation(
    offering_id: UUID,
    service: CatalogService = Depends(get_catalog_service),
) -> ConsultationOfferingRead:
    """Return a single active consultation offering."""
    offering = await service.get_offering(offering_id)
    return ConsultationOfferingRead.model_validate(offering)
