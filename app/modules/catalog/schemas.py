"""Catalog schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from app.core.enums import ConsultationCategoryEnum, ConsultationTypeEnum


class TimeWindow(BaseModel):
    """Daily availability window."""

    start: str
    end: str


class ConsultationOfferingRead(BaseModel):
    """Consultation offering response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    description: str
    category: ConsultationCategoryEnum
    price: Decimal
    currency: str
    duration_minutes: int
    consultation_type: ConsultationTypeEnum
    available_days: list[str]
    available_time_slots: list[TimeWindow]
    is_active: bool
    created_at: datetime
    updated_at: datetime
