"""Audit API router."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from app.core.enums import AuditActionEnum, AuditSeverityEnum
from app.modules.audit.repository import AuditLogFilters
from app.modules.audit.schemas import AuditLogRead, OutboxEventRead
from app.modules.audit.service import AuditService, get_audit_service
from app.modules.identity.service import get_current_user
from app.shared.pagination import Page, build_page, get_pagination_params

router = APIRouter(prefix="/audit", tags=["audit"])


@router.get("/logs", response_model=Page[AuditLogRead])
async def list_logs(
    actor_id: UUID | None = None,
    action: AuditActionEnum | None = None,
    severity: AuditSeverityEnum | None = None,
    entity_type: str | None = None,
    created_from: datetime | None = None,
    created_to: datetime | None = None,
    pagination=Depends(get_pagination_params),
    service: AuditService = Depends(get_audit_service),
    current_user=Depends(get_current_user),
) -> Page[AuditLogRead]:
    """Query audit logs (admin)."""
    filters = AuditLogFilters(
        actor_id=actor_id,
        action=action,
        severity=severity,
        entity_type=entity_type,
        created_from=created_from,
        created_to=created_to,
    )
    items, total = await service.list_logs(current_user, filters, pagination.limit, pagination.offset)
    serialized = [AuditLogRead.model_validate(item) for item in items]
    return build_page(serialized, total, pagination)


@router.get("/outbox/pending", response_model=list[OutboxEventRead])
async def list_pending_outbox(
    limit: int = Query(default=100, ge=1, le=500),
    service: AuditService = Depends(get_audit_service),
    current_user=Depends(get_current_user),
) -> list[OutboxEventRead]:
    """List pending outbox events."""
    items = await service.list_pending_outbox(current_user, limit=limit)
    return [OutboxEventRead.model_validate(item) for item in items]


@router.post("/outbox/{event_id}/processed", response_model=OutboxEventRead)
async def mark_outbox_processed(
    event_id: UUID,
    service: AuditService = Depends(get_audit_service),
    current_user=Depends(get_current_user),
) -> OutboxEventRead:
    """Acknowledge an outbox event as delivered."""
    event = await service.mark_processed(event_id, current_user)
    return OutboxEventRead.model_validate(event)
