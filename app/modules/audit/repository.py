"""Audit repository layer."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enums import AuditActionEnum, AuditSeverityEnum, OutboxStatusEnum
from app.modules.audit.models import AuditLog, OutboxEvent
from app.modules.audit.severity import severity_for


@dataclass(frozen=True)
class AuditLogFilters:
    """Optional audit query filters."""

    actor_id: UUID | None = None
    action: AuditActionEnum | None = None
    severity: AuditSeverityEnum | None = None
    entity_type: str | None = None
    created_from: datetime | None = None
    created_to: datetime | None = None


class AuditRepository:
    """Append-only audit log plus transactional outbox.

    Audit entries can only be created and queried; there is no update or delete.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create_audit_log(
        self,
        actor_id: UUID | None,
        action: AuditActionEnum,
        entity_type: str,
        entity_id: str | None,
        payload: dict,
    ) -> AuditLog:
        action = AuditActionEnum(action)
        log = AuditLog(
            actor_id=actor_id,
            action=action,
            severity=severity_for(action),
            entity_type=entity_type,
            entity_id=entity_id,
            payload=payload,
        )
        self.session.add(log)
        await self.session.flush()
        return log

    async def list_audit_logs(
        self,
        filters: AuditLogFilters,
        limit: int,
        offset: int,
    ) -> tuple[list[AuditLog], int]:
        base_stmt: Select[tuple[AuditLog]] = select(AuditLog)
        if filters.actor_id is not None:
            base_stmt = base_stmt.where(AuditLog.actor_id == filters.actor_id)
        if filters.action is not None:
            base_stmt = base_stmt.where(AuditLog.action == filters.action)
        if filters.severity is not None:
            base_stmt = base_stmt.where(AuditLog.severity == filters.severity)
        if filters.entity_type is not None:
            base_stmt = base_stmt.where(AuditLog.entity_type == filters.entity_type)
        if filters.created_from is not None:
            base_stmt = base_stmt.where(AuditLog.created_at >= filters.created_from)
        if filters.created_to is not None:
            base_stmt = base_stmt.where(AuditLog.created_at <= filters.created_to)

        count_stmt = select(func.count()).select_from(base_stmt.subquery())
        total = int((await self.session.scalar(count_stmt)) or 0)

        stmt = base_stmt.order_by(AuditLog.created_at.desc()).limit(limit).offset(offset)
        items = (await self.session.scalars(stmt)).all()
        return items, total

    async def create_outbox_event(
        self,
        aggregate_type: str,
        aggregate_id: str,
        event_type: str,
        payload: dict,
    ) -> OutboxEvent:
        event = OutboxEvent(
            aggregate_type=aggregate_type,
            aggregate_id=aggregate_id,
            event_type=event_type,
            payload=payload,
            status=OutboxStatusEnum.PENDING,
        )
        self.session.add(event)
        await self.session.flush()
        return event

    async def get_outbox_event(self, event_id: UUID) -> OutboxEvent | None:
        stmt = select(OutboxEvent).where(OutboxEvent.id == event_id)
        return await self.session.scalar(stmt)

    async def list_pending_outbox(self, limit: int) -> list[OutboxEvent]:
        stmt = (
            select(OutboxEvent)
            .where(OutboxEvent.status == OutboxStatusEnum.PENDING)
            .order_by(OutboxEvent.occurred_at.asc())
            .limit(limit)
        )
        return (await self.session.scalars(stmt)).all()

    async def mark_outbox_processed(
        self,
        event: OutboxEvent,
        processed_at: datetime,
    ) -> OutboxEvent:
        event.status = OutboxStatusEnum.PROCESSED
        event.processed_at = processed_at
        event.error_message = None
        await self.session.flush()
        return event
