"""Audit business logic layer."""

from __future__ import annotations

from uuid import UUID

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db_session
from app.core.enums import OutboxStatusEnum, RoleEnum
from app.modules.audit.models import AuditLog, OutboxEvent
from app.modules.audit.repository import AuditLogFilters, AuditRepository
from app.modules.identity.models import User
from app.shared.exceptions import ConflictException, NotFoundException, UnauthorizedException, ValidationException
from app.shared.utils import ensure_utc, utc_now


class AuditService:
    """Read-only audit queries and outbox acknowledgement."""

    def __init__(self, repository: AuditRepository) -> None:
        self.repository = repository

    async def list_logs(
        self,
        actor: User,
        filters: AuditLogFilters,
        limit: int,
        offset: int,
    ) -> tuple[list[AuditLog], int]:
        """List audit logs (admin only)."""
        if actor.role.name != RoleEnum.ADMIN:
            raise UnauthorizedException("Only admin can view audit logs")

        created_from = ensure_utc(filters.created_from) if filters.created_from else None
        created_to = ensure_utc(filters.created_to) if filters.created_to else None
        if created_from and created_to and created_from > created_to:
            raise ValidationException("created_from must not be after created_to")

        normalized = AuditLogFilters(
            actor_id=filters.actor_id,
            action=filters.action,
            severity=filters.severity,
            entity_type=filters.entity_type,
            created_from=created_from,
            created_to=created_to,
        )
        return await self.repository.list_audit_logs(normalized, limit=limit, offset=offset)

    async def list_pending_outbox(self, actor: User, limit: int) -> list[OutboxEvent]:
        """List pending outbox events (admin only)."""
        if actor.role.name != RoleEnum.ADMIN:
            raise UnauthorizedException("Only admin can view outbox")
        return await self.repository.list_pending_outbox(limit)

    async def mark_processed(self, event_id: UUID, actor: User) -> OutboxEvent:
        """Acknowledge delivery of an outbox event (admin only)."""
        if actor.role.name != RoleEnum.ADMIN:
            raise UnauthorizedException("Only admin can acknowledge outbox events")

        event = await self.repository.get_outbox_event(event_id)
        if event is None:
            raise NotFoundException("Outbox event not found")
        if event.status == OutboxStatusEnum.PROCESSED:
            return event
        if event.status != OutboxStatusEnum.PENDING:
            raise ConflictException("Only pending outbox events can be acknowledged")
        return await self.repository.mark_outbox_processed(event, utc_now())


async def get_audit_service(session: AsyncSession = Depends(get_db_session)) -> AuditService:
    """Dependency provider for audit service."""
    return AuditService(AuditRepository(session))
