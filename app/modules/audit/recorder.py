"""Out-of-band audit recording for security events."""

from __future__ import annotations

import logging
from uuid import UUID

from app.core.database import SessionLocal
from app.core.enums import AuditActionEnum
from app.modules.audit.repository import AuditRepository

logger = logging.getLogger(__name__)


async def record_security_event(
    actor_id: UUID | None,
    action: AuditActionEnum,
    details: dict,
    entity_type: str = "request",
    entity_id: str | None = None,
) -> None:
    """Persist audit entry in its own transaction.

    The request session is already rolled back when a rejected request reaches
    the exception handlers, so the entry is written through a fresh session.
    Recording failures are logged and never replace the original error.
    """
    try:
        async with SessionLocal() as session:
            await AuditRepository(session).create_audit_log(
                actor_id=actor_id,
                action=action,
                entity_type=entity_type,
                entity_id=entity_id,
                payload=details,
            )
            await session.commit()
    except Exception:
        logger.exception("Failed to record security event %s", action)
