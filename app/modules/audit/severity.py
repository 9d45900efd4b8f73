"""Fixed mapping from audit action to severity."""

from __future__ import annotations

from app.core.enums import AuditActionEnum, AuditSeverityEnum

HIGH_SEVERITY_ACTIONS = frozenset(
    {
        AuditActionEnum.USER_DELETE,
        AuditActionEnum.COURSE_DELETE,
        AuditActionEnum.COUPON_DELETE,
        AuditActionEnum.UNAUTHORIZED_ACCESS_ATTEMPT,
        AuditActionEnum.PASSWORD_RESET,
        AuditActionEnum.SETTINGS_UPDATE,
        AuditActionEnum.INTEGRITY_VIOLATION,
    },
)

MEDIUM_SEVERITY_ACTIONS = frozenset(
    {
        AuditActionEnum.USER_SUSPEND,
        AuditActionEnum.USER_ACTIVATE,
        AuditActionEnum.COURSE_PUBLISH,
        AuditActionEnum.COURSE_UNPUBLISH,
        AuditActionEnum.ORDER_REFUND,
        AuditActionEnum.ORDER_CANCEL,
        AuditActionEnum.BOOKING_CANCEL,
        AuditActionEnum.BOOKING_NO_SHOW,
        AuditActionEnum.BANK_TRANSFER_REJECT,
        AuditActionEnum.COUPON_UPDATE,
        AuditActionEnum.PERMISSION_DENIED,
    },
)


def severity_for(action: AuditActionEnum) -> AuditSeverityEnum:
    """Return severity for an action; unknown-to-the-map actions are low."""
    action = AuditActionEnum(action)
    if action in HIGH_SEVERITY_ACTIONS:
        return AuditSeverityEnum.HIGH
    if action in MEDIUM_SEVERITY_ACTIONS:
        return AuditSeverityEnum.MEDIUM
    return AuditSeverityEnum.LOW
