"""Custom exception hierarchy and handlers."""

from __future__ import annotations

import logging

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse

from app.core.enums import AuditActionEnum
from app.modules.audit.recorder import record_security_event

logger = logging.getLogger(__name__)


class AppException(Exception):
    """Base application exception."""

    status_code = 400
    code = "app_error"

    def __init__(self, message: str, code: str | None = None) -> None:
        self.message = message
        if code is not None:
            self.code = code
        super().__init__(message)


class ValidationException(AppException):
    """Raised when input is malformed."""

    status_code = 400
    code = "validation_error"


class NotFoundException(AppException):
    """Raised when entity is not found."""

    status_code = 404
    code = "not_found"


class ConflictException(AppException):
    """Raised when entity conflicts with current state."""

    status_code = 409
    code = "conflict"


class AuthenticationException(AppException):
    """Raised when the caller cannot be identified."""

    status_code = 401
    code = "unauthenticated"


class UnauthorizedException(AppException):
    """Raised when user has no rights for operation."""

    status_code = 403
    code = "forbidden"


class BusinessRuleException(AppException):
    """Raised when business rule validation fails."""

    status_code = 422
    code = "business_rule_violation"


class IntegrityViolationException(AppException):
    """Raised when a cross-entity consistency rule would be broken."""

    status_code = 409
    code = "integrity_violation"


class ExternalServiceException(AppException):
    """Raised when a remote dependency times out or is unreachable."""

    status_code = 503
    code = "external_dependency_failure"


def _request_actor_id(request: Request):
    return getattr(request.state, "actor_id", None)


def _request_details(request: Request, **extra: object) -> dict:
    details: dict = {"method": request.method, "path": request.url.path}
    details.update(extra)
    return details


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handle custom domain exceptions."""
    if isinstance(exc, IntegrityViolationException):
        logger.error("Integrity violation on %s %s: %s", request.method, request.url.path, exc.message)
        await record_security_event(
            actor_id=_request_actor_id(request),
            action=AuditActionEnum.INTEGRITY_VIOLATION,
            details=_request_details(request, code=exc.code, message=exc.message),
        )
    elif isinstance(exc, UnauthorizedException):
        logger.warning("Permission denied on %s %s", request.method, request.url.path)
        await record_security_event(
            actor_id=_request_actor_id(request),
            action=AuditActionEnum.PERMISSION_DENIED,
            details=_request_details(request, message=exc.message),
        )
    elif isinstance(exc, AuthenticationException):
        logger.warning("Unauthenticated access to %s %s", request.method, request.url.path)
        await record_security_event(
            actor_id=None,
            action=AuditActionEnum.UNAUTHORIZED_ACCESS_ATTEMPT,
            details=_request_details(request, message=exc.message),
        )

    return JSONResponse(
        status_code=exc.status_code,
        content={"error": {"code": exc.code, "message": exc.message}},
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle FastAPI HTTP exceptions in unified shape."""
    if exc.status_code == status.HTTP_401_UNAUTHORIZED:
        await record_security_event(
            actor_id=None,
            action=AuditActionEnum.UNAUTHORIZED_ACCESS_ATTEMPT,
            details=_request_details(request, message=str(exc.detail)),
        )
    elif exc.status_code == status.HTTP_403_FORBIDDEN:
        await record_security_event(
            actor_id=_request_actor_id(request),
            action=AuditActionEnum.PERMISSION_DENIED,
            details=_request_details(request, message=str(exc.detail)),
        )
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": {"code": "http_error", "message": str(exc.detail)}},
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(_: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.exception("Unhandled error: %s", exc)
    return JSONResponse(
        status_code=500,
        content={"error": {"code": "internal_error", "message": "Internal server error"}},
    )


def register_exception_handlers(app) -> None:
    """Register global exception handlers."""
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
