"""Domain exception hierarchy for structured error responses."""

from __future__ import annotations


class AppException(Exception):
    """Base exception for all domain errors.

    Subclasses set ``code`` and ``status_code`` at the class level; callers
    provide ``message`` and an optional ``details`` list.
    """

    code: str = "APP_ERROR"
    status_code: int = 500

    def __init__(self, message: str, details: list[dict] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or []


class NotFoundException(AppException):
    code = "NOT_FOUND"
    status_code = 404


class ForbiddenException(AppException):
    code = "FORBIDDEN"
    status_code = 403


class UnauthorizedException(AppException):
    code = "UNAUTHORIZED"
    status_code = 401


class ServiceUnavailableException(AppException):
    code = "SERVICE_UNAVAILABLE"
    status_code = 503


# ---------------------------------------------------------------------------
# Tenancy context errors: raised before any business handler runs
# ---------------------------------------------------------------------------


class UnauthenticatedException(UnauthorizedException):
    code = "UNAUTHENTICATED"


class MissingOrganizationException(AppException):
    code = "MISSING_ORGANIZATION"
    status_code = 400


class TenantNotFoundException(NotFoundException):
    code = "TENANT_NOT_FOUND"


class ScopeAssignmentFailed(AppException):
    """The datastore rejected the tenant session variable.

    Always fatal to the request. The message shown to clients is generic;
    the underlying driver error is chained as ``__cause__`` for the server log.
    """

    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, tenant_id: str) -> None:
        super().__init__("An unexpected error occurred.")
        self.tenant_id = tenant_id


class WebhookVerificationException(AppException):
    code = "INVALID_WEBHOOK"
    status_code = 400
