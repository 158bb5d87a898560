"""FastAPI dependency functions for tenancy collaborators built at startup."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import Request

from src.config import Settings
from src.exceptions import ServiceUnavailableException
from src.modules.tenancy.bootstrap import TenantBootstrapService
from src.modules.tenancy.directory import TenantDirectory

if TYPE_CHECKING:
    from src.modules.tenancy.webhooks import ClerkWebhookVerifier


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_bootstrap_service(request: Request) -> TenantBootstrapService:
    return request.app.state.bootstrap_service


def get_tenant_directory(request: Request) -> TenantDirectory:
    return request.app.state.tenant_directory


def get_webhook_verifier(request: Request) -> ClerkWebhookVerifier:
    """Return the webhook verifier, or 503 when no signing secret is configured."""
    verifier = getattr(request.app.state, "webhook_verifier", None)
    if verifier is None:
        raise ServiceUnavailableException("Webhook processing is not configured")
    return verifier
