"""Identity provider webhooks -- signature verification and the Clerk endpoint.

Events acted on:

- ``user.created``: provision the new user's tenant.
- ``organization.created`` / ``organization.updated``: link the organization
  to a tenant (or refresh its slug), which makes the tenant resolvable.
- ``organization.deleted``: close the tenant.
- ``organizationMembership.created``: record the member on the tenant.

Deliveries are retried by the provider on any non-2xx response, so every
handler is idempotent.
"""

import json
import logging
from typing import Any

from fastapi import APIRouter, Depends, Request
from slowapi import Limiter
from slowapi.util import get_remote_address
from svix.webhooks import Webhook, WebhookVerificationError

from src.exceptions import WebhookVerificationException
from src.modules.tenancy.bootstrap import OrganizationSyncResult, TenantBootstrapService
from src.modules.tenancy.constants import (
    WEBHOOK_EVENT_MEMBERSHIP_CREATED,
    WEBHOOK_EVENT_ORGANIZATION_CREATED,
    WEBHOOK_EVENT_ORGANIZATION_DELETED,
    WEBHOOK_EVENT_ORGANIZATION_UPDATED,
    WEBHOOK_EVENT_USER_CREATED,
)
from src.modules.tenancy.dependencies import (
    get_bootstrap_service,
    get_tenant_directory,
    get_webhook_verifier,
)
from src.modules.tenancy.directory import TenantDirectory
from src.modules.tenancy.tenant_schemas import WebhookAck

logger = logging.getLogger(__name__)

SVIX_HEADERS = ("svix-id", "svix-timestamp", "svix-signature")

limiter = Limiter(key_func=get_remote_address)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


class ClerkWebhookVerifier:
    def __init__(self, signing_secret: str) -> None:
        self._webhook = Webhook(signing_secret)

    def verify(self, body: bytes, headers: dict[str, str]) -> dict[str, Any]:
        """Return the verified event payload.

        Raises:
            WebhookVerificationException: headers missing or signature invalid.
        """
        svix_headers = {name: headers.get(name) for name in SVIX_HEADERS}
        missing = [name for name, value in svix_headers.items() if not value]
        if missing:
            raise WebhookVerificationException(
                "Missing webhook signature headers",
                details=[{"field": name, "message": "required"} for name in missing],
            )
        try:
            self._webhook.verify(body, svix_headers)
        except WebhookVerificationError as exc:
            logger.warning("Webhook signature verification failed: %s", exc)
            raise WebhookVerificationException("Invalid webhook signature") from exc

        # Webhook.verify returns None on svix 2.x
        try:
            event = json.loads(body)
        except ValueError as exc:
            raise WebhookVerificationException("Webhook payload is not valid JSON") from exc
        if not isinstance(event, dict):
            raise WebhookVerificationException("Webhook payload must be a JSON object")
        return event


def _required(value: Any, message: str) -> str:
    if not value or not isinstance(value, str):
        raise WebhookVerificationException(message)
    return value


async def _organization_ack(
    event_type: str, result: OrganizationSyncResult | None, directory: TenantDirectory
) -> WebhookAck:
    if result is None:
        return WebhookAck(event_type=event_type)
    if result.stale_keys:
        await directory.forget(*result.stale_keys)
    return WebhookAck(event_type=event_type, tenant_id=result.tenant_id)


@router.post("/clerk", response_model=WebhookAck)
@limiter.limit("120/minute")
async def clerk_webhook(
    request: Request,
    verifier: ClerkWebhookVerifier = Depends(get_webhook_verifier),
    bootstrap: TenantBootstrapService = Depends(get_bootstrap_service),
    directory: TenantDirectory = Depends(get_tenant_directory),
):
    """Handle a signed Clerk event. Provisioning failures surface as 500 so the
    provider retries the delivery."""
    body = await request.body()
    event = verifier.verify(body, dict(request.headers))

    event_type = event.get("type", "")
    data = event.get("data") or {}

    if event_type == WEBHOOK_EVENT_USER_CREATED:
        user_id = _required(data.get("id"), "Webhook payload has no user id")
        result = await bootstrap.bootstrap_tenant_for_new_user(user_id)
        return WebhookAck(event_type=event_type, tenant_id=result.tenant_id)

    if event_type in (WEBHOOK_EVENT_ORGANIZATION_CREATED, WEBHOOK_EVENT_ORGANIZATION_UPDATED):
        org_id = _required(data.get("id"), "Webhook payload has no organization id")
        result = await bootstrap.link_organization(
            org_id,
            data.get("slug"),
            owner_user_id=data.get("created_by") or None,
            name=data.get("name") or None,
        )
        return await _organization_ack(event_type, result, directory)

    if event_type == WEBHOOK_EVENT_ORGANIZATION_DELETED:
        org_id = _required(data.get("id"), "Webhook payload has no organization id")
        result = await bootstrap.close_organization(org_id)
        return await _organization_ack(event_type, result, directory)

    if event_type == WEBHOOK_EVENT_MEMBERSHIP_CREATED:
        org_id = _required(
            (data.get("organization") or {}).get("id"), "Webhook payload has no organization id"
        )
        user_id = _required(
            (data.get("public_user_data") or {}).get("user_id"), "Webhook payload has no user id"
        )
        tenant_id = await bootstrap.add_member(org_id, user_id, data.get("role"))
        return WebhookAck(event_type=event_type, tenant_id=tenant_id)

    logger.info("Ignoring webhook event type=%s", event_type)
    return WebhookAck(event_type=event_type)
