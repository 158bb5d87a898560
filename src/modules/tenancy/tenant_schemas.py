"""Pydantic v2 schemas for tenant, membership and onboarding endpoints."""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from src.models.enums import MembershipRole, TenantStatus


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class TenantUpdate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)


class OnboardingRequest(BaseModel):
    salon_name: str = Field(..., min_length=1, max_length=255)
    owner_name: str = Field(..., min_length=1, max_length=255)
    phone: str | None = Field(None, max_length=20)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class TenantResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    slug: str | None = None
    external_org_id: str | None = None
    status: TenantStatus
    created_at: datetime
    updated_at: datetime


class CurrentTenantResponse(BaseModel):
    tenant: TenantResponse
    roles: list[str]


class MembershipResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    external_user_id: str
    role: MembershipRole
    created_at: datetime


class OnboardingStatusResponse(BaseModel):
    tenant: TenantResponse
    staff_count: int
    services_count: int
    is_onboarded: bool
    needs_onboarding: bool


class OnboardingResponse(BaseModel):
    tenant_id: uuid.UUID
    message: str = "Onboarding completed successfully"


class WebhookAck(BaseModel):
    received: bool = True
    event_type: str
    tenant_id: uuid.UUID | None = None
