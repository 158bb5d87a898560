"""Tenancy module API router -- current tenant, members and onboarding endpoints.

Every route runs its work through ``with_tenant_auth``; the handler receives
only the TenantScope and never sees another tenant's rows.
"""

from fastapi import APIRouter, Depends, Request

from src.config import Settings
from src.models.enums import MembershipRole
from src.modules.tenancy.dependencies import get_app_settings
from src.modules.tenancy.membership_service import MembershipService
from src.modules.tenancy.onboarding_service import OnboardingService
from src.modules.tenancy.schemas import TenantScope
from src.modules.tenancy.service import with_tenant_auth
from src.modules.tenancy.tenant_schemas import (
    CurrentTenantResponse,
    MembershipResponse,
    OnboardingRequest,
    OnboardingResponse,
    OnboardingStatusResponse,
    TenantResponse,
    TenantUpdate,
)
from src.modules.tenancy.tenant_service import TenantService

router = APIRouter(tags=["tenancy"])

OWNER_ONLY = [MembershipRole.OWNER]
MANAGERS = [MembershipRole.OWNER, MembershipRole.ADMIN]


# ---------------------------------------------------------------------------
# Tenant endpoints
# ---------------------------------------------------------------------------


@router.get("/tenant", response_model=CurrentTenantResponse)
async def get_current_tenant(request: Request):
    """Return the caller's tenant and the caller's roles in it."""

    async def handler(scope: TenantScope) -> CurrentTenantResponse:
        tenant = await TenantService(scope.connection).get_tenant(scope.tenant_id)
        return CurrentTenantResponse(
            tenant=TenantResponse.model_validate(tenant),
            roles=sorted(scope.user.roles),
        )

    return await with_tenant_auth(request, handler)


@router.put("/tenant", response_model=TenantResponse)
async def update_current_tenant(request: Request, body: TenantUpdate):
    """Rename the tenant. Owner only."""

    async def handler(scope: TenantScope) -> TenantResponse:
        tenant = await TenantService(scope.connection).rename_tenant(scope.tenant_id, body.name)
        return TenantResponse.model_validate(tenant)

    return await with_tenant_auth(request, handler, OWNER_ONLY)


# ---------------------------------------------------------------------------
# Membership endpoints
# ---------------------------------------------------------------------------


@router.get("/tenant/members", response_model=list[MembershipResponse])
async def list_members(request: Request):
    async def handler(scope: TenantScope) -> list[MembershipResponse]:
        members = await MembershipService(scope.connection).list_members()
        return [MembershipResponse.model_validate(m) for m in members]

    return await with_tenant_auth(request, handler, MANAGERS)


# ---------------------------------------------------------------------------
# Onboarding endpoints
# ---------------------------------------------------------------------------


@router.get("/onboarding", response_model=OnboardingStatusResponse)
async def get_onboarding_status(
    request: Request,
    settings: Settings = Depends(get_app_settings),
):
    async def handler(scope: TenantScope) -> OnboardingStatusResponse:
        svc = OnboardingService(scope.connection, settings.bootstrap_tenant_name)
        status = await svc.get_status(scope.tenant_id)
        return OnboardingStatusResponse(
            tenant=TenantResponse.model_validate(status["tenant"]),
            staff_count=status["staff_count"],
            services_count=status["services_count"],
            is_onboarded=status["is_onboarded"],
            needs_onboarding=not status["is_onboarded"],
        )

    return await with_tenant_auth(request, handler)


@router.post("/onboarding", response_model=OnboardingResponse)
async def complete_onboarding(
    request: Request,
    body: OnboardingRequest,
    settings: Settings = Depends(get_app_settings),
):
    """Set the salon name, add the owner as staff and seed default services."""

    async def handler(scope: TenantScope) -> OnboardingResponse:
        svc = OnboardingService(scope.connection, settings.bootstrap_tenant_name)
        await svc.complete(
            scope.tenant_id,
            salon_name=body.salon_name,
            owner_name=body.owner_name,
            phone=body.phone,
        )
        return OnboardingResponse(tenant_id=scope.tenant_id)

    return await with_tenant_auth(request, handler, OWNER_ONLY)
