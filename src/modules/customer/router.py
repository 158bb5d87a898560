"""Customer API router."""

from fastapi import APIRouter, Query, Request

from src.models.enums import MembershipRole
from src.modules.customer.schemas import CustomerCreate, CustomerListResponse, CustomerResponse
from src.modules.customer.service import CustomerService
from src.modules.tenancy.schemas import TenantScope
from src.modules.tenancy.service import with_tenant_auth

router = APIRouter(prefix="/customers", tags=["customers"])


@router.get("", response_model=CustomerListResponse)
async def list_customers(
    request: Request,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
):
    async def handler(scope: TenantScope) -> CustomerListResponse:
        items, total = await CustomerService(scope.connection).list_customers(limit, offset)
        return CustomerListResponse(
            items=[CustomerResponse.model_validate(c) for c in items],
            total=total,
            limit=limit,
            offset=offset,
        )

    return await with_tenant_auth(request, handler)


@router.post("", response_model=CustomerResponse, status_code=201)
async def create_customer(request: Request, body: CustomerCreate):
    async def handler(scope: TenantScope) -> CustomerResponse:
        customer = await CustomerService(scope.connection).create_customer(
            scope.tenant_id, name=body.name, phone=body.phone, email=body.email
        )
        return CustomerResponse.model_validate(customer)

    return await with_tenant_auth(
        request,
        handler,
        [MembershipRole.OWNER, MembershipRole.ADMIN, MembershipRole.STAFF],
    )
