"""Tests for the tenancy API router: /tenant, /tenant/members and /onboarding."""

import uuid
from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from src.app import create_app
from src.exceptions import ForbiddenException, TenantNotFoundException, UnauthenticatedException
from src.models.enums import MembershipRole, TenantStatus
from src.modules.tenancy.schemas import AuthContext, TenantScope
from src.modules.tenancy.tests.factories import FakeAuthorizer, make_settings

NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)


def _tenant(tenant_id, name="Glow Studio"):
    return SimpleNamespace(
        id=tenant_id,
        name=name,
        slug="glow",
        external_org_id="org_glow",
        status=TenantStatus.ACTIVE,
        created_at=NOW,
        updated_at=NOW,
    )


@pytest.fixture
def scope() -> TenantScope:
    return TenantScope(
        connection=AsyncMock(),
        tenant_id=uuid.uuid4(),
        tenant_key="glow",
        user=AuthContext(user_id="user_1", org_slug="glow", roles=frozenset({"owner"})),
    )


def _client(authorizer) -> TestClient:
    app = create_app(make_settings())
    app.state.tenant_authorizer = authorizer
    return TestClient(app)


def test_get_current_tenant(scope):
    authorizer = FakeAuthorizer(scope)
    with patch("src.modules.tenancy.router.TenantService") as svc_cls:
        svc_cls.return_value.get_tenant = AsyncMock(return_value=_tenant(scope.tenant_id))
        resp = _client(authorizer).get("/api/v1/tenant")

    assert resp.status_code == 200
    data = resp.json()
    assert data["tenant"]["id"] == str(scope.tenant_id)
    assert data["roles"] == ["owner"]
    assert authorizer.required_roles is None
    svc_cls.assert_called_once_with(scope.connection)


def test_update_tenant_is_owner_only(scope):
    authorizer = FakeAuthorizer(scope)
    with patch("src.modules.tenancy.router.TenantService") as svc_cls:
        svc_cls.return_value.rename_tenant = AsyncMock(
            return_value=_tenant(scope.tenant_id, name="Renamed")
        )
        resp = _client(authorizer).put("/api/v1/tenant", json={"name": "Renamed"})

    assert resp.status_code == 200
    assert resp.json()["name"] == "Renamed"
    assert authorizer.required_roles == [MembershipRole.OWNER]
    svc_cls.return_value.rename_tenant.assert_awaited_once_with(scope.tenant_id, "Renamed")


def test_update_tenant_rejects_empty_name(scope):
    resp = _client(FakeAuthorizer(scope)).put("/api/v1/tenant", json={"name": ""})
    assert resp.status_code == 422
    assert resp.json()["error"]["code"] == "VALIDATION_ERROR"


def test_list_members_requires_owner_or_admin(scope):
    authorizer = FakeAuthorizer(scope)
    member = SimpleNamespace(
        id=uuid.uuid4(), external_user_id="user_1", role=MembershipRole.OWNER, created_at=NOW
    )
    with patch("src.modules.tenancy.router.MembershipService") as svc_cls:
        svc_cls.return_value.list_members = AsyncMock(return_value=[member])
        resp = _client(authorizer).get("/api/v1/tenant/members")

    assert resp.status_code == 200
    assert resp.json()[0]["role"] == "owner"
    assert authorizer.required_roles == [MembershipRole.OWNER, MembershipRole.ADMIN]


def test_onboarding_status(scope):
    with patch("src.modules.tenancy.router.OnboardingService") as svc_cls:
        svc_cls.return_value.get_status = AsyncMock(
            return_value={
                "tenant": _tenant(scope.tenant_id, name="New Salon"),
                "staff_count": 0,
                "services_count": 5,
                "is_onboarded": False,
            }
        )
        resp = _client(FakeAuthorizer(scope)).get("/api/v1/onboarding")

    assert resp.status_code == 200
    assert resp.json()["needs_onboarding"] is True
    svc_cls.assert_called_once_with(scope.connection, "New Salon")


def test_complete_onboarding_is_owner_only(scope):
    authorizer = FakeAuthorizer(scope)
    with patch("src.modules.tenancy.router.OnboardingService") as svc_cls:
        svc_cls.return_value.complete = AsyncMock()
        resp = _client(authorizer).post(
            "/api/v1/onboarding", json={"salon_name": "Glow Studio", "owner_name": "Asha"}
        )

    assert resp.status_code == 200
    assert resp.json()["tenant_id"] == str(scope.tenant_id)
    assert authorizer.required_roles == [MembershipRole.OWNER]


@pytest.mark.parametrize(
    "error,status,code",
    [
        (UnauthenticatedException("Authentication required"), 401, "UNAUTHENTICATED"),
        (ForbiddenException("Requires one of roles: owner"), 403, "FORBIDDEN"),
        (TenantNotFoundException("Tenant not found"), 404, "TENANT_NOT_FOUND"),
    ],
)
def test_context_errors_render_structured_payload(scope, error, status, code):
    resp = _client(FakeAuthorizer(scope, error=error)).get("/api/v1/tenant")

    assert resp.status_code == status
    body = resp.json()["error"]
    assert body["code"] == code
    assert body["requestId"]


def test_missing_database_url_is_fatal(monkeypatch):
    from pydantic import ValidationError

    from src.config import Settings

    monkeypatch.delenv("DATABASE_URL", raising=False)
    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_scope_failure_returns_generic_error(scope):
    from src.exceptions import ScopeAssignmentFailed

    resp = _client(FakeAuthorizer(scope, error=ScopeAssignmentFailed("t-1"))).get("/api/v1/tenant")

    assert resp.status_code == 500
    body = resp.json()["error"]
    assert body["code"] == "INTERNAL_ERROR"
    assert body["message"] == "An unexpected error occurred."
    assert "t-1" not in resp.text


def test_health_is_trivial(scope):
    resp = _client(FakeAuthorizer(scope)).get("/health")
    assert resp.json() == {"status": "ok"}


def test_readiness_reports_rls_failure(scope):
    from src.database.rls_check import RLSCheckResult

    client = _client(FakeAuthorizer(scope))
    client.app.state.engine = MagicMock()
    with patch(
        "src.app.run_rls_check",
        AsyncMock(return_value=RLSCheckResult(ok=False, message="bypasses row-level security")),
    ):
        resp = client.get("/health/ready")

    assert resp.status_code == 503
    assert "bypasses" not in resp.text
