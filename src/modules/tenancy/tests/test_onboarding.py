"""Unit tests for onboarding and default catalog seeding."""

import uuid
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.dialects import postgresql

from src.exceptions import TenantNotFoundException
from src.models.staff import Staff
from src.modules.tenancy.onboarding_service import (
    DEFAULT_SERVICES,
    OnboardingService,
    seed_default_services,
)


def _scalar(value):
    result = MagicMock()
    result.scalar.return_value = value
    result.scalar_one_or_none.return_value = value
    return result


@pytest.mark.asyncio
async def test_seed_default_services_is_conflict_safe():
    tenant_id = uuid.uuid4()
    db = AsyncMock()

    await seed_default_services(db, tenant_id)

    stmt = db.execute.await_args.args[0]
    sql = str(stmt.compile(dialect=postgresql.dialect()))
    assert "INSERT INTO services" in sql
    assert "ON CONFLICT ON CONSTRAINT uq_services_tenant_name DO NOTHING" in sql


def test_default_catalog_contents():
    names = [name for name, _, _ in DEFAULT_SERVICES]
    assert names == ["Haircut", "Hair Wash", "Hair Color", "Facial", "Manicure"]
    haircut = DEFAULT_SERVICES[0]
    assert (int(haircut[1]), haircut[2]) == (500, 60)


@pytest.mark.asyncio
async def test_status_not_onboarded_with_placeholder_name():
    tenant = SimpleNamespace(id=uuid.uuid4(), name="New Salon")
    db = AsyncMock()
    db.execute.side_effect = [_scalar(tenant), _scalar(3), _scalar(5)]

    status = await OnboardingService(db, "New Salon").get_status(tenant.id)

    assert status["staff_count"] == 3
    assert status["services_count"] == 5
    assert status["is_onboarded"] is False


@pytest.mark.asyncio
async def test_status_onboarded_needs_real_name_and_staff():
    tenant = SimpleNamespace(id=uuid.uuid4(), name="Glow Studio")
    db = AsyncMock()

    db.execute.side_effect = [_scalar(tenant), _scalar(0), _scalar(5)]
    assert (await OnboardingService(db, "New Salon").get_status(tenant.id))["is_onboarded"] is False

    db.execute.side_effect = [_scalar(tenant), _scalar(1), _scalar(5)]
    assert (await OnboardingService(db, "New Salon").get_status(tenant.id))["is_onboarded"] is True


@pytest.mark.asyncio
async def test_complete_renames_adds_owner_staff_and_seeds():
    tenant = SimpleNamespace(id=uuid.uuid4(), name="New Salon")
    db = AsyncMock()
    db.add = MagicMock()
    db.execute.side_effect = [_scalar(tenant), _scalar(None), MagicMock()]

    await OnboardingService(db, "New Salon").complete(
        tenant.id, salon_name="Glow Studio", owner_name="Asha", phone="555-0100"
    )

    assert tenant.name == "Glow Studio"
    staff = db.add.call_args.args[0]
    assert isinstance(staff, Staff)
    assert (staff.name, staff.role, staff.tenant_id) == ("Asha", "owner", tenant.id)
    db.flush.assert_awaited_once()


@pytest.mark.asyncio
async def test_complete_does_not_duplicate_owner_staff():
    tenant = SimpleNamespace(id=uuid.uuid4(), name="Glow Studio")
    db = AsyncMock()
    db.add = MagicMock()
    db.execute.side_effect = [_scalar(tenant), _scalar(uuid.uuid4()), MagicMock()]

    await OnboardingService(db, "New Salon").complete(
        tenant.id, salon_name="Glow Studio", owner_name="Asha"
    )

    db.add.assert_not_called()


@pytest.mark.asyncio
async def test_missing_tenant_row_raises_not_found():
    db = AsyncMock()
    db.execute.side_effect = [_scalar(None)]
    with pytest.raises(TenantNotFoundException):
        await OnboardingService(db, "New Salon").get_status(uuid.uuid4())
