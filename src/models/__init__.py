# Import all models so SQLAlchemy metadata is populated for Alembic autogenerate
from src.models.customer import Customer
from src.models.enums import MembershipRole, ServiceStatus, StaffStatus, TenantStatus
from src.models.membership import Membership
from src.models.salon_service import SalonService
from src.models.staff import Staff
from src.models.tenant import Tenant

__all__ = [
    "Customer",
    "Membership",
    "MembershipRole",
    "SalonService",
    "ServiceStatus",
    "Staff",
    "StaffStatus",
    "Tenant",
    "TenantStatus",
]
