from decimal import Decimal

from sqlalchemy import Enum, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from src.database.base import Base, TenantOwnedMixin, TimestampMixin, UUIDPrimaryKeyMixin
from src.models.enums import ServiceStatus, enum_values


class SalonService(UUIDPrimaryKeyMixin, TenantOwnedMixin, TimestampMixin, Base):
    """A bookable service on a tenant's catalog (haircut, facial, ...)."""

    __tablename__ = "services"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[ServiceStatus] = mapped_column(
        Enum(ServiceStatus, name="servicestatus", values_callable=enum_values),
        server_default=ServiceStatus.ACTIVE.value,
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("tenant_id", "name", name="uq_services_tenant_name"),
    )
