from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import Enum, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from src.models.enums import MembershipRole, enum_values

if TYPE_CHECKING:
    from src.models.tenant import Tenant


class Membership(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "membership"

    tenant_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False
    )
    external_user_id: Mapped[str] = mapped_column(String(100), nullable=False)
    role: Mapped[MembershipRole] = mapped_column(
        Enum(MembershipRole, name="membershiprole", values_callable=enum_values),
        server_default=MembershipRole.STAFF.value,
        nullable=False,
    )

    tenant: Mapped[Tenant] = relationship("Tenant", back_populates="memberships")

    __table_args__ = (
        UniqueConstraint("tenant_id", "external_user_id", name="uq_membership_tenant_user"),
        Index("ix_membership_external_user_id", "external_user_id"),
    )
