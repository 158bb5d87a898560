from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import Enum, Index, String, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from src.models.enums import TenantStatus, enum_values

if TYPE_CHECKING:
    from src.models.membership import Membership


class Tenant(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """One salon business. ``id`` is the internal tenant id and never changes.

    ``slug`` and ``external_org_id`` are the identity provider's organization
    slug and id; they are lookup keys only and may be reassigned.
    """

    __tablename__ = "tenants"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str | None] = mapped_column(String(100))
    external_org_id: Mapped[str | None] = mapped_column(String(100))
    status: Mapped[TenantStatus] = mapped_column(
        Enum(TenantStatus, name="tenantstatus", values_callable=enum_values),
        server_default=TenantStatus.ACTIVE.value,
        nullable=False,
    )

    memberships: Mapped[list[Membership]] = relationship("Membership", back_populates="tenant")

    __table_args__ = (
        Index("ix_tenants_slug", "slug", unique=True, postgresql_where=text("slug IS NOT NULL")),
        Index(
            "ix_tenants_external_org_id",
            "external_org_id",
            unique=True,
            postgresql_where=text("external_org_id IS NOT NULL"),
        ),
    )
