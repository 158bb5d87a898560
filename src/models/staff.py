from sqlalchemy import Enum, String
from sqlalchemy.orm import Mapped, mapped_column

from src.database.base import Base, TenantOwnedMixin, TimestampMixin, UUIDPrimaryKeyMixin
from src.models.enums import StaffStatus, enum_values


class Staff(UUIDPrimaryKeyMixin, TenantOwnedMixin, TimestampMixin, Base):
    __tablename__ = "staff"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(20))
    role: Mapped[str] = mapped_column(String(50), nullable=False, server_default="stylist")
    status: Mapped[StaffStatus] = mapped_column(
        Enum(StaffStatus, name="staffstatus", values_callable=enum_values),
        server_default=StaffStatus.ACTIVE.value,
        nullable=False,
    )
