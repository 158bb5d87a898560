"""Create schema - tenants, membership and tenant-owned business tables

Revision ID: 001
Revises:
Create Date: 2026-10-17

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import UUID

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# --- Enum types (values, not member names) ---
tenant_status_enum = sa.Enum("active", "suspended", "closed", name="tenantstatus", create_type=False)
membership_role_enum = sa.Enum("owner", "admin", "staff", name="membershiprole", create_type=False)
staff_status_enum = sa.Enum("active", "inactive", name="staffstatus", create_type=False)
service_status_enum = sa.Enum("active", "archived", name="servicestatus", create_type=False)

ENUMS = (tenant_status_enum, membership_role_enum, staff_status_enum, service_status_enum)


def _id_column() -> sa.Column:
    return sa.Column("id", UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), primary_key=True)


def _timestamp_columns() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def _tenant_id_column() -> sa.Column:
    return sa.Column(
        "tenant_id",
        UUID(as_uuid=True),
        sa.ForeignKey("tenants.id", ondelete="RESTRICT"),
        nullable=False,
    )


def upgrade() -> None:
    op.execute("CREATE EXTENSION IF NOT EXISTS pgcrypto;")

    for enum_type in ENUMS:
        enum_type.create(op.get_bind(), checkfirst=True)

    # 1. tenants
    op.create_table(
        "tenants",
        _id_column(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("slug", sa.String(100), nullable=True),
        sa.Column("external_org_id", sa.String(100), nullable=True),
        sa.Column("status", tenant_status_enum, server_default="active", nullable=False),
        *_timestamp_columns(),
    )
    op.create_index(
        "ix_tenants_slug", "tenants", ["slug"], unique=True,
        postgresql_where=sa.text("slug IS NOT NULL"),
    )
    op.create_index(
        "ix_tenants_external_org_id", "tenants", ["external_org_id"], unique=True,
        postgresql_where=sa.text("external_org_id IS NOT NULL"),
    )

    # 2. membership
    op.create_table(
        "membership",
        _id_column(),
        sa.Column(
            "tenant_id", UUID(as_uuid=True),
            sa.ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("external_user_id", sa.String(100), nullable=False),
        sa.Column("role", membership_role_enum, server_default="staff", nullable=False),
        *_timestamp_columns(),
        sa.UniqueConstraint("tenant_id", "external_user_id", name="uq_membership_tenant_user"),
    )
    op.create_index("ix_membership_external_user_id", "membership", ["external_user_id"])

    # 3. customers
    op.create_table(
        "customers",
        _id_column(),
        _tenant_id_column(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(20), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        *_timestamp_columns(),
    )
    op.create_index("ix_customers_tenant_id", "customers", ["tenant_id"])

    # 4. staff
    op.create_table(
        "staff",
        _id_column(),
        _tenant_id_column(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(20), nullable=True),
        sa.Column("role", sa.String(50), server_default="stylist", nullable=False),
        sa.Column("status", staff_status_enum, server_default="active", nullable=False),
        *_timestamp_columns(),
    )
    op.create_index("ix_staff_tenant_id", "staff", ["tenant_id"])

    # 5. services
    op.create_table(
        "services",
        _id_column(),
        _tenant_id_column(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("duration_minutes", sa.Integer, nullable=False),
        sa.Column("status", service_status_enum, server_default="active", nullable=False),
        *_timestamp_columns(),
        sa.UniqueConstraint("tenant_id", "name", name="uq_services_tenant_name"),
    )
    op.create_index("ix_services_tenant_id", "services", ["tenant_id"])


def downgrade() -> None:
    op.drop_table("services")
    op.drop_table("staff")
    op.drop_table("customers")
    op.drop_table("membership")
    op.drop_table("tenants")
    for enum_type in reversed(ENUMS):
        enum_type.drop(op.get_bind(), checkfirst=True)
