from src.database.base import Base, TenantOwnedMixin, TimestampMixin, UUIDPrimaryKeyMixin
from src.database.engine import build_engine, build_session_factory
from src.database.tenant import (
    SESSION_VAR_SYSTEM_BYPASS,
    SESSION_VAR_TENANT_ID,
    apply_tenant_scope,
    read_tenant_scope,
    set_system_bypass,
    set_tenant_scope,
)

__all__ = [
    "Base",
    "TenantOwnedMixin",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    "build_engine",
    "build_session_factory",
    "SESSION_VAR_TENANT_ID",
    "SESSION_VAR_SYSTEM_BYPASS",
    "apply_tenant_scope",
    "set_tenant_scope",
    "set_system_bypass",
    "read_tenant_scope",
]
