"""Tenancy module: request-scoped tenant isolation via PostgreSQL RLS."""

from src.modules.tenancy.auth import SessionTokenVerifier, authenticate_request, normalize_claims
from src.modules.tenancy.bootstrap import (
    BootstrapResult,
    OrganizationSyncResult,
    TenantBootstrapService,
)
from src.modules.tenancy.connection import TenantConnectionFactory
from src.modules.tenancy.directory import TenantDirectory
from src.modules.tenancy.schemas import AuthContext, TenantDirectoryEntry, TenantScope
from src.modules.tenancy.service import TenantAuthorizer, with_tenant_auth
from src.modules.tenancy.system import system_session

__all__ = [
    # Schemas
    "AuthContext",
    "TenantScope",
    "TenantDirectoryEntry",
    # Auth
    "SessionTokenVerifier",
    "authenticate_request",
    "normalize_claims",
    # Directory and connections
    "TenantDirectory",
    "TenantConnectionFactory",
    # Wrapper
    "TenantAuthorizer",
    "with_tenant_auth",
    # System entry point
    "system_session",
    "TenantBootstrapService",
    "BootstrapResult",
    "OrganizationSyncResult",
]
