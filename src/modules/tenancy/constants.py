"""Tenancy module constants for RLS and multi-tenant isolation."""

from src.models.enums import MembershipRole

# Identity provider session token locations
SESSION_COOKIE_NAME = "__session"

# Claim keys observed for the same logical value, in lookup order
CLAIM_KEYS_USER_ID = ("sub", "user_id", "userId")
CLAIM_KEYS_ORG_ID = ("org_id", "tenantId", "tenant_Id")
CLAIM_KEYS_ORG_SLUG = ("org_slug", "organization_slug")
CLAIM_KEYS_ROLE = ("org_role", "role")
CLAIM_KEY_ROLES = "roles"
# Compact organization claim: {"o": {"id": ..., "slg": ..., "rol": ...}}
CLAIM_KEY_ORG_COMPACT = "o"

ROLE_PREFIX = "org:"
ROLE_ALIASES = {
    "member": MembershipRole.STAFF.value,
    "basic_member": MembershipRole.STAFF.value,
}

# Directory cache configuration
CACHE_PREFIX = "tenant-directory"
CACHE_TTL_DEFAULT = 60  # seconds

# System operations allowed to run without a tenant scope
SYSTEM_OPERATION_BOOTSTRAP = "tenant_bootstrap"
SYSTEM_OPERATION_LINK_ORGANIZATION = "organization_link"
SYSTEM_OPERATION_CLOSE_ORGANIZATION = "organization_close"
SYSTEM_OPERATION_SYNC_MEMBERSHIP = "membership_sync"
SYSTEM_OPERATIONS = frozenset(
    {
        SYSTEM_OPERATION_BOOTSTRAP,
        SYSTEM_OPERATION_LINK_ORGANIZATION,
        SYSTEM_OPERATION_CLOSE_ORGANIZATION,
        SYSTEM_OPERATION_SYNC_MEMBERSHIP,
    }
)

# Clerk webhook event types
WEBHOOK_EVENT_USER_CREATED = "user.created"
WEBHOOK_EVENT_ORGANIZATION_CREATED = "organization.created"
WEBHOOK_EVENT_ORGANIZATION_UPDATED = "organization.updated"
WEBHOOK_EVENT_ORGANIZATION_DELETED = "organization.deleted"
WEBHOOK_EVENT_MEMBERSHIP_CREATED = "organizationMembership.created"
