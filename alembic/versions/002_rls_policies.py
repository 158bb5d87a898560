"""Row-level security policies, tenant directory lookup and tenant_id trigger

Revision ID: 002
Revises: 001
Create Date: 2026-10-17

"""
from typing import Sequence, Union

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

BUSINESS_TABLES = ("customers", "staff", "services")


def upgrade() -> None:
    # --- Helper functions ---
    op.execute("""
        CREATE OR REPLACE FUNCTION current_tenant_id()
        RETURNS UUID LANGUAGE sql STABLE AS $$
          SELECT NULLIF(current_setting('app.current_tenant', true), '')::UUID;
        $$;
    """)

    op.execute("""
        CREATE OR REPLACE FUNCTION is_system_bypass_active()
        RETURNS BOOLEAN LANGUAGE sql STABLE AS $$
          SELECT COALESCE(current_setting('app.system_bypass', true), 'false') = 'true';
        $$;
    """)

    op.execute("""
        CREATE OR REPLACE FUNCTION set_tenant_id()
        RETURNS TRIGGER LANGUAGE plpgsql AS $$
        DECLARE
          bound_tenant UUID;
        BEGIN
          bound_tenant := current_tenant_id();
          IF bound_tenant IS NULL THEN
            RAISE EXCEPTION 'app.current_tenant must be set for INSERT on %', TG_TABLE_NAME;
          END IF;
          IF NEW.tenant_id IS NULL THEN
            NEW.tenant_id := bound_tenant;
          ELSIF NEW.tenant_id <> bound_tenant THEN
            RAISE EXCEPTION 'Cannot insert into % for a different tenant', TG_TABLE_NAME;
          END IF;
          RETURN NEW;
        END;
        $$;
    """)

    # Directory lookup: minimal columns for an exact slug or provider org id
    # match. The bypass is scoped to the function call by its SET clause.
    op.execute("""
        CREATE OR REPLACE FUNCTION tenant_directory_lookup(lookup_key TEXT)
        RETURNS TABLE (id UUID, slug VARCHAR, external_org_id VARCHAR, status tenantstatus)
        LANGUAGE sql STABLE
        SET app.system_bypass = 'true'
        AS $$
          SELECT t.id, t.slug, t.external_org_id, t.status
          FROM tenants t
          WHERE t.slug = lookup_key OR t.external_org_id = lookup_key;
        $$;
    """)

    # --- TENANTS RLS ---
    op.execute("ALTER TABLE tenants ENABLE ROW LEVEL SECURITY;")
    op.execute("ALTER TABLE tenants FORCE ROW LEVEL SECURITY;")

    op.execute("""
        CREATE POLICY tenants_select_policy ON tenants FOR SELECT
          USING (is_system_bypass_active() OR id = current_tenant_id());
    """)

    op.execute("""
        CREATE POLICY tenants_insert_policy ON tenants FOR INSERT
          WITH CHECK (is_system_bypass_active());
    """)

    op.execute("""
        CREATE POLICY tenants_update_policy ON tenants FOR UPDATE
          USING (is_system_bypass_active() OR id = current_tenant_id())
          WITH CHECK (is_system_bypass_active() OR id = current_tenant_id());
    """)

    # --- MEMBERSHIP RLS ---
    op.execute("ALTER TABLE membership ENABLE ROW LEVEL SECURITY;")
    op.execute("ALTER TABLE membership FORCE ROW LEVEL SECURITY;")

    op.execute("""
        CREATE POLICY membership_isolation_policy ON membership FOR ALL
          USING (is_system_bypass_active() OR tenant_id = current_tenant_id())
          WITH CHECK (is_system_bypass_active() OR tenant_id = current_tenant_id());
    """)

    # --- BUSINESS TABLES RLS (no bypass: rows exist only under a tenant) ---
    for table in BUSINESS_TABLES:
        op.execute(f"ALTER TABLE {table} ENABLE ROW LEVEL SECURITY;")
        op.execute(f"ALTER TABLE {table} FORCE ROW LEVEL SECURITY;")
        op.execute(f"""
            CREATE POLICY {table}_isolation_policy ON {table} FOR ALL
              USING (tenant_id = current_tenant_id())
              WITH CHECK (tenant_id = current_tenant_id());
        """)
        op.execute(f"""
            CREATE TRIGGER trg_{table}_set_tenant
              BEFORE INSERT ON {table}
              FOR EACH ROW EXECUTE FUNCTION set_tenant_id();
        """)


def downgrade() -> None:
    for table in reversed(BUSINESS_TABLES):
        op.execute(f"DROP TRIGGER IF EXISTS trg_{table}_set_tenant ON {table};")
        op.execute(f"DROP POLICY IF EXISTS {table}_isolation_policy ON {table};")
        op.execute(f"ALTER TABLE {table} DISABLE ROW LEVEL SECURITY;")

    op.execute("DROP POLICY IF EXISTS membership_isolation_policy ON membership;")
    op.execute("ALTER TABLE membership DISABLE ROW LEVEL SECURITY;")

    op.execute("DROP POLICY IF EXISTS tenants_update_policy ON tenants;")
    op.execute("DROP POLICY IF EXISTS tenants_insert_policy ON tenants;")
    op.execute("DROP POLICY IF EXISTS tenants_select_policy ON tenants;")
    op.execute("ALTER TABLE tenants DISABLE ROW LEVEL SECURITY;")

    # Drop helper functions
    op.execute("DROP FUNCTION IF EXISTS tenant_directory_lookup(TEXT);")
    op.execute("DROP FUNCTION IF EXISTS set_tenant_id();")
    op.execute("DROP FUNCTION IF EXISTS is_system_bypass_active();")
    op.execute("DROP FUNCTION IF EXISTS current_tenant_id();")
