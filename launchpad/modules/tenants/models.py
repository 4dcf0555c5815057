# Supabase tables: tenants, tenant_domains (platform project)
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

tenants
- id: uuid (primary key)
- team_id: bigint (not null) - Red Bricks team that owns the site
- slug: text (unique, not null) - subdomain
- display_name: text (not null)
- template: text (not null, default: 'preconstruction-v1')
- status: text (not null, default: 'provisioning') - values: provisioning, active, suspended, archived
- theme_preset: text (default: 'luxury-blue')
- feature_flags: jsonb (default: {})
- admin_email: text (not null)
- supabase_project_ref: text (nullable until the database exists)
- schema_version: text (nullable until migrations run) - version of the last applied template migration
- created_at / updated_at: timestamptz (updated_at maintained by trigger)

tenant_domains
- id: uuid (primary key)
- tenant_id: uuid (foreign key to tenants.id, on delete cascade)
- hostname: text (unique, not null)
- is_primary: boolean (not null, default: false) - at most one per tenant, kept by the launch pipeline
- ssl_status: text (not null, default: 'pending') - values: pending, active, failed
- verified_at: timestamptz (nullable)
- created_at: timestamptz
"""
