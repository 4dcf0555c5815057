# Supabase table: tenant_jobs (platform project)
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:
- id: uuid (primary key, default gen_random_uuid())
- tenant_id: uuid (foreign key to tenants.id, on delete cascade, not null)
- job_type: text (not null) - values: launch, update_keys, add_domain, upgrade
- status: text (not null, default: 'pending') - values: pending, running, completed, failed, timeout
- steps: jsonb (not null, default: []) - ordered list of
    {name, status, started_at?, completed_at?, error?}
- error: text (nullable)
- created_at: timestamptz (default: now())
- completed_at: timestamptz (nullable)

steps is a single aggregate value. It is rewritten whole on every step update,
so only the pipeline driving a job may write it while the job is running.
"""
