# Supabase table: tenant_keys (platform project)
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:
- id: uuid (primary key)
- tenant_id: uuid (foreign key to tenants.id, on delete cascade, not null)
- key_type: text (not null) - see KeyType for known kinds
- encrypted_value: text (not null) - base64(iv):base64(ciphertext):base64(tag)
- validated_at: timestamptz (nullable) - set only after a provider check succeeded
- created_at / updated_at: timestamptz
- UNIQUE(tenant_id, key_type) - writes are upserts on this pair
"""
