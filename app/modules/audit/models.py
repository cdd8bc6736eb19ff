# Supabase tables: u_audit_log
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

u_audit_log:
- id: uuid (primary key)
- user_id: uuid (nullable) - auth user id of whoever acted
- user_email: text (nullable)
- app_key: text (not null, default: 'system')
- action: text (not null) - values: create, update, delete, password_reset
- resource_type: text (not null) - e.g. "user", "superuser"
- resource_id: text (nullable)
- resource_name: text (nullable)
- old_values: jsonb (nullable)
- new_values: jsonb (nullable)
- created_at: timestamp (default: now())

Rows are append-only. Passwords are never written here.
"""
