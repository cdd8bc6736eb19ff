# Supabase tables: u_users, auth.users
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py
# Authentication is handled by Supabase Auth (auth.users table)

"""
Expected Supabase table structure:

u_users:
- id: uuid (primary key)
- auth_user_id: uuid (unique, references auth.users.id)
- email: text (unique, not null)
- full_name: text (nullable)
- avatar_url: text (nullable)
- status: text (not null, default: 'pending') - values: active, pending, inactive
- is_superuser: boolean (not null, default: false)
- created_by: uuid (nullable, FK u_users.id) - admin who created the user
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)

Rows are created by the provisioning flow (Supabase Auth trigger or the
create_superuser script). Removal is a hard delete of the row; group
memberships, direct grants and channel access are removed with it.

Pending users are read-only regardless of their grants. Superuser rows can
only be changed by a superuser.
"""
