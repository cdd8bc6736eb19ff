# Supabase tables: u_permissions, u_group_permissions, u_user_permissions
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

u_permissions (immutable catalog, seeded by app/scripts/seed_permissions.py):
- id: uuid (primary key)
- app_key: text (not null) - values: system, nova, pulsar
- resource: text (not null) - e.g. "weather", "users"
- action: text (not null) - values: read, write, admin
- description: text (nullable)
- unique constraint on (app_key, resource, action)

The permission key is "app_key.resource.action", built only by
app.config.permissions_config.PermissionKey.

u_group_permissions:
- id: uuid (primary key)
- group_id: uuid (foreign key to u_groups.id, not null)
- permission_id: uuid (foreign key to u_permissions.id, not null)
- unique constraint on (group_id, permission_id)

u_user_permissions (direct grants):
- id: uuid (primary key)
- user_id: uuid (foreign key to u_users.id, not null)
- permission_id: uuid (foreign key to u_permissions.id, not null)
- unique constraint on (user_id, permission_id)
"""
