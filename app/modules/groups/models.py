# Supabase tables: u_groups, u_group_members, u_group_permissions
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

u_groups:
- id: uuid (primary key)
- name: text (not null, unique)
- description: text (nullable)
- color: text (nullable) - badge colour in the admin UI
- is_system: boolean (default: false) - system groups cannot be renamed or deleted
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)

u_group_members:
- id: uuid (primary key)
- group_id: uuid (foreign key to u_groups.id, not null)
- user_id: uuid (foreign key to u_users.id, not null)
- created_at: timestamp (default: now())
- unique constraint on (group_id, user_id)

u_group_permissions:
- id: uuid (primary key)
- group_id: uuid (foreign key to u_groups.id, not null)
- permission_id: uuid (foreign key to u_permissions.id, not null)
- unique constraint on (group_id, permission_id)
"""
