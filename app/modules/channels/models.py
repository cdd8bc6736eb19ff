# Supabase table: u_channel_access
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

u_channel_access:
- id: uuid (primary key)
- user_id: uuid (foreign key to u_users.id, not null)
- channel_id: text (not null) - playout channel identifier
- can_write: boolean (default: false)
- created_at: timestamp (default: now())
- unique constraint on (user_id, channel_id)

A user with no row for a channel has no write access to it.
"""
