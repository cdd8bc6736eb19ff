# Supabase tables: u_page_settings
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

u_page_settings:
- id: uuid (primary key)
- app_key: text (not null) - values: system, nova, pulsar
- page_key: text (not null) - e.g. "weather", "users_groups"
- page_name: text (not null)
- is_visible: boolean (not null, default: true)
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)
- unique constraint on (app_key, page_key)

Visibility only drives the menu; it is never a security boundary.
Permission checks still decide whether a page can be read or written.
"""
