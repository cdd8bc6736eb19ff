# Supabase table: weather_locations
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

weather_locations:
- id: uuid (primary key)
- name: text (not null) - provider-sourced name, never edited by users
- custom_name: text (nullable) - user override of name; null means not overridden
- custom_name_reason: text (nullable)
- custom_name_overridden_by: uuid (nullable, u_users.id)
- custom_name_overridden_at: timestamp (nullable)
- admin1: text (nullable) - region / state
- country: text (nullable)
- lat: float (not null)
- lon: float (not null)
- elevation_m: float (nullable)
- station_id: text (nullable)
- provider_id: text (nullable)
- channel_id: text (nullable)
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)

The API exposes name + custom_name as a single overridable field: a bare
string when custom_name is null, otherwise
{originalValue, overriddenValue, isOverridden, overriddenAt, overriddenBy, reason}.
"""
