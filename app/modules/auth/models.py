# Supabase Auth + u_users
# Sign-in is handled by Supabase's built-in authentication (auth.users).
# Application identity, status and the superuser flag live in u_users.

"""
Supabase Auth provides:
- auth.sign_in_with_password() - Authenticate users
- auth.get_user() - Get current user from JWT token
- auth.sign_out() - Logout users
- auth.admin.create_user() - Used by the create_superuser script (service role)

u_users (linked by auth_user_id -> auth.users.id) is the source of truth for
status (active | pending | inactive) and is_superuser. The system is "locked"
while u_users holds no row with is_superuser = true.
"""
